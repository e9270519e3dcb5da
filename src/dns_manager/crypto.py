"""Provider credential encryption at rest (Fernet)."""

from __future__ import annotations

import json
from collections.abc import Mapping

from cryptography.fernet import Fernet, InvalidToken


class CredentialCipher:
    """Encrypts provider credential maps into opaque tokens and back.

    Decrypted credentials are returned to the caller and never cached here.
    """

    def __init__(self, key: str | bytes) -> None:
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as exc:
            raise ValueError("Encryption key must be 32 url-safe base64-encoded bytes") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt(self, credentials: Mapping[str, str]) -> str:
        payload = json.dumps(dict(credentials), sort_keys=True, separators=(",", ":"))
        return self._fernet.encrypt(payload.encode()).decode()

    def decrypt(self, token: str) -> dict[str, str]:
        """Return the credential map sealed in ``token``.

        Raises:
            ValueError: If the token was not produced with this key or is corrupt.
                The token itself is not included in the message.
        """
        try:
            payload = self._fernet.decrypt(token.encode())
        except InvalidToken:
            raise ValueError("Stored credentials could not be decrypted") from None
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("Stored credentials are not a key-value map")
        return {str(key): str(value) for key, value in data.items()}
