"""Shared test fixtures for dns-manager."""

import pytest

from dns_manager.crypto import CredentialCipher
from dns_manager.models import Domain, ProviderAccount
from dns_manager.store import InMemoryStore


@pytest.fixture
def cipher():
    return CredentialCipher(CredentialCipher.generate_key())


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def account(store, cipher):
    return store.add_account(
        ProviderAccount(
            id="acct-1",
            provider="cloudflare",
            label="Main",
            credentials=cipher.encrypt({"apiToken": "tok"}),
        )
    )


@pytest.fixture
def domain(store, account):
    return store.add_domain(Domain(id="dom-1", account_id=account.id, name="example.com", remote_id="zone-1"))
