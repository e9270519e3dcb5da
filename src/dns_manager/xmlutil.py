"""Convert XML API responses into plain nested dicts."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def _convert(element: ET.Element) -> Any:
    attrs = dict(element.attrib)
    children = list(element)

    if not children:
        text = (element.text or "").strip()
        if attrs:
            return {"_": text, **attrs}
        return text or None

    result: dict[str, Any] = {}
    for child in children:
        name = _local_name(child.tag)
        value = _convert(child)
        if name in result:
            if not isinstance(result[name], list):
                result[name] = [result[name]]
            result[name].append(value)
        else:
            result[name] = value
    if attrs:
        result.update(attrs)
    return result


def parse_xml(text: str) -> dict[str, Any]:
    """Parse ``text`` into ``{root_tag: converted}``.

    Namespaces are dropped from tag names. Leaf elements become their text
    (or ``None`` when empty); leaves carrying attributes become a dict with
    the text under ``"_"``. Repeated sibling tags are folded into a list.

    Raises:
        ValueError: If ``text`` is not well-formed XML.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ValueError(f"Malformed XML: {exc}") from exc
    return {_local_name(root.tag): _convert(root)}


def as_list(value: Any) -> list:
    """Normalize a possibly-single, possibly-missing element into a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
