"""Decoding of base64 JSON token metadata documents."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from ..models.schemas import NOT_AVAILABLE
from ..utils.constants import TOKEN_URI_JSON_PREFIX


class MetadataDecodeError(ValueError):
    """Raised when a token URI is not a base64 JSON data document."""


@dataclass(frozen=True, slots=True)
class AttributeBag:
    """Named ``trait_type`` values from a metadata document."""

    name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def get(self, label: str, default: str = NOT_AVAILABLE) -> str:
        value = self.attributes.get(label)
        if value is None or value == "":
            return default
        return str(value)

    def __contains__(self, label: object) -> bool:
        return label in self.attributes


def decode_token_uri(token_uri: str) -> AttributeBag:
    """Parse a ``data:application/json;base64,`` token URI."""

    if not isinstance(token_uri, str) or not token_uri.startswith(TOKEN_URI_JSON_PREFIX):
        preview = str(token_uri)[:100]
        raise MetadataDecodeError(f"Token URI is not a base64 JSON document: {preview}")
    encoded = token_uri.split(",", 1)[1]
    try:
        document = json.loads(base64.b64decode(encoded, validate=False))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MetadataDecodeError(f"Malformed metadata document: {exc}") from exc
    if not isinstance(document, dict):
        raise MetadataDecodeError("Metadata document is not a JSON object")

    attributes: Dict[str, Any] = {}
    raw_attributes = document.get("attributes")
    if isinstance(raw_attributes, list):
        for entry in raw_attributes:
            if not isinstance(entry, dict):
                continue
            label = entry.get("trait_type")
            if isinstance(label, str) and label not in attributes:
                attributes[label] = entry.get("value")
    return AttributeBag(name=str(document.get("name", "")), attributes=attributes)


__all__ = ["AttributeBag", "MetadataDecodeError", "decode_token_uri"]
