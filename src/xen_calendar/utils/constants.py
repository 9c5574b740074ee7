"""Shared constants for XEN contract reads."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

XEN_DECIMALS = 18

# EIP-1167 minimal proxy creation code, with the implementation address spliced
# in between prefix and suffix.
MINIMAL_PROXY_PREFIX = bytes.fromhex("3D602d80600A3D3981F3363d3d373d3D3D363d73")
MINIMAL_PROXY_SUFFIX = bytes.fromhex("5af43d82803e903d91602b57fd5bf3")

CREATE2_PREFIX = b"\xff"

TOKEN_URI_JSON_PREFIX = "data:application/json;base64,"

__all__ = [
    "CREATE2_PREFIX",
    "MINIMAL_PROXY_PREFIX",
    "MINIMAL_PROXY_SUFFIX",
    "TOKEN_URI_JSON_PREFIX",
    "XEN_DECIMALS",
    "ZERO_ADDRESS",
    "utc_now",
]
