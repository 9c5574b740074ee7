"""Deterministic CREATE2 address derivation for CoinTool proxy sub-accounts."""

from __future__ import annotations

import threading
from typing import Optional, Union

from cachetools import LRUCache, cached
from web3 import Web3

from ..monitoring.logger import get_logger
from .constants import CREATE2_PREFIX, MINIMAL_PROXY_PREFIX, MINIMAL_PROXY_SUFFIX

logger = get_logger(__name__)

SaltLike = Union[bytes, str]


def salt_to_bytes(salt: SaltLike) -> bytes:
    """Return raw salt bytes from ``bytes`` or a ``0x``-prefixed hex string."""

    if isinstance(salt, (bytes, bytearray)):
        return bytes(salt)
    text = salt[2:] if salt.lower().startswith("0x") else salt
    if len(text) % 2:
        text = f"0{text}"
    return bytes.fromhex(text)


def _address_bytes(address: str) -> bytes:
    if not Web3.is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return bytes.fromhex(Web3.to_checksum_address(address)[2:])


def proxy_init_code(factory: str) -> bytes:
    return MINIMAL_PROXY_PREFIX + _address_bytes(factory) + MINIMAL_PROXY_SUFFIX


@cached(cache=LRUCache(maxsize=16_384), lock=threading.Lock())
def _derive(factory: str, salt: bytes, index: int, owner: str) -> str:
    if index < 0:
        raise ValueError(f"Negative index: {index}")
    factory_bytes = _address_bytes(factory)
    packed = salt + index.to_bytes(32, "big") + _address_bytes(owner)
    derived_salt = bytes(Web3.keccak(primitive=packed))
    init_code_hash = bytes(Web3.keccak(primitive=proxy_init_code(factory)))
    digest = bytes(
        Web3.keccak(primitive=CREATE2_PREFIX + factory_bytes + derived_salt + init_code_hash)
    )
    return Web3.to_checksum_address("0x" + digest[-20:].hex())


def derive_proxy_address(
    factory: str,
    salt: SaltLike,
    index: int,
    owner: str,
) -> Optional[str]:
    """Compute the address of the ``index``-th proxy a factory deploys for ``owner``.

    The factory salts each deployment with ``keccak256(abi.encodePacked(salt,
    index, owner))`` and deploys an EIP-1167 minimal proxy pointing back at
    itself, so the address follows from the standard CREATE2 formula. Returns
    ``None`` for malformed input.
    """

    try:
        # Cache keys must be hashable, so the salt is reduced to bytes first.
        return _derive(factory, salt_to_bytes(salt), index, owner)
    except (AttributeError, TypeError, ValueError, OverflowError) as exc:
        logger.debug("Cannot derive proxy address for index %s: %s", index, exc)
        return None


__all__ = ["derive_proxy_address", "proxy_init_code", "salt_to_bytes"]
