"""Function descriptors for the XEN, XENFT, CoinTool, and Multicall3 contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Tuple

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from web3 import Web3


@dataclass(frozen=True, slots=True)
class ContractFunction:
    """A view function identified by name and argument/return types."""

    name: str
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ("uint256",)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature)[:4])

    def encode_call(self, args: Sequence[Any] = ()) -> bytes:
        if len(args) != len(self.inputs):
            raise ValueError(f"{self.signature} expects {len(self.inputs)} arguments, got {len(args)}")
        return self.selector + abi_encode(list(self.inputs), list(args))

    def decode_output(self, data: bytes) -> Any:
        """Decode return data; single-value functions return the bare value."""

        if not data:
            raise ValueError(f"Empty return data for {self.signature}")
        values = abi_decode(list(self.outputs), bytes(data))
        if len(values) == 1:
            return values[0]
        return tuple(values)


# XENFT (XENTorrent)
OWNED_TOKENS = ContractFunction("ownedTokens", (), ("uint256[]",))
TOKEN_URI = ContractFunction("tokenURI", ("uint256",), ("string",))
XEN_BURNED = ContractFunction("xenBurned", ("uint256",))
VMU_COUNT = ContractFunction("vmuCount", ("uint256",))

# XEN crypto
USER_MINTS = ContractFunction(
    "userMints",
    ("address",),
    ("address", "uint256", "uint256", "uint256", "uint256", "uint256"),
)
USER_BURNS = ContractFunction("userBurns", ("address",))
TOTAL_SUPPLY = ContractFunction("totalSupply")
GLOBAL_RANK = ContractFunction("globalRank")
ACTIVE_MINTERS = ContractFunction("activeMinters")
ACTIVE_STAKES = ContractFunction("activeStakes")
TOTAL_XEN_STAKED = ContractFunction("totalXenStaked")

# CoinTool batch minter: number of proxies deployed for (owner, salt)
COINTOOL_MAP = ContractFunction("map", ("address", "bytes"))

# Multicall3
AGGREGATE3 = ContractFunction("aggregate3", ("(address,bool,bytes)[]",), ("(bool,bytes)[]",))


__all__ = [
    "ACTIVE_MINTERS",
    "ACTIVE_STAKES",
    "AGGREGATE3",
    "COINTOOL_MAP",
    "ContractFunction",
    "GLOBAL_RANK",
    "OWNED_TOKENS",
    "TOKEN_URI",
    "TOTAL_SUPPLY",
    "TOTAL_XEN_STAKED",
    "USER_BURNS",
    "USER_MINTS",
    "VMU_COUNT",
    "XEN_BURNED",
]
