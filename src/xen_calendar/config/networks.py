"""Static registry of supported networks and their XEN contract deployments."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .settings import MULTICALL3_ADDRESS


@dataclass(frozen=True, slots=True)
class NetworkProfile:
    """Contract addresses for one chain."""

    name: str
    chain_id: int
    xenft_contract: str
    xen_contract: str
    cointool_contract: Optional[str] = None
    multicall_contract: str = MULTICALL3_ADDRESS


_PROFILES: Tuple[NetworkProfile, ...] = (
    NetworkProfile(
        name="Ethereum",
        chain_id=1,
        xenft_contract="0x0a252663DBCc0b073063D6420a40319e438Cfa59",
        xen_contract="0x06450dEe7FD2Fb8E39061434BAbCFC05599a6Fb8",
        cointool_contract="0x0de8bf93da2f7eecb3d9169422413a9bef4ef628",
    ),
    NetworkProfile(
        name="BSC",
        chain_id=56,
        xenft_contract="0x1Ac17FFB8456525BfF46870bba7Ed8772ba063a5",
        xen_contract="0x2AB0e9e4eE70FFf1fB9D67031E44F6410170d00e",
        cointool_contract="0x7ff11e5b256c9EB67F4dEa2FacECEd5De1CD691F",
    ),
    NetworkProfile(
        name="Polygon",
        chain_id=137,
        xenft_contract="0x726bB6aC9b74441Eb8FB52163e9014302D4249e5",
        xen_contract="0x2AB0e9e4eE70FFf1fB9D67031E44F6410170d00e",
        cointool_contract="0xdf6fEE057222d2F7933C215C11e5150bD2efc53E",
    ),
    NetworkProfile(
        name="Avalanche",
        chain_id=43114,
        xenft_contract="0x94d9E02D115646DFC407ABDE75Fa45256D66E043",
        xen_contract="0xC0C5AA69Dbe4d6DDdfBc89c0957686ec60F24389",
        cointool_contract="0x9Ec1C3DcF667f2035FB4CD2eB42A1566fd54d2B7",
    ),
    NetworkProfile(
        name="Ethereum POW",
        chain_id=10001,
        xenft_contract="0x94d9E02D115646DFC407ABDE75Fa45256D66E043",
        xen_contract="0x2AB0e9e4eE70FFf1fB9D67031E44F6410170d00e",
        cointool_contract="0x3f551334112f5E0FC134A9027A2eA2EFebfB6127",
    ),
    NetworkProfile(
        name="Moonbeam",
        chain_id=1284,
        xenft_contract="0x94d9E02D115646DFC407ABDE75Fa45256D66E043",
        xen_contract="0xb564A5767A00Ee9075cAC561c427643286F8F4E1",
        cointool_contract="0x9Ec1C3DcF667f2035FB4CD2eB42A1566fd54d2B7",
    ),
    NetworkProfile(
        name="EVMOS",
        chain_id=9001,
        xenft_contract="0x4c4CF206465AbFE5cECb3b581fa1b508Ec514692",
        xen_contract="0x2AB0e9e4eE70FFf1fB9D67031E44F6410170d00e",
        cointool_contract="0x9Ec1C3DcF667f2035FB4CD2eB42A1566fd54d2B7",
    ),
    NetworkProfile(
        name="Fantom",
        chain_id=250,
        xenft_contract="0x94d9E02D115646DFC407ABDE75Fa45256D66E043",
        xen_contract="0xeF4B763385838FfFc708000f884026B8c0434275",
        cointool_contract="0x82487dF5b4cF19DB597A092c8103759466Be9e5a",
    ),
    NetworkProfile(
        name="Dogechain",
        chain_id=2000,
        xenft_contract="0x94d9E02D115646DFC407ABDE75Fa45256D66E043",
        xen_contract="0x948eed4490833D526688fD1E5Ba0b9B35CD2c32e",
        cointool_contract="0x9Ec1C3DcF667f2035FB4CD2eB42A1566fd54d2B7",
    ),
    NetworkProfile(
        name="OKX Chain",
        chain_id=66,
        xenft_contract="0x1Ac17FFB8456525BfF46870bba7Ed8772ba063a5",
        xen_contract="0x1cC4D981e897A3D2E7785093A648c0a75fAd0453",
        cointool_contract="0x6f0a55cd633Cc70BeB0ba7874f3B010C002ef59f",
    ),
    NetworkProfile(
        name="Pulsechain",
        chain_id=369,
        xenft_contract="0xfEa13BF27493f04DEac94f67a46441a68EfD32F8",
        xen_contract="0x8a7FDcA264e87b6da72D000f22186B4403081A2a",
        cointool_contract="0x0de8bf93da2f7eecb3d9169422413a9bef4ef628",
    ),
    NetworkProfile(
        name="Optimism",
        chain_id=10,
        xenft_contract="0xAF18644083151cf57F914CCCc23c42A1892C218e",
        xen_contract="0xeB585163DEbB1E637c6D617de3bEF99347cd75c8",
        cointool_contract="0x9Ec1C3DcF667f2035FB4CD2eB42A1566fd54d2B7",
    ),
    NetworkProfile(
        name="Base",
        chain_id=8453,
        xenft_contract="0x379002701BF6f2862e3dFdd1f96d3C5E1BF450B6",
        xen_contract="0xffcbF84650cE02DaFE96926B37a0ac5E34932fa5",
        cointool_contract="0x9Ec1C3DcF667f2035FB4CD2eB42A1566fd54d2B7",
    ),
)


class NetworkRegistry:
    """Read-only lookup over a fixed set of network profiles."""

    def __init__(self, profiles: Iterable[NetworkProfile] = _PROFILES) -> None:
        by_chain: Dict[int, NetworkProfile] = {}
        for profile in profiles:
            by_chain.setdefault(profile.chain_id, profile)
        self._by_chain: Mapping[int, NetworkProfile] = MappingProxyType(by_chain)
        self._by_name: Mapping[str, NetworkProfile] = MappingProxyType(
            {profile.name.lower(): profile for profile in by_chain.values()}
        )

    def lookup(self, chain_id: int) -> Optional[NetworkProfile]:
        return self._by_chain.get(chain_id)

    def by_name(self, name: str) -> Optional[NetworkProfile]:
        return self._by_name.get(name.strip().lower())

    def resolve(self, value: str) -> Optional[NetworkProfile]:
        """Accept either a numeric chain id or a network name."""

        value = value.strip()
        if value.isdigit():
            return self.lookup(int(value))
        return self.by_name(value)

    def all(self) -> Tuple[NetworkProfile, ...]:
        return tuple(self._by_chain.values())

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._by_chain

    def __len__(self) -> int:
        return len(self._by_chain)


DEFAULT_REGISTRY = NetworkRegistry()

__all__ = ["DEFAULT_REGISTRY", "NetworkProfile", "NetworkRegistry"]
