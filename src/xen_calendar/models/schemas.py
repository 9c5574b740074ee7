"""Data models shared by the fetchers, the projector, and the exporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Union


class PositionClass(str, Enum):
    """Mint mechanism a maturity event originates from."""

    ENUMERABLE = "xenft"
    SINGLE = "single"
    DERIVED = "cointool"


NOT_AVAILABLE = "N/A"


@dataclass(frozen=True, slots=True)
class EnumerablePosition:
    """A XENFT decoded from its on-chain metadata document."""

    token_id: str
    name: str
    network: str
    chain_id: int
    position_class: str = NOT_AVAILABLE
    vmus: str = NOT_AVAILABLE
    c_rank: str = NOT_AVAILABLE
    amp: str = NOT_AVAILABLE
    eaa: str = NOT_AVAILABLE
    maturity: Union[str, int] = NOT_AVAILABLE
    term: str = NOT_AVAILABLE
    xen_burned: str = NOT_AVAILABLE
    category: str = NOT_AVAILABLE


@dataclass(frozen=True, slots=True)
class SinglePosition:
    """A direct ``claimRank`` mint held by the wallet itself."""

    owner: str
    network: str
    chain_id: int
    term: int
    maturity_ts: int
    rank: int
    amplifier: int
    eaa_rate: int


@dataclass(frozen=True, slots=True)
class DerivedPosition:
    """CoinTool sub-accounts of one salt that mature on the same UTC day."""

    network: str
    chain_id: int
    salt: str
    maturity_date: date
    maturity_ts: int
    count: int
    term: int
    rank: int
    amplifier: int
    eaa_rate: int


@dataclass(frozen=True, slots=True)
class MaturityEvent:
    """Calendar projection of a position's maturity."""

    title: str
    description: str
    start: datetime
    end: datetime
    network: str
    chain_id: Optional[int]
    position_class: PositionClass


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    """Global XEN counters; each defaults to zero when its read fails."""

    user_burns: int = 0
    total_supply: int = 0
    global_rank: int = 0
    active_minters: int = 0
    active_stakes: int = 0
    total_xen_staked: int = 0


@dataclass(frozen=True, slots=True)
class OwnerAggregateStats:
    """Sums of per-token XENFT reads for one owner."""

    total_burned: int = 0
    total_vmus: int = 0


@dataclass(slots=True)
class MintSummary:
    """Headline numbers for a set of maturity events."""

    total_events: int = 0
    upcoming: int = 0
    matured: int = 0
    by_class: Dict[str, int] = field(default_factory=dict)
    by_network: Dict[str, int] = field(default_factory=dict)
    total_xenfts: int = 0
    total_single_mints: int = 0
    total_cointool_vmus: int = 0


@dataclass(slots=True)
class ScanResult:
    """Everything a single network scan produced for one owner."""

    owner: str
    network: str
    chain_id: int
    enumerable: List[EnumerablePosition] = field(default_factory=list)
    single: Optional[SinglePosition] = None
    derived: List[DerivedPosition] = field(default_factory=list)
    events: List[MaturityEvent] = field(default_factory=list)
    stats: Optional[StatsSnapshot] = None
    owner_stats: Optional[OwnerAggregateStats] = None


__all__ = [
    "DerivedPosition",
    "EnumerablePosition",
    "MaturityEvent",
    "MintSummary",
    "NOT_AVAILABLE",
    "OwnerAggregateStats",
    "PositionClass",
    "ScanResult",
    "SinglePosition",
    "StatsSnapshot",
]
