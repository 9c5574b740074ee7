"""Global XEN counters and per-owner XENFT totals."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from web3 import Web3

from ..config.networks import DEFAULT_REGISTRY, NetworkProfile, NetworkRegistry
from ..config.settings import FetchConfig, get_app_config
from ..models.schemas import OwnerAggregateStats, StatsSnapshot
from ..monitoring.logger import get_logger
from .abi import (
    ACTIVE_MINTERS,
    ACTIVE_STAKES,
    GLOBAL_RANK,
    TOTAL_SUPPLY,
    TOTAL_XEN_STAKED,
    USER_BURNS,
    VMU_COUNT,
    XEN_BURNED,
    ContractFunction,
)
from .batching import BatchedReader
from .contract_reader import ContractCall, ContractReader

logger = get_logger(__name__)

_GLOBAL_COUNTERS: Tuple[Tuple[str, ContractFunction], ...] = (
    ("total_supply", TOTAL_SUPPLY),
    ("global_rank", GLOBAL_RANK),
    ("active_minters", ACTIVE_MINTERS),
    ("active_stakes", ACTIVE_STAKES),
    ("total_xen_staked", TOTAL_XEN_STAKED),
)


class StatsAggregator:
    """Reduces grouped scalar reads into snapshots, zero-filling failed reads."""

    def __init__(
        self,
        reader: Optional[ContractReader] = None,
        registry: Optional[NetworkRegistry] = None,
        config: Optional[FetchConfig] = None,
        batched_reader: Optional[BatchedReader] = None,
    ) -> None:
        self._reader = reader or ContractReader()
        self._registry = registry or DEFAULT_REGISTRY
        self._config = config or get_app_config().fetch
        self._batched = batched_reader or BatchedReader(self._config)

    def fetch_global_stats(self, chain_id: int, owner: Optional[str] = None) -> Optional[StatsSnapshot]:
        """Read the XEN contract counters, plus ``userBurns`` when an owner is given."""

        profile = self._profile(chain_id)
        if profile is None:
            return None

        calls: Dict[str, ContractCall] = {}
        if owner is not None:
            if Web3.is_address(owner):
                calls["user_burns"] = ContractCall(
                    profile.xen_contract, USER_BURNS, (Web3.to_checksum_address(owner),)
                )
            else:
                logger.warning("Invalid owner address for stats: %r", owner)
        for field_name, function in _GLOBAL_COUNTERS:
            calls[field_name] = ContractCall(profile.xen_contract, function)

        rows = self._batched.run_batched_multicall(
            list(calls),
            len(calls),
            calls.__getitem__,
            self._reader,
            chain_id,
            multicall_address=profile.multicall_contract,
        )
        values = {field_name: self._as_int(value) for field_name, value in rows}
        missing = sorted(set(calls) - set(values))
        if missing:
            logger.warning("Stats reads failed on %s for %s; using 0", profile.name, ", ".join(missing))
        return StatsSnapshot(**{field_name: values.get(field_name, 0) for field_name in calls})

    def fetch_owner_aggregate_stats(
        self,
        owner: str,
        chain_id: int,
        token_ids: Iterable[int],
    ) -> Optional[OwnerAggregateStats]:
        """Sum ``xenBurned`` and ``vmuCount`` over the owner's XENFTs."""

        profile = self._profile(chain_id)
        if profile is None:
            return None
        ids = [int(token_id) for token_id in token_ids]
        if not ids:
            return OwnerAggregateStats()

        items: List[Tuple[int, ContractFunction]] = []
        for token_id in ids:
            items.append((token_id, XEN_BURNED))
            items.append((token_id, VMU_COUNT))

        rows = self._batched.run_batched_multicall(
            items,
            self._config.stats_batch_size,
            lambda item: ContractCall(profile.xenft_contract, item[1], (item[0],)),
            self._reader,
            chain_id,
            multicall_address=profile.multicall_contract,
        )
        total_burned = 0
        total_vmus = 0
        for (_, function), value in rows:
            if function is XEN_BURNED:
                total_burned += self._as_int(value)
            else:
                total_vmus += self._as_int(value)
        logger.info(
            "XENFT totals for %s on %s: %d reads of %d succeeded",
            owner,
            profile.name,
            len(rows),
            len(items),
        )
        return OwnerAggregateStats(total_burned=total_burned, total_vmus=total_vmus)

    @staticmethod
    def _as_int(value: object) -> int:
        try:
            return int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0

    def _profile(self, chain_id: int) -> Optional[NetworkProfile]:
        profile = self._registry.lookup(chain_id)
        if profile is None:
            logger.warning("Chain with ID %s not supported", chain_id)
        return profile


__all__ = ["StatsAggregator"]
