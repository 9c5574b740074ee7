"""Discovery of XENFT, single-mint, and CoinTool batch positions for a wallet."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from web3 import Web3

from ..config.networks import DEFAULT_REGISTRY, NetworkProfile, NetworkRegistry
from ..config.settings import FetchConfig, get_app_config
from ..models.schemas import DerivedPosition, EnumerablePosition, SinglePosition
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS
from ..utils.address import derive_proxy_address, salt_to_bytes
from ..utils.constants import ZERO_ADDRESS
from .abi import COINTOOL_MAP, OWNED_TOKENS, TOKEN_URI, USER_MINTS
from .batching import BatchedReader, ProgressCallback
from .contract_reader import ContractCall, ContractReader
from .metadata import AttributeBag, MetadataDecodeError, decode_token_uri

logger = get_logger(__name__)


def _is_zero_address(value: Any) -> bool:
    return str(value).lower() == ZERO_ADDRESS


def fold_sub_accounts(
    records: Iterable[Sequence[Any]],
    network: str,
    chain_id: int,
    salt: str,
) -> List[DerivedPosition]:
    """Group ``userMints`` rows of proxy accounts by UTC maturity day.

    Rows are ``(user, term, maturityTs, rank, amplifier, eaaRate)``. Empty
    records (zero user or no maturity) are ignored. Term, rank, amplifier and
    rate are taken from the first row seen for each day.
    """

    cohorts: Dict[date, Dict[str, int]] = {}
    for record in records:
        if record is None or len(record) < 6:
            continue
        user, term, maturity_ts, rank, amplifier, eaa_rate = record[:6]
        maturity_ts = int(maturity_ts)
        if _is_zero_address(user) or maturity_ts <= 0:
            continue
        try:
            day = datetime.fromtimestamp(maturity_ts, timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            continue
        cohort = cohorts.get(day)
        if cohort is None:
            cohort = {
                "count": 0,
                "term": int(term),
                "rank": int(rank),
                "amplifier": int(amplifier),
                "eaa_rate": int(eaa_rate),
                "maturity_ts": maturity_ts,
            }
            cohorts[day] = cohort
        cohort["count"] += 1

    return [
        DerivedPosition(
            network=network,
            chain_id=chain_id,
            salt=salt,
            maturity_date=day,
            maturity_ts=cohort["maturity_ts"],
            count=cohort["count"],
            term=cohort["term"],
            rank=cohort["rank"],
            amplifier=cohort["amplifier"],
            eaa_rate=cohort["eaa_rate"],
        )
        for day, cohort in cohorts.items()
        if cohort["count"] > 0
    ]


class PositionFetcher:
    """Reads a wallet's mint positions on one network at a time.

    The fetch methods never raise: an unsupported network or a failed outer
    read yields an empty result, and per-item failures only drop that item.
    """

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

    def fetch_enumerable_positions(
        self,
        owner: str,
        chain_id: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[EnumerablePosition]:
        profile = self._profile(chain_id)
        owner = self._normalize_owner(owner)
        if profile is None or owner is None:
            return []

        try:
            # ownedTokens() keys on msg.sender, so the owner is the caller.
            token_ids = self._batched.call_with_retry(
                lambda: self._reader.read(
                    profile.xenft_contract, OWNED_TOKENS, (), chain_id, sender=owner
                )
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("Error fetching XENFTs on %s: %s", profile.name, exc)
            return []

        token_ids = [int(token_id) for token_id in token_ids]
        logger.info("Found %d XENFTs for %s on %s", len(token_ids), owner, profile.name)

        def worker(token_id: int) -> Optional[EnumerablePosition]:
            token_uri = self._reader.read(profile.xenft_contract, TOKEN_URI, (token_id,), chain_id)
            try:
                bag = decode_token_uri(token_uri)
            except MetadataDecodeError as exc:
                logger.warning("Skipping XENFT %s on %s: %s", token_id, profile.name, exc)
                METRICS.increment("positions.xenft.undecodable")
                return None
            return self._to_enumerable(token_id, bag, profile)

        positions = self._batched.run_batched(
            token_ids,
            self._config.xenft_batch_size,
            worker,
            on_progress=on_progress,
            delay_seconds=self._config.xenft_batch_delay_seconds,
        )
        logger.info(
            "Processed %d/%d XENFTs for %s on %s",
            len(positions),
            len(token_ids),
            owner,
            profile.name,
        )
        METRICS.increment("positions.xenft", len(positions))
        return positions

    def fetch_single_position(self, owner: str, chain_id: int) -> Optional[SinglePosition]:
        profile = self._profile(chain_id)
        owner = self._normalize_owner(owner)
        if profile is None or owner is None:
            return None

        try:
            record = self._batched.call_with_retry(
                lambda: self._reader.read(profile.xen_contract, USER_MINTS, (owner,), chain_id)
            )
            user, term, maturity_ts, rank, amplifier, eaa_rate = record[:6]
        except Exception as exc:  # noqa: BLE001
            logger.error("Error fetching single mint on %s: %s", profile.name, exc)
            return None

        if _is_zero_address(user):
            return None
        METRICS.increment("positions.single")
        return SinglePosition(
            owner=owner,
            network=profile.name,
            chain_id=profile.chain_id,
            term=int(term),
            maturity_ts=int(maturity_ts),
            rank=int(rank),
            amplifier=int(amplifier),
            eaa_rate=int(eaa_rate),
        )

    def fetch_derived_positions(
        self,
        owner: str,
        chain_id: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[DerivedPosition]:
        profile = self._profile(chain_id)
        owner = self._normalize_owner(owner)
        if profile is None or owner is None:
            return []
        if not profile.cointool_contract:
            logger.info("No CoinTool contract on %s", profile.name)
            return []

        positions: List[DerivedPosition] = []
        for salt in self._config.cointool_salts:
            try:
                positions.extend(
                    self._scan_salt(owner, profile, profile.cointool_contract, salt, on_progress)
                )
            except Exception as exc:  # noqa: BLE001
                logger.error("Error processing salt %s on %s: %s", salt, profile.name, exc)
        METRICS.increment("positions.cointool", sum(position.count for position in positions))
        return positions

    def _scan_salt(
        self,
        owner: str,
        profile: NetworkProfile,
        factory: str,
        salt: str,
        on_progress: Optional[ProgressCallback],
    ) -> List[DerivedPosition]:
        salt_bytes = salt_to_bytes(salt)
        salt_label = Web3.to_hex(salt_bytes)

        total = int(
            self._batched.call_with_retry(
                lambda: self._reader.read(factory, COINTOOL_MAP, (owner, salt_bytes), profile.chain_id)
            )
        )
        logger.info("VMU count for salt %s on %s: %d", salt_label, profile.name, total)
        if total <= 0:
            return []

        proxies = [
            proxy
            for proxy in (
                derive_proxy_address(factory, salt_bytes, index, owner) for index in range(1, total + 1)
            )
            if proxy is not None
        ]
        rows = self._batched.run_batched_multicall(
            proxies,
            self._config.cointool_batch_size,
            lambda proxy: ContractCall(profile.xen_contract, USER_MINTS, (proxy,)),
            self._reader,
            profile.chain_id,
            multicall_address=profile.multicall_contract,
            on_progress=on_progress,
            delay_seconds=self._config.cointool_batch_delay_seconds,
        )
        cohorts = fold_sub_accounts(
            (record for _, record in rows), profile.name, profile.chain_id, salt_label
        )
        logger.info(
            "Processed %d unique maturity dates for salt %s on %s",
            len(cohorts),
            salt_label,
            profile.name,
        )
        return cohorts

    def _to_enumerable(
        self,
        token_id: int,
        bag: AttributeBag,
        profile: NetworkProfile,
    ) -> EnumerablePosition:
        return EnumerablePosition(
            token_id=str(token_id),
            name=f"{profile.name} {bag.name}",
            network=profile.name,
            chain_id=profile.chain_id,
            position_class=bag.get("Class"),
            vmus=bag.get("VMUs"),
            c_rank=bag.get("cRank"),
            amp=bag.get("AMP"),
            eaa=bag.get("EAA (%)"),
            maturity=bag.get("Maturity DateTime"),
            term=bag.get("Term"),
            xen_burned=bag.get("XEN Burned"),
            category=bag.get("Category"),
        )

    def _profile(self, chain_id: int) -> Optional[NetworkProfile]:
        profile = self._registry.lookup(chain_id)
        if profile is None:
            logger.warning("Chain with ID %s not supported", chain_id)
        return profile

    def _normalize_owner(self, owner: str) -> Optional[str]:
        if not isinstance(owner, str) or not Web3.is_address(owner):
            logger.warning("Invalid owner address: %r", owner)
            return None
        return Web3.to_checksum_address(owner)


__all__ = ["PositionFetcher", "fold_sub_accounts"]
