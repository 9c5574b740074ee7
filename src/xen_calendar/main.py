"""Entrypoint for the XEN mint calendar."""

from __future__ import annotations

import argparse
import contextvars
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from functools import partial
from typing import Callable, Iterable, List, Optional, Sequence

from web3 import Web3

from .analysis.events import project
from .analysis.summary import filter_events, summarize, time_until
from .config.networks import DEFAULT_REGISTRY, NetworkRegistry
from .config.settings import get_app_config
from .export.calendar import write_calendar_file
from .ingestion.contract_reader import ContractReader
from .ingestion.positions import PositionFetcher
from .ingestion.stats import StatsAggregator
from .models.schemas import MaturityEvent, PositionClass, ScanResult
from .monitoring import bootstrap_observability
from .monitoring.logger import correlation_scope, get_logger, scan_correlation_id
from .monitoring.metrics import METRICS
from .utils.constants import utc_now
from .utils.formatting import format_xen_amount

logger = get_logger(__name__)

ScanProgress = Callable[[str, int, int], None]

FETCHER_XENFT = "xenft"
FETCHER_COINTOOL = "cointool"


@contextmanager
def performance_monitor(operation_name: str):
    """Record the wall time of an operation as a metric."""
    start_time = time.time()
    try:
        yield
    finally:
        duration = time.time() - start_time
        METRICS.observe(f"scan.{operation_name}.duration_seconds", duration)
        METRICS.increment(f"scan.{operation_name}.calls_total")


def _log_progress(fetcher: str, done: int, total: int) -> None:
    logger.info("%s progress %d/%d", fetcher, done, total, extra={"fetcher": fetcher})


def scan_network(
    owner: str,
    chain_id: int,
    *,
    fetcher: Optional[PositionFetcher] = None,
    aggregator: Optional[StatsAggregator] = None,
    registry: Optional[NetworkRegistry] = None,
    include_stats: bool = False,
    on_progress: Optional[ScanProgress] = None,
) -> Optional[ScanResult]:
    """Run the three position fetchers of one network and project their events.

    Returns ``None`` for an unsupported network.
    """

    registry = registry or DEFAULT_REGISTRY
    profile = registry.lookup(chain_id)
    if profile is None:
        logger.warning("Chain with ID %s not supported", chain_id)
        return None
    fetcher = fetcher or PositionFetcher(registry=registry)
    progress = on_progress or _log_progress

    with correlation_scope(scan_correlation_id(profile.name, owner)), performance_monitor("network"):
        # Worker threads do not inherit context variables, so each task runs
        # in a copy of the caller's context to keep the correlation id.
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="scan") as executor:
            enumerable_future = executor.submit(
                contextvars.copy_context().run,
                fetcher.fetch_enumerable_positions,
                owner,
                chain_id,
                partial(progress, FETCHER_XENFT),
            )
            single_future = executor.submit(
                contextvars.copy_context().run,
                fetcher.fetch_single_position,
                owner,
                chain_id,
            )
            derived_future = executor.submit(
                contextvars.copy_context().run,
                fetcher.fetch_derived_positions,
                owner,
                chain_id,
                partial(progress, FETCHER_COINTOOL),
            )
            enumerable = enumerable_future.result()
            single = single_future.result()
            derived = derived_future.result()

        result = ScanResult(
            owner=owner,
            network=profile.name,
            chain_id=profile.chain_id,
            enumerable=enumerable,
            single=single,
            derived=derived,
            events=project(enumerable, single, derived),
        )
        if include_stats:
            aggregator = aggregator or StatsAggregator(registry=registry)
            result.stats = aggregator.fetch_global_stats(chain_id, owner)
            result.owner_stats = aggregator.fetch_owner_aggregate_stats(
                owner, chain_id, [position.token_id for position in enumerable]
            )
        logger.info(
            "Scan of %s finished: %d XENFTs, %s single mint, %d CoinTool cohorts, %d events",
            profile.name,
            len(enumerable),
            "1" if single is not None else "no",
            len(derived),
            len(result.events),
        )
    return result


def scan_networks(
    owner: str,
    chain_ids: Iterable[int],
    **kwargs,
) -> List[ScanResult]:
    """Scan networks one after another, skipping unsupported ones."""

    results: List[ScanResult] = []
    for chain_id in chain_ids:
        result = scan_network(owner, chain_id, **kwargs)
        if result is not None:
            results.append(result)
    return results


def merge_events(results: Iterable[ScanResult]) -> List[MaturityEvent]:
    events = [event for result in results for event in result.events]
    events.sort(key=lambda event: event.start)
    return events


def render_event_table(events: Sequence[MaturityEvent]) -> str:
    if not events:
        return "No upcoming or past maturities found."
    now = utc_now()
    rows = [("Maturity (UTC)", "When", "Type", "Network", "Title")]
    for event in events:
        rows.append(
            (
                event.start.strftime("%Y-%m-%d %H:%M"),
                time_until(event.start, now),
                event.position_class.value,
                event.network,
                event.title,
            )
        )
    widths = [max(len(row[column]) for row in rows) for column in range(len(rows[0]))]
    lines = ["  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip() for row in rows]
    lines.insert(1, "  ".join("-" * width for width in widths))
    return "\n".join(lines)


def render_summary(results: Sequence[ScanResult], events: Sequence[MaturityEvent]) -> str:
    summary = summarize(
        events,
        [position for result in results for position in result.derived],
        enumerable=[position for result in results for position in result.enumerable],
        singles=[result.single for result in results],
    )
    lines = [
        f"Events: {summary.total_events} ({summary.upcoming} upcoming, {summary.matured} matured)",
        (
            f"XENFTs: {summary.total_xenfts}  Single mints: {summary.total_single_mints}  "
            f"CoinTool VMUs: {summary.total_cointool_vmus}"
        ),
    ]
    for network, count in sorted(summary.by_network.items()):
        lines.append(f"  {network}: {count}")
    for result in results:
        if result.stats is not None:
            stats = result.stats
            lines.append(
                f"{result.network} stats: supply {format_xen_amount(stats.total_supply)}, "
                f"global rank {stats.global_rank}, active minters {stats.active_minters}, "
                f"staked {format_xen_amount(stats.total_xen_staked)}, "
                f"your burns {format_xen_amount(stats.user_burns)}"
            )
        if result.owner_stats is not None:
            lines.append(
                f"{result.network} XENFTs: {result.owner_stats.total_vmus} VMUs, "
                f"{format_xen_amount(result.owner_stats.total_burned)} XEN burned"
            )
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xen-calendar",
        description="Build a maturity calendar for a wallet's XEN mints",
    )
    parser.add_argument("owner", help="Wallet address to scan")
    parser.add_argument(
        "--chain",
        action="append",
        default=[],
        metavar="ID|NAME",
        help="Network to scan, by chain id or name. Repeatable (default: Ethereum).",
    )
    parser.add_argument(
        "--all-chains",
        action="store_true",
        help="Scan every supported network.",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Path of the .ics file to write (default: calendar.default_filename).",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Also read global XEN counters and XENFT totals.",
    )
    parser.add_argument(
        "--type",
        choices=[tag.value for tag in PositionClass],
        default=None,
        help="Only keep events of this mint type.",
    )
    parser.add_argument(
        "--hide-matured",
        action="store_true",
        help="Leave out maturities that have already passed.",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Print run metrics in Prometheus text format after the summary.",
    )
    return parser


def resolve_chain_ids(
    parser: argparse.ArgumentParser,
    chains: Sequence[str],
    all_chains: bool,
    registry: NetworkRegistry = DEFAULT_REGISTRY,
) -> List[int]:
    if all_chains:
        return [profile.chain_id for profile in registry.all()]
    if not chains:
        return [1]
    chain_ids: List[int] = []
    for value in chains:
        profile = registry.resolve(value)
        if profile is None:
            parser.error(f"unsupported chain: {value}")
        if profile.chain_id not in chain_ids:
            chain_ids.append(profile.chain_id)
    return chain_ids


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not Web3.is_address(args.owner):
        parser.error(f"invalid owner address: {args.owner}")
    chain_ids = resolve_chain_ids(parser, args.chain, args.all_chains)

    config = get_app_config()
    bootstrap_observability(config)
    owner = Web3.to_checksum_address(args.owner)

    # One reader for the whole run so every network shares its HTTP session.
    reader = ContractReader(config.rpc)
    try:
        results = scan_networks(
            owner,
            chain_ids,
            fetcher=PositionFetcher(reader=reader, config=config.fetch),
            aggregator=StatsAggregator(reader=reader, config=config.fetch),
            include_stats=args.stats,
        )
    finally:
        reader.close()
    METRICS.gauge("scan.networks", len(results))
    events = filter_events(
        merge_events(results),
        position_class=args.type,
        hide_matured=args.hide_matured,
    )
    print(render_event_table(events))
    print()
    print(render_summary(results, events))

    path = write_calendar_file(events, args.output, config=config.calendar)
    print(f"\nCalendar written to {path}")
    METRICS.gauge("calendar.events", len(events))
    logger.info("Run finished", extra={"metrics": METRICS.snapshot()})
    if args.metrics:
        print()
        print(METRICS.export_prometheus(), end="")


if __name__ == "__main__":
    main()
