"""Projection of heterogeneous mint positions onto calendar maturity events."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Union

from ..models.schemas import (
    NOT_AVAILABLE,
    DerivedPosition,
    EnumerablePosition,
    MaturityEvent,
    PositionClass,
    SinglePosition,
)
from ..monitoring.logger import get_logger

logger = get_logger(__name__)

EVENT_DURATION = timedelta(hours=1)

SingleInput = Union[None, SinglePosition, Iterable[SinglePosition]]


def parse_maturity(value: Union[str, int, float, None]) -> Optional[datetime]:
    """Return a UTC datetime for a maturity value, or ``None`` if unknown.

    Numbers (or numeric strings) are Unix seconds; other strings are ISO-8601,
    with naive values read as UTC. Non-positive timestamps count as unknown.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        if not text or text == NOT_AVAILABLE:
            return None
        try:
            seconds = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            parsed = parsed.astimezone(timezone.utc)
            return parsed if parsed.timestamp() > 0 else None
    if seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _event(
    title: str,
    description: str,
    start: datetime,
    network: str,
    chain_id: Optional[int],
    position_class: PositionClass,
) -> MaturityEvent:
    return MaturityEvent(
        title=title,
        description=description,
        start=start,
        end=start + EVENT_DURATION,
        network=network,
        chain_id=chain_id,
        position_class=position_class,
    )


def _enumerable_event(position: EnumerablePosition) -> Optional[MaturityEvent]:
    start = parse_maturity(position.maturity)
    if start is None:
        return None
    return _event(
        f"XenFT Due: {position.name}",
        (
            f"{position.name} on {position.network} reaches maturity. "
            f"VMUs: {position.vmus}, Term: {position.term}, Rank: {position.c_rank}"
        ),
        start,
        position.network,
        position.chain_id,
        PositionClass.ENUMERABLE,
    )


def _single_event(position: SinglePosition) -> Optional[MaturityEvent]:
    start = parse_maturity(position.maturity_ts)
    if start is None:
        return None
    return _event(
        f"XEN Mint Due: {position.network}",
        (
            f"Single XEN mint on {position.network} reaches maturity. "
            f"Term: {position.term} days, Rank: {position.rank}, Amplifier: {position.amplifier}"
        ),
        start,
        position.network,
        position.chain_id,
        PositionClass.SINGLE,
    )


def _derived_event(position: DerivedPosition) -> Optional[MaturityEvent]:
    start = parse_maturity(position.maturity_ts)
    if start is None:
        return None
    return _event(
        f"CT Batch Due: {position.count} VMUs",
        (
            f"{position.count} VMUs mature on {position.network}. Rank: {position.rank}, "
            f"Amplifier: {position.amplifier}, EAA Rate: {position.eaa_rate}%"
        ),
        start,
        position.network,
        position.chain_id,
        PositionClass.DERIVED,
    )


def _singles(single: SingleInput) -> List[SinglePosition]:
    if single is None:
        return []
    if isinstance(single, SinglePosition):
        return [single]
    return [position for position in single if position is not None]


def project(
    enumerable: Iterable[EnumerablePosition],
    single: SingleInput,
    derived: Iterable[DerivedPosition],
) -> List[MaturityEvent]:
    """Merge all positions into one list of events ordered by start time.

    Positions without a known maturity are dropped. Duplicates are kept.
    """

    events: List[MaturityEvent] = []
    candidates = [
        *(_enumerable_event(position) for position in enumerable),
        *(_single_event(position) for position in _singles(single)),
        *(_derived_event(position) for position in derived),
    ]
    for event in candidates:
        if event is not None:
            events.append(event)
    dropped = len(candidates) - len(events)
    if dropped:
        logger.debug("Dropped %d positions without a known maturity", dropped)
    events.sort(key=lambda event: event.start)
    return events


__all__ = ["EVENT_DURATION", "parse_maturity", "project"]
