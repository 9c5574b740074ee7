"""Scan summaries, relative maturity labels, and event filtering."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Union

from ..models.schemas import (
    DerivedPosition,
    EnumerablePosition,
    MaturityEvent,
    MintSummary,
    PositionClass,
    SinglePosition,
)
from ..utils.constants import utc_now

_DAY = timedelta(days=1)


def _plural(count: int) -> str:
    return f"{count} day" if count == 1 else f"{count} days"


def time_until(start: datetime, now: Optional[datetime] = None) -> str:
    """Human label for the distance between ``now`` and a maturity.

    Anything less than a whole day away on either side reads ``Today``.
    """

    now = now or utc_now()
    delta = start - now
    if delta >= timedelta(0):
        days = delta // _DAY
        return "Today" if days == 0 else f"in {_plural(days)}"
    days = -delta // _DAY
    return "Today" if days == 0 else f"{_plural(days)} ago"


def is_matured(event: MaturityEvent, now: Optional[datetime] = None) -> bool:
    return event.start <= (now or utc_now())


def filter_events(
    events: Iterable[MaturityEvent],
    position_class: Union[PositionClass, str, None] = None,
    hide_matured: bool = False,
    now: Optional[datetime] = None,
) -> List[MaturityEvent]:
    """Keep events of one position class and, optionally, only upcoming ones."""

    wanted = PositionClass(position_class) if position_class is not None else None
    now = now or utc_now()
    selected: List[MaturityEvent] = []
    for event in events:
        if wanted is not None and event.position_class is not wanted:
            continue
        if hide_matured and is_matured(event, now):
            continue
        selected.append(event)
    return selected


def summarize(
    events: Iterable[MaturityEvent],
    derived: Iterable[DerivedPosition] = (),
    *,
    enumerable: Iterable[EnumerablePosition] = (),
    singles: Iterable[Optional[SinglePosition]] = (),
    now: Optional[datetime] = None,
) -> MintSummary:
    events = list(events)
    now = now or utc_now()
    matured = sum(1 for event in events if is_matured(event, now))
    by_class = Counter(event.position_class.value for event in events)
    by_network = Counter(event.network for event in events)
    return MintSummary(
        total_events=len(events),
        upcoming=len(events) - matured,
        matured=matured,
        by_class={tag.value: by_class.get(tag.value, 0) for tag in PositionClass},
        by_network=dict(by_network),
        total_xenfts=sum(1 for _ in enumerable),
        total_single_mints=sum(1 for position in singles if position is not None),
        total_cointool_vmus=sum(position.count for position in derived),
    )


__all__ = ["filter_events", "is_matured", "summarize", "time_until"]
