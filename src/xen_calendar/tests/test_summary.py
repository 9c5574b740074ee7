from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from xen_calendar.analysis.summary import filter_events, summarize, time_until
from xen_calendar.models.schemas import DerivedPosition, EnumerablePosition, MaturityEvent, PositionClass
from xen_calendar.utils.formatting import format_xen_amount

NOW = datetime(2025, 1, 10, 12, tzinfo=timezone.utc)


def _event(start: datetime, position_class: PositionClass, network: str = "Ethereum") -> MaturityEvent:
    return MaturityEvent(
        title="due",
        description="",
        start=start,
        end=start + timedelta(hours=1),
        network=network,
        chain_id=None,
        position_class=position_class,
    )


EVENTS = [
    _event(NOW - timedelta(days=3), PositionClass.ENUMERABLE),
    _event(NOW + timedelta(hours=2), PositionClass.SINGLE, network="BSC"),
    _event(NOW + timedelta(days=40), PositionClass.DERIVED),
]


@pytest.mark.parametrize(
    "delta, label",
    [
        (timedelta(hours=5), "Today"),
        (timedelta(days=1, hours=1), "in 1 day"),
        (timedelta(days=12), "in 12 days"),
        (timedelta(hours=-3), "Today"),
        (timedelta(days=-2, hours=-1), "2 days ago"),
    ],
)
def test_time_until_labels(delta: timedelta, label: str) -> None:
    assert time_until(NOW + delta, NOW) == label


def test_filter_by_class_and_maturity() -> None:
    assert filter_events(EVENTS, position_class="cointool", now=NOW) == [EVENTS[2]]
    assert filter_events(EVENTS, hide_matured=True, now=NOW) == EVENTS[1:]
    assert filter_events(EVENTS, PositionClass.ENUMERABLE, hide_matured=True, now=NOW) == []
    assert filter_events(EVENTS, now=NOW) == EVENTS


def test_summarize_counts_events_and_positions() -> None:
    cohort = DerivedPosition(
        network="Ethereum",
        chain_id=1,
        salt="0x01",
        maturity_date=date(2025, 2, 19),
        maturity_ts=int((NOW + timedelta(days=40)).timestamp()),
        count=25,
        term=50,
        rank=1,
        amplifier=1,
        eaa_rate=1,
    )
    xenft = EnumerablePosition(token_id="1", name="Ethereum #1", network="Ethereum", chain_id=1)

    summary = summarize(EVENTS, [cohort, cohort], enumerable=[xenft], singles=[None, object()], now=NOW)

    assert summary.total_events == 3
    assert summary.upcoming == 2
    assert summary.matured == 1
    assert summary.by_class == {"xenft": 1, "single": 1, "cointool": 1}
    assert summary.by_network == {"Ethereum": 2, "BSC": 1}
    assert summary.total_xenfts == 1
    assert summary.total_single_mints == 1
    assert summary.total_cointool_vmus == 50


@pytest.mark.parametrize(
    "amount, text",
    [
        (0, "0.00"),
        (12 * 10**17, "1.20"),
        (1_500 * 10**18, "1.5K"),
        (2_340_000 * 10**18, "2.3M"),
        (7_000_000_000 * 10**18, "7.0B"),
        (3_400_000_000_000 * 10**18, "3T"),
    ],
)
def test_format_xen_amount(amount: int, text: str) -> None:
    assert format_xen_amount(amount) == text
