"""Human-readable rendering of token amounts."""

from __future__ import annotations

from decimal import Decimal

from .constants import XEN_DECIMALS

_SUFFIXES = (
    (Decimal(10) ** 12, "T", 0),
    (Decimal(10) ** 9, "B", 1),
    (Decimal(10) ** 6, "M", 1),
    (Decimal(10) ** 3, "K", 1),
)


def format_xen_amount(amount_wei: int, decimals: int = XEN_DECIMALS) -> str:
    """Format a raw token amount with a magnitude suffix, e.g. ``1.5M``."""

    value = Decimal(int(amount_wei)) / (Decimal(10) ** decimals)
    for threshold, suffix, places in _SUFFIXES:
        if value >= threshold:
            return f"{value / threshold:.{places}f}{suffix}"
    return f"{value:.2f}"


__all__ = ["format_xen_amount"]
