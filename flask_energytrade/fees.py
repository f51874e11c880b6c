"""Platform fee and kWh pricing."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

#: Share of every payment kept by the platform.
PLATFORM_FEE_RATE = Decimal("0.01")

#: Settlement currency for every payment intent.
CURRENCY = "usd"

#: Price of one kWh in dollars.
PRICE_PER_KWH = Decimal("0.20")


def _round_half_up(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def platform_fee(amount: int | float) -> int:
    """Return the platform fee, in cents, for *amount* cents.

    The product is rounded to the nearest integer with halves rounded up, so
    ``platform_fee(50) == 1`` and ``platform_fee(250) == 3``.
    """
    return _round_half_up(Decimal(str(amount)) * PLATFORM_FEE_RATE)


def amount_for_kwh(kwh: int | float) -> int:
    """Return the price of *kwh* kilowatt-hours in cents."""
    return _round_half_up(Decimal(str(kwh)) * PRICE_PER_KWH * 100)
