# services/currency.py
"""
Integer-cents helpers. Money is stored and summed in minor units only;
major units (Decimal) appear at the gateway boundary and in emails.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class Split:
    earner_cents: int
    platform_cents: int

    @property
    def total_cents(self) -> int:
        return self.earner_cents + self.platform_cents


def _dec(x) -> Decimal:
    # str() first so floats like 0.97 keep their printed value
    return x if isinstance(x, Decimal) else Decimal(str(x))


def to_minor_units(amount) -> int:
    """100.505 -> 10051 (half-up to the nearest cent)."""
    return int((_dec(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(cents: int) -> Decimal:
    return (Decimal(int(cents)) / Decimal(100)).quantize(_CENT)


def split_share(total_cents: int, earner_percent) -> Split:
    """
    Split `total_cents` between the earner and the platform.

    `earner_percent` is a fraction (0.97 means 97%). The earner share is rounded
    half-up; the platform share is the remainder, so the two always add up to
    `total_cents`.
    """
    total_cents = int(total_cents)
    if total_cents < 0:
        raise ValueError("total_cents must be >= 0")
    pct = _dec(earner_percent)
    if pct < 0 or pct > 1:
        raise ValueError("earner_percent must be between 0 and 1")
    earner = int((Decimal(total_cents) * pct).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return Split(earner_cents=earner, platform_cents=total_cents - earner)


def earner_fraction_from_platform_fee(platform_fee_percent) -> Decimal:
    """3 (percent) -> Decimal('0.97')."""
    fee = _dec(platform_fee_percent)
    if fee < 0 or fee > 100:
        raise ValueError("platform fee percent must be between 0 and 100")
    return (Decimal(100) - fee) / Decimal(100)


def format_currency(cents: int, currency: str = "ARS") -> str:
    """es-AR style: 150000 -> '$ 1.500,00' (non-ARS codes are prefixed with the code)."""
    amount = to_major_units(cents)
    sign = "-" if amount < 0 else ""
    whole, frac = f"{abs(amount):.2f}".split(".")
    grouped = f"{int(whole):,}".replace(",", ".")
    symbol = "$" if currency.upper() == "ARS" else currency.upper()
    return f"{sign}{symbol} {grouped},{frac}"
