from decimal import Decimal

import pytest
from services import currency as C


def test_to_minor_units_rounds_to_nearest_cent():
    assert C.to_minor_units(Decimal("100.00")) == 10000
    assert C.to_minor_units(97.5) == 9750
    assert C.to_minor_units("0.03") == 3
    assert C.to_minor_units(Decimal("100.505")) == 10051
    assert C.to_minor_units(Decimal("100.504")) == 10050
    assert C.to_minor_units(0) == 0


def test_to_major_units():
    assert C.to_major_units(10000) == Decimal("100.00")
    assert C.to_major_units(9750) == Decimal("97.50")
    assert C.to_major_units(3) == Decimal("0.03")
    assert C.to_major_units(0) == Decimal("0.00")


@pytest.mark.parametrize("total, earner, platform", [
    (0, 0, 0),
    (1, 1, 0),          # 0.97 rounds up to 1
    (3, 3, 0),          # 2.91 -> 3
    (10000, 9700, 300),
    (150000, 145500, 4500),
    (100001, 97001, 3000),
    (99, 96, 3),        # 96.03 -> 96
])
def test_split_share_boundaries(total, earner, platform):
    s = C.split_share(total, Decimal("0.97"))
    assert (s.earner_cents, s.platform_cents) == (earner, platform)
    assert s.total_cents == total


@pytest.mark.parametrize("pct", ["0", "0.5", "0.97", "0.333", "1", 0.97])
def test_split_share_always_sums_to_total(pct):
    for total in range(0, 2500):
        s = C.split_share(total, pct)
        assert s.earner_cents + s.platform_cents == total
        assert s.earner_cents >= 0 and s.platform_cents >= 0


def test_split_share_rejects_bad_input():
    with pytest.raises(ValueError):
        C.split_share(-1, "0.97")
    with pytest.raises(ValueError):
        C.split_share(100, "1.5")


def test_earner_fraction_from_platform_fee():
    assert C.earner_fraction_from_platform_fee(3) == Decimal("0.97")
    assert C.earner_fraction_from_platform_fee("12.5") == Decimal("0.875")
    with pytest.raises(ValueError):
        C.earner_fraction_from_platform_fee(101)


def test_format_currency_es_ar():
    assert C.format_currency(150000) == "$ 1.500,00"
    assert C.format_currency(9750) == "$ 97,50"
    assert C.format_currency(123456789, "usd") == "USD 1.234.567,89"
