"""
Unit tests for delivery charge and surcharge calculation.

Tests cover:
- Free-delivery threshold and slot charge (slot charge is never waived)
- Platform surcharge matching by date, city, slot and category
- Two-step totals: preliminary charges have no total, final ones do
"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from backend.app.services.charges import (
    FinalCharges,
    PreliminaryCharges,
    SurchargeLine,
    ZoneInfo,
    base_delivery_charge,
    compute_preliminary_charges,
    platform_surcharge_lines,
    surcharge_applies,
)

CORE = ZoneInfo(
    zone_id=1,
    zone_name="Core",
    extra_charge=Decimal("0"),
    city_id=1,
    city_slug="chandigarh",
    base_delivery_charge=Decimal("49"),
    free_delivery_above=Decimal("499"),
)
EXTENDED = ZoneInfo(
    zone_id=2,
    zone_name="Extended",
    extra_charge=Decimal("30"),
    city_id=1,
    city_slug="chandigarh",
    base_delivery_charge=Decimal("49"),
    free_delivery_above=Decimal("499"),
)
VALENTINES = date(2025, 2, 14)


def surcharge(name="Valentine Week", amount="99", applies_to="flowers", city_id=None,
              start=date(2025, 2, 10), end=date(2025, 2, 16), is_active=True):
    return SimpleNamespace(
        name=name, amount=Decimal(amount), applies_to=applies_to, city_id=city_id,
        start_date=start, end_date=end, is_active=is_active,
    )


class TestDeliveryCharge:
    def test_free_delivery_with_standard_slot(self):
        charges = compute_preliminary_charges(Decimal("600"), CORE, slot_charge=Decimal("0"))
        assert charges.delivery_charge == Decimal("0")

    def test_base_plus_midnight_slot(self):
        charges = compute_preliminary_charges(Decimal("300"), CORE, slot_charge=Decimal("199"))
        assert charges.delivery_charge == Decimal("248")

    def test_slot_charge_survives_free_threshold(self):
        charges = compute_preliminary_charges(Decimal("600"), CORE, slot_charge=Decimal("199"))
        assert charges.delivery_charge == Decimal("199")

    def test_threshold_is_inclusive(self):
        assert base_delivery_charge(Decimal("499"), CORE) == Decimal("0")
        assert base_delivery_charge(Decimal("498.99"), CORE) == Decimal("49")

    def test_zone_extra_charge_added(self):
        assert base_delivery_charge(Decimal("100"), EXTENDED) == Decimal("79")

    def test_no_threshold_never_free(self):
        zone = ZoneInfo(3, "Outskirts", Decimal("60"), 1, "chandigarh", Decimal("49"), None)
        assert base_delivery_charge(Decimal("10000"), zone) == Decimal("109")

    def test_no_zone_charges_slot_only(self):
        charges = compute_preliminary_charges(Decimal("300"), None, slot_charge=Decimal("249"))
        assert charges.delivery_charge == Decimal("249")


class TestSurchargeMatching:
    @pytest.mark.parametrize("applies_to, expected", [
        ("all", True),
        ("", True),
        ("flowers", True),
        ("category:flowers", True),
        ("category:cakes", False),
        ("slot:midnight", True),
        ("slot:express", False),
    ])
    def test_applies_to(self, applies_to, expected):
        assert surcharge_applies(applies_to, "midnight", ["flowers"]) is expected

    def test_flower_order_on_valentines_day_is_surcharged(self):
        lines = platform_surcharge_lines([surcharge()], VALENTINES, 1, "standard", ["flowers"])
        assert lines == [SurchargeLine("Valentine Week", Decimal("99"))]

    def test_cake_order_on_valentines_day_is_not(self):
        assert platform_surcharge_lines([surcharge()], VALENTINES, 1, "standard", ["cakes"]) == []

    def test_outside_date_range(self):
        assert platform_surcharge_lines([surcharge()], date(2025, 2, 17), 1, "standard", ["flowers"]) == []

    def test_range_bounds_inclusive(self):
        for day in (date(2025, 2, 10), date(2025, 2, 16)):
            assert len(platform_surcharge_lines([surcharge()], day, 1, "standard", ["flowers"])) == 1

    def test_inactive_and_other_city_skipped(self):
        rows = [surcharge(is_active=False), surcharge(name="Mohali only", city_id=2)]
        assert platform_surcharge_lines(rows, VALENTINES, 1, "standard", ["flowers"]) == []

    def test_several_surcharges_add_up(self):
        rows = [surcharge(), surcharge(name="Festive", amount="20", applies_to="all")]
        charges = compute_preliminary_charges(
            Decimal("450"), CORE, Decimal("0"),
            platform_surcharge_lines(rows, VALENTINES, 1, "standard", ["flowers"]),
        )
        assert charges.platform_surcharge == Decimal("119")
        assert [line.name for line in charges.surcharge_breakdown] == ["Valentine Week", "Festive"]


class TestTwoStepTotals:
    def test_preliminary_has_no_total(self):
        charges = compute_preliminary_charges(Decimal("300"), CORE, Decimal("199"))
        assert isinstance(charges, PreliminaryCharges)
        assert not hasattr(charges, "total")

    def test_final_total_with_vendor_terms(self):
        preliminary = compute_preliminary_charges(
            Decimal("300"), CORE, Decimal("199"), [SurchargeLine("Festive", Decimal("20"))]
        ).with_discount(Decimal("30")).with_cod_fee(Decimal("25"))

        final = preliminary.with_vendor_surcharge(
            pincode_charge=Decimal("15"), area_surcharge=Decimal("40"), area_name="Sector 17 market",
        )

        assert isinstance(final, FinalCharges)
        assert final.delivery_charge == Decimal("263")
        assert final.surcharge == Decimal("60")
        assert [line.name for line in final.surcharge_breakdown] == ["Sector 17 market", "Festive"]
        # 300 + 263 + 60 + 25 - 30
        assert final.total == Decimal("618")

    def test_without_vendor_keeps_preliminary_figures(self):
        preliminary = compute_preliminary_charges(Decimal("300"), CORE, Decimal("0"))
        final = preliminary.with_vendor_surcharge()
        assert final.delivery_charge == Decimal("49")
        assert final.surcharge == Decimal("0")
        assert final.total == Decimal("349")

    def test_zero_pincode_charge_not_added(self):
        final = compute_preliminary_charges(Decimal("600"), CORE, Decimal("0")).with_vendor_surcharge(
            pincode_charge=Decimal("0")
        )
        assert final.delivery_charge == Decimal("0")
