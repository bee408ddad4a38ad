"""
Discount list and discounted sale tests.
"""

from datetime import timedelta

import pytest

from fuelstation.errors import (
    DuplicateActiveDiscount,
    InvalidRate,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from fuelstation.models import DiscountSale
from fuelstation.services import discount_service, sales_service
from fuelstation.time_utils import utcnow


# =============================================================================
# DISCOUNT LIST
# =============================================================================


class TestDiscountList:

    def test_create_normalizes_plate(self, db_session, admin):
        discount = discount_service.create_discount(
            plate=" 34 abc 123 ", cash_rate="5,5", card_rate=3, note=" fleet ", actor=admin
        )
        assert discount.plate == "34ABC123"
        assert discount.cash_rate == 5.5
        assert discount.note == "fleet"
        assert discount.active is True

    def test_duplicate_plate_rejected(self, db_session, admin):
        discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=admin)

        with pytest.raises(DuplicateActiveDiscount):
            discount_service.create_discount(plate="34 abc 123", cash_rate=1, card_rate=1, actor=admin)

    def test_unique_constraint_is_the_authoritative_guard(self, db_session, admin, monkeypatch):
        discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=admin)
        monkeypatch.setattr(discount_service, "find_by_plate", lambda plate: None)

        with pytest.raises(DuplicateActiveDiscount):
            discount_service.create_discount(plate="34ABC123", cash_rate=1, card_rate=1, actor=admin)

    def test_staff_cannot_create(self, db_session, staff):
        with pytest.raises(PermissionDenied):
            discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=staff)

    def test_update_rates_note_and_active(self, db_session, admin):
        discount = discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=admin)

        updated = discount_service.update_discount(
            discount_id=discount.id,
            patch={"cash_rate": 7.25, "note": "renegotiated", "active": False},
            actor=admin,
        )
        assert updated.cash_rate == 7.3
        assert updated.card_rate == 3.0
        assert updated.note == "renegotiated"
        assert updated.active is False

    def test_plate_is_not_writable(self, db_session, admin):
        discount = discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=admin)

        with pytest.raises(ValidationError):
            discount_service.update_discount(discount_id=discount.id, patch={"plate": "06XYZ99"}, actor=admin)

    def test_update_validates_rate(self, db_session, admin):
        discount = discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=admin)

        with pytest.raises(InvalidRate):
            discount_service.update_discount(discount_id=discount.id, patch={"card_rate": 150}, actor=admin)

    def test_update_unknown_discount(self, db_session, admin):
        with pytest.raises(NotFoundError):
            discount_service.update_discount(discount_id=999, patch={"note": "x"}, actor=admin)

    def test_list_filters_by_plate_substring_and_active(self, db_session, admin):
        discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=admin)
        discount_service.create_discount(plate="34XYZ1", cash_rate=5, card_rate=3, active=False, actor=admin)
        discount_service.create_discount(plate="06ABC9", cash_rate=5, card_rate=3, actor=admin)

        assert [d.plate for d in discount_service.list_discounts(actor=admin, search="abc")] == ["06ABC9", "34ABC123"]
        assert [d.plate for d in discount_service.list_discounts(actor=admin, active=False)] == ["34XYZ1"]
        assert len(discount_service.list_discounts(actor=admin)) == 3

    def test_lookup_returns_only_active(self, db_session, admin, staff):
        discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=admin)
        discount_service.create_discount(plate="06XYZ99", cash_rate=5, card_rate=3, active=False, actor=admin)

        assert discount_service.lookup_plate(plate="34 abc 123", actor=staff).plate == "34ABC123"
        assert discount_service.lookup_plate(plate="06XYZ99", actor=staff) is None
        assert discount_service.lookup_plate(plate="99ZZZ99", actor=staff) is None


# =============================================================================
# SALES
# =============================================================================


@pytest.fixture
def fleet_discount(db_session, admin):
    return discount_service.create_discount(plate="34ABC123", cash_rate=5, card_rate=3, actor=admin)


class TestRecordSale:

    def test_cash_sale_uses_cash_rate(self, db_session, staff, fleet_discount):
        sale = sales_service.record_sale(
            plate="34 abc 123",
            fuel_type="Diesel",
            liters="40",
            price_per_liter="42.50",
            payment_method="cash",
            actor=staff,
        )
        assert sale.rate_applied == 5.0
        assert sale.gross_cents == 170000
        assert sale.discount_cents == 8500
        assert sale.net_cents == 161500
        assert sale.price_per_liter_cents == 4250
        assert sale.recorded_by == staff.user_id
        assert sale.discount_id == fleet_discount.id

    def test_card_sale_uses_card_rate_and_rounds_half_up(self, db_session, staff, fleet_discount):
        sale = sales_service.record_sale(
            plate="34ABC123",
            fuel_type="Benzin",
            liters="12,35",
            price_per_liter="41.99",
            payment_method="CARD",
            actor=staff,
        )
        # 12.35 x 41.99 = 518.5765 -> 518.58; 3% = 15.5574 -> 15.56
        assert sale.payment_method == "card"
        assert sale.rate_applied == 3.0
        assert sale.gross_cents == 51858
        assert sale.discount_cents == 1556
        assert sale.net_cents == 50302

    def test_inactive_discount_cannot_be_used(self, db_session, staff, admin, fleet_discount):
        discount_service.update_discount(discount_id=fleet_discount.id, patch={"active": False}, actor=admin)

        with pytest.raises(NotFoundError):
            sales_service.record_sale(
                plate="34ABC123", fuel_type="Diesel", liters=10, price_per_liter=40,
                payment_method="cash", actor=staff,
            )

    def test_unknown_plate(self, db_session, staff):
        with pytest.raises(NotFoundError):
            sales_service.record_sale(
                plate="00NONE00", fuel_type="Diesel", liters=10, price_per_liter=40,
                payment_method="cash", actor=staff,
            )

    @pytest.mark.parametrize(
        "liters,price,method",
        [
            (0, 40, "cash"),
            (-5, 40, "cash"),
            (10, 0, "cash"),
            ("ten", 40, "cash"),
            (10, 40, "cheque"),
            (10, 40, None),
        ],
    )
    def test_invalid_input_rejected(self, db_session, staff, fleet_discount, liters, price, method):
        with pytest.raises(ValidationError):
            sales_service.record_sale(
                plate="34ABC123", fuel_type="Diesel", liters=liters, price_per_liter=price,
                payment_method=method, actor=staff,
            )
        assert db_session.query(DiscountSale).count() == 0

    def test_compute_amounts(self):
        from decimal import Decimal

        amounts = sales_service.compute_amounts(Decimal("10.00"), Decimal("40.00"), 12.5)
        assert amounts == {"gross_cents": 40000, "discount_cents": 5000, "net_cents": 35000}


class TestListSales:

    def _sale(self, actor, plate="34ABC123", fuel_type="Diesel", method="cash"):
        return sales_service.record_sale(
            plate=plate, fuel_type=fuel_type, liters=10, price_per_liter=40,
            payment_method=method, actor=actor,
        )

    def test_filters(self, db_session, admin, staff, other_staff, fleet_discount):
        discount_service.create_discount(plate="06XYZ99", cash_rate=1, card_rate=1, actor=admin)
        first = self._sale(staff)
        second = self._sale(other_staff, plate="06XYZ99", fuel_type="LPG")

        assert [s.id for s in sales_service.list_sales(actor=admin)] == [second.id, first.id]
        assert [s.id for s in sales_service.list_sales(actor=admin, plate="xyz")] == [second.id]
        assert [s.id for s in sales_service.list_sales(actor=admin, fuel_type="lp")] == [second.id]
        assert [s.id for s in sales_service.list_sales(actor=admin, staff="mehmet")] == [first.id]

    def test_wildcards_in_filters_are_literal(self, db_session, admin, staff, fleet_discount):
        self._sale(staff, fuel_type="Diesel")

        assert sales_service.list_sales(actor=admin, fuel_type="%") == []
        assert sales_service.list_sales(actor=admin, fuel_type="D_esel") == []
        assert sales_service.list_sales(actor=admin, staff="%") == []
        assert len(sales_service.list_sales(actor=admin, fuel_type="diesel")) == 1

    def test_date_range_is_inclusive(self, db_session, admin, staff, fleet_discount):
        sale = self._sale(staff)
        today = utcnow().date()

        assert [s.id for s in sales_service.list_sales(actor=admin, date_from=today, date_to=today)] == [sale.id]
        assert sales_service.list_sales(actor=admin, date_to=today - timedelta(days=1)) == []
        assert sales_service.list_sales(actor=admin, date_from=(today + timedelta(days=1)).isoformat()) == []

    def test_bad_dates(self, db_session, admin):
        with pytest.raises(ValidationError):
            sales_service.list_sales(actor=admin, date_from="yesterday")
        with pytest.raises(ValidationError):
            sales_service.list_sales(actor=admin, date_from="2026-02-02", date_to="2026-02-01")

    def test_staff_cannot_view_history(self, db_session, staff):
        with pytest.raises(PermissionDenied):
            sales_service.list_sales(actor=staff)
