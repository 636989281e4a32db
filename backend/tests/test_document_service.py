# Overview: Pytest coverage for quote, order, invoice and payment workflows.

from decimal import Decimal

import pytest

from glassworks.models import Quote, Order, Invoice, NumberSequence, TaxRate
from glassworks.services import document_service
from glassworks.services.document_service import DocumentError
from glassworks.services.numbering_service import SequenceAllocationError
from glassworks.time_utils import current_year
from glassworks.validation import ValidationError

from fakes import scenario_a_item


def _quote_payload(**overrides):
    payload = {
        "customer_name": "Sharma Interiors",
        "items": [scenario_a_item()],
    }
    payload.update(overrides)
    return payload


class TestPreview:
    def test_preview_does_not_persist(self, db_session, catalog_a):
        result = document_service.preview_quote(catalog_a.id, _quote_payload())

        assert result["lines"][0]["line_total"] == "2064.00"
        assert result["totals"]["subtotal"] == "2064.00"
        assert result["needs_pricing_review"] is False
        assert db_session.query(Quote).count() == 0
        assert db_session.query(NumberSequence).count() == 0

    def test_price_items_uses_org_step(self, db_session, catalog_a):
        catalog_a.dimension_step_inches = 6
        db_session.commit()

        lines = document_service.price_items(catalog_a.id, [scenario_a_item(width_in=13, height_in=13, processes=[])])
        assert lines[0].dimensions.width_ft == Decimal("1.50")

    def test_price_items_uses_org_min_charge(self, db_session, catalog_a):
        catalog_a.min_line_charge = Decimal("300")
        db_session.commit()

        lines = document_service.price_items(catalog_a.id, [scenario_a_item(width_in=6, height_in=6, quantity=1, processes=[])])
        assert lines[0].line_total == Decimal("300.00")
        assert lines[0].min_charge_applied

    @pytest.mark.parametrize("items", [None, [], "x"])
    def test_items_required(self, db_session, catalog_a, items):
        with pytest.raises(ValidationError) as exc:
            document_service.price_items(catalog_a.id, items)
        assert exc.value.field == "items"

    def test_error_names_item_index(self, db_session, catalog_a):
        with pytest.raises(ValidationError) as exc:
            document_service.price_items(catalog_a.id, [scenario_a_item(), scenario_a_item(quantity=0)])
        assert exc.value.field == "items[1].quantity"


class TestCreateQuote:
    def test_scenario_a_quote(self, db_session, catalog_a):
        quote = document_service.create_quote(catalog_a.id, _quote_payload(discount_percent="10"))

        assert quote.document_number == f"Q{current_year()}-0001"
        assert quote.status == "DRAFT"
        assert quote.needs_pricing_review is False
        assert len(quote.lines) == 1
        assert quote.lines[0].line_total == Decimal("2064.00")
        assert quote.subtotal == Decimal("2064.00")
        assert quote.discount_amount == Decimal("206.40")
        assert quote.after_discount == Decimal("1857.60")
        assert quote.cgst == Decimal("167.18")
        assert quote.sgst == Decimal("167.18")
        assert quote.total == Decimal("2191.96")

    def test_numbers_increment(self, db_session, catalog_a):
        first = document_service.create_quote(catalog_a.id, _quote_payload())
        second = document_service.create_quote(catalog_a.id, _quote_payload())
        assert first.document_number.endswith("-0001")
        assert second.document_number.endswith("-0002")

    def test_missing_rate_flags_review(self, db_session, catalog_a):
        quote = document_service.create_quote(
            catalog_a.id,
            _quote_payload(items=[scenario_a_item(), scenario_a_item(thickness=12)]),
        )
        assert quote.needs_pricing_review is True
        assert quote.lines[1].diagnostics[0]["code"] == "MISSING_GLASS_RATE"
        assert quote.lines[1].line_total == Decimal("1560.00")

    def test_state_codes_pick_tax_mode(self, db_session, catalog_a):
        same_state = document_service.create_quote(catalog_a.id, _quote_payload(customer_state_code="mh"))
        other_state = document_service.create_quote(catalog_a.id, _quote_payload(customer_state_code="KA"))

        assert same_state.tax_mode == "INTRA"
        assert other_state.tax_mode == "INTER"
        assert other_state.igst == Decimal("371.52")

    def test_configured_tax_rates_apply(self, db_session, catalog_a):
        db_session.add(TaxRate(org_id=catalog_a.id, name="IGST", rate_percent=Decimal("12")))
        db_session.commit()

        quote = document_service.create_quote(catalog_a.id, _quote_payload(tax_mode="INTER"))
        assert quote.igst == Decimal("247.68")

    def test_validation_error_consumes_no_number(self, db_session, catalog_a):
        with pytest.raises(ValidationError):
            document_service.create_quote(catalog_a.id, _quote_payload(items=[scenario_a_item(processes=["NOPE"])]))

        quote = document_service.create_quote(catalog_a.id, _quote_payload())
        assert quote.document_number.endswith("-0001")

    def test_allocation_failure_inserts_nothing(self, db_session, catalog_a, monkeypatch):
        def _fail(*args, **kwargs):
            raise SequenceAllocationError("contention")

        monkeypatch.setattr(document_service.numbering_service, "allocate", _fail)
        with pytest.raises(SequenceAllocationError):
            document_service.create_quote(catalog_a.id, _quote_payload())
        assert db_session.query(Quote).count() == 0

    def test_unknown_org(self, db_session):
        with pytest.raises(DocumentError) as exc:
            document_service.create_quote(999, _quote_payload())
        assert exc.value.not_found

    def test_quote_status_transitions(self, db_session, catalog_a):
        quote = document_service.create_quote(catalog_a.id, _quote_payload())

        assert document_service.update_quote_status(catalog_a.id, quote.id, "sent").status == "SENT"
        with pytest.raises(DocumentError):
            document_service.update_quote_status(catalog_a.id, quote.id, "CONVERTED")
        with pytest.raises(ValidationError):
            document_service.update_quote_status(catalog_a.id, quote.id, "ARCHIVED")

    def test_tenant_scoping(self, db_session, catalog_a, org_b):
        quote = document_service.create_quote(catalog_a.id, _quote_payload())

        with pytest.raises(DocumentError) as exc:
            document_service.get_quote(org_b.id, quote.id)
        assert exc.value.not_found
        rows, total = document_service.list_quotes(org_b.id)
        assert rows == [] and total == 0


class TestOrderLifecycle:
    def test_convert_copies_lines_and_totals(self, db_session, catalog_a):
        quote = document_service.create_quote(catalog_a.id, _quote_payload())
        order = document_service.convert_quote_to_order(catalog_a.id, quote.id)

        assert order.document_number == f"O{current_year()}-0001"
        assert order.quote_id == quote.id
        assert order.status == "PENDING"
        assert order.total == quote.total
        assert [line.line_total for line in order.lines] == [line.line_total for line in quote.lines]
        assert db_session.get(Quote, quote.id).status == "CONVERTED"

    def test_convert_twice_rejected(self, db_session, catalog_a):
        quote = document_service.create_quote(catalog_a.id, _quote_payload())
        document_service.convert_quote_to_order(catalog_a.id, quote.id)

        with pytest.raises(DocumentError):
            document_service.convert_quote_to_order(catalog_a.id, quote.id)
        assert db_session.query(Order).count() == 1

    def test_transition_table(self, db_session, catalog_a):
        quote = document_service.create_quote(catalog_a.id, _quote_payload())
        order = document_service.convert_quote_to_order(catalog_a.id, quote.id)

        for status in ("IN_PRODUCTION", "READY", "DELIVERED"):
            order = document_service.transition_order(catalog_a.id, order.id, status)
            assert order.status == status

        with pytest.raises(DocumentError) as exc:
            document_service.transition_order(catalog_a.id, order.id, "CANCELLED")
        assert exc.value.details == {"from": "DELIVERED", "to": "CANCELLED"}


class TestInvoicing:
    def _order(self, catalog_a):
        quote = document_service.create_quote(catalog_a.id, _quote_payload())
        return document_service.convert_quote_to_order(catalog_a.id, quote.id)

    def test_invoice_sets_balance(self, db_session, catalog_a):
        order = self._order(catalog_a)
        invoice = document_service.create_invoice_from_order(catalog_a.id, order.id)

        assert invoice.document_number == f"INV{current_year()}-0001"
        assert invoice.payment_status == "UNPAID"
        assert invoice.total == Decimal("2435.52")
        assert db_session.get(Order, order.id).balance_amount == Decimal("2435.52")

    def test_fractional_discount_survives_to_invoice(self, db_session, catalog_a):
        quote = document_service.create_quote(catalog_a.id, _quote_payload(discount_percent="10.555"))
        assert quote.discount_percent == Decimal("10.56")
        assert quote.discount_amount == Decimal("217.96")
        assert quote.total == Decimal("2178.32")

        order = document_service.convert_quote_to_order(catalog_a.id, quote.id)
        invoice = document_service.create_invoice_from_order(catalog_a.id, order.id)

        assert invoice.discount_percent == quote.discount_percent
        assert invoice.discount_amount == quote.discount_amount
        assert invoice.total == quote.total

    def test_charges_carry_from_quote_to_invoice(self, db_session, catalog_a):
        quote = document_service.create_quote(
            catalog_a.id,
            _quote_payload(discount_percent="10.555", charges={"delivery_charge": "100"}),
        )
        assert quote.delivery_charge == Decimal("100.00")
        assert quote.cgst == Decimal("175.14")
        assert quote.total == Decimal("2296.32")
        assert quote.to_dict()["charges"]["delivery_charge"] == "100.00"

        order = document_service.convert_quote_to_order(catalog_a.id, quote.id)
        assert order.delivery_charge == Decimal("100.00")

        invoice = document_service.create_invoice_from_order(catalog_a.id, order.id)
        assert invoice.delivery_charge == Decimal("100.00")
        assert invoice.total == quote.total
        assert db_session.get(Order, order.id).balance_amount == Decimal("2296.32")

    def test_invoice_retaxes_with_current_rates(self, db_session, catalog_a):
        order = self._order(catalog_a)
        db_session.add(TaxRate(org_id=catalog_a.id, name="CGST", rate_percent=Decimal("6")))
        db_session.add(TaxRate(org_id=catalog_a.id, name="SGST", rate_percent=Decimal("6")))
        db_session.commit()

        invoice = document_service.create_invoice_from_order(catalog_a.id, order.id)
        assert invoice.cgst == Decimal("123.84")
        assert invoice.total == Decimal("2311.68")

    def test_invoice_tax_mode_override(self, db_session, catalog_a):
        order = self._order(catalog_a)
        invoice = document_service.create_invoice_from_order(catalog_a.id, order.id, tax_mode="inter")
        assert invoice.tax_mode == "INTER"
        assert invoice.igst == Decimal("371.52")

    def test_one_invoice_per_order(self, db_session, catalog_a):
        order = self._order(catalog_a)
        document_service.create_invoice_from_order(catalog_a.id, order.id)

        with pytest.raises(DocumentError):
            document_service.create_invoice_from_order(catalog_a.id, order.id)
        assert db_session.query(Invoice).count() == 1

    def test_cancelled_order_not_invoiced(self, db_session, catalog_a):
        order = self._order(catalog_a)
        document_service.transition_order(catalog_a.id, order.id, "CANCELLED")

        with pytest.raises(DocumentError):
            document_service.create_invoice_from_order(catalog_a.id, order.id)

    def test_payments_update_status_and_balance(self, db_session, catalog_a):
        order = self._order(catalog_a)
        invoice = document_service.create_invoice_from_order(catalog_a.id, order.id)

        invoice = document_service.record_payment(catalog_a.id, invoice.id, "1000", method="UPI")
        assert invoice.payment_status == "PARTIAL"
        assert db_session.get(Order, order.id).balance_amount == Decimal("1435.52")

        invoice = document_service.record_payment(catalog_a.id, invoice.id, "1435.52")
        assert invoice.payment_status == "PAID"
        assert db_session.get(Order, order.id).balance_amount == Decimal("0.00")
        assert len(invoice.payments) == 2

    @pytest.mark.parametrize("amount", ["0", "-5", None, "abc"])
    def test_payment_amount_validated(self, db_session, catalog_a, amount):
        order = self._order(catalog_a)
        invoice = document_service.create_invoice_from_order(catalog_a.id, order.id)

        with pytest.raises(ValidationError):
            document_service.record_payment(catalog_a.id, invoice.id, amount)

    def test_listing_filters(self, db_session, catalog_a):
        order = self._order(catalog_a)
        invoice = document_service.create_invoice_from_order(catalog_a.id, order.id)
        document_service.record_payment(catalog_a.id, invoice.id, "10")

        rows, total = document_service.list_invoices(catalog_a.id, payment_status="partial")
        assert total == 1 and rows[0].id == invoice.id
        rows, total = document_service.list_invoices(catalog_a.id, payment_status="PAID")
        assert total == 0
        rows, total = document_service.list_orders(catalog_a.id, status="PENDING")
        assert total == 1
