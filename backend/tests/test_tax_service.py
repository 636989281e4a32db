# Overview: Pytest coverage for GST resolution and breakdown.

from decimal import Decimal

import pytest

from glassworks.services import tax_service
from glassworks.services.tax_service import TaxRates, compute_gst, DEFAULT_GST_PERCENT
from glassworks.validation import ValidationError


class TestComputeGst:
    @pytest.mark.parametrize("amount", ["900", "0.01", "12345.67", "1"])
    def test_intra_splits_cgst_sgst(self, amount):
        gst = compute_gst(Decimal(amount), "INTRA", TaxRates.default())
        assert gst.igst == Decimal("0.00")
        assert gst.tax == gst.cgst + gst.sgst + gst.igst

    @pytest.mark.parametrize("amount", ["900", "0.01", "12345.67", "1"])
    def test_inter_is_igst_only(self, amount):
        gst = compute_gst(Decimal(amount), "INTER", TaxRates.default())
        assert gst.cgst == Decimal("0.00")
        assert gst.sgst == Decimal("0.00")
        assert gst.tax == gst.igst

    def test_components_rounded_separately(self):
        # 9% of 0.05 = 0.0045 each -> 0.00; IGST 18% = 0.009 -> 0.01
        intra = compute_gst(Decimal("0.05"), "INTRA")
        inter = compute_gst(Decimal("0.05"), "INTER")
        assert intra.tax == Decimal("0.00")
        assert inter.tax == Decimal("0.01")

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            compute_gst(Decimal("100"), "BOTH")


class TestTaxRateFallback:
    def test_single_default(self):
        rates = TaxRates.default()
        assert rates.igst == DEFAULT_GST_PERCENT
        assert rates.cgst == DEFAULT_GST_PERCENT / 2
        assert rates.sgst == DEFAULT_GST_PERCENT / 2

    def test_halves_follow_configured_igst(self):
        rates = TaxRates.from_configured({"IGST": Decimal("12")})
        assert rates.cgst == Decimal("6")
        assert rates.sgst == Decimal("6")

    def test_explicit_components_win(self):
        rates = TaxRates.from_configured({"CGST": Decimal("2.5"), "SGST": Decimal("2.5")})
        assert rates.cgst == Decimal("2.5")
        assert rates.igst == DEFAULT_GST_PERCENT


class TestConfiguredRates:
    def test_resolve_without_rows(self, db_session, org_a):
        assert tax_service.resolve_tax_rates(org_a.id) == TaxRates.default()

    def test_set_and_resolve(self, db_session, org_a, org_b):
        tax_service.set_tax_rate(org_a.id, "igst", "12")
        db_session.commit()

        rates = tax_service.resolve_tax_rates(org_a.id)
        assert rates.igst == Decimal("12")
        assert rates.cgst == Decimal("6")
        # Other tenants are untouched
        assert tax_service.resolve_tax_rates(org_b.id) == TaxRates.default()

    def test_set_is_upsert(self, db_session, org_a):
        tax_service.set_tax_rate(org_a.id, "CGST", "9")
        tax_service.set_tax_rate(org_a.id, "CGST", "6")
        db_session.commit()

        rows = tax_service.list_tax_rates(org_a.id)
        assert len(rows) == 1
        assert rows[0].rate_percent == Decimal("6.00")

    @pytest.mark.parametrize("name,rate", [("VAT", "5"), ("IGST", "101"), ("IGST", "-1"), ("IGST", "abc")])
    def test_invalid_rates(self, db_session, org_a, name, rate):
        with pytest.raises(ValidationError):
            tax_service.set_tax_rate(org_a.id, name, rate)
