# Overview: Pytest coverage for the HTTP API surface.

from decimal import Decimal

from glassworks.services import document_service
from glassworks.services.numbering_service import SequenceAllocationError
from glassworks.time_utils import current_year

from fakes import scenario_a_item, org_headers


class TestTenantContext:
    def test_missing_header(self, client, db_session):
        response = client.post('/api/pricing/line-items', json={"items": [scenario_a_item()]})
        assert response.status_code == 400
        assert "X-Org-Id" in response.get_json()["error"]

    def test_non_integer_header(self, client, db_session):
        response = client.get('/api/quotes', headers={'X-Org-Id': 'abc'})
        assert response.status_code == 400

    def test_unknown_org(self, client, db_session):
        response = client.get('/api/quotes', headers={'X-Org-Id': '4242'})
        assert response.status_code == 404

    def test_inactive_org(self, client, db_session, org_a):
        org_a.is_active = False
        db_session.commit()
        response = client.get('/api/quotes', headers=org_headers(org_a))
        assert response.status_code == 404


class TestPricingRoutes:
    def test_line_items(self, client, catalog_a):
        response = client.post(
            '/api/pricing/line-items',
            json={"items": [scenario_a_item()]},
            headers=org_headers(catalog_a),
        )
        assert response.status_code == 200
        body = response.get_json()
        assert body["items"][0]["line_total"] == "2064.00"
        assert body["items"][0]["width_ft"] == "2.00"
        assert body["needs_pricing_review"] is False

    def test_validation_error_names_field(self, client, catalog_a):
        response = client.post(
            '/api/pricing/line-items',
            json={"items": [scenario_a_item(height_in=-1)]},
            headers=org_headers(catalog_a),
        )
        assert response.status_code == 400
        assert response.get_json()["field"] == "items[0].height_in"

    def test_unknown_process_is_400(self, client, catalog_a):
        response = client.post(
            '/api/pricing/line-items',
            json={"items": [scenario_a_item(processes=["ZZZ"])]},
            headers=org_headers(catalog_a),
        )
        assert response.status_code == 400
        assert response.get_json()["field"] == "items[0].processes[0].code"

    def test_body_must_be_object(self, client, catalog_a):
        response = client.post('/api/pricing/line-items', json=[1, 2], headers=org_headers(catalog_a))
        assert response.status_code == 400

    def test_quote_preview(self, client, catalog_a):
        response = client.post(
            '/api/pricing/quote-preview',
            json={"items": [scenario_a_item()], "discount_percent": 10},
            headers=org_headers(catalog_a),
        )
        assert response.status_code == 200
        totals = response.get_json()["totals"]
        assert totals["after_discount"] == "1857.60"
        assert totals["tax_breakdown"]["cgst"] == "167.18"

    def test_quote_preview_with_charges(self, client, catalog_a):
        response = client.post(
            '/api/pricing/quote-preview',
            json={"items": [scenario_a_item()], "charges": {"delivery_charge": "100", "fittings_charge": "36"}},
            headers=org_headers(catalog_a),
        )
        totals = response.get_json()["totals"]
        assert totals["charges_total"] == "136.00"
        assert totals["charges"]["fittings_charge"] == "36.00"
        assert totals["total"] == "2596.00"

    def test_unknown_charge_is_400(self, client, catalog_a):
        response = client.post(
            '/api/pricing/quote-preview',
            json={"items": [scenario_a_item()], "charges": {"tip": "5"}},
            headers=org_headers(catalog_a),
        )
        assert response.status_code == 400
        assert response.get_json()["field"] == "charges"


class TestDocumentRoutes:
    def test_quote_to_paid_invoice(self, client, catalog_a):
        headers = org_headers(catalog_a)
        year = current_year()

        response = client.post('/api/quotes', json={"customer_name": "Sharma", "items": [scenario_a_item()]}, headers=headers)
        assert response.status_code == 201
        quote = response.get_json()["quote"]
        assert quote["document_number"] == f"Q{year}-0001"
        assert quote["total"] == "2435.52"
        assert len(quote["lines"]) == 1

        response = client.post(f'/api/orders/from-quote/{quote["id"]}', headers=headers)
        assert response.status_code == 201
        order = response.get_json()["order"]
        assert order["document_number"] == f"O{year}-0001"

        response = client.post(f'/api/orders/{order["id"]}/transition', json={"to": "IN_PRODUCTION"}, headers=headers)
        assert response.status_code == 200
        assert response.get_json()["order"]["status"] == "IN_PRODUCTION"

        response = client.post(f'/api/invoices/from-order/{order["id"]}', headers=headers)
        assert response.status_code == 201
        invoice = response.get_json()["invoice"]
        assert invoice["document_number"] == f"INV{year}-0001"

        response = client.post(f'/api/invoices/{invoice["id"]}/payments', json={"amount": "2435.52", "method": "CASH"}, headers=headers)
        assert response.status_code == 201
        body = response.get_json()
        assert body["invoice"]["payment_status"] == "PAID"
        assert body["order_balance"] == "0.00"

        response = client.get('/api/invoices', headers=headers)
        assert response.get_json()["count"] == 1

    def test_not_found_is_404(self, client, catalog_a):
        headers = org_headers(catalog_a)
        assert client.get('/api/quotes/999', headers=headers).status_code == 404
        assert client.get('/api/orders/999', headers=headers).status_code == 404
        assert client.post('/api/invoices/from-order/999', headers=headers).status_code == 404

    def test_cross_tenant_read_is_404(self, client, catalog_a, org_b):
        response = client.post('/api/quotes', json={"items": [scenario_a_item()]}, headers=org_headers(catalog_a))
        quote_id = response.get_json()["quote"]["id"]

        assert client.get(f'/api/quotes/{quote_id}', headers=org_headers(org_b)).status_code == 404

    def test_illegal_transition_is_400(self, client, catalog_a):
        headers = org_headers(catalog_a)
        quote_id = client.post('/api/quotes', json={"items": [scenario_a_item()]}, headers=headers).get_json()["quote"]["id"]
        order_id = client.post(f'/api/orders/from-quote/{quote_id}', headers=headers).get_json()["order"]["id"]

        response = client.post(f'/api/orders/{order_id}/transition', json={"to": "DELIVERED"}, headers=headers)
        assert response.status_code == 400

    def test_allocation_exhaustion_is_503(self, client, catalog_a, monkeypatch):
        def _fail(*args, **kwargs):
            raise SequenceAllocationError("contention")

        monkeypatch.setattr(document_service.numbering_service, "allocate", _fail)
        response = client.post('/api/quotes', json={"items": [scenario_a_item()]}, headers=org_headers(catalog_a))
        assert response.status_code == 503
        assert response.get_json() == {
            "error": "Could not allocate document number, please retry",
            "retryable": True,
        }

    def test_unexpected_error_is_500(self, client, catalog_a, monkeypatch):
        def _boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(document_service, "create_quote", _boom)
        response = client.post('/api/quotes', json={"items": [scenario_a_item()]}, headers=org_headers(catalog_a))
        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}


class TestCatalogAndSequenceRoutes:
    def test_glass_rate_upsert_and_list(self, client, org_a):
        headers = org_headers(org_a)
        response = client.put('/api/catalog/glass-rates', json={"glass_type": "Frosted", "rate_6mm": "55"}, headers=headers)
        assert response.status_code == 200
        assert response.get_json()["glass_rate"]["rate_6mm"] == "55.00"

        items = client.get('/api/catalog/glass-rates', headers=headers).get_json()["items"]
        assert [row["glass_type"] for row in items] == ["Frosted"]

    def test_process_upsert_validates_type(self, client, org_a):
        response = client.put(
            '/api/catalog/processes',
            json={"code": "bev", "name": "Bevelling", "pricing_type": "X", "rate": "20"},
            headers=org_headers(org_a),
        )
        assert response.status_code == 400
        assert response.get_json()["field"] == "pricing_type"

    def test_process_deactivate(self, client, catalog_a):
        headers = org_headers(catalog_a)
        assert client.delete('/api/catalog/processes/edg', headers=headers).status_code == 200

        codes = [row["code"] for row in client.get('/api/catalog/processes', headers=headers).get_json()["items"]]
        assert "EDG" not in codes

    def test_tax_rates(self, client, org_a):
        response = client.put('/api/catalog/tax-rates', json={"IGST": "12"}, headers=org_headers(org_a))
        assert response.status_code == 200
        effective = {k: Decimal(v) for k, v in response.get_json()["effective"].items()}
        assert effective == {"cgst": Decimal("6"), "sgst": Decimal("6"), "igst": Decimal("12")}

    def test_sequence_pattern_and_repair(self, client, catalog_a):
        headers = org_headers(catalog_a)
        response = client.put('/api/sequences/quote', json={"pattern": "QT/{YYYY}/{#####}"}, headers=headers)
        assert response.status_code == 200
        assert response.get_json()["sequence"]["next_number"] == 1

        quote = client.post('/api/quotes', json={"items": [scenario_a_item()]}, headers=headers).get_json()["quote"]
        assert quote["document_number"] == f"QT/{current_year()}/00001"

        response = client.post('/api/sequences/repair', json={"document_type": "QUOTE"}, headers=headers)
        assert response.get_json()["results"][0]["next_number"] == 2

        items = client.get('/api/sequences', headers=headers).get_json()["items"]
        assert [row["document_type"] for row in items] == ["QUOTE"]

    def test_bad_pattern_is_400(self, client, org_a):
        response = client.put('/api/sequences/QUOTE', json={"pattern": "no-counter"}, headers=org_headers(org_a))
        assert response.status_code == 400
        assert response.get_json()["field"] == "pattern"


class TestHealth:
    def test_health(self, client, db_session):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"

    def test_only_health_is_exposed(self, client, db_session):
        response = client.get('/health', headers={'Origin': 'http://localhost:5173'})
        assert "Access-Control-Allow-Origin" not in response.headers
        assert client.get('/version').status_code == 404


class TestCatalogSeed:
    def test_seed_is_idempotent(self, db_session, catalog_a):
        from glassworks.services import catalog_service

        first = catalog_service.seed_default_catalog(catalog_a.id)
        assert first == {"glass_rates": 2, "processes": 1}
        assert catalog_service.seed_default_catalog(catalog_a.id) == {"glass_rates": 0, "processes": 0}

    def test_seeded_org_prices_scenario_a(self, client, org_a):
        from glassworks.services import catalog_service

        catalog_service.seed_default_catalog(org_a.id)
        response = client.post(
            '/api/pricing/line-items',
            json={"items": [scenario_a_item()]},
            headers=org_headers(org_a),
        )
        assert response.get_json()["items"][0]["line_total"] == "2064.00"
