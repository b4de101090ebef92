"""Tests for /api/analytics routes."""

from concurrent.futures import Future
from datetime import date
from decimal import Decimal

import pytest

from core.exceptions import ValidationError
from core.models import (
    CustomerRank, Overview, PaymentAnalytics, Period, ProductRank, RealizedCredit,
    SectionWarning, TopCustomers, TopProducts,
)

ZERO = Decimal("0.00")


@pytest.fixture
def period():
    return Period(label="30days", start_date=date(2026, 9, 19), end_date=date(2026, 10, 19))


@pytest.fixture
def svc(services, period):
    analytics = services["analytics"]
    analytics.resolve.return_value = period
    return analytics


class TestOverview:

    def test_returns_period_and_totals(self, client, svc):
        svc.overview.return_value = Overview(
            total_sales=Decimal("1200.00"),
            total_purchases=ZERO,
            total_expenses=ZERO,
            payment_methods=[],
            sales_by_date=[],
            realized_credit=RealizedCredit(total=ZERO, count=0),
        )

        response = client.get("/api/analytics/overview?period=30days")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["period"] == {"label": "30days", "start_date": "2026-09-19", "end_date": "2026-10-19"}
        assert data["total_sales"] == "1200.00"
        assert data["warnings"] == []
        svc.resolve.assert_called_once_with("30days", None, None)

    def test_dense_flag_is_forwarded(self, client, svc, period):
        svc.overview.return_value = Overview(
            total_sales=ZERO, total_purchases=ZERO, total_expenses=ZERO,
            payment_methods=[], sales_by_date=[],
            realized_credit=RealizedCredit(total=ZERO, count=0),
        )

        client.get("/api/analytics/overview?dense=true")

        svc.overview.assert_called_once_with(period, dense=True)

    def test_degraded_section_is_reported(self, client, svc):
        svc.overview.return_value = Overview(
            total_sales=ZERO, total_purchases=ZERO, total_expenses=ZERO,
            payment_methods=[], sales_by_date=[],
            realized_credit=RealizedCredit(total=ZERO, count=0),
            warnings=[SectionWarning(section="sales", code="UPSTREAM_UNAVAILABLE", message="down")],
        )

        response = client.get("/api/analytics/overview")

        assert response.status_code == 200
        assert response.json()["data"]["warnings"][0]["section"] == "sales"

    def test_unknown_period_is_400(self, client, svc):
        svc.resolve.side_effect = ValidationError("Unknown period 'fortnight'")

        response = client.get("/api/analytics/overview?period=fortnight")

        assert response.status_code == 400
        svc.overview.assert_not_called()


class TestRankings:

    def test_top_products(self, client, svc, period):
        svc.top_products.return_value = TopProducts(products=[
            ProductRank(product="Rice 5kg", total_quantity=Decimal("12"),
                        total_amount=Decimal("600.00"), count=4),
        ])

        response = client.get("/api/analytics/top-products?limit=5")

        assert response.status_code == 200
        assert response.json()["data"]["products"][0]["product"] == "Rice 5kg"
        svc.top_products.assert_called_once_with(period, limit=5)

    def test_top_customers(self, client, svc, period):
        svc.top_customers.return_value = TopCustomers(customers=[
            CustomerRank(customer="Asha Traders", total_amount=Decimal("900.00"),
                         invoice_count=3, avg_order_value=Decimal("300.00")),
        ])

        response = client.get("/api/analytics/top-customers")

        assert response.status_code == 200
        assert response.json()["data"]["customers"][0]["avg_order_value"] == "300.00"
        svc.top_customers.assert_called_once_with(period, limit=None)

    def test_limit_over_100_is_422(self, client, svc):
        response = client.get("/api/analytics/top-products?limit=101")

        assert response.status_code == 422


class TestPaymentAnalytics:

    def test_returns_flows(self, client, svc, period):
        svc.payment_analytics.return_value = PaymentAnalytics(
            payment_flow=[], payment_methods=[], daily_payments=[],
        )

        response = client.get("/api/analytics/payments?start_date=2026-10-01&end_date=2026-10-19")

        assert response.status_code == 200
        assert response.json()["data"]["daily_payments"] == []
        svc.resolve.assert_called_once_with(None, date(2026, 10, 1), date(2026, 10, 19))
        svc.payment_analytics.assert_called_once_with(period, dense=False)


class TestRequestUpdate:

    def test_queues_refresh_for_session_company(self, client, services, svc, period, company_id):
        services["refresher"].submit.return_value = Future()

        response = client.post("/api/analytics/update?period=30days")

        assert response.status_code == 202
        assert response.json()["data"]["queued"] is True
        services["refresher"].submit.assert_called_once_with(company_id, period)

    def test_request_during_running_refresh_is_still_queued(self, client, services, svc):
        running = Future()
        running.set_running_or_notify_cancel()
        services["refresher"].submit.return_value = running

        response = client.post("/api/analytics/update")

        assert response.status_code == 202
        assert response.json()["data"]["queued"] is True
