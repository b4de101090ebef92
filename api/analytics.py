"""/api/analytics: dashboard rollups served from published snapshots."""

from datetime import date

from fastapi import APIRouter, Query
from starlette.responses import JSONResponse

from api.base import success_response
from utils.tenant_context import get_current_company_id


def create_analytics_router(services: dict) -> APIRouter:
    router = APIRouter(prefix="/analytics", tags=["analytics"])

    analytics_svc = services["analytics"]
    refresher = services["refresher"]

    @router.get("/overview")
    def overview(
        period: str | None = Query(None),
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
        dense: bool = Query(False),
    ):
        resolved = analytics_svc.resolve(period, start_date, end_date)
        data = analytics_svc.overview(resolved, dense=dense)
        return success_response({
            "period": resolved.model_dump(mode="json"),
            **data.model_dump(mode="json"),
        }).model_dump(mode="json")

    @router.get("/top-products")
    def top_products(
        period: str | None = Query(None),
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
        limit: int | None = Query(None, ge=1, le=100),
    ):
        resolved = analytics_svc.resolve(period, start_date, end_date)
        data = analytics_svc.top_products(resolved, limit=limit)
        return success_response({
            "period": resolved.model_dump(mode="json"),
            **data.model_dump(mode="json"),
        }).model_dump(mode="json")

    @router.get("/top-customers")
    def top_customers(
        period: str | None = Query(None),
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
        limit: int | None = Query(None, ge=1, le=100),
    ):
        resolved = analytics_svc.resolve(period, start_date, end_date)
        data = analytics_svc.top_customers(resolved, limit=limit)
        return success_response({
            "period": resolved.model_dump(mode="json"),
            **data.model_dump(mode="json"),
        }).model_dump(mode="json")

    @router.get("/payments")
    def payment_analytics(
        period: str | None = Query(None),
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
        dense: bool = Query(False),
    ):
        resolved = analytics_svc.resolve(period, start_date, end_date)
        data = analytics_svc.payment_analytics(resolved, dense=dense)
        return success_response({
            "period": resolved.model_dump(mode="json"),
            **data.model_dump(mode="json"),
        }).model_dump(mode="json")

    @router.post("/update")
    def request_update(
        period: str | None = Query(None),
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
    ):
        """Queue a recompute; the response only acknowledges it."""
        resolved = analytics_svc.resolve(period, start_date, end_date)
        refresher.submit(get_current_company_id(), resolved)
        return JSONResponse(
            status_code=202,
            content=success_response({
                "period": resolved.model_dump(mode="json"),
                "queued": True,
            }).model_dump(mode="json"),
        )

    return router
