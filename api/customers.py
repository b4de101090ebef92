"""/api/customers: read-only customer directory for pickers and statements."""

from fastapi import APIRouter, Query

from api.base import success_response


def create_customers_router(services: dict) -> APIRouter:
    router = APIRouter(prefix="/customers", tags=["customers"])

    customer_directory = services["customers"]

    @router.get("")
    def list_customers(
        search: str | None = Query(None, max_length=200),
        limit: int = Query(500, ge=1, le=500),
    ):
        customers = customer_directory.list_all(search=search, limit=limit)
        return success_response(
            [c.model_dump(mode="json") for c in customers]
        ).model_dump(mode="json")

    return router
