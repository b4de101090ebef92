"""/api/payments: payment recording, settlement and customer statements."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from api.base import success_response
from api.params import check_range, list_query, page_payload
from core.exceptions import NotFound
from core.models import ListQuery, PaymentCreate


def create_payments_router(services: dict) -> APIRouter:
    router = APIRouter(prefix="/payments", tags=["payments"])

    payment_svc = services["payment"]

    # -------------------------------------------------------------------------
    # Static paths (registered before /{payment_id})
    # -------------------------------------------------------------------------

    @router.get("/stats")
    def payment_stats(
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
    ):
        check_range(start_date, end_date)
        stats = payment_svc.stats(start_date, end_date)
        return success_response(stats.model_dump(mode="json")).model_dump(mode="json")

    @router.get("/customer/{customer_id}/statement")
    def customer_statement(
        customer_id: UUID,
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
    ):
        check_range(start_date, end_date)
        statement = payment_svc.generate_statement(customer_id, start_date, end_date)
        return success_response(statement.model_dump(mode="json")).model_dump(mode="json")

    @router.get("/customer/{customer_id}/download")
    def download_statement(
        customer_id: UUID,
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
    ):
        check_range(start_date, end_date)
        filename, content = payment_svc.export_statement(customer_id, start_date, end_date)
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    # -------------------------------------------------------------------------
    # Collection and items
    # -------------------------------------------------------------------------

    @router.get("")
    def list_payments(query: ListQuery = Depends(list_query)):
        page = payment_svc.list(query)
        return success_response(page_payload(page)).model_dump(mode="json")

    @router.get("/{payment_id}")
    def get_payment(payment_id: UUID):
        payment = payment_svc.get_by_id(payment_id)
        if payment is None:
            raise NotFound(f"Payment {payment_id} not found")
        return success_response(payment.model_dump(mode="json")).model_dump(mode="json")

    @router.post("", status_code=201)
    def record_payment(body: PaymentCreate):
        payment = payment_svc.record_payment(body)
        return success_response(payment.model_dump(mode="json")).model_dump(mode="json")

    @router.post("/{payment_id}/settle")
    def settle_payment(payment_id: UUID):
        payment = payment_svc.settle(payment_id)
        return success_response(payment.model_dump(mode="json")).model_dump(mode="json")

    @router.post("/{payment_id}/fail")
    def fail_payment(payment_id: UUID):
        payment = payment_svc.fail(payment_id)
        return success_response(payment.model_dump(mode="json")).model_dump(mode="json")

    @router.post("/{payment_id}/cancel")
    def cancel_payment(payment_id: UUID):
        payment = payment_svc.cancel(payment_id)
        return success_response(payment.model_dump(mode="json")).model_dump(mode="json")

    @router.delete("/{payment_id}")
    def delete_payment(payment_id: UUID):
        payment_svc.delete(payment_id)
        return success_response({"id": str(payment_id), "deleted": True}).model_dump(mode="json")

    return router
