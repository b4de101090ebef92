"""/api/credit-notes: credit note listing, editing and lifecycle."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.base import success_response
from api.params import check_range, list_query, page_payload
from core.exceptions import NotFound
from core.models import CreditNoteCreate, CreditNoteUpdate, CreditNoteStatusChange, ListQuery


def create_credit_notes_router(services: dict) -> APIRouter:
    router = APIRouter(prefix="/credit-notes", tags=["credit-notes"])

    credit_note_svc = services["credit_note"]

    # Static paths before /{credit_note_id}
    @router.get("/stats")
    def credit_note_stats(
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
    ):
        check_range(start_date, end_date)
        stats = credit_note_svc.stats(start_date, end_date)
        return success_response(stats.model_dump(mode="json")).model_dump(mode="json")

    @router.get("")
    def list_credit_notes(query: ListQuery = Depends(list_query)):
        page = credit_note_svc.list(query)
        return success_response(page_payload(page)).model_dump(mode="json")

    @router.get("/{credit_note_id}")
    def get_credit_note(credit_note_id: UUID):
        note = credit_note_svc.get_by_id(credit_note_id)
        if note is None:
            raise NotFound(f"Credit note {credit_note_id} not found")
        return success_response(note.model_dump(mode="json")).model_dump(mode="json")

    @router.post("", status_code=201)
    def create_credit_note(body: CreditNoteCreate):
        note = credit_note_svc.create(body)
        return success_response(note.model_dump(mode="json")).model_dump(mode="json")

    @router.patch("/{credit_note_id}")
    def update_credit_note(credit_note_id: UUID, body: CreditNoteUpdate):
        note = credit_note_svc.update(credit_note_id, body)
        return success_response(note.model_dump(mode="json")).model_dump(mode="json")

    @router.patch("/{credit_note_id}/status")
    def change_credit_note_status(credit_note_id: UUID, body: CreditNoteStatusChange):
        note = credit_note_svc.set_status(credit_note_id, body.status)
        return success_response(note.model_dump(mode="json")).model_dump(mode="json")

    @router.delete("/{credit_note_id}")
    def delete_credit_note(credit_note_id: UUID):
        credit_note_svc.delete(credit_note_id)
        return success_response({"id": str(credit_note_id), "deleted": True}).model_dump(mode="json")

    return router
