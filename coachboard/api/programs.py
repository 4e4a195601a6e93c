# coachboard/api/programs.py
"""
Program resolution endpoints.

- GET /programs/resolve: current program view plus ordered histories.
- GET /programs/governing-assignment: which assignment governs a lead/customer.

Both return {"ok": true, "data": ...}. A strict-mode store failure is a 503
with {"ok": false, "error": ..., "diagnostics": {...}}.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from coachboard.services.history_composer import ProgramHistoryService
from coachboard.services.record_store import RecordStoreError

logger = logging.getLogger(__name__)
router = APIRouter()

# Singleton
program_history_service = ProgramHistoryService()


def _store_error_response(exc: RecordStoreError) -> JSONResponse:
    logger.error("Program resolution failed on %s read: %s", exc.kind, exc.error)
    return JSONResponse(
        {
            "ok": False,
            "error": "record_store_unavailable",
            "diagnostics": {"kind": exc.kind, "error": exc.error},
        },
        status_code=503,
    )


@router.get("/resolve")
async def resolve_program(
    customer_id: Optional[str] = Query(default=None),
    lead_id: Optional[str] = Query(default=None),
):
    """Resolve the active program and plan histories for a customer and/or lead."""
    try:
        key = await program_history_service.client_key_for(customer_id, lead_id)
        resolution = await program_history_service.resolve(key)
    except RecordStoreError as exc:
        return _store_error_response(exc)
    return JSONResponse({"ok": True, "data": resolution.to_response()})


@router.get("/governing-assignment")
async def governing_assignment(
    lead_id: Optional[str] = Query(default=None),
    customer_id: Optional[str] = Query(default=None),
):
    """The assignment that governs the lead's current program, or null."""
    try:
        key = await program_history_service.client_key_for(customer_id, lead_id)
        assignment = await program_history_service.governing_assignment(key)
    except RecordStoreError as exc:
        return _store_error_response(exc)
    data = assignment.model_dump(mode="json", by_alias=True) if assignment else None
    return JSONResponse({"ok": True, "data": data})
