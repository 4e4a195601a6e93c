# coachboard/services/record_store.py
"""
Read-only access to program, assignment and plan rows in Supabase.

Design goals:
- Standardized return shape for every public method:
    {"ok": bool, "data": ..., "error": "...", "diagnostics": {...}}
  so the composer can decide per read whether to degrade or fail.
- Use asyncio.to_thread (via helper) for all blocking supabase SDK calls so the
  event loop is never blocked; each read is bounded by a timeout.
- Defensive parsing of Supabase SDK responses (object with .data OR dict with "data").
- Rows are returned as parsed record models; soft-deleted plans are dropped.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from coachboard.config.settings import settings
from coachboard.config.supabase import supabase_client
from coachboard.models.records import (
    PLAN_MODELS,
    Assignment,
    PlanKind,
    Program,
    parse_rows,
)

logger = logging.getLogger(__name__)

PROGRAMS_TABLE = "budgets"
ASSIGNMENTS_TABLE = "budget_assignments"
LEADS_TABLE = "leads"


class RecordStoreError(RuntimeError):
    """Raised (in strict mode) when a store read for one record kind fails."""

    def __init__(self, kind: str, error: str, diagnostics: Optional[Dict[str, Any]] = None):
        self.kind = kind
        self.error = error
        self.diagnostics = diagnostics or {}
        super().__init__(f"record store read failed for {kind}: {error}")


# -----------------------
# Utility helpers
# -----------------------
def _parse_supabase_response(resp: Any) -> Dict[str, Any]:
    """
    Turn Supabase SDK responses (object with .data or dict) into a predictable dict.
    Returns {ok, data, status_code, raw}
    """
    if resp is None:
        return {"ok": False, "data": None, "status_code": None, "raw": None}

    if hasattr(resp, "data"):
        data = getattr(resp, "data")
        status_code = getattr(resp, "status_code", None)
        if isinstance(status_code, int) and status_code >= 400:
            return {"ok": False, "data": data, "status_code": status_code, "raw": resp}
        return {"ok": data is not None, "data": data, "status_code": status_code, "raw": resp}

    if isinstance(resp, dict):
        data = resp.get("data", resp.get("result", resp.get("records", None)))
        status_code = resp.get(
            "status_code", resp.get("statusCode", resp.get("status", None))
        )
        return {"ok": data is not None, "data": data, "status_code": status_code, "raw": resp}

    return {"ok": False, "data": None, "status_code": None, "raw": str(resp)}


def _as_rows(data: Any) -> List[Dict[str, Any]]:
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    return []


async def _run_blocking(fn: Callable, *args, **kwargs) -> Any:
    return await asyncio.to_thread(lambda: fn(*args, **kwargs))


def _make_result(
    ok: bool,
    data: Any = None,
    error: Optional[str] = None,
    diagnostics: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    res: Dict[str, Any] = {"ok": ok}
    if ok:
        res["data"] = data
    else:
        res["error"] = error or "unknown_error"
    res["diagnostics"] = diagnostics or {}
    return res


# -----------------------
# RecordStore
# -----------------------
class RecordStore:

    def __init__(self, client: Any = None, read_timeout: Optional[float] = None):
        self.client = client if client is not None else getattr(supabase_client, "client", None)
        self.read_timeout = read_timeout if read_timeout is not None else settings.store_read_timeout
        if self.client is None:
            logger.warning(
                "RecordStore: Supabase client not available. Program reads will fail."
            )
        else:
            logger.debug("RecordStore: initialized with Supabase client")

    async def _call_db(self, fn: Callable, *args, **kwargs) -> Dict[str, Any]:
        """
        Run blocking DB function in a thread, bounded by the read timeout, and
        normalize the response. `fn` invokes the supabase SDK and returns its raw response.
        """
        if self.client is None:
            return _make_result(False, error="no_supabase_client")

        called = getattr(fn, "__name__", str(fn))
        logger.debug("DB call: %s args=%s", called, args)
        try:
            raw = await asyncio.wait_for(
                _run_blocking(fn, *args, **kwargs), timeout=self.read_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("DB call %s timed out after %.1fs", called, self.read_timeout)
            return _make_result(
                False,
                error="timeout",
                diagnostics={"called": called, "timeout": self.read_timeout},
            )
        except Exception as exc:
            logger.exception("DB call %s raised exception: %s", called, exc)
            return _make_result(False, error=str(exc), diagnostics={"called": called})

        parsed = _parse_supabase_response(raw)
        diagnostics = {
            "called": called,
            "status_code": parsed.get("status_code"),
        }
        if not parsed.get("ok"):
            diagnostics["raw_preview"] = str(parsed.get("raw"))[:1000]
            return _make_result(False, error="db_no_data", diagnostics=diagnostics)
        return _make_result(True, data=_as_rows(parsed.get("data")), diagnostics=diagnostics)

    # -----------------------
    # Plans
    # -----------------------
    async def fetch_plans(
        self,
        kind: PlanKind,
        customer_id: Optional[str] = None,
        lead_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Plans of one kind where customer_id = customer_id OR lead_id = lead_id,
        newest created_at first. No ids -> empty data without a round-trip.
        """
        if not customer_id and not lead_id:
            return _make_result(True, data=[], diagnostics={"skipped": "no_client_ids"})

        def _fn(table, cid, lid):
            qb = self.client.table(table).select("*")
            if cid and lid:
                qb = qb.or_(f"customer_id.eq.{cid},lead_id.eq.{lid}")
            elif cid:
                qb = qb.eq("customer_id", cid)
            else:
                qb = qb.eq("lead_id", lid)
            return qb.order("created_at", desc=True).execute()

        res = await self._call_db(_fn, kind.table, customer_id, lead_id)
        if not res.get("ok"):
            return res

        fetched = res["data"]
        rows = [r for r in fetched if not r.get("deleted_at")]
        plans = parse_rows(PLAN_MODELS[kind], rows)
        res["data"] = plans
        res["diagnostics"].update(
            {"kind": kind.value, "fetched": len(fetched), "parsed": len(plans)}
        )
        logger.debug("fetch_plans kind=%s customer=%s lead=%s -> %d", kind.value, customer_id, lead_id, len(plans))
        return res

    # -----------------------
    # Assignments
    # -----------------------
    async def fetch_assignments(
        self,
        customer_id: Optional[str] = None,
        lead_ids: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """Assignments on the customer or on any of the given leads, latest assigned_at first."""
        filters: List[str] = []
        if customer_id:
            filters.append(f"customer_id.eq.{customer_id}")
        lead_ids = [lid for lid in dict.fromkeys(lead_ids) if lid]
        if lead_ids:
            filters.append(f"lead_id.in.({','.join(lead_ids)})")
        if not filters:
            return _make_result(True, data=[], diagnostics={"skipped": "no_client_ids"})

        def _fn(or_filter):
            return (
                self.client.table(ASSIGNMENTS_TABLE)
                .select("*")
                .or_(or_filter)
                .order("assigned_at", desc=True)
                .execute()
            )

        res = await self._call_db(_fn, ",".join(filters))
        if res.get("ok"):
            res["data"] = parse_rows(Assignment, res["data"])
        return res

    # -----------------------
    # Programs / leads
    # -----------------------
    async def fetch_program(self, program_id: Optional[str]) -> Dict[str, Any]:
        """Single program row; data is None when it does not exist."""
        if not program_id:
            return _make_result(True, data=None, diagnostics={"skipped": "no_program_id"})

        def _fn(pid):
            return self.client.table(PROGRAMS_TABLE).select("*").eq("id", pid).limit(1).execute()

        res = await self._call_db(_fn, program_id)
        if res.get("ok"):
            programs = parse_rows(Program, res["data"])
            res["data"] = programs[0] if programs else None
            if res["data"] is None:
                logger.info("Program %s referenced by an assignment does not exist", program_id)
        return res

    async def fetch_customer_lead_ids(self, customer_id: Optional[str]) -> Dict[str, Any]:
        """Ids of every lead owned by the customer."""
        if not customer_id:
            return _make_result(True, data=[], diagnostics={"skipped": "no_customer_id"})

        def _fn(cid):
            return self.client.table(LEADS_TABLE).select("id").eq("customer_id", cid).execute()

        res = await self._call_db(_fn, customer_id)
        if res.get("ok"):
            res["data"] = [str(r["id"]) for r in res["data"] if r.get("id")]
        return res
