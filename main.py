# main.py
"""
FastAPI entry point for the coaching dashboard's program resolution service.
Startup/readiness behavior, request-id middleware with request logging,
and a bounded store health check.
"""
import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coachboard.api.programs import router as programs_router
from coachboard.config.settings import settings
from coachboard.config.supabase import supabase_client

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("uvicorn.error")


async def _run_sync_in_executor(fn, *args, timeout: float = settings.health_check_timeout):
    """
    Run a blocking sync function in the default threadpool with a timeout.
    Returns the function's result or raises TimeoutError.
    """
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.run_in_executor(None, fn, *args), timeout=timeout)


async def _store_healthy(timeout: float = settings.health_check_timeout) -> bool:
    try:
        return bool(await _run_sync_in_executor(supabase_client.health_check, timeout=timeout))
    except asyncio.TimeoutError:
        logger.warning("Supabase health_check timed out after %.1fs", timeout)
    except Exception as exc:
        logger.exception("Unexpected error calling supabase_client.health_check: %s", exc)
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting program resolution service...")

    app.state.supabase_healthy = await _store_healthy()
    logger.info("Supabase health: %s", app.state.supabase_healthy)

    if not app.state.supabase_healthy and settings.fail_on_db_startup:
        logger.error("FAIL_ON_DB_STARTUP enabled and Supabase unhealthy. Aborting startup.")
        raise RuntimeError("Supabase unhealthy on startup")

    try:
        yield
    finally:
        logger.info("Shutting down program resolution service...")


app = FastAPI(
    title="Coachboard - Active Program Resolution",
    description="Resolves a client's active coaching program and plan histories",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # lock down per deployment
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    logger.info("→ Incoming request %s %s id=%s", request.method, request.url.path, request_id)
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        logger.exception("Handler error for request id=%s: %s", request_id, exc)
        return JSONResponse(
            {"ok": False, "status": 500, "message": "Internal server error", "diagnostics": {"error": str(exc)}},
            status_code=500,
        )
    logger.info("← Completed request id=%s status=%s", request_id, getattr(response, "status_code", None))
    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(programs_router, prefix="/programs", tags=["programs"])


@app.get("/")
async def root() -> Dict[str, str]:
    return {"message": "Program resolution service is running", "status": "healthy"}


@app.get("/health")
async def health_check():
    """
    Liveness: is the process up? Runs a bounded store health check but never
    fails hard; reports degraded when the store is down.
    """
    db_ok = await _store_healthy()
    return JSONResponse(
        {
            "status": "healthy" if db_ok else "degraded",
            "service": "coachboard",
            "database": "connected" if db_ok else "disconnected",
            "store": supabase_client.diagnostics(),
        },
        status_code=200 if db_ok else 503,
    )


@app.get("/ready")
async def readiness_check():
    """
    Readiness: uses cached state from startup when available, else one
    bounded check.
    """
    supabase_state: Optional[bool] = getattr(app.state, "supabase_healthy", None)
    if supabase_state is None:
        supabase_state = await _store_healthy(timeout=2.0)

    if supabase_state:
        return JSONResponse({"ready": True, "database": "connected"}, status_code=200)
    return JSONResponse({"ready": False, "database": "disconnected"}, status_code=503)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 5000)), reload=True)
