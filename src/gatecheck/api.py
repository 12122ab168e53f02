from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatecheck import __version__
from gatecheck.config import load_settings
from gatecheck.logging_config import configure_logging
from gatecheck.runtime import GateCheckRuntime

settings = load_settings()
configure_logging(settings.log_level)

app = FastAPI(title="GateCheck API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

runtime = GateCheckRuntime.from_data_dir(settings.data_dir, redacted_fields=settings.redacted_fields)


async def _check_in(request: Request) -> JSONResponse:
    body = await request.body()
    payload, status_code = runtime.check_in(body)
    return JSONResponse(status_code=status_code, content=payload)


@app.get("/")
def root() -> dict[str, Any]:
    return runtime.service_info()


@app.post("/")
async def check_in_root(request: Request) -> JSONResponse:
    return await _check_in(request)


@app.post("/api/checkin")
async def check_in(request: Request) -> JSONResponse:
    return await _check_in(request)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/tickets/{ticket_id}")
def get_ticket(ticket_id: str) -> dict[str, Any]:
    return runtime.ticket_detail(ticket_id)


@app.get("/api/summary")
def get_summary() -> dict[str, Any]:
    return runtime.summary()
