"""FastAPI settlement endpoints: list, get, create, cancel and quote intents.

All amounts cross this boundary as decimal-digit strings.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.service import SettlementService
from src.exceptions import (
    AdapterError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    QuoteRejected,
    SettlementError,
    ValidationError,
)
from src.intents.models import Intent
from src.ledger.base import SubmitResult

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["intents"])

_HTTP_STATUS: list[tuple[type[SettlementError], int]] = [
    (ValidationError, 400),
    (QuoteRejected, 400),
    (InvalidStateError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (AdapterError, 502),
]


def _service(request: Request) -> SettlementService:
    return request.app.state.service


def _submitted(result: SubmitResult) -> dict[str, Any]:
    intent: Optional[Intent] = result.intent
    return {"data": {"txid": result.tx_id, "intent": intent.to_dict() if intent else None}}


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    return {"ok": True, "mode": _service(request).ledger.mode}


@router.get("/intents")
async def list_intents(
    request: Request,
    creator: Optional[str] = Query(default=None, description="Exact creator match."),
    status: Optional[str] = Query(default=None, description="open, filled, canceled or expired."),
) -> dict[str, Any]:
    intents = await _service(request).list_intents(creator=creator, status=status)
    return {"data": [i.to_dict() for i in intents], "count": len(intents)}


@router.get("/intents/{intent_id}")
async def get_intent(request: Request, intent_id: int) -> dict[str, Any]:
    intent = await _service(request).get_intent(intent_id)
    return {"data": intent.to_dict()}


@router.post("/intents/create")
async def create_intent(
    request: Request, payload: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    result = await _service(request).create_intent(payload)
    return _submitted(result)


@router.post("/intents/{intent_id}/cancel")
async def cancel_intent(
    request: Request, intent_id: int, payload: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    result = await _service(request).cancel_intent(
        intent_id, payload.get("creator"), payload.get("tokenIn"),
    )
    return _submitted(result)


@router.get("/quote")
async def quote(
    request: Request, id: Optional[int] = Query(default=None),
) -> dict[str, Any]:
    if id is None:
        raise ValidationError("id query param required")
    result = await _service(request).quote(id)
    return {"data": result.to_dict()}


async def _settlement_error(request: Request, exc: SettlementError) -> JSONResponse:
    status_code = next(
        (code for exc_type, code in _HTTP_STATUS if isinstance(exc, exc_type)), 500,
    )
    if status_code >= 500:
        logger.error("api_ledger_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


async def _request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(
        ".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"invalid request: {fields}"})


def create_app(service: Optional[SettlementService] = None) -> FastAPI:
    """Wire the routes to ``service``, or to one built from settings."""
    if service is None:
        from config.settings import settings
        from src.ledger.factory import build_ledger
        from src.pricing.prices import load_price_table

        service = SettlementService(
            ledger=build_ledger(settings),
            prices=load_price_table(settings),
            default_creator=settings.DEFAULT_CREATOR,
            page_size=settings.PAGE_SIZE,
            max_pages=settings.MAX_PAGES,
        )

    app = FastAPI(title="Intent Settlement API", version="1.0.0")
    app.state.service = service
    app.include_router(router)
    app.add_exception_handler(SettlementError, _settlement_error)
    app.add_exception_handler(RequestValidationError, _request_error)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await service.ledger.aclose()

    return app
