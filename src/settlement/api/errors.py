"""Render settlement errors as JSON responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from settlement.errors import RateLimited, SettlementError


def register_settlement_error_handler(app: FastAPI) -> None:
    @app.exception_handler(SettlementError)
    async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
        headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimited) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)
