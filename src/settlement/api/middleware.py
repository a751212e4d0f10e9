"""Per-request domain context and correlation id."""

from fastapi import FastAPI, Request

from settlement.context import new_correlation_id
from settlement.domain import settlement
from settlement.utils.logging import add_context, clear_context


def register_request_context(app: FastAPI) -> None:
    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the settlement domain context and bind the correlation id for each request.

        The id is kept on ``request.state`` so settlement calls log under the
        same id that goes back in the ``X-Correlation-Id`` header.
        """
        correlation_id = request.headers.get("x-correlation-id") or new_correlation_id()
        request.state.correlation_id = correlation_id
        clear_context()
        add_context(correlation_id=correlation_id, path=request.url.path)
        try:
            with settlement.domain_context():
                response = await call_next(request)
        finally:
            clear_context()
        response.headers["X-Correlation-Id"] = correlation_id
        return response
