"""Typed business errors and their HTTP mapping.

Services raise these; routes let them propagate and the handlers
registered by ``register_exception_handlers`` turn them into
``{"error": <code>, "detail": <message>, ...}`` bodies.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class OrderingError(Exception):
    """Base class for all business-rule failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, detail: str, **extra: Any):
        self.detail = detail
        self.extra = extra
        super().__init__(detail)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "detail": self.detail, **self.extra}


class ValidationError(OrderingError):
    """Missing or malformed input the caller can fix."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class NotFoundError(OrderingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ItemNotFoundError(NotFoundError):
    """One or more order lines reference an item not sold at the branch."""

    code = "item_not_found"

    def __init__(self, items: List[Dict[str, Any]], branch_id: int):
        ids = ", ".join(str(i["menu_item_id"]) for i in items)
        super().__init__(
            f"Menu item(s) {ids} not available at branch {branch_id}",
            items=items,
        )
        self.items = items


class ForbiddenError(OrderingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class InsufficientStockError(OrderingError):
    """Requested quantity exceeds what is on hand.

    ``items`` holds one entry per short line with ``menu_item_id``,
    ``name``, ``requested`` and ``available``.
    """

    code = "insufficient_stock"

    def __init__(self, items: List[Dict[str, Any]]):
        parts = [
            f"{i['name']} (requested {i['requested']}, available {i['available']})"
            for i in items
        ]
        super().__init__("Insufficient stock for " + "; ".join(parts), items=items)
        self.items = items


class StaleStateError(OrderingError):
    """The order is no longer in the state the transition requires."""

    status_code = status.HTTP_409_CONFLICT
    code = "stale_state"


class AlreadyProcessedError(StaleStateError):
    code = "already_processed"


class NoBranchAssignedError(OrderingError):
    code = "no_branch_assigned"

    def __init__(self, detail: str = "No branch assigned"):
        super().__init__(detail)


class InternalError(OrderingError):
    """Persistence failure. The message shown to callers stays generic."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail)


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        fields.append({"field": ".".join(loc), "message": err.get("msg", "")})
    body = ValidationError("Request validation failed", fields=fields).to_dict()
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


def register_exception_handlers(app: FastAPI, extra: Optional[Dict[type, Any]] = None) -> None:
    """Install the JSON error handlers on ``app``."""
    app.add_exception_handler(OrderingError, ordering_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    for exc_class, handler in (extra or {}).items():
        app.add_exception_handler(exc_class, handler)
