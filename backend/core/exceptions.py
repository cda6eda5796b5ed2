"""Domain errors raised by the stock services and their HTTP mapping."""
import logging
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StockError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"detail": self.message}


class NotFoundError(StockError):
    status_code = status.HTTP_404_NOT_FOUND


class StockValidationError(StockError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransferStateError(StockError):
    status_code = status.HTTP_409_CONFLICT


class StockLimitError(StockError):
    """Add-to-cart rejected: a single-item message for the cashier."""

    status_code = status.HTTP_409_CONFLICT


class InsufficientStockError(StockError):
    """Checkout blocked; carries the itemized shortfall list."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, shortfalls: Optional[List] = None, message: str = "Insufficient stock"):
        super().__init__(message)
        self.shortfalls = list(shortfalls or [])

    def to_body(self) -> dict:
        return {
            "detail": self.message,
            "shortfalls": [
                {"name": s.name, "available": s.available, "requested": s.requested}
                for s in self.shortfalls
            ],
        }


def stock_error_handler(request: Request, exc: StockError):
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


def register_exception_handlers(app: FastAPI) -> FastAPI:
    app.add_exception_handler(StockError, stock_error_handler)
    return app
