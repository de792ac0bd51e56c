"""Обработчики исключений для FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .exceptions import (
    AppException,
    BatchInProgressError,
    DoesntExistException,
    ExternalServiceError,
    StockShortfallError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def add_exception_handlers(app: FastAPI) -> None:
    """Добавление обработчиков исключений в приложение."""

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request, exc: AppException
    ) -> JSONResponse:
        """Базовый обработчик исключений приложения."""
        logger.error(f"Unhandled application error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500, content={"detail": str(exc), "type": "app_error"}
        )

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Обработчик ошибок валидации."""
        return JSONResponse(
            status_code=400, content={"detail": str(exc), "type": "validation_error"}
        )

    @app.exception_handler(DoesntExistException)
    async def not_found_exception_handler(
        request: Request, exc: DoesntExistException
    ) -> JSONResponse:
        """Обработчик ошибок отсутствия сущности."""
        return JSONResponse(
            status_code=404, content={"detail": exc.detail, "type": "not_found_error"}
        )

    @app.exception_handler(ExternalServiceError)
    async def external_service_exception_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        """Обработчик ошибок внешних сервисов."""
        logger.error(f"External service error on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=502,
            content={"detail": exc.detail, "type": "external_service_error"},
        )

    @app.exception_handler(BatchInProgressError)
    async def batch_exception_handler(
        request: Request, exc: BatchInProgressError
    ) -> JSONResponse:
        """Обработчик повторного запуска пакетной операции."""
        return JSONResponse(
            status_code=409, content={"detail": str(exc), "type": "batch_in_progress"}
        )

    @app.exception_handler(StockShortfallError)
    async def stock_shortfall_exception_handler(
        request: Request, exc: StockShortfallError
    ) -> JSONResponse:
        """Обработчик запрета конвертации из-за остатков."""
        return JSONResponse(
            status_code=409,
            content={
                "detail": exc.detail,
                "type": "stock_shortfall",
                "models": exc.models,
            },
        )
