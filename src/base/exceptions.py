"""Кастомные исключения приложения."""

from typing import List, Optional


class AppException(Exception):
    """Базовое исключение приложения."""
    pass


class ValidationError(AppException):
    """Ошибка валидации данных."""
    pass


class DoesntExistException(AppException):
    """Исключение о том, что сущность не существует."""

    def __init__(self, detail: str = "Entity doesn't exist") -> None:
        """Инициализация исключения."""
        super().__init__(detail)
        self.detail = detail


class CartItemNotFoundError(DoesntExistException):
    """Позиция корзины не найдена."""
    pass


class ExternalServiceError(AppException):
    """Ошибка внешнего сервиса."""

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        """Инициализация исключения."""
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class CartServiceError(ExternalServiceError):
    """Ошибка сервиса лидов и корзины."""
    pass


class StockServiceError(ExternalServiceError):
    """Ошибка сервиса остатков."""
    pass


class DiscountSourceError(ExternalServiceError):
    """Ошибка источника скидок."""
    pass


class PricingServiceError(ExternalServiceError):
    """Ошибка сервиса ценовых решений."""
    pass


class PricingResponseError(PricingServiceError):
    """Ответ сервиса ценовых решений не соответствует ни одной известной схеме."""
    pass


class BatchInProgressError(AppException):
    """Пакетная операция этой области уже выполняется."""

    def __init__(self, scope: str) -> None:
        """Инициализация исключения."""
        super().__init__(f"Операция {scope} уже выполняется")
        self.scope = scope


class StockShortfallError(AppException):
    """Недостаточно остатков для конвертации лида в заказ."""

    def __init__(self, detail: str, models: Optional[List[str]] = None) -> None:
        """Инициализация исключения."""
        super().__init__(detail)
        self.detail = detail
        self.models = models or []
