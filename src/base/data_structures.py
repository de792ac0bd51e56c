"""Структуры данных для приложения."""

from typing import Any, Optional, Union

from pydantic import BaseModel


class ServiceErrorDTO(BaseModel):
    """Ошибка в ответе внешнего сервиса."""

    message: Optional[str] = None
    code: Optional[str] = None


class ServiceEnvelope(BaseModel):
    """Обертка ответа внешних сервисов: {success, data, error}."""

    success: bool = True
    data: Any = None
    error: Optional[Union[ServiceErrorDTO, str]] = None

    def error_message(self, default: str = "Erro desconhecido") -> str:
        """Текст ошибки из ответа сервиса."""
        if isinstance(self.error, str):
            return self.error or default
        if self.error is not None and self.error.message:
            return self.error.message
        return default


class MessageResponse(BaseModel):
    """Ответ с сообщением для пользователя."""

    message: str
    level: str = "info"
