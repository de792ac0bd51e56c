"""HTTP клиент для внешних сервисов (лиды, товары, скидки, ценообразование)."""

import logging
from typing import Any, Dict, Optional, Type

import httpx
from pydantic import ValidationError as PydanticValidationError

from base.config import Settings
from base.data_structures import ServiceEnvelope
from base.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Создание асинхронного HTTP клиента для внешних сервисов."""
    headers = {"Accept": "application/json"}
    if settings.api_token:
        headers["Authorization"] = f"Bearer {settings.api_token}"
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        headers=headers,
        timeout=settings.http_timeout,
    )


class ServiceClient:
    """Клиент сервисов, отвечающих в формате {success, data, error}."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        error_class: Type[ExternalServiceError] = ExternalServiceError,
    ):
        """Инициализация клиента."""
        self.client = client
        self.error_class = error_class

    async def request_raw(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Выполнение запроса без разбора обертки ответа."""
        try:
            response = await self.client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise self.error_class(f"Сервис недоступен: {str(e)}")

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.error(f"{method} {path} returned {response.status_code}: {detail}")
            raise self.error_class(detail, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise self.error_class(f"Некорректный JSON в ответе: {str(e)}")

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Выполнение запроса и извлечение поля data из обертки."""
        body = await self.request_raw(method, path, json=json, params=params)
        if body is None:
            return None
        if not isinstance(body, dict) or "success" not in body:
            return body

        try:
            envelope = ServiceEnvelope.model_validate(body)
        except PydanticValidationError as e:
            raise self.error_class(f"Некорректный ответ сервиса: {str(e)}")

        if not envelope.success:
            raise self.error_class(envelope.error_message())
        return envelope.data

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET запрос."""
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Optional[Any] = None) -> Any:
        """POST запрос."""
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Optional[Any] = None) -> Any:
        """PUT запрос."""
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        """DELETE запрос."""
        return await self.request("DELETE", path)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
        return f"HTTP {response.status_code}"
