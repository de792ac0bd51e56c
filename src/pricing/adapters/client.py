"""Клиент сервиса ценовых решений."""

from abc import ABC, abstractmethod
from typing import Any, Dict

from base.http import ServiceClient
from pricing.domain.models import PricingRequest


class PricingDecisionAbstractClient(ABC):
    """Абстракция клиента сервиса ценовых решений."""

    @abstractmethod
    async def calculate(self, request: PricingRequest) -> Dict[str, Any]:
        """Расчет решения; возвращает тело ответа целиком."""


class HttpPricingDecisionClient(PricingDecisionAbstractClient):
    """Клиент сервиса ценовых решений поверх REST API."""

    def __init__(self, client: ServiceClient):
        self.client = client

    async def calculate(self, request: PricingRequest) -> Dict[str, Any]:
        return await self.client.request_raw(
            "POST", "/pricing/calculate", json=request.model_dump(mode="json")
        )
