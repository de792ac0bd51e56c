"""Репозиторий лидов и позиций корзины."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from base.exceptions import CartServiceError, DoesntExistException
from base.http import ServiceClient
from cart.domain.models import CartLine, CartLineInput, CartTotals, Lead

logger = logging.getLogger(__name__)


class CartAbstractRepository(ABC):
    """Абстракция репозитория корзины лида."""

    @abstractmethod
    async def get_lead(self, lead_id: int) -> Lead:
        """Получение лида."""

    @abstractmethod
    async def get_items(self, lead_id: int) -> List[CartLine]:
        """Позиции корзины."""

    @abstractmethod
    async def add_item(self, lead_id: int, item: CartLineInput) -> Any:
        """Добавление позиции."""

    @abstractmethod
    async def update_item(self, lead_id: int, item_id: int, item: CartLineInput) -> Any:
        """Обновление позиции."""

    @abstractmethod
    async def remove_item(self, lead_id: int, item_id: int) -> None:
        """Удаление позиции."""

    @abstractmethod
    async def calculate_totals(self, lead_id: int) -> CartTotals:
        """Итоги корзины."""

    @abstractmethod
    async def calculate_taxes(self, lead_id: int) -> Any:
        """Пересчет налогов (IPI/ST) на стороне сервиса."""

    @abstractmethod
    async def convert(self, lead_id: int, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Конвертация лида в заказ."""


class HttpCartRepository(CartAbstractRepository):
    """Репозиторий корзины поверх REST API сервиса лидов."""

    def __init__(self, client: ServiceClient):
        self.client = client

    async def get_lead(self, lead_id: int) -> Lead:
        data = await self.client.get(f"/leads/{lead_id}")
        if not data:
            raise DoesntExistException(f"Лид {lead_id} не найден")
        try:
            return Lead.model_validate(data)
        except PydanticValidationError as e:
            raise CartServiceError(f"Некорректные данные лида {lead_id}: {str(e)}")

    async def get_items(self, lead_id: int) -> List[CartLine]:
        data = await self.client.get(f"/leads/{lead_id}/items")
        try:
            return [CartLine.model_validate(row) for row in data or []]
        except PydanticValidationError as e:
            raise CartServiceError(f"Некорректные позиции лида {lead_id}: {str(e)}")

    async def add_item(self, lead_id: int, item: CartLineInput) -> Any:
        logger.info(f"Adding product {item.product_id} to lead {lead_id}")
        return await self.client.post(f"/leads/{lead_id}/items", json=item.to_payload())

    async def update_item(self, lead_id: int, item_id: int, item: CartLineInput) -> Any:
        logger.info(f"Updating item {item_id} of lead {lead_id}")
        return await self.client.put(
            f"/leads/{lead_id}/items/{item_id}", json=item.to_payload()
        )

    async def remove_item(self, lead_id: int, item_id: int) -> None:
        logger.info(f"Removing item {item_id} from lead {lead_id}")
        await self.client.delete(f"/leads/{lead_id}/items/{item_id}")

    async def calculate_totals(self, lead_id: int) -> CartTotals:
        data = await self.client.get(f"/leads/{lead_id}/totals")
        try:
            return CartTotals.model_validate(data or {})
        except PydanticValidationError as e:
            raise CartServiceError(f"Некорректные итоги лида {lead_id}: {str(e)}")

    async def calculate_taxes(self, lead_id: int) -> Any:
        return await self.client.post(f"/leads/{lead_id}/taxes")

    async def convert(self, lead_id: int, payload: Optional[Dict[str, Any]] = None) -> Any:
        logger.info(f"Converting lead {lead_id} to order")
        return await self.client.post(f"/leads/{lead_id}/convert", json=payload or {})
