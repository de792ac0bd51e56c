"""Репозитории источников скидок."""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from base.http import ServiceClient
from discounts.domain.models import (
    BundleRecord,
    FixedPriceRecord,
    LaunchProductRecord,
    PromotionRecord,
    QuantityDiscountRecord,
)

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_records(model: Type[RecordT], rows: Any) -> List[RecordT]:
    """Разбор списка записей; некорректные записи пропускаются."""
    if not isinstance(rows, list):
        return []

    records = []
    for row in rows:
        try:
            records.append(model.model_validate(row))
        except PydanticValidationError as e:
            logger.warning(f"Skipping malformed {model.__name__}: {e.error_count()} errors")
    return records


class DiscountSourceAbstractRepository(ABC):
    """Абстракция репозитория источников скидок."""

    @abstractmethod
    async def get_active_promotions(self) -> List[PromotionRecord]:
        """Активные акции."""

    @abstractmethod
    async def get_quantity_discounts(self) -> List[QuantityDiscountRecord]:
        """Скидки за количество."""

    @abstractmethod
    async def get_launch_products(self) -> List[LaunchProductRecord]:
        """Товары в запуске."""

    @abstractmethod
    async def get_customer_fixed_prices(self, customer_id: int) -> List[FixedPriceRecord]:
        """Фиксированные цены клиента."""

    @abstractmethod
    async def get_bundles(self) -> List[BundleRecord]:
        """Комплекты."""


class HttpDiscountSourceRepository(DiscountSourceAbstractRepository):
    """Репозиторий источников скидок поверх REST API."""

    def __init__(self, client: ServiceClient):
        self.client = client

    async def get_active_promotions(self) -> List[PromotionRecord]:
        data = await self.client.get("/promotions/active")
        rows = data.get("promotions") if isinstance(data, dict) else data
        return parse_records(PromotionRecord, rows)

    async def get_quantity_discounts(self) -> List[QuantityDiscountRecord]:
        data = await self.client.get("/pricing/quantity-discounts")
        return parse_records(QuantityDiscountRecord, data)

    async def get_launch_products(self) -> List[LaunchProductRecord]:
        data = await self.client.get("/pricing/launch-products")
        return parse_records(LaunchProductRecord, data)

    async def get_customer_fixed_prices(self, customer_id: int) -> List[FixedPriceRecord]:
        data = await self.client.get(f"/pricing/customer-fixed-prices/{customer_id}")
        return parse_records(FixedPriceRecord, data)

    async def get_bundles(self) -> List[BundleRecord]:
        data = await self.client.get("/pricing/bundles")
        return parse_records(BundleRecord, data)
