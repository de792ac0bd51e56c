"""Сервис загрузки источников скидок."""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, List, Optional, TypeVar

from discounts.adapters.repositories import DiscountSourceAbstractRepository
from discounts.domain.models import DiscountIndex, DiscountSources
from discounts.services.index_builder import DiscountIndexBuilder

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _empty() -> list:
    return []


class DiscountService:
    """Загрузка списков скидок и выдача индекса."""

    def __init__(self, repository: DiscountSourceAbstractRepository):
        """Инициализация сервиса."""
        self.repository = repository
        self.builder = DiscountIndexBuilder()
        self.sources = DiscountSources()

    async def _safe_load(self, name: str, loader: Awaitable[List[T]]) -> List[T]:
        """Ошибка одного источника не блокирует остальные: список пуст."""
        try:
            return list(await loader)
        except Exception as e:
            logger.warning(f"Failed to load {name}: {e}")
            return []

    async def load_sources(self, customer_id: Optional[int] = None) -> DiscountSources:
        """Загрузка всех источников скидок параллельно."""
        fixed_loader = (
            self.repository.get_customer_fixed_prices(customer_id)
            if customer_id
            else _empty()
        )
        promotions, quantity, launches, fixed, bundles = await asyncio.gather(
            self._safe_load("promotions", self.repository.get_active_promotions()),
            self._safe_load("quantity discounts", self.repository.get_quantity_discounts()),
            self._safe_load("launch products", self.repository.get_launch_products()),
            self._safe_load("customer fixed prices", fixed_loader),
            self._safe_load("bundles", self.repository.get_bundles()),
        )
        self.sources = DiscountSources(
            promotions=promotions,
            quantity_discounts=quantity,
            launch_products=launches,
            fixed_prices=fixed,
            bundles=bundles,
        )
        logger.info(
            f"Discount sources loaded: {len(promotions)} promotions, "
            f"{len(quantity)} quantity tiers, {len(launches)} launches, "
            f"{len(fixed)} fixed prices, {len(bundles)} bundles"
        )
        return self.sources

    def get_index(self, now: Optional[datetime] = None) -> DiscountIndex:
        """Индекс скидок по текущим спискам."""
        return self.builder.build(self.sources, now)
