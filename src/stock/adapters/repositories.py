"""Репозиторий остатков по складам."""

from abc import ABC, abstractmethod

from pydantic import ValidationError as PydanticValidationError

from base.exceptions import StockServiceError
from base.http import ServiceClient
from stock.domain.models import WarehouseStock


class StockAbstractRepository(ABC):
    """Абстракция репозитория остатков."""

    @abstractmethod
    async def get_stock_by_warehouse(self, product_id: int) -> WarehouseStock:
        """Остатки товара по складам."""


class HttpStockRepository(StockAbstractRepository):
    """Репозиторий остатков поверх REST API."""

    def __init__(self, client: ServiceClient):
        self.client = client

    async def get_stock_by_warehouse(self, product_id: int) -> WarehouseStock:
        data = await self.client.get(f"/products/{product_id}/stock-by-warehouse")
        try:
            return WarehouseStock.model_validate(data or {})
        except PydanticValidationError as e:
            raise StockServiceError(f"Некорректные остатки товара {product_id}: {str(e)}")
