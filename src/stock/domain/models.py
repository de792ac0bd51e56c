"""Доменные модели остатков по складам."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Warehouse(BaseModel):
    """Остаток товара на складе."""

    id: int
    name: str = ""
    available: int = 0


class WarehouseStock(BaseModel):
    """Остатки товара по складам; актуальны только на момент загрузки."""

    model_config = ConfigDict(populate_by_name=True)

    warehouses: List[Warehouse] = []
    total_available: Optional[int] = Field(0, alias="totalAvailable")
    loading: bool = False


class StockIssue(BaseModel):
    """Позиция, количество которой превышает остаток склада лида."""

    product_id: int
    product_model: Optional[str] = None
    requested_qty: int
    available_qty: int
    warehouse_name: str


class WarehouseMap(BaseModel):
    """Соответствие единицы отгрузки лида (EmitentePOID) складу."""

    units: Dict[int, int] = {}

    def warehouse_for(self, unit: Optional[int]) -> Optional[int]:
        """Склад единицы; None для неизвестной единицы."""
        if unit is None:
            return None
        return self.units.get(unit)


class ConversionGate(BaseModel):
    """Можно ли конвертировать лид в заказ."""

    allowed: bool
    reason: Optional[str] = None
    blocking_models: List[str] = []


class StockStatus(BaseModel):
    """Проблемы с остатками лида и решение о конвертации."""

    issues: List[StockIssue] = []
    conversion: ConversionGate
