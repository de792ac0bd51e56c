"""Доменные модели запроса и ответа сервиса ценовых решений."""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_serializer


class OrderItem(BaseModel):
    """Позиция заказа в контексте запроса."""

    sku_id: int
    quantity: int
    model: str = ""


class PricingRequest(BaseModel):
    """Запрос к сервису ценовых решений."""

    org_id: int
    brand_id: int
    customer_id: int
    sku_id: int
    sku_qty: int
    order_value: Decimal
    product_brand: str
    product_model: str
    installments: int
    order_items: List[OrderItem] = []

    @field_serializer("order_value")
    def serialize_order_value(self, value: Decimal) -> float:
        return float(value)


class PricingAction(BaseModel):
    """Действие исполнения решения."""

    model_config = ConfigDict(extra="allow")

    new_price: Optional[Decimal] = None


class PricingExecution(BaseModel):
    """Исполнение решения."""

    model_config = ConfigDict(extra="allow")

    actions: List[PricingAction] = []


class ExplanationStep(BaseModel):
    """Шаг объяснения расчета."""

    model_config = ConfigDict(extra="allow")

    values: Optional[Dict[str, Any]] = None


class PricingDecision(BaseModel):
    """Решение сервиса ценообразования."""

    model_config = ConfigDict(extra="allow")

    final_price: Optional[Decimal] = None
    discount_allowed: Optional[Decimal] = None
    discount_from_pt: Optional[Decimal] = None
    applied_mode: Optional[Any] = None
    tier_code: Optional[Any] = None
    explanation: Optional[Dict[str, Any]] = None
    reason: Optional[Any] = None
    decision_type: Optional[Any] = None


class DecisionRoot(BaseModel):
    """Корень ответа: decision и execution."""

    model_config = ConfigDict(extra="allow")

    decision: Optional[PricingDecision] = None
    execution: Optional[PricingExecution] = None


class ResponseVariant(str, Enum):
    """Известные варианты вложенности ответа."""

    NESTED = "data.result.result"
    FLAT = "data.result"


class DecodedPricingResponse(BaseModel):
    """Разобранный ответ сервиса ценовых решений."""

    variant: ResponseVariant
    decision: Optional[PricingDecision] = None
    execution: Optional[PricingExecution] = None


class PricingResult(BaseModel):
    """Результат ценообразования позиции; не сохраняется."""

    item_id: int
    recommended_price: Optional[Decimal] = None
    discount_allowed: Optional[Decimal] = None
    total_discount: Optional[Decimal] = None
    applied_mode: Optional[Any] = None
    tier_code: Optional[Any] = None
    explanation: Optional[Dict[str, Any]] = None
    reason: Optional[Any] = None
    decision_type: Optional[Any] = None


class BatchSummary(BaseModel):
    """Итог пакетной операции ценообразования."""

    operation: str
    total: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    cancelled_count: int = 0
    failed_item_ids: List[int] = []
    level: str = "info"
    message: str = ""


class PricePreview(BaseModel):
    """Рекомендованная цена для формы позиции."""

    price: Optional[Decimal] = None
