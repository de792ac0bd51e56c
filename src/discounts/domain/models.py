"""Доменные модели источников скидок и индекса скидок."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PromotionRecord(BaseModel):
    """Акция магазина (promotions/active)."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="sku")
    promo_price: Optional[Decimal] = Field(None, alias="preco_promo")
    discount_pct: Optional[Decimal] = Field(None, alias="desconto")


class QuantityDiscountRecord(BaseModel):
    """Скидка за количество для SKU или семейства."""

    sku_id: Optional[int] = None
    product_family: Optional[str] = None
    min_quantity: int = 1
    max_quantity: Optional[int] = None
    discount_pct: Optional[Decimal] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None


class LaunchProductRecord(BaseModel):
    """Товар в периоде запуска."""

    sku_id: int
    launch_price: Decimal
    regular_price: Optional[Decimal] = None
    launch_start: datetime
    launch_end: datetime
    is_active: bool = False
    product_name: Optional[str] = None
    product_model: Optional[str] = None


class FixedPriceRecord(BaseModel):
    """Фиксированная цена, согласованная с клиентом."""

    sku_id: int
    fixed_price: Decimal
    original_pt_at_agreement: Optional[Decimal] = None
    discount_from_pt: Optional[Decimal] = None
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None


class BundleItemRecord(BaseModel):
    """Позиция комплекта: SKU или семейство."""

    sku_id: Optional[int] = None
    product_family: Optional[str] = None
    min_quantity: int = 1


class BundleRecord(BaseModel):
    """Комплект (combo) со скидкой."""

    id: int
    name: str = ""
    description: Optional[str] = None
    discount_pct: Decimal = Decimal("0")
    discount_type: Optional[str] = None
    items: List[BundleItemRecord] = []


class DiscountSources(BaseModel):
    """Все списки источников скидок, загруженные независимо."""

    promotions: List[PromotionRecord] = []
    quantity_discounts: List[QuantityDiscountRecord] = []
    launch_products: List[LaunchProductRecord] = []
    fixed_prices: List[FixedPriceRecord] = []
    bundles: List[BundleRecord] = []


class PromotionInfo(BaseModel):
    """Акция для конкретного товара."""

    promo_price: Optional[Decimal] = None
    discount_pct: Optional[Decimal] = None


class LaunchInfo(BaseModel):
    """Действующая цена запуска."""

    launch_price: Decimal
    regular_price: Optional[Decimal] = None
    launch_end: datetime
    product_name: Optional[str] = None
    product_model: Optional[str] = None


class FixedPriceInfo(BaseModel):
    """Фиксированная цена клиента."""

    fixed_price: Decimal
    original_pt: Optional[Decimal] = None
    discount_from_pt: Optional[Decimal] = None
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None


class QuantityTier(BaseModel):
    """Ступень скидки за количество."""

    min_qty: int = 1
    max_qty: Optional[int] = None
    discount_pct: Optional[Decimal] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    family: Optional[str] = None

    def covers(self, quantity: int) -> bool:
        """Попадает ли количество в диапазон ступени."""
        if quantity < self.min_qty:
            return False
        return self.max_qty is None or quantity <= self.max_qty


class BundleInfo(BaseModel):
    """Участие товара в комплекте."""

    bundle_id: int
    bundle_name: str = ""
    bundle_description: Optional[str] = None
    discount_pct: Decimal = Decimal("0")
    discount_type: Optional[str] = None
    min_qty: int = 1
    family: Optional[str] = None


class QuantityDiscountMatch(BaseModel):
    """Результат поиска скидок за количество."""

    kind: Literal["sku", "family"]
    family: Optional[str] = None
    discounts: List[QuantityTier]


class DiscountIndex(BaseModel):
    """Индексы скидок: по ID товара и упорядоченные правила семейств."""

    promotions: Dict[int, PromotionInfo] = {}
    launches: Dict[int, LaunchInfo] = {}
    fixed_prices: Dict[int, FixedPriceInfo] = {}
    quantity_by_sku: Dict[int, List[QuantityTier]] = {}
    quantity_families: List[QuantityTier] = []
    bundle_by_sku: Dict[int, BundleInfo] = {}
    bundle_families: List[BundleInfo] = []
