"""Представление корзины лида для клиента."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from cart.domain.models import CartLine, CartTotals, Lead
from cart.domain.resolver import ItemBadges, pricing_discount, resolve_item
from cart.services.state import CartStateContainer
from discounts.domain.models import DiscountIndex
from pricing.domain.models import PricingResult
from stock.domain.models import ConversionGate, StockIssue, WarehouseStock


class CartLineView(BaseModel):
    """Позиция корзины с бейджами, результатом расчета и остатками."""

    line: CartLine
    badges: ItemBadges
    pricing: Optional[PricingResult] = None
    pricing_discount: Optional[Decimal] = None
    stock: Optional[WarehouseStock] = None


class CartView(BaseModel):
    """Корзина лида целиком."""

    lead: Optional[Lead] = None
    items: List[CartLineView] = []
    totals: CartTotals
    stock_issues: List[StockIssue] = []
    conversion: ConversionGate
    running_batches: List[str] = []


def build_line_view(
    cart: CartStateContainer, line: CartLine, index: DiscountIndex
) -> CartLineView:
    """Представление одной позиции."""
    result = cart.pricing_results.get(line.id)
    recommended = result.recommended_price if result else None
    return CartLineView(
        line=line,
        badges=resolve_item(line, index),
        pricing=result,
        pricing_discount=pricing_discount(line, recommended),
        stock=cart.stock_service.stock.get(line.sku_id) if line.sku_id is not None else None,
    )


def build_cart_view(
    cart: CartStateContainer,
    index: DiscountIndex,
    sort_key: Optional[str] = None,
    direction: str = "asc",
    running_batches: Optional[List[str]] = None,
) -> CartView:
    """Представление корзины: видимые позиции в заданном порядке."""
    return CartView(
        lead=cart.lead,
        items=[build_line_view(cart, line, index) for line in cart.sorted_items(sort_key, direction)],
        totals=cart.totals,
        stock_issues=cart.stock_issues,
        conversion=cart.conversion_gate(),
        running_batches=running_batches or [],
    )
