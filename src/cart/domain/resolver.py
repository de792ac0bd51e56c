"""Разрешение цен и бейджей скидок для позиции корзины."""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel

from cart.domain.models import CartLine
from discounts.domain.models import (
    BundleInfo,
    DiscountIndex,
    FixedPriceInfo,
    LaunchInfo,
    PromotionInfo,
    QuantityDiscountMatch,
)
from discounts.services.index_builder import get_product_bundle, get_quantity_discounts

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


class ScreenPriceSource(str, Enum):
    """Откуда взята цена витрины."""

    ORIGINAL_PRICE = "original_price"
    PRODUCT_PRICE = "product_price"
    NONE = "none"


class PriceSource(str, Enum):
    """Источник цены для предзаполнения поля цены."""

    FIXED_PRICE = "fixed_price"
    PROMOTION = "promotion"
    LAUNCH = "launch"
    QUANTITY_DISCOUNT = "quantity_discount"
    BUNDLE = "bundle"
    LIST_PRICE = "list_price"


DEFAULT_PRECEDENCE = (
    PriceSource.FIXED_PRICE,
    PriceSource.PROMOTION,
    PriceSource.LAUNCH,
    PriceSource.QUANTITY_DISCOUNT,
    PriceSource.BUNDLE,
    PriceSource.LIST_PRICE,
)


class ScreenPrice(BaseModel):
    """Цена витрины ("Preço Tela") и уровень цепочки, давший значение."""

    value: Decimal
    source: ScreenPriceSource


class ItemBadges(BaseModel):
    """Бейджи позиции и цена для предзаполнения формы."""

    item_id: int
    fixed_price: Optional[FixedPriceInfo] = None
    promotion: Optional[PromotionInfo] = None
    launch: Optional[LaunchInfo] = None
    quantity_discount: Optional[QuantityDiscountMatch] = None
    bundle: Optional[BundleInfo] = None
    screen_price: ScreenPrice
    discount_from_screen: Optional[Decimal] = None
    prefill_price: Decimal
    prefill_source: PriceSource


def screen_price(line: CartLine) -> ScreenPrice:
    """Цена витрины: originalPrice, затем product.price, затем 0."""
    if line.original_price is not None:
        return ScreenPrice(value=line.original_price, source=ScreenPriceSource.ORIGINAL_PRICE)
    if line.product is not None and line.product.price is not None:
        return ScreenPrice(value=line.product.price, source=ScreenPriceSource.PRODUCT_PRICE)
    return ScreenPrice(value=Decimal("0"), source=ScreenPriceSource.NONE)


def discount_from_screen(line: CartLine) -> Optional[Decimal]:
    """Процент скидки цены позиции от цены витрины."""
    screen = screen_price(line).value
    if screen <= 0 or line.price >= screen:
        return None
    return ((screen - line.price) / screen * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def pricing_discount(line: CartLine, recommended: Optional[Decimal]) -> Optional[Decimal]:
    """Процент скидки рекомендованной цены от цены витрины."""
    screen = screen_price(line).value
    if screen <= 0 or not recommended:
        return None
    return ((1 - recommended / screen) * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def _apply_pct(base: Decimal, pct: Optional[Decimal]) -> Optional[Decimal]:
    if pct is None or base <= 0:
        return None
    return (base * (1 - pct / HUNDRED)).quantize(CENT, rounding=ROUND_HALF_UP)


def _candidate_price(
    source: PriceSource, badges: ItemBadges, quantity: int
) -> Optional[Decimal]:
    screen = badges.screen_price.value

    if source is PriceSource.FIXED_PRICE and badges.fixed_price:
        return badges.fixed_price.fixed_price
    if source is PriceSource.PROMOTION and badges.promotion:
        if badges.promotion.promo_price is not None:
            return badges.promotion.promo_price
        return _apply_pct(screen, badges.promotion.discount_pct)
    if source is PriceSource.LAUNCH and badges.launch:
        return badges.launch.launch_price
    if source is PriceSource.QUANTITY_DISCOUNT and badges.quantity_discount:
        for tier in badges.quantity_discount.discounts:
            if not tier.covers(quantity):
                continue
            if tier.price is not None:
                return tier.price
            return _apply_pct(screen, tier.discount_pct)
        return None
    if source is PriceSource.BUNDLE and badges.bundle:
        if quantity < badges.bundle.min_qty:
            return None
        return _apply_pct(screen, badges.bundle.discount_pct)
    if source is PriceSource.LIST_PRICE:
        return screen
    return None


def resolve_item(
    line: CartLine,
    index: DiscountIndex,
    precedence: Sequence[PriceSource] = DEFAULT_PRECEDENCE,
) -> ItemBadges:
    """Все применимые бейджи позиции и единственная цена предзаполнения.

    Бейджи не исключают друг друга: отображаются все найденные.
    Цена предзаполнения берется у первого источника в порядке
    precedence, который способен дать цену.
    """
    sku_id = line.sku_id
    model = line.model_code
    screen = screen_price(line)

    badges = ItemBadges(
        item_id=line.id,
        fixed_price=index.fixed_prices.get(sku_id) if sku_id is not None else None,
        promotion=index.promotions.get(sku_id) if sku_id is not None else None,
        launch=index.launches.get(sku_id) if sku_id is not None else None,
        quantity_discount=get_quantity_discounts(index, sku_id, model),
        bundle=get_product_bundle(index, sku_id, model),
        screen_price=screen,
        discount_from_screen=discount_from_screen(line),
        prefill_price=screen.value,
        prefill_source=PriceSource.LIST_PRICE,
    )

    for source in precedence:
        price = _candidate_price(source, badges, line.quantity)
        if price is not None:
            badges.prefill_price = price
            badges.prefill_source = source
            break

    return badges
