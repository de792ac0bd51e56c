"""Тесты разрешения цен и бейджей позиции."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from cart.domain.resolver import (
    PriceSource,
    ScreenPriceSource,
    discount_from_screen,
    pricing_discount,
    resolve_item,
    screen_price,
)
from discounts.domain.models import (
    BundleItemRecord,
    BundleRecord,
    DiscountSources,
    FixedPriceRecord,
    LaunchProductRecord,
    PromotionRecord,
    QuantityDiscountRecord,
)
from discounts.services.index_builder import build_discount_index

NOW = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)


class TestScreenPrice:
    """Тесты цены витрины."""

    def test_original_price_first(self, make_line):
        """originalPrice имеет приоритет."""
        line = make_line(1, product_id=10, original_price="120", product_price="150")

        result = screen_price(line)

        assert result.value == Decimal("120")
        assert result.source is ScreenPriceSource.ORIGINAL_PRICE

    def test_zero_original_price_is_kept(self, make_line):
        """Нулевой originalPrice не заменяется ценой товара."""
        line = make_line(1, product_id=10, original_price="0", product_price="150")

        assert screen_price(line).source is ScreenPriceSource.ORIGINAL_PRICE
        assert screen_price(line).value == Decimal("0")

    def test_product_price_then_zero(self, make_line):
        """Затем product.price, затем 0."""
        assert screen_price(make_line(1, product_id=10, product_price="150")).value == Decimal("150")

        empty = screen_price(make_line(2))
        assert empty.value == Decimal("0")
        assert empty.source is ScreenPriceSource.NONE


class TestDiscountPercent:
    """Тесты процентов скидки."""

    def test_discount_from_screen(self, make_line):
        """Скидка от цены витрины с двумя знаками."""
        line = make_line(1, price="150", original_price="200")

        assert discount_from_screen(line) == Decimal("25.00")

    def test_no_discount_when_price_not_lower(self, make_line):
        """Цена не ниже витрины или витрина 0: скидки нет."""
        assert discount_from_screen(make_line(1, price="200", original_price="200")) is None
        assert discount_from_screen(make_line(2, price="50")) is None

    def test_pricing_discount(self, make_line):
        """Скидка рекомендованной цены от витрины."""
        line = make_line(1, original_price="2000")

        assert pricing_discount(line, Decimal("1854")) == Decimal("7.30")
        assert pricing_discount(line, None) is None
        assert pricing_discount(make_line(2), Decimal("10")) is None


class TestResolveItem:
    """Тесты бейджей и цены предзаполнения."""

    @pytest.fixture
    def sources(self):
        return DiscountSources(
            promotions=[PromotionRecord(sku=10, preco_promo=Decimal("180"))],
            fixed_prices=[FixedPriceRecord(sku_id=10, fixed_price=Decimal("170"))],
            launch_products=[
                LaunchProductRecord(
                    sku_id=20,
                    launch_price=Decimal("90"),
                    launch_start=NOW - timedelta(days=1),
                    launch_end=NOW + timedelta(days=1),
                    is_active=True,
                )
            ],
            quantity_discounts=[
                QuantityDiscountRecord(product_family="ZJ", min_quantity=5, discount_pct=Decimal("10")),
            ],
            bundles=[
                BundleRecord(
                    id=1,
                    name="Combo",
                    discount_pct=Decimal("5"),
                    items=[BundleItemRecord(product_family="ZJ", min_quantity=2)],
                )
            ],
        )

    def test_all_badges_shown_fixed_price_prefills(self, sources, make_line):
        """Все бейджи отображаются, цена предзаполнения от фиксированной цены."""
        index = build_discount_index(sources, NOW)
        line = make_line(1, product_id=10, original_price="200")

        badges = resolve_item(line, index)

        assert badges.fixed_price is not None
        assert badges.promotion is not None
        assert badges.prefill_price == Decimal("170")
        assert badges.prefill_source is PriceSource.FIXED_PRICE

    def test_promotion_percent_without_promo_price(self, make_line):
        """Акция без preco_promo: цена из desconto от витрины."""
        index = build_discount_index(
            DiscountSources(promotions=[PromotionRecord(sku=10, desconto=Decimal("10"))]), NOW
        )
        badges = resolve_item(make_line(1, product_id=10, original_price="200"), index)

        assert badges.prefill_price == Decimal("180.00")
        assert badges.prefill_source is PriceSource.PROMOTION

    def test_launch_price(self, sources, make_line):
        """Действующая цена запуска."""
        index = build_discount_index(sources, NOW)
        badges = resolve_item(make_line(1, product_id=20, original_price="100"), index)

        assert badges.launch.launch_price == Decimal("90")
        assert badges.prefill_source is PriceSource.LAUNCH

    def test_quantity_tier_must_cover_quantity(self, sources, make_line):
        """Ступень не покрывает количество: используется комплект."""
        index = build_discount_index(sources, NOW)
        line = make_line(1, product_id=30, quantity=2, original_price="100", model="ZJ8000")

        badges = resolve_item(line, index)

        assert badges.quantity_discount.kind == "family"
        assert badges.bundle.bundle_id == 1
        assert badges.prefill_source is PriceSource.BUNDLE
        assert badges.prefill_price == Decimal("95.00")

    def test_quantity_tier_applies(self, sources, make_line):
        """Ступень покрывает количество."""
        index = build_discount_index(sources, NOW)
        line = make_line(1, product_id=30, quantity=6, original_price="100", model="ZJ8000")

        badges = resolve_item(line, index)

        assert badges.prefill_source is PriceSource.QUANTITY_DISCOUNT
        assert badges.prefill_price == Decimal("90.00")

    def test_list_price_when_nothing_applies(self, sources, make_line):
        """Без скидок цена предзаполнения равна цене витрины."""
        index = build_discount_index(sources, NOW)
        line = make_line(1, product_id=30, quantity=1, original_price="100", model="AB100")

        badges = resolve_item(line, index)

        assert badges.prefill_source is PriceSource.LIST_PRICE
        assert badges.prefill_price == Decimal("100")

    def test_custom_precedence(self, sources, make_line):
        """Порядок источников задается параметром."""
        index = build_discount_index(sources, NOW)
        line = make_line(1, product_id=10, original_price="200")

        badges = resolve_item(
            line, index, precedence=(PriceSource.PROMOTION, PriceSource.FIXED_PRICE)
        )

        assert badges.prefill_source is PriceSource.PROMOTION
        assert badges.prefill_price == Decimal("180")
