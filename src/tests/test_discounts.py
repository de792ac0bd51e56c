"""Тесты индекса скидок и загрузки источников."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from base.exceptions import DiscountSourceError
from discounts.adapters.repositories import parse_records
from discounts.domain.models import (
    BundleItemRecord,
    BundleRecord,
    DiscountSources,
    FixedPriceRecord,
    LaunchProductRecord,
    PromotionRecord,
    QuantityDiscountRecord,
)
from discounts.services.index_builder import (
    DiscountIndexBuilder,
    build_discount_index,
    get_product_bundle,
    get_quantity_discounts,
    is_launch_active,
)
from discounts.services.services import DiscountService

NOW = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)


def launch(sku_id, start_days=-1, end_days=1, is_active=True):
    return LaunchProductRecord(
        sku_id=sku_id,
        launch_price=Decimal("90"),
        regular_price=Decimal("100"),
        launch_start=NOW + timedelta(days=start_days),
        launch_end=NOW + timedelta(days=end_days),
        is_active=is_active,
    )


# ============================================================================
# Построение индекса
# ============================================================================


class TestBuildDiscountIndex:
    """Тесты построения индекса скидок."""

    def test_promotions_indexed_by_sku(self):
        """Акции индексируются по sku."""
        sources = DiscountSources(
            promotions=[PromotionRecord.model_validate({"sku": 10, "preco_promo": 80, "desconto": 20})]
        )
        index = build_discount_index(sources, NOW)

        assert index.promotions[10].promo_price == Decimal("80")
        assert index.promotions[10].discount_pct == Decimal("20")

    def test_only_active_launches_in_window(self):
        """В индекс попадают только активные запуски внутри периода."""
        sources = DiscountSources(
            launch_products=[
                launch(1),
                launch(2, is_active=False),
                launch(3, start_days=1, end_days=5),
                launch(4, start_days=-5, end_days=-1),
            ]
        )
        index = build_discount_index(sources, NOW)

        assert set(index.launches) == {1}

    def test_naive_launch_dates_read_as_utc(self):
        """Даты без часового пояса считаются UTC."""
        record = LaunchProductRecord(
            sku_id=1,
            launch_price=Decimal("90"),
            launch_start=datetime(2026, 5, 10, 11, 0),
            launch_end=datetime(2026, 5, 10, 13, 0),
            is_active=True,
        )
        assert is_launch_active(record, NOW) is True
        assert is_launch_active(record, NOW + timedelta(hours=2)) is False

    def test_fixed_prices_indexed(self):
        """Фиксированные цены индексируются по sku_id."""
        sources = DiscountSources(
            fixed_prices=[
                FixedPriceRecord(sku_id=5, fixed_price=Decimal("70"), original_pt_at_agreement=Decimal("100"))
            ]
        )
        index = build_discount_index(sources, NOW)

        assert index.fixed_prices[5].fixed_price == Decimal("70")
        assert index.fixed_prices[5].original_pt == Decimal("100")

    def test_quantity_tiers_grouped_by_sku_and_family(self):
        """Ступени по SKU группируются, семейства сохраняют порядок."""
        sources = DiscountSources(
            quantity_discounts=[
                QuantityDiscountRecord(sku_id=1, min_quantity=5, discount_pct=Decimal("5")),
                QuantityDiscountRecord(sku_id=1, min_quantity=10, discount_pct=Decimal("10")),
                QuantityDiscountRecord(product_family="ZJ", min_quantity=3, discount_pct=Decimal("3")),
                QuantityDiscountRecord(min_quantity=2, discount_pct=Decimal("1")),
            ]
        )
        index = build_discount_index(sources, NOW)

        assert [t.min_qty for t in index.quantity_by_sku[1]] == [5, 10]
        assert [t.family for t in index.quantity_families] == ["ZJ"]

    def test_bundle_items_last_wins_per_sku(self):
        """Для SKU в нескольких комплектах остается последний."""
        sources = DiscountSources(
            bundles=[
                BundleRecord(id=1, name="Combo A", discount_pct=Decimal("5"), items=[BundleItemRecord(sku_id=7)]),
                BundleRecord(id=2, name="Combo B", discount_pct=Decimal("8"), items=[BundleItemRecord(sku_id=7, min_quantity=2)]),
            ]
        )
        index = build_discount_index(sources, NOW)

        assert index.bundle_by_sku[7].bundle_id == 2
        assert index.bundle_by_sku[7].min_qty == 2


# ============================================================================
# Поиск скидок по товару
# ============================================================================


class TestLookups:
    """Тесты поиска комплектов и скидок за количество."""

    @pytest.fixture
    def index(self):
        sources = DiscountSources(
            quantity_discounts=[
                QuantityDiscountRecord(sku_id=1, min_quantity=5, discount_pct=Decimal("5")),
                QuantityDiscountRecord(product_family="ZJ", min_quantity=3, discount_pct=Decimal("3")),
                QuantityDiscountRecord(product_family="ZJ8", min_quantity=2, discount_pct=Decimal("7")),
                QuantityDiscountRecord(product_family="zj", min_quantity=10, discount_pct=Decimal("6")),
            ],
            bundles=[
                BundleRecord(
                    id=1,
                    name="Combo",
                    discount_pct=Decimal("4"),
                    items=[
                        BundleItemRecord(sku_id=1),
                        BundleItemRecord(product_family="ZJ8"),
                        BundleItemRecord(product_family="ZJ"),
                    ],
                )
            ],
        )
        return build_discount_index(sources, NOW)

    def test_sku_hit_wins_over_family(self, index):
        """Совпадение по ID имеет приоритет над семейством."""
        match = get_quantity_discounts(index, 1, "ZJ8000")

        assert match.kind == "sku"
        assert [t.min_qty for t in match.discounts] == [5]

    def test_first_matching_family_wins_with_all_its_tiers(self, index):
        """Побеждает первое подходящее семейство, возвращаются все его ступени."""
        match = get_quantity_discounts(index, 99, "zj8000-b")

        assert match.kind == "family"
        assert match.family == "ZJ"
        assert [t.min_qty for t in match.discounts] == [3, 10]

    def test_no_model_no_family_scan(self, index):
        """Без модели поиск по семействам не выполняется."""
        assert get_quantity_discounts(index, 99, None) is None
        assert get_quantity_discounts(index, 99, "") is None
        assert get_product_bundle(index, 99, None) is None

    def test_bundle_by_sku_then_family(self, index):
        """Комплект ищется по ID, затем по первому подходящему семейству."""
        assert get_product_bundle(index, 1, None).bundle_id == 1
        assert get_product_bundle(index, 99, "ZJ8100").family == "ZJ8"
        assert get_product_bundle(index, 99, "XX100") is None


# ============================================================================
# Мемоизация
# ============================================================================


class TestDiscountIndexBuilder:
    """Тесты мемоизированного построения индекса."""

    def test_same_sources_reuse_index(self):
        """Повторное построение с теми же входами не выполняется."""
        builder = DiscountIndexBuilder()
        sources = DiscountSources(launch_products=[launch(1)])

        first = builder.build(sources, NOW)
        second = builder.build(sources, NOW + timedelta(minutes=5))

        assert first is second
        assert builder.builds == 1

    def test_rebuild_when_sources_change(self):
        """Изменение списка приводит к перестроению."""
        builder = DiscountIndexBuilder()
        builder.build(DiscountSources(), NOW)
        builder.build(
            DiscountSources(promotions=[PromotionRecord(sku=1, preco_promo=Decimal("9"))]), NOW
        )

        assert builder.builds == 2

    def test_rebuild_when_launch_expires(self):
        """Окончание запуска меняет набор активных запусков и индекс."""
        builder = DiscountIndexBuilder()
        sources = DiscountSources(launch_products=[launch(1)])

        assert 1 in builder.build(sources, NOW).launches
        assert 1 not in builder.build(sources, NOW + timedelta(days=2)).launches
        assert builder.builds == 2


# ============================================================================
# Загрузка источников
# ============================================================================


class TestDiscountService:
    """Тесты загрузки источников скидок."""

    def test_parse_records_skips_malformed(self):
        """Некорректная запись пропускается, остальные разбираются."""
        records = parse_records(PromotionRecord, [{"sku": 1}, {"preco_promo": 5}, {"sku": "x"}])

        assert [r.product_id for r in records] == [1]

    def test_parse_records_non_list(self):
        """Не список: пустой результат."""
        assert parse_records(PromotionRecord, None) == []

    @pytest.mark.asyncio
    async def test_failing_source_degrades_to_empty(self, discount_repository):
        """Ошибка одного источника не блокирует остальные."""
        discount_repository.get_active_promotions.side_effect = DiscountSourceError("down")
        discount_repository.get_bundles.return_value = [BundleRecord(id=3)]
        service = DiscountService(discount_repository)

        sources = await service.load_sources(customer_id=42)

        assert sources.promotions == []
        assert [b.id for b in sources.bundles] == [3]
        discount_repository.get_customer_fixed_prices.assert_awaited_once_with(42)

    @pytest.mark.asyncio
    async def test_fixed_prices_only_with_customer(self, discount_repository):
        """Без клиента фиксированные цены не запрашиваются."""
        service = DiscountService(discount_repository)

        await service.load_sources(customer_id=None)

        discount_repository.get_customer_fixed_prices.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_index_uses_loaded_sources(self, discount_repository):
        """Индекс строится по загруженным спискам."""
        discount_repository.get_active_promotions.return_value = [
            PromotionRecord(sku=10, desconto=Decimal("15"))
        ]
        service = DiscountService(discount_repository)
        await service.load_sources()

        assert 10 in service.get_index(NOW).promotions
