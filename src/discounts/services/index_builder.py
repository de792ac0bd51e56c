"""Построение индекса скидок и поиск скидок по товару."""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from discounts.domain.models import (
    BundleInfo,
    DiscountIndex,
    DiscountSources,
    FixedPriceInfo,
    LaunchInfo,
    LaunchProductRecord,
    PromotionInfo,
    QuantityDiscountMatch,
    QuantityTier,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_launch_active(record: LaunchProductRecord, now: datetime) -> bool:
    """Цена запуска действует, если флаг активен и now в [launch_start, launch_end]."""
    if not record.is_active:
        return False
    now = _as_utc(now)
    return _as_utc(record.launch_start) <= now <= _as_utc(record.launch_end)


def build_discount_index(
    sources: DiscountSources, now: Optional[datetime] = None
) -> DiscountIndex:
    """Построение индекса скидок из списков источников.

    Чистая функция входных списков и момента времени: при изменении
    любого списка индекс строится заново, а не обновляется по месту.
    """
    now = now or datetime.now(timezone.utc)
    index = DiscountIndex()

    for promo in sources.promotions:
        index.promotions[promo.product_id] = PromotionInfo(
            promo_price=promo.promo_price,
            discount_pct=promo.discount_pct,
        )

    for launch in sources.launch_products:
        if not is_launch_active(launch, now):
            continue
        index.launches[launch.sku_id] = LaunchInfo(
            launch_price=launch.launch_price,
            regular_price=launch.regular_price,
            launch_end=launch.launch_end,
            product_name=launch.product_name,
            product_model=launch.product_model,
        )

    for fixed in sources.fixed_prices:
        index.fixed_prices[fixed.sku_id] = FixedPriceInfo(
            fixed_price=fixed.fixed_price,
            original_pt=fixed.original_pt_at_agreement,
            discount_from_pt=fixed.discount_from_pt,
            valid_until=fixed.valid_until,
            notes=fixed.notes,
        )

    for qd in sources.quantity_discounts:
        tier = QuantityTier(
            min_qty=qd.min_quantity,
            max_qty=qd.max_quantity,
            discount_pct=qd.discount_pct,
            price=qd.price,
            description=qd.description,
        )
        if qd.sku_id:
            index.quantity_by_sku.setdefault(qd.sku_id, []).append(tier)
        elif qd.product_family:
            index.quantity_families.append(
                tier.model_copy(update={"family": qd.product_family})
            )

    for bundle in sources.bundles:
        for item in bundle.items:
            info = BundleInfo(
                bundle_id=bundle.id,
                bundle_name=bundle.name,
                bundle_description=bundle.description,
                discount_pct=bundle.discount_pct,
                discount_type=bundle.discount_type,
                min_qty=item.min_quantity,
            )
            if item.sku_id:
                index.bundle_by_sku[item.sku_id] = info
            elif item.product_family:
                index.bundle_families.append(
                    info.model_copy(update={"family": item.product_family})
                )

    return index


def _matches_family(model: str, family: Optional[str]) -> bool:
    return bool(family) and model.upper().startswith(family.upper())


def get_product_bundle(
    index: DiscountIndex, product_id: Optional[int], model: Optional[str]
) -> Optional[BundleInfo]:
    """Комплект товара: сначала по ID, затем по первому подходящему семейству."""
    if product_id is not None and product_id in index.bundle_by_sku:
        return index.bundle_by_sku[product_id]

    if not model:
        return None

    for bundle in index.bundle_families:
        if _matches_family(str(model), bundle.family):
            return bundle
    return None


def get_quantity_discounts(
    index: DiscountIndex, product_id: Optional[int], model: Optional[str]
) -> Optional[QuantityDiscountMatch]:
    """Скидки за количество: ступени SKU или все ступени первого подходящего семейства."""
    if product_id is not None and product_id in index.quantity_by_sku:
        return QuantityDiscountMatch(
            kind="sku", discounts=list(index.quantity_by_sku[product_id])
        )

    if not model:
        return None

    model = str(model)
    winner = next(
        (tier.family for tier in index.quantity_families if _matches_family(model, tier.family)),
        None,
    )
    if winner is None:
        return None

    tiers = [
        tier for tier in index.quantity_families
        if tier.family and tier.family.upper() == winner.upper()
    ]
    return QuantityDiscountMatch(kind="family", family=winner, discounts=tiers)


class DiscountIndexBuilder:
    """Мемоизированное построение индекса скидок."""

    def __init__(self):
        """Инициализация построителя."""
        self._key: Optional[Tuple[DiscountSources, Tuple[int, ...]]] = None
        self._index: Optional[DiscountIndex] = None
        self.builds = 0

    def build(
        self, sources: DiscountSources, now: Optional[datetime] = None
    ) -> DiscountIndex:
        """Индекс скидок; пересчитывается только при изменении входов."""
        now = now or datetime.now(timezone.utc)
        active_launches = tuple(
            sorted(lp.sku_id for lp in sources.launch_products if is_launch_active(lp, now))
        )
        key = (sources, active_launches)

        if self._index is not None and self._key == key:
            return self._index

        self._index = build_discount_index(sources, now)
        self._key = (sources.model_copy(deep=True), active_launches)
        self.builds += 1
        logger.debug(f"Discount index rebuilt ({self.builds} builds)")
        return self._index
