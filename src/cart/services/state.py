"""Состояние корзины лида: единственный источник изменений позиций."""

import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from base.config import Settings
from base.exceptions import (
    CartItemNotFoundError,
    ExternalServiceError,
    StockShortfallError,
    ValidationError,
)
from cart.adapters.repositories import CartAbstractRepository
from cart.domain.models import (
    CartLine,
    CartLineDraft,
    CartLineInput,
    CartTotals,
    Lead,
    normalize_installments,
    parse_decimal,
    parse_int,
)
from pricing.domain.models import PricingResult
from stock.domain.models import ConversionGate, StockIssue, WarehouseMap
from stock.services.services import (
    StockService,
    build_conversion_gate,
    compute_stock_issues,
)

logger = logging.getLogger(__name__)

INLINE_FIELDS = {"quantity": 1, "times": 0}

SORT_KEYS: Dict[str, Callable[[CartLine], Any]] = {
    "product": lambda line: (line.display_model or "").lower() or None,
    "quantity": lambda line: line.quantity,
    "originalPrice": lambda line: line.original_price,
    "price": lambda line: line.price,
    "subtotal": lambda line: line.subtotal,
    "ipi": lambda line: line.ipi,
    "st": lambda line: line.st,
}


def _parse_whole(value: Any) -> Optional[int]:
    number = parse_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def draft_to_input(draft: CartLineDraft, default_times: int = 5) -> CartLineInput:
    """Проверка формы позиции; выполняется до любого сетевого вызова.

    Пустой times заменяется на default_times.
    """
    if draft.product is None or draft.product.id is None:
        raise ValidationError("Выберите товар")

    quantity = _parse_whole(draft.quantity)
    if quantity is None or quantity < 1:
        raise ValidationError("Количество должно быть целым числом не меньше 1")

    price = parse_decimal(draft.price)
    if price is None or price < 0:
        raise ValidationError("Цена должна быть неотрицательным числом")

    consumer_price = parse_decimal(draft.consumer_price)
    return CartLineInput(
        product_id=draft.product.id,
        quantity=quantity,
        price=price,
        consumer_price=consumer_price or price,
        times=normalize_installments(default_times if draft.times is None else draft.times),
        ipi=parse_decimal(draft.ipi, Decimal("0")),
        st=parse_decimal(draft.st, Decimal("0")),
        ttd=parse_int(draft.ttd, 0),
        decision_id=draft.decision_id or None,
    )


class CartStateContainer:
    """Позиции, итоги, результаты ценообразования и проблемы с остатками лида.

    Другие компоненты читают состояние, но изменяют его только через
    методы контейнера.
    """

    def __init__(
        self,
        lead_id: int,
        repository: CartAbstractRepository,
        stock_service: StockService,
        settings: Settings,
    ):
        """Инициализация контейнера."""
        self.lead_id = lead_id
        self.repository = repository
        self.stock_service = stock_service
        self.settings = settings
        self.warehouse_map = WarehouseMap(units=settings.warehouse_map)

        self.lead: Optional[Lead] = None
        self.items: List[CartLine] = []
        self.totals = CartTotals()
        self.pricing_results: Dict[int, PricingResult] = {}
        self.stock_issues: List[StockIssue] = []

        self.stock_service.subscribe(self.recompute_stock_issues)

    async def load(self) -> None:
        """Полная загрузка: лид, позиции, итоги; результаты расчета сбрасываются."""
        self.lead = await self.repository.get_lead(self.lead_id)
        self.items = await self.repository.get_items(self.lead_id)
        await self._load_totals()
        self.clear_pricing_results()
        self._after_items_changed()
        logger.info(f"Lead {self.lead_id} loaded with {len(self.items)} items")

    async def refresh(self) -> None:
        """Перечитывание позиций и итогов с сохранением результатов расчета."""
        self.items = await self.repository.get_items(self.lead_id)
        await self._load_totals()
        existing = {line.id for line in self.items}
        self.pricing_results = {
            item_id: result
            for item_id, result in self.pricing_results.items()
            if item_id in existing
        }
        self._after_items_changed()

    async def _load_totals(self) -> None:
        try:
            self.totals = await self.repository.calculate_totals(self.lead_id)
        except ExternalServiceError as e:
            logger.warning(f"Failed to load totals for lead {self.lead_id}: {e}")

    def _after_items_changed(self) -> None:
        self.stock_service.prefetch(
            line.sku_id for line in self.items if line.sku_id is not None
        )
        self.recompute_stock_issues()

    async def add_item(self, draft: CartLineDraft) -> None:
        """Добавление позиции из формы."""
        item = draft_to_input(draft, self.settings.cart_default_installments)
        await self.repository.add_item(self.lead_id, item)
        await self.refresh()

    async def update_item(self, item_id: int, draft: CartLineDraft) -> None:
        """Сохранение формы редактирования позиции."""
        self.get_line(item_id)
        item = draft_to_input(draft, self.settings.cart_default_installments)
        await self.repository.update_item(self.lead_id, item_id, item)
        await self.refresh()

    async def inline_edit(self, item_id: int, field: str, value: Any) -> bool:
        """Быстрое изменение quantity или times; False, если значение не изменилось."""
        if field not in INLINE_FIELDS:
            raise ValidationError(f"Поле {field} нельзя изменить в строке")

        line = self.get_line(item_id)
        new_value = parse_decimal(value)
        if field == "quantity":
            old_value = Decimal(line.quantity)
        else:
            old_value = Decimal(normalize_installments(line.times))

        if new_value is not None and new_value == old_value:
            return False

        whole = _parse_whole(value)
        if whole is None or whole < INLINE_FIELDS[field]:
            raise ValidationError(f"Некорректное значение для {field}")

        item = CartLineInput.from_line(line, **{field: whole})
        await self.repository.update_item(self.lead_id, item_id, item)
        await self.refresh()
        return True

    async def remove_item(self, item_id: int) -> None:
        """Удаление позиции."""
        self.get_line(item_id)
        await self.repository.remove_item(self.lead_id, item_id)
        self.discard_pricing_result(item_id)
        await self.refresh()

    async def calculate_taxes(self) -> Any:
        """Пересчет налогов и перечитывание корзины."""
        result = await self.repository.calculate_taxes(self.lead_id)
        await self.refresh()
        return result

    async def persist_price(self, line: CartLine, price: Decimal) -> None:
        """Запись цены позиции без перечитывания корзины."""
        item = CartLineInput.from_line(
            line, price=price, consumer_price=line.consumer_price or price
        )
        await self.repository.update_item(self.lead_id, line.id, item)

    def set_pricing_result(self, result: PricingResult) -> None:
        """Сохранение результата расчета позиции."""
        self.pricing_results[result.item_id] = result

    def discard_pricing_result(self, item_id: int) -> None:
        """Удаление результата расчета позиции."""
        self.pricing_results.pop(item_id, None)

    def clear_pricing_results(self) -> None:
        """Сброс всех результатов расчета."""
        self.pricing_results.clear()

    def get_line(self, item_id: int) -> CartLine:
        """Позиция по ID."""
        for line in self.items:
            if line.id == item_id:
                return line
        raise CartItemNotFoundError(f"Позиция {item_id} не найдена в лиде {self.lead_id}")

    def visible_items(self) -> List[CartLine]:
        """Позиции для отображения; нулевые цены скрываются по настройке."""
        if not self.settings.cart_hide_zero_price:
            return list(self.items)
        return [line for line in self.items if line.price > 0]

    def sorted_items(self, key: Optional[str] = None, direction: str = "asc") -> List[CartLine]:
        """Видимые позиции, отсортированные по колонке; пустые значения в конце."""
        lines = self.visible_items()
        if key is None:
            return lines
        if key not in SORT_KEYS:
            raise ValidationError(f"Неизвестная колонка сортировки: {key}")
        if direction not in ("asc", "desc"):
            raise ValidationError(f"Неизвестное направление сортировки: {direction}")

        getter = SORT_KEYS[key]
        present = [line for line in lines if getter(line) is not None]
        missing = [line for line in lines if getter(line) is None]
        present.sort(key=getter, reverse=direction == "desc")
        return present + missing

    def recompute_stock_issues(self) -> None:
        """Пересчет проблем с остатками с нуля."""
        self.stock_issues = compute_stock_issues(
            self.items,
            self.stock_service.stock,
            self.lead.log_unity if self.lead else None,
            self.warehouse_map,
        )

    async def load_stock(self) -> List[StockIssue]:
        """Загрузка остатков всех позиций и пересчет проблем."""
        self.stock_service.prefetch(
            line.sku_id for line in self.items if line.sku_id is not None
        )
        await self.stock_service.wait_idle()
        self.recompute_stock_issues()
        return self.stock_issues

    def conversion_gate(self) -> ConversionGate:
        """Проверка возможности конвертации в заказ."""
        return build_conversion_gate(self.stock_issues)

    async def convert_to_order(self, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Конвертация лида в заказ; запрещена при нехватке остатков."""
        gate = self.conversion_gate()
        if not gate.allowed:
            logger.warning(f"Conversion of lead {self.lead_id} blocked: {gate.reason}")
            raise StockShortfallError(gate.reason, gate.blocking_models)
        return await self.repository.convert(self.lead_id, payload)
