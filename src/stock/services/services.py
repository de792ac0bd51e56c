"""Сверка количества позиций с остатками склада лида."""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from cart.domain.models import CartLine
from stock.adapters.repositories import StockAbstractRepository
from stock.domain.models import (
    ConversionGate,
    StockIssue,
    WarehouseMap,
    WarehouseStock,
)

logger = logging.getLogger(__name__)


def compute_stock_issues(
    lines: Sequence[CartLine],
    stock: Mapping[int, WarehouseStock],
    log_unity: Optional[int],
    warehouse_map: WarehouseMap,
) -> List[StockIssue]:
    """Список проблем с остатками, всегда с нуля.

    Неизвестная единица отгрузки: сверка не выполняется.
    Позиция без данных склада лида в список не попадает:
    отсутствие данных не считается нулевым остатком.
    """
    if not lines or log_unity is None:
        return []

    warehouse_id = warehouse_map.warehouse_for(log_unity)
    if warehouse_id is None:
        return []

    issues = []
    for line in lines:
        product_id = line.sku_id
        if product_id is None:
            continue

        product_stock = stock.get(product_id)
        if product_stock is None or not product_stock.warehouses:
            continue

        unit_stock = next(
            (w for w in product_stock.warehouses if w.id in (warehouse_id, log_unity)),
            None,
        )
        if unit_stock is None:
            continue

        if line.quantity > unit_stock.available:
            issues.append(
                StockIssue(
                    product_id=product_id,
                    product_model=line.display_model,
                    requested_qty=line.quantity,
                    available_qty=unit_stock.available,
                    warehouse_name=unit_stock.name or f"Unidade {log_unity}",
                )
            )
    return issues


def build_conversion_gate(issues: Sequence[StockIssue]) -> ConversionGate:
    """Конвертация лида в заказ запрещена, пока есть проблемы с остатками."""
    if not issues:
        return ConversionGate(allowed=True)

    models = [issue.product_model or f"#{issue.product_id}" for issue in issues]
    return ConversionGate(
        allowed=False,
        reason=f"Недостаточно остатков на складе для: {', '.join(models)}",
        blocking_models=models,
    )


class StockService:
    """Ленивая загрузка остатков по товарам с кэшем на время сессии."""

    def __init__(self, repository: StockAbstractRepository):
        """Инициализация сервиса."""
        self.repository = repository
        self.stock: Dict[int, WarehouseStock] = {}
        self._inflight: Dict[int, "asyncio.Task[None]"] = {}
        self._listeners: List[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        """Подписка на изменение данных об остатках."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()

    def _should_fetch(self, product_id: int) -> bool:
        current = self.stock.get(product_id)
        if current is None:
            return True
        return not current.loading and not current.warehouses

    async def load(self, product_id: int) -> WarehouseStock:
        """Загрузка остатков товара; повторный запрос не выполняется."""
        task = self._inflight.get(product_id)
        if task is None and self._should_fetch(product_id):
            task = self._start(product_id)
        if task is not None:
            await task
        return self.stock.get(product_id, WarehouseStock())

    def prefetch(self, product_ids: Iterable[int]) -> None:
        """Запуск загрузки без ожидания результата."""
        for product_id in dict.fromkeys(product_ids):
            if product_id is None or product_id in self._inflight:
                continue
            if self._should_fetch(product_id):
                self._start(product_id)

    async def wait_idle(self) -> None:
        """Ожидание всех текущих загрузок."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight.values()))

    def _start(self, product_id: int) -> "asyncio.Task[None]":
        self.stock[product_id] = WarehouseStock(loading=True)
        task = asyncio.create_task(self._fetch(product_id))
        self._inflight[product_id] = task
        return task

    async def _fetch(self, product_id: int) -> None:
        try:
            self.stock[product_id] = await self.repository.get_stock_by_warehouse(product_id)
        except asyncio.CancelledError:
            self.stock.pop(product_id, None)
            raise
        except Exception as e:
            logger.warning(f"Failed to load stock for product {product_id}: {e}")
            self.stock[product_id] = WarehouseStock()
        finally:
            self._inflight.pop(product_id, None)
        self._notify()

    def close(self) -> None:
        """Отмена незавершенных загрузок и отписка слушателей."""
        for task in list(self._inflight.values()):
            task.cancel()
        self._listeners.clear()
