"""Сессии корзин: по одному контейнеру состояния на лид."""

import asyncio
import logging
import time
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

import httpx

from base.config import BatchScope, Settings
from base.exceptions import (
    CartServiceError,
    DiscountSourceError,
    PricingServiceError,
    StockServiceError,
)
from base.http import ServiceClient
from cart.adapters.repositories import CartAbstractRepository, HttpCartRepository
from cart.services.services import CartView, build_cart_view
from cart.services.state import CartStateContainer
from discounts.adapters.repositories import (
    DiscountSourceAbstractRepository,
    HttpDiscountSourceRepository,
)
from discounts.services.services import DiscountService
from pricing.adapters.client import (
    HttpPricingDecisionClient,
    PricingDecisionAbstractClient,
)
from pricing.services.orchestrator import PricingOrchestrator
from stock.adapters.repositories import HttpStockRepository, StockAbstractRepository
from stock.services.services import StockService

logger = logging.getLogger(__name__)


class CartSession:
    """Все компоненты корзины одного лида."""

    def __init__(
        self,
        lead_id: int,
        cart_repository: CartAbstractRepository,
        discount_repository: DiscountSourceAbstractRepository,
        stock_repository: StockAbstractRepository,
        pricing_client: PricingDecisionAbstractClient,
        settings: Settings,
    ):
        """Инициализация сессии."""
        self.lead_id = lead_id
        self.stock = StockService(stock_repository)
        self.cart = CartStateContainer(lead_id, cart_repository, self.stock, settings)
        self.discounts = DiscountService(discount_repository)
        self.orchestrator = PricingOrchestrator(pricing_client, self.cart, settings)

    async def open(self) -> None:
        """Загрузка корзины и источников скидок."""
        await self.cart.load()
        lead = self.cart.lead
        customer_id = (lead.customer_id or lead.c_customer) if lead else None
        await self.discounts.load_sources(customer_id)

    def is_busy(self) -> bool:
        """Выполняется ли пакетная операция ценообразования."""
        return any(self.orchestrator.is_running(scope) for scope in BatchScope)

    def close(self) -> None:
        """Отмена пакетных операций и загрузок остатков."""
        for scope in BatchScope:
            self.orchestrator.cancel(scope)
        self.stock.close()

    def view(self, sort_key: Optional[str] = None, direction: str = "asc") -> CartView:
        """Текущее представление корзины."""
        running = [scope.value for scope in BatchScope if self.orchestrator.is_running(scope)]
        return build_cart_view(
            self.cart,
            self.discounts.get_index(),
            sort_key=sort_key,
            direction=direction,
            running_batches=running,
        )


class CartSessionRegistry:
    """Реестр сессий корзин, хранится в состоянии приложения."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Инициализация реестра."""
        self.http_client = http_client
        self.settings = settings
        self._clock = clock
        self._sessions: "OrderedDict[int, CartSession]" = OrderedDict()
        self._last_access: Dict[int, float] = {}
        self._opening: Dict[int, asyncio.Lock] = {}

    def create_session(self, lead_id: int) -> CartSession:
        """Сборка сессии поверх общего HTTP клиента."""
        return CartSession(
            lead_id=lead_id,
            cart_repository=HttpCartRepository(
                ServiceClient(self.http_client, CartServiceError)
            ),
            discount_repository=HttpDiscountSourceRepository(
                ServiceClient(self.http_client, DiscountSourceError)
            ),
            stock_repository=HttpStockRepository(
                ServiceClient(self.http_client, StockServiceError)
            ),
            pricing_client=HttpPricingDecisionClient(
                ServiceClient(self.http_client, PricingServiceError)
            ),
            settings=self.settings,
        )

    async def get(self, lead_id: int) -> CartSession:
        """Сессия лида; открывается при первом обращении.

        Открытие сессии блокирует только запросы того же лида.
        """
        session = self._sessions.get(lead_id)
        if session is None:
            lock = self._opening.setdefault(lead_id, asyncio.Lock())
            async with lock:
                session = self._sessions.get(lead_id)
                if session is None:
                    session = self.create_session(lead_id)
                    await session.open()
                    self._sessions[lead_id] = session
                    logger.info(f"Cart session opened for lead {lead_id}")
            self._opening.pop(lead_id, None)

        self._sessions.move_to_end(lead_id)
        self._last_access[lead_id] = self._clock()
        self.evict(keep=lead_id)
        return session

    def evict(self, keep: Optional[int] = None) -> List[int]:
        """Закрытие простаивающих сессий и самых старых сверх лимита.

        Сессии с выполняющейся пакетной операцией не закрываются.
        """
        expires = self._clock() - self.settings.cart_session_idle_seconds
        evicted = []
        for lead_id, session in list(self._sessions.items()):
            if lead_id == keep or session.is_busy():
                continue
            idle = self._last_access.get(lead_id, expires) < expires
            if idle or len(self._sessions) > self.settings.cart_session_limit:
                self.close(lead_id)
                evicted.append(lead_id)
        return evicted

    def close(self, lead_id: int) -> bool:
        """Закрытие сессии лида; False, если сессии нет."""
        self._last_access.pop(lead_id, None)
        session = self._sessions.pop(lead_id, None)
        if session is None:
            return False
        session.close()
        logger.info(f"Cart session closed for lead {lead_id}")
        return True

    def close_all(self) -> None:
        """Закрытие всех сессий при остановке приложения."""
        for lead_id in list(self._sessions):
            self.close(lead_id)

    def __contains__(self, lead_id: int) -> bool:
        return lead_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
