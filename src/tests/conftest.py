"""Конфигурация для тестов."""

import os
import warnings
from unittest.mock import AsyncMock

import pytest

# Устанавливаем тестовые переменные окружения
os.environ.setdefault("API_BASE_URL", "http://backoffice.test/api")

from base.config import Settings
from cart.adapters.repositories import CartAbstractRepository
from cart.domain.models import CartLine, CartTotals, Lead
from cart.services.state import CartStateContainer
from discounts.adapters.repositories import DiscountSourceAbstractRepository
from pricing.adapters.client import PricingDecisionAbstractClient
from pricing.services.orchestrator import PricingOrchestrator
from stock.adapters.repositories import StockAbstractRepository
from stock.domain.models import WarehouseStock
from stock.services.services import StockService

# Подавление warnings
warnings.filterwarnings("ignore", category=DeprecationWarning, module="pydantic.*")


@pytest.fixture
def settings():
    """Настройки без паузы между запросами к сервису ценообразования."""
    return Settings(pricing_throttle_seconds=0)


@pytest.fixture
def lead():
    """Лид с клиентом и единицей отгрузки 1 (склад 109)."""
    return Lead(id=1, customerId=42, cLogUnity=1)


@pytest.fixture
def make_line():
    """Фабрика позиций корзины."""

    def _make(
        item_id,
        product_id=None,
        quantity=1,
        price="100",
        original_price=None,
        product_price=None,
        model=None,
        **fields,
    ):
        product = None
        if product_id is not None or product_price is not None or model is not None:
            product = {
                "id": product_id,
                "model": model,
                "name": f"Produto {product_id}",
                "price": product_price,
            }
        return CartLine.model_validate(
            {
                "id": item_id,
                "productId": product_id,
                "quantity": quantity,
                "price": price,
                "originalPrice": original_price,
                "product": product,
                **fields,
            }
        )

    return _make


@pytest.fixture
def pricing_body():
    """Фабрика ответов сервиса ценовых решений."""

    def _body(final_price=None, new_price=None, nested=True, **decision):
        root = {"decision": {"final_price": final_price, **decision}}
        if new_price is not None:
            root["execution"] = {"actions": [{"new_price": new_price}]}
        result = {"result": root} if nested else root
        return {"success": True, "data": {"result": result}}

    return _body


@pytest.fixture
def cart_repository(lead):
    """Мок репозитория корзины."""
    repository = AsyncMock(spec=CartAbstractRepository)
    repository.get_lead.return_value = lead
    repository.get_items.return_value = []
    repository.calculate_totals.return_value = CartTotals()
    return repository


@pytest.fixture
def stock_repository():
    """Мок репозитория остатков."""
    repository = AsyncMock(spec=StockAbstractRepository)
    repository.get_stock_by_warehouse.return_value = WarehouseStock()
    return repository


@pytest.fixture
def discount_repository():
    """Мок источников скидок без данных."""
    repository = AsyncMock(spec=DiscountSourceAbstractRepository)
    repository.get_active_promotions.return_value = []
    repository.get_quantity_discounts.return_value = []
    repository.get_launch_products.return_value = []
    repository.get_customer_fixed_prices.return_value = []
    repository.get_bundles.return_value = []
    return repository


@pytest.fixture
def pricing_client():
    """Мок клиента сервиса ценовых решений."""
    return AsyncMock(spec=PricingDecisionAbstractClient)


@pytest.fixture
def stock_service(stock_repository):
    """Сервис остатков поверх мока."""
    return StockService(stock_repository)


@pytest.fixture
def cart(lead, cart_repository, stock_service, settings):
    """Контейнер состояния корзины с загруженным лидом."""
    container = CartStateContainer(lead.id, cart_repository, stock_service, settings)
    container.lead = lead
    return container


@pytest.fixture
def orchestrator(pricing_client, cart, settings):
    """Оркестратор ценообразования."""
    return PricingOrchestrator(pricing_client, cart, settings)

