"""Юнит-тесты настроек, моделей и обработчиков исключений."""

from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import ValidationError as PydanticValidationError

from base.config import BatchScope, Settings
from base.data_structures import ServiceEnvelope
from base.exception_handlers import add_exception_handlers
from base.exceptions import (
    AppException,
    BatchInProgressError,
    CartItemNotFoundError,
    PricingResponseError,
    StockShortfallError,
    ValidationError,
)
from cart.domain.models import CartLine, CartLineInput, normalize_installments, parse_decimal


class TestSettings:
    """Тесты настроек по умолчанию."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.pricing_throttle_seconds == 0.3
        assert settings.pricing_org_id == 1
        assert settings.pricing_default_customer_id == 701546
        assert settings.warehouse_map == {1: 109, 3: 370, 6: 613, 8: 885, 9: 966}
        assert settings.cart_hide_zero_price is True


class TestModels:
    """Тесты доменных моделей корзины."""

    def test_subtotal_is_computed(self):
        line = CartLine.model_validate({"id": 1, "quantity": 3, "price": "10.50", "subtotal": 1})

        assert line.subtotal == Decimal("31.50")

    def test_quantity_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            CartLine.model_validate({"id": 1, "quantity": 0})

    @pytest.mark.parametrize(
        "value,expected",
        [(3, 3), ("4", 4), ("abc", 1), (None, 1), ("", 1), (True, 1)],
    )
    def test_normalize_installments(self, value, expected):
        assert normalize_installments(value) == expected

    def test_parse_decimal(self):
        assert parse_decimal("10,5") == Decimal("10.5")
        assert parse_decimal("nan") is None
        assert parse_decimal("", Decimal("0")) == Decimal("0")

    def test_input_payload(self):
        payload = CartLineInput(
            product_id=1,
            quantity=2,
            price=Decimal("9.90"),
            consumer_price=Decimal("11"),
            decision_id="abc",
        ).to_payload()

        assert payload["productId"] == 1
        assert payload["price"] == 9.9
        assert payload["consumerPrice"] == 11.0
        assert payload["decisionId"] == "abc"

    def test_envelope_error_message(self):
        assert ServiceEnvelope(success=False, error="falhou").error_message() == "falhou"
        assert ServiceEnvelope(success=False).error_message() == "Erro desconhecido"


@pytest.fixture
def error_client():
    """Приложение с эндпоинтами, выбрасывающими исключения."""
    app = FastAPI()
    add_exception_handlers(app)

    errors = {
        "validation": ValidationError("bad"),
        "missing": CartItemNotFoundError("no item"),
        "pricing": PricingResponseError("schema"),
        "busy": BatchInProgressError(BatchScope.APPLY_ALL.value),
        "stock": StockShortfallError("short", ["ZJ8000"]),
        "app": AppException("generic"),
    }

    @app.get("/{name}")
    async def fail(name: str):
        raise errors[name]

    return TestClient(app)


class TestExceptionHandlers:
    """Тесты обработчиков исключений."""

    @pytest.mark.parametrize(
        "name,status,error_type",
        [
            ("validation", 400, "validation_error"),
            ("missing", 404, "not_found_error"),
            ("pricing", 502, "external_service_error"),
            ("busy", 409, "batch_in_progress"),
            ("stock", 409, "stock_shortfall"),
            ("app", 500, "app_error"),
        ],
    )
    def test_status_mapping(self, error_client, name, status, error_type):
        response = error_client.get(f"/{name}")

        assert response.status_code == status
        assert response.json()["type"] == error_type

    def test_batch_message(self, error_client):
        assert error_client.get("/busy").json()["detail"] == "Операция apply_all уже выполняется"
