"""Доменные модели лида и корзины."""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def parse_int(value: Any, default: int) -> int:
    """Целое из произвольного значения формы; default, если значение некорректно."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, OverflowError):
        return default


def parse_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Decimal из значения формы; default для пустых и некорректных значений."""
    if value is None or isinstance(value, bool) or value == "":
        return default
    try:
        result = Decimal(str(value).strip().replace(",", "."))
    except (InvalidOperation, ValueError):
        return default
    if not result.is_finite():
        return default
    return result


def normalize_installments(value: Any) -> int:
    """Количество платежей (times); 1, если значение не является целым."""
    return parse_int(value, 1)


class Lead(BaseModel):
    """Лид: черновик заказа."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    customer_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("customerId", "customer_id")
    )
    c_customer: Optional[int] = Field(
        None, validation_alias=AliasChoices("cCustomer", "c_customer")
    )
    log_unity: Optional[int] = Field(
        None, validation_alias=AliasChoices("cLogUnity", "log_unity")
    )


class CartProduct(BaseModel):
    """Товар, вложенный в позицию корзины."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    model: Optional[str] = None
    name: Optional[str] = None
    brand: Optional[str] = None
    brand_id: Optional[int] = Field(None, alias="brandId")
    price: Optional[Decimal] = None
    stock: Optional[int] = None


class CartLine(BaseModel):
    """Позиция корзины. subtotal всегда вычисляется из quantity и price."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    product_id: Optional[int] = Field(None, alias="productId")
    quantity: int = Field(1, ge=1)
    price: Decimal = Decimal("0")
    consumer_price: Optional[Decimal] = Field(None, alias="consumerPrice")
    original_price: Optional[Decimal] = Field(None, alias="originalPrice")
    times: Optional[Any] = None
    ipi: Decimal = Decimal("0")
    st: Decimal = Decimal("0")
    ttd: int = 0
    c_product: Optional[str] = Field(None, alias="cProduct")
    product: Optional[CartProduct] = None

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    @property
    def sku_id(self) -> Optional[int]:
        """ID товара позиции."""
        if self.product_id is not None:
            return self.product_id
        return self.product.id if self.product else None

    @property
    def model_code(self) -> Optional[str]:
        """Модель товара для сопоставления с семействами."""
        return self.product.model if self.product else None

    @property
    def display_model(self) -> Optional[str]:
        """Модель для сообщений пользователю."""
        return self.model_code or self.c_product


class CartLineInput(BaseModel):
    """Данные позиции для сервиса корзины (addItem/updateItem)."""

    product_id: int
    quantity: int = Field(ge=1)
    price: Decimal
    consumer_price: Decimal
    times: int = 1
    ipi: Decimal = Decimal("0")
    st: Decimal = Decimal("0")
    ttd: int = 0
    decision_id: Optional[Union[int, str]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Тело запроса в формате сервиса корзины."""
        payload = {
            "productId": self.product_id,
            "quantity": self.quantity,
            "price": _money(self.price),
            "consumerPrice": _money(self.consumer_price),
            "times": self.times,
            "ipi": _money(self.ipi),
            "st": _money(self.st),
            "ttd": self.ttd,
        }
        if self.decision_id is not None:
            payload["decisionId"] = self.decision_id
        return payload

    @classmethod
    def from_line(cls, line: CartLine, **changes: Any) -> "CartLineInput":
        """Данные для обновления существующей позиции с изменениями."""
        data = {
            "product_id": line.sku_id,
            "quantity": line.quantity,
            "price": line.price,
            "consumer_price": line.consumer_price or line.price,
            "times": normalize_installments(line.times),
            "ipi": line.ipi,
            "st": line.st,
            "ttd": line.ttd,
        }
        data.update(changes)
        return cls(**data)


class CartLineDraft(BaseModel):
    """Форма добавления или редактирования позиции."""

    model_config = ConfigDict(populate_by_name=True)

    product: Optional[CartProduct] = None
    quantity: Any = 1
    price: Any = 0
    consumer_price: Any = Field(0, alias="consumerPrice")
    original_price: Any = Field(0, alias="originalPrice")
    times: Any = None
    ipi: Any = 0
    st: Any = 0
    ttd: Any = 0
    decision_id: Optional[Union[int, str]] = Field(None, alias="decisionId")


class CartTotals(BaseModel):
    """Итоги корзины от сервиса лидов."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    subtotal: Decimal = Decimal("0")
    total_ipi: Decimal = Field(Decimal("0"), alias="totalIPI")
    total_st: Decimal = Field(Decimal("0"), alias="totalST")
    freight: Decimal = Decimal("0")
    grand_total: Decimal = Field(Decimal("0"), alias="grandTotal")


class InlineEditRequest(BaseModel):
    """Быстрое изменение поля позиции в строке корзины."""

    field: Literal["quantity", "times"]
    value: Any
