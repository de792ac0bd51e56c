"""Построение запроса, разбор ответа и округление цены."""

from decimal import ROUND_CEILING, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from base.config import Settings
from base.data_structures import ServiceEnvelope
from base.exceptions import PricingResponseError, PricingServiceError
from cart.domain.models import (
    CartLine,
    CartLineDraft,
    CartProduct,
    Lead,
    normalize_installments,
    parse_int,
)
from cart.domain.resolver import screen_price
from pricing.domain.models import (
    DecisionRoot,
    DecodedPricingResponse,
    ExplanationStep,
    OrderItem,
    PricingDecision,
    PricingRequest,
    PricingResult,
    ResponseVariant,
)

TOTAL_DISCOUNT_KEY = "Total de Descontos Aplicados"
HUNDRED = Decimal("100")

_steps_adapter = TypeAdapter(List[ExplanationStep])


def round_cents_up(price: Optional[Decimal]) -> Optional[Decimal]:
    """Округление копеек вверх: 1853.10 -> 1854, 1854.00 остается 1854.00."""
    if price is None:
        return None
    price = Decimal(price)
    if price == price.to_integral_value():
        return price
    return price.to_integral_value(rounding=ROUND_CEILING)


def build_order_context(lines: Sequence[CartLine]) -> Tuple[List[OrderItem], Decimal]:
    """Позиции заказа и order_value по позициям с ценой витрины > 0."""
    order_items = []
    order_value = Decimal("0")
    for line in lines:
        screen = screen_price(line).value
        if screen <= 0:
            continue
        quantity = line.quantity or 1
        order_items.append(
            OrderItem(
                sku_id=line.sku_id or 0,
                quantity=quantity,
                model=line.model_code or "",
            )
        )
        order_value += quantity * screen
    return order_items, order_value


def _customer_id(lead: Optional[Lead], settings: Settings) -> int:
    if lead is not None:
        if lead.customer_id:
            return lead.customer_id
        if lead.c_customer:
            return lead.c_customer
    return settings.pricing_default_customer_id


def _build_request(
    product: Optional[CartProduct],
    sku_id: Optional[int],
    quantity: int,
    installments: Any,
    lines: Sequence[CartLine],
    lead: Optional[Lead],
    settings: Settings,
) -> PricingRequest:
    order_items, order_value = build_order_context(lines)
    product = product or CartProduct()
    return PricingRequest(
        org_id=settings.pricing_org_id,
        brand_id=product.brand_id or settings.pricing_default_brand_id,
        customer_id=_customer_id(lead, settings),
        sku_id=sku_id or product.id or 0,
        sku_qty=quantity or 1,
        order_value=order_value,
        product_brand=product.brand or settings.pricing_default_product_brand,
        product_model=product.model or product.name or "",
        installments=normalize_installments(installments),
        order_items=order_items,
    )


def build_pricing_request(
    line: CartLine,
    lines: Sequence[CartLine],
    lead: Optional[Lead],
    settings: Settings,
) -> PricingRequest:
    """Запрос к сервису ценовых решений для позиции корзины."""
    return _build_request(
        product=line.product,
        sku_id=line.sku_id,
        quantity=line.quantity,
        installments=line.times,
        lines=lines,
        lead=lead,
        settings=settings,
    )


def build_draft_request(
    draft: CartLineDraft,
    lines: Sequence[CartLine],
    lead: Optional[Lead],
    settings: Settings,
) -> PricingRequest:
    """Запрос для позиции из формы добавления/редактирования."""
    product = draft.product or CartProduct()
    return _build_request(
        product=product,
        sku_id=product.id,
        quantity=parse_int(draft.quantity, 1),
        installments=(
            settings.cart_default_installments if draft.times is None else draft.times
        ),
        lines=lines,
        lead=lead,
        settings=settings,
    )


def decode_pricing_response(body: Any) -> DecodedPricingResponse:
    """Разбор ответа с явной обработкой вариантов data.result.result и data.result."""
    if not isinstance(body, dict):
        raise PricingResponseError("Ответ сервиса ценообразования не является объектом")

    try:
        envelope = ServiceEnvelope.model_validate(body)
    except PydanticValidationError as e:
        raise PricingResponseError(f"Некорректная обертка ответа: {str(e)}")

    if not envelope.success:
        raise PricingServiceError(envelope.error_message())

    data = envelope.data if isinstance(envelope.data, dict) else {}
    result = data.get("result")
    if not isinstance(result, dict):
        raise PricingResponseError("В ответе отсутствует data.result")

    # Пустой вложенный result считается отсутствующим: разбирается плоский вариант.
    if isinstance(result.get("result"), dict) and result["result"]:
        variant, root = ResponseVariant.NESTED, result["result"]
    else:
        variant, root = ResponseVariant.FLAT, result

    try:
        decoded = DecisionRoot.model_validate(root)
    except PydanticValidationError as e:
        raise PricingResponseError(f"Некорректное решение ({variant.value}): {str(e)}")

    return DecodedPricingResponse(
        variant=variant,
        decision=decoded.decision,
        execution=decoded.execution,
    )


def preferred_price(decoded: DecodedPricingResponse) -> Optional[Decimal]:
    """execution.actions[0].new_price, иначе decision.final_price."""
    if decoded.execution and decoded.execution.actions:
        new_price = decoded.execution.actions[0].new_price
        if new_price is not None:
            return new_price
    if decoded.decision is not None:
        return decoded.decision.final_price
    return None


def _parse_percent(value: Any) -> Optional[Decimal]:
    try:
        return Decimal(str(value).replace("%", "").strip()) / HUNDRED
    except (InvalidOperation, ValueError):
        return None


def extract_total_discount(decision: Optional[PricingDecision]) -> Optional[Decimal]:
    """Общая скидка как доля.

    Порядок: шаг объяснения "Total de Descontos Aplicados",
    затем discount_allowed, затем discount_from_pt / 100.
    """
    if decision is None:
        return None

    steps_raw = (decision.explanation or {}).get("steps")
    if isinstance(steps_raw, list):
        try:
            steps = _steps_adapter.validate_python(steps_raw)
        except PydanticValidationError:
            steps = []
        for step in steps:
            if step.values and step.values.get(TOTAL_DISCOUNT_KEY):
                total = _parse_percent(step.values[TOTAL_DISCOUNT_KEY])
                if total is not None:
                    return total
                break

    if decision.discount_allowed is not None:
        return decision.discount_allowed
    if decision.discount_from_pt is not None:
        return decision.discount_from_pt / HUNDRED
    return None


def to_pricing_result(item_id: int, decoded: DecodedPricingResponse) -> PricingResult:
    """Результат позиции с округленной рекомендованной ценой."""
    decision = decoded.decision or PricingDecision()
    return PricingResult(
        item_id=item_id,
        recommended_price=round_cents_up(preferred_price(decoded)),
        discount_allowed=decision.discount_allowed,
        total_discount=extract_total_discount(decoded.decision),
        applied_mode=decision.applied_mode,
        tier_code=decision.tier_code,
        explanation=decision.explanation,
        reason=decision.reason,
        decision_type=decision.decision_type,
    )


def summary_payload(result: PricingResult) -> Dict[str, Any]:
    """Краткое описание результата для логов."""
    return {
        "item_id": result.item_id,
        "recommended_price": str(result.recommended_price),
        "applied_mode": result.applied_mode,
        "tier_code": result.tier_code,
    }
