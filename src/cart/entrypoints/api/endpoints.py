"""API эндпоинты корзины лида."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body

from base.data_structures import MessageResponse
from base.dependencies import CartSessionDependency, RegistryDependency
from cart.domain.models import CartLineDraft, InlineEditRequest
from cart.entrypoints.api.dependencies import CartStateDependency
from cart.services.services import CartView
from stock.domain.models import StockStatus

router = APIRouter()


@router.get("/{lead_id}/cart", response_model=CartView)
async def get_cart(
    session: CartSessionDependency,
    sort: Optional[str] = None,
    direction: str = "asc",
) -> CartView:
    """Корзина лида с бейджами скидок и результатами расчета."""
    return session.view(sort, direction)


@router.delete("/{lead_id}/cart/session", response_model=MessageResponse)
async def close_session(lead_id: int, registry: RegistryDependency) -> MessageResponse:
    """Закрытие сессии корзины лида; следующий запрос загрузит ее заново."""
    if registry.close(lead_id):
        return MessageResponse(message=f"Сессия лида {lead_id} закрыта", level="success")
    return MessageResponse(message=f"Сессия лида {lead_id} не открыта")


@router.post("/{lead_id}/cart/reload", response_model=CartView)
async def reload_cart(session: CartSessionDependency) -> CartView:
    """Полная перезагрузка корзины и источников скидок."""
    await session.open()
    return session.view()


@router.post("/{lead_id}/items", status_code=201, response_model=CartView)
async def add_item(draft: CartLineDraft, session: CartSessionDependency) -> CartView:
    """Добавление позиции."""
    await session.cart.add_item(draft)
    return session.view()


@router.put("/{lead_id}/items/{item_id}", response_model=CartView)
async def update_item(
    item_id: int, draft: CartLineDraft, session: CartSessionDependency
) -> CartView:
    """Сохранение формы редактирования позиции."""
    await session.cart.update_item(item_id, draft)
    return session.view()


@router.patch("/{lead_id}/items/{item_id}", response_model=CartView)
async def inline_edit_item(
    item_id: int, edit: InlineEditRequest, session: CartSessionDependency
) -> CartView:
    """Изменение количества или числа платежей прямо в строке."""
    await session.cart.inline_edit(item_id, edit.field, edit.value)
    return session.view()


@router.delete("/{lead_id}/items/{item_id}", response_model=CartView)
async def remove_item(item_id: int, session: CartSessionDependency) -> CartView:
    """Удаление позиции."""
    await session.cart.remove_item(item_id)
    return session.view()


@router.post("/{lead_id}/taxes", response_model=CartView)
async def calculate_taxes(session: CartSessionDependency) -> CartView:
    """Пересчет налогов IPI/ST."""
    await session.cart.calculate_taxes()
    return session.view()


@router.post("/{lead_id}/stock/load", response_model=StockStatus)
async def load_stock(cart: CartStateDependency) -> StockStatus:
    """Загрузка остатков всех позиций и пересчет проблем."""
    issues = await cart.load_stock()
    return StockStatus(issues=issues, conversion=cart.conversion_gate())


@router.get("/{lead_id}/stock/issues", response_model=StockStatus)
async def get_stock_issues(cart: CartStateDependency) -> StockStatus:
    """Текущие проблемы с остатками по уже загруженным данным."""
    return StockStatus(issues=cart.stock_issues, conversion=cart.conversion_gate())


@router.post("/{lead_id}/convert", response_model=MessageResponse)
async def convert_to_order(
    cart: CartStateDependency,
    payload: Optional[Dict[str, Any]] = Body(default=None),
) -> MessageResponse:
    """Конвертация лида в заказ."""
    await cart.convert_to_order(payload)
    return MessageResponse(message="Лид конвертирован в заказ", level="success")
