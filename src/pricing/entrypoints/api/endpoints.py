"""API эндпоинты ценообразования корзины."""

from fastapi import APIRouter

from base.config import BatchScope
from base.data_structures import MessageResponse
from cart.domain.models import CartLineDraft
from pricing.domain.models import BatchSummary, PricePreview, PricingResult
from pricing.entrypoints.api.dependencies import PricingOrchestratorDependency

router = APIRouter()


@router.post("/{lead_id}/pricing/items/{item_id}", response_model=PricingResult)
async def calculate_item(
    item_id: int, orchestrator: PricingOrchestratorDependency
) -> PricingResult:
    """Расчет рекомендованной цены позиции."""
    line = orchestrator.cart.get_line(item_id)
    return await orchestrator.calculate_item(line)


@router.post("/{lead_id}/pricing/preview", response_model=PricePreview)
async def preview_price(
    draft: CartLineDraft, orchestrator: PricingOrchestratorDependency
) -> PricePreview:
    """Рекомендованная цена для формы добавления или редактирования."""
    return await orchestrator.calculate_draft(draft)


@router.post("/{lead_id}/pricing/calculate-all", response_model=BatchSummary)
async def calculate_all(orchestrator: PricingOrchestratorDependency) -> BatchSummary:
    """Расчет всех видимых позиций."""
    return await orchestrator.calculate_all()


@router.post("/{lead_id}/pricing/apply-all", response_model=BatchSummary)
async def apply_all(orchestrator: PricingOrchestratorDependency) -> BatchSummary:
    """Применение рекомендованных цен ко всем позициям с ценой витрины."""
    return await orchestrator.apply_all()


@router.post("/{lead_id}/pricing/{scope}/cancel", response_model=MessageResponse)
async def cancel_batch(
    scope: BatchScope, orchestrator: PricingOrchestratorDependency
) -> MessageResponse:
    """Отмена выполняющейся пакетной операции."""
    if orchestrator.cancel(scope):
        return MessageResponse(message=f"Операция {scope.value} отменяется", level="warning")
    return MessageResponse(message=f"Операция {scope.value} не выполняется")
