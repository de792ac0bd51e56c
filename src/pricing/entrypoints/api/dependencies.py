"""Зависимости для API ценообразования."""

from typing import Annotated

from fastapi import Depends

from base.dependencies import CartSessionDependency
from pricing.services.orchestrator import PricingOrchestrator


async def get_orchestrator(session: CartSessionDependency) -> PricingOrchestrator:
    """Получение оркестратора ценообразования лида."""
    return session.orchestrator


PricingOrchestratorDependency = Annotated[PricingOrchestrator, Depends(get_orchestrator)]
