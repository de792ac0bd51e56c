"""Зависимости для FastAPI приложения."""

import logging
from typing import Annotated

from fastapi import Depends, Request

from base.config import Settings, get_settings
from cart.services.sessions import CartSession, CartSessionRegistry

logger = logging.getLogger(__name__)


def get_registry(request: Request) -> CartSessionRegistry:
    """Реестр сессий корзин из состояния приложения."""
    return request.app.state.registry


async def get_cart_session(
    lead_id: int,
    registry: Annotated[CartSessionRegistry, Depends(get_registry)],
) -> CartSession:
    """Сессия корзины лида из пути запроса."""
    return await registry.get(lead_id)


# Типы для внедрения зависимостей
SettingsDependency = Annotated[Settings, Depends(get_settings)]
RegistryDependency = Annotated[CartSessionRegistry, Depends(get_registry)]
CartSessionDependency = Annotated[CartSession, Depends(get_cart_session)]
