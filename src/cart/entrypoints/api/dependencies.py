"""Зависимости для API корзины."""

from typing import Annotated

from fastapi import Depends

from base.dependencies import CartSessionDependency
from cart.services.state import CartStateContainer


async def get_cart_state(session: CartSessionDependency) -> CartStateContainer:
    """Получение контейнера состояния корзины лида."""
    return session.cart


CartStateDependency = Annotated[CartStateContainer, Depends(get_cart_state)]
