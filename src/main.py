"""Основной модуль FastAPI приложения."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from base.config import get_allowed_hosts, get_api_prefix, get_settings
from base.exception_handlers import add_exception_handlers
from base.http import create_http_client
from cart.entrypoints.api.endpoints import router as cart_router
from cart.services.sessions import CartSessionRegistry
from pricing.entrypoints.api.endpoints import router as pricing_router

settings = get_settings()

# Настройка логирования
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения."""
    # Startup
    http_client = create_http_client(settings)
    app.state.registry = CartSessionRegistry(http_client, settings)
    logger.info(f"Using back-office API at {settings.api_base_url}")
    yield
    # Shutdown
    app.state.registry.close_all()
    await http_client.aclose()


# Создаем FastAPI приложение
app = FastAPI(
    title="Cart Pricing API",
    description="API корзины лида: скидки, рекомендованные цены и остатки",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Настройка CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_hosts(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

# Регистрация роутеров
app.include_router(cart_router, prefix=f"{get_api_prefix()}/leads", tags=["cart"])
app.include_router(pricing_router, prefix=f"{get_api_prefix()}/leads", tags=["pricing"])


@app.get("/")
async def health_check():
    """Проверка работоспособности API."""
    return {"message": "API is running"}
