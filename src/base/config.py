"""Конфигурация приложения."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


class BatchScope(str, Enum):
    """Области пакетных операций ценообразования."""

    CALCULATE_ALL = "calculate_all"
    APPLY_ALL = "apply_all"


class Settings(BaseSettings):
    """Настройки приложения."""

    # External services
    api_base_url: str = "http://localhost:3000/api"
    api_token: Optional[str] = None
    http_timeout: float = 30.0

    # API
    api_prefix: str = "/api/v1"
    allowed_hosts: str = "*"
    log_level: str = "INFO"

    # Pricing
    pricing_org_id: int = 1
    pricing_default_brand_id: int = 3755581063
    pricing_default_customer_id: int = 701546
    pricing_default_product_brand: str = "ZOJE"
    pricing_throttle_seconds: float = 0.3

    # Cart
    cart_default_installments: int = 5
    cart_hide_zero_price: bool = True
    cart_session_idle_seconds: float = 1800.0
    cart_session_limit: int = 200

    # Stock: EmitentePOID -> unidade_id
    warehouse_map: Dict[int, int] = {1: 109, 3: 370, 6: 613, 8: 885, 9: 966}

    model_config = {
        "env_file": ".env",
        "extra": "ignore"
    }


_settings = Settings()


def get_settings() -> Settings:
    """Получение настроек."""
    return _settings


def get_allowed_hosts() -> List[str]:
    """Получение разрешенных хостов."""
    if _settings.allowed_hosts == "*":
        return ["*"]
    return [host.strip() for host in _settings.allowed_hosts.split(",")]


def get_api_prefix() -> str:
    """Получение префикса API."""
    return _settings.api_prefix


def get_api_base_url() -> str:
    """Получение базового URL внешних сервисов."""
    return _settings.api_base_url


def get_http_timeout() -> float:
    """Получение таймаута HTTP запросов."""
    return _settings.http_timeout


def get_pricing_throttle_seconds() -> float:
    """Получение паузы между запросами к сервису ценообразования."""
    return _settings.pricing_throttle_seconds


def get_warehouse_map() -> Dict[int, int]:
    """Получение соответствия единиц отгрузки складам."""
    return dict(_settings.warehouse_map)
