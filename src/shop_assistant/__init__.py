"""Shop assistant package."""

from .config import AssistantConfig, CacheConfig, GatewayConfig

__all__ = ["AssistantConfig", "CacheConfig", "GatewayConfig"]
