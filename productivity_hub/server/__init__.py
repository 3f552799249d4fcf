"""HTTP service for the productivity hub.

Exposes GET /search, GET /analytics/metrics and GET /health over aiohttp.

Usage:
    python -m productivity_hub.server serve --config config.yaml
"""

from productivity_hub.server.api import HubAPI
from productivity_hub.server.config import HubConfig, apply_env_overrides, load_config, save_config
from productivity_hub.server.rate_limit import RateLimiter
from productivity_hub.server.service import HubService

__all__ = [
    "HubAPI",
    "HubConfig",
    "HubService",
    "RateLimiter",
    "apply_env_overrides",
    "load_config",
    "save_config",
]
