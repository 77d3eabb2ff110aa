"""Конфигурация приложения."""
import os
from functools import lru_cache


@lru_cache
def get_config():
    return type("Config", (), {
        "host": os.environ.get("FLIPMATCH_HOST", "0.0.0.0"),
        "port": int(os.environ.get("FLIPMATCH_PORT", "8080")),
        "relay_url": os.environ.get("FLIPMATCH_RELAY_URL", "ws://localhost:8080/ws"),
        "default_time": int(os.environ.get("FLIPMATCH_DEFAULT_TIME", "60")),
        "debug": os.environ.get("DEBUG", "0").lower() in ("1", "true", "yes"),
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
    })()
