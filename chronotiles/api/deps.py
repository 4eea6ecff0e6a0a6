from __future__ import annotations

from collections.abc import Generator

import redis

from chronotiles.config import Settings, load_settings
from chronotiles.infra.redis_client import create_redis
from chronotiles.session_store import publisher_redis


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        try:
            client.close()
        except Exception:
            # Some redis client versions don't require explicit close.
            pass


def get_publisher_redis() -> redis.Redis:
    """Long-lived client handed to session runners; never closed per request."""

    return publisher_redis()


def get_settings() -> Settings:
    return load_settings()
