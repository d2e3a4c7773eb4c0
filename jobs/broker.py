"""
Dramatiq broker configuration.

Redis-based message broker for background tasks (affiliate platform
mirroring). Ledger operations themselves never run on the queue.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, Retries, ShutdownNotifications
from loguru import logger

from app.config.settings import settings
from app.utils.redis_utils import get_redis_url_masked

# Max attempts for one mirroring message before it is dropped
MIRROR_MAX_RETRIES = 5

redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password if settings.redis_password else None,
    db=settings.redis_db,
)

# ShutdownNotifications: lets workers finish in-flight HTTP calls
# CurrentMessage: exposes retry count to actors for logging
# Retries: exponential backoff for platform outages
redis_broker.add_middleware(ShutdownNotifications())
redis_broker.add_middleware(CurrentMessage())
redis_broker.add_middleware(
    Retries(
        max_retries=MIRROR_MAX_RETRIES,
        min_backoff=5_000,  # 5 seconds
        max_backoff=300_000,  # 5 minutes
    )
)

dramatiq.set_broker(redis_broker)

broker = redis_broker

logger.info(f"Dramatiq broker initialized: {get_redis_url_masked()}")
