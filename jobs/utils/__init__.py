"""Task utilities."""
from jobs.utils.database import (
    create_task_engine,
    create_task_session_maker,
    task_engine,
    task_session_maker,
)
from jobs.utils.redis import create_redis_client

__all__ = [
    "create_redis_client",
    "create_task_engine",
    "create_task_session_maker",
    "task_engine",
    "task_session_maker",
]
