"""Domain entities (internal representations).

For API contracts, use the DTO classes from the dto package.
"""

from .cache_entry import CacheEntryEntity, CacheStats
from .chat_message import ChatMessage, Role
from .completion import CompletionResult
from .model_info import ModelInfo
from .queued_task import QueuedTask, QueueStats
from .request_record import ModelStats, RequestRecord

__all__ = [
    "CacheEntryEntity",
    "CacheStats",
    "ChatMessage",
    "Role",
    "CompletionResult",
    "ModelInfo",
    "QueuedTask",
    "QueueStats",
    "ModelStats",
    "RequestRecord",
]
