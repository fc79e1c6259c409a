"""
Access Infrastructure Layer
Reference store/sink implementations and the optional caching decorator
"""
from src.access.infrastructure.caching import CachingAccessStore, TTLCache
from src.access.infrastructure.memory_store import InMemoryAccessStore, InMemoryAuditSink, LoggingAuditSink

__all__ = [
    "CachingAccessStore",
    "InMemoryAccessStore",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "TTLCache",
]
