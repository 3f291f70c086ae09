"""
Durable storage for the cache layer.
"""

from teletext.datastore.engine import CacheDatabase
from teletext.datastore.kv import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore

__all__ = [
    "CacheDatabase",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqlKeyValueStore",
]
