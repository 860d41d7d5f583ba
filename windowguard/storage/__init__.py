"""Counter storage backends.

- MemoryStorage: single process, periodic expiry sweep
- RedisStorage: shared across processes, atomic Lua increment
"""

from windowguard.storage.base import StorageBackend
from windowguard.storage.memory import MemoryStorage
from windowguard.storage.redis import RedisStorage
from windowguard.storage.redis_lua import INCREMENT_SCRIPT

__all__ = [
    "StorageBackend",
    "MemoryStorage",
    "RedisStorage",
    "INCREMENT_SCRIPT",
]
