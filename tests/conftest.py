"""Shared fixtures: a controllable clock and an in-process Redis double."""

import pytest
import pytest_asyncio

from windowguard.storage.memory import MemoryStorage

# Aligned to a 60s window boundary
START_MS = 1_700_000_040_000


class FakeClock:
    """Manually advanced time source returning UNIX seconds.

    Keep offsets to multiples of 250ms so ``int(clock() * 1000)`` is exact.
    """

    def __init__(self, start_ms: int = START_MS):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms / 1000

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class FakeRedis:
    """Minimal ``redis.asyncio`` stand-in executing the increment script in Python.

    Key expiry follows the fake clock, like the server's own expiry would.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.data: dict[str, list] = {}
        self.eval_calls: list[tuple] = []
        self.closed = False

    def _live(self, key):
        entry = self.data.get(key)
        if entry is not None and entry[1] is not None and entry[1] <= self.clock.now_ms:
            del self.data[key]
            return None
        return entry

    async def eval(self, script, num_keys, key, ttl_ms, now):
        self.eval_calls.append((script, num_keys, key, ttl_ms, now))
        entry = self._live(key)
        if entry is None:
            entry = self.data[key] = [0, None]
        entry[0] += 1
        if entry[0] == 1:
            entry[1] = self.clock.now_ms + ttl_ms
        pttl = entry[1] - self.clock.now_ms
        remaining = pttl if pttl > 0 else ttl_ms
        return [entry[0], now + remaining]

    async def pttl(self, key):
        entry = self._live(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return entry[1] - self.clock.now_ms

    async def get(self, key):
        entry = self._live(key)
        return str(entry[0]).encode() if entry is not None else None

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    async def aclose(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest_asyncio.fixture
async def memory_storage(clock):
    storage = MemoryStorage(sweep_interval=60, clock=clock)
    yield storage
    await storage.close()
