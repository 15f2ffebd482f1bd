# tests/conftest.py
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

class FakeRedis:
    """Just the two commands the redis state store uses."""

    def __init__(self, fail: bool = False):
        self.data = {}
        self.ttl = {}
        self.fail = fail

    async def set(self, key, value, ex=None):
        if self.fail:
            raise RedisConnectionError("connection refused")
        self.data[key] = value
        self.ttl[key] = ex

    async def getdel(self, key):
        if self.fail:
            raise RedisConnectionError("connection refused")
        return self.data.pop(key, None)

    async def aclose(self):
        pass

@pytest.fixture
def fake_redis():
    return FakeRedis()

@pytest.fixture
def broken_redis():
    return FakeRedis(fail=True)
