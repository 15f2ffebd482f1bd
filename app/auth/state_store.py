# app/auth/state_store.py
"""
Single-use OAuth state (nonce) storage, keyed by shop domain.

Every backend exposes the same two coroutines:

- ``create(shop, response)`` issues a fresh token, replacing any live one.
- ``redeem_once(shop, request)`` returns the stored token and removes it,
  or ``None`` when nothing (or something expired) was stored.

The Starlette request/response objects are only used by the cookie backend.
"""
from datetime import datetime, timedelta, timezone

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from ..config import Settings
from ..database import Base, build_engine, build_sessionmaker
from ..models import OAuthState
from .errors import StoreError
from .shopify_oauth import _nonce

COOKIE_NAME = "shopify_state"

class StateStore:
    backend = "abstract"

    async def create(self, shop: str, response: Response | None = None) -> str:
        raise NotImplementedError

    async def redeem_once(self, shop: str, request: Request | None = None) -> str | None:
        raise NotImplementedError

    async def aclose(self) -> None:
        pass

class RedisStateStore(StateStore):
    backend = "redis"

    def __init__(self, redis: Redis, ttl_seconds: int):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> "RedisStateStore":
        return cls(Redis.from_url(url, decode_responses=True), ttl_seconds)

    async def create(self, shop, response=None):
        state = _nonce()
        try:
            await self.redis.set(self._key(shop), state, ex=self.ttl_seconds)
        except RedisError as e:
            raise StoreError(f"Could not persist OAuth state: {e}", self.backend) from e
        return state

    async def redeem_once(self, shop, request=None):
        try:
            # GETDEL is atomic: two concurrent callbacks cannot both see the token
            return await self.redis.getdel(self._key(shop))
        except RedisError as e:
            raise StoreError(f"Could not read OAuth state: {e}", self.backend) from e

    async def aclose(self):
        await self.redis.aclose()

    @staticmethod
    def _key(shop: str) -> str:
        return f"oauth:state:{shop}"

class DatabaseStateStore(StateStore):
    backend = "database"

    def __init__(self, session_factory: sessionmaker, ttl_seconds: int):
        self.session_factory = session_factory
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> "DatabaseStateStore":
        engine = build_engine(url)
        if engine.dialect.name == "sqlite":
            # local/dev databases are not migrated with alembic
            Base.metadata.create_all(bind=engine)
        return cls(build_sessionmaker(engine), ttl_seconds)

    def _write(self, shop: str, state: str) -> None:
        now = datetime.now(timezone.utc)
        with self.session_factory.begin() as db:
            # replace the shop's previous token and sweep abandoned handshakes
            db.execute(
                delete(OAuthState)
                .where(or_(OAuthState.shop_domain == shop, OAuthState.expires_at < now))
                .execution_options(synchronize_session=False)
            )
            db.add(OAuthState(
                shop_domain=shop,
                nonce=state,
                created_at=now,
                expires_at=now + timedelta(seconds=self.ttl_seconds),
            ))

    def _take(self, shop: str) -> str | None:
        with self.session_factory.begin() as db:
            row = db.execute(
                delete(OAuthState)
                .where(OAuthState.shop_domain == shop)
                .returning(OAuthState.nonce, OAuthState.expires_at)
                .execution_options(synchronize_session=False)
            ).first()
        if row is None:
            return None
        expires_at = row.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= datetime.now(timezone.utc):
            return None
        return row.nonce

    async def create(self, shop, response=None):
        state = _nonce()
        try:
            await run_in_threadpool(self._write, shop, state)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not persist OAuth state: {e}", self.backend) from e
        return state

    async def redeem_once(self, shop, request=None):
        try:
            return await run_in_threadpool(self._take, shop)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not read OAuth state: {e}", self.backend) from e

    async def aclose(self):
        bind = self.session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()

class CookieStateStore(StateStore):
    """
    Keeps the token in an HttpOnly cookie echoed back by the browser.
    Nothing is invalidated server-side, so a captured cookie stays usable
    until it expires; prefer the redis or database backend.
    """
    backend = "cookie"

    def __init__(self, ttl_seconds: int, secure: bool = True):
        self.ttl_seconds = ttl_seconds
        self.secure = secure

    async def create(self, shop, response=None):
        if response is None:
            raise StoreError("Cookie state backend needs a response to write to", self.backend)
        state = _nonce()
        response.set_cookie(
            COOKIE_NAME, f"{shop}:{state}",
            httponly=True, samesite="lax", secure=self.secure, max_age=self.ttl_seconds,
        )
        return state

    async def redeem_once(self, shop, request=None):
        if request is None:
            return None
        raw = request.cookies.get(COOKIE_NAME)
        if not raw:
            return None
        cookie_shop, _, state = raw.rpartition(":")
        if cookie_shop != shop or not state:
            return None
        return state

def build_state_store(settings: Settings) -> StateStore:
    ttl = settings.STATE_TTL_SECONDS
    if settings.STATE_BACKEND == "redis":
        return RedisStateStore.from_url(settings.REDIS_URL, ttl)
    if settings.STATE_BACKEND == "database":
        return DatabaseStateStore.from_url(settings.DATABASE_URL, ttl)
    return CookieStateStore(ttl, secure=settings.COOKIE_SECURE)
