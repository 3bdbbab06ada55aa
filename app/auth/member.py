"""
Member session dependencies.

Clients carry an opaque token in the X-Member-Session header. The token keys
both the Redis-persisted {email, established_at} and this process's cached
SessionStore, so the tier resolved at load time is reused between requests.
"""
import logging
import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from app.config import settings
from app.models.buyer import AccessType
from app.redis_client import get_redis_client
from app.services.buyers import lookup_buyer_by_email
from app.services.member_session import (
    RedisSessionStorage,
    SessionState,
    SessionStore,
    registry,
)

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Member-Session"


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def build_session_store(token: str) -> SessionStore:
    storage = RedisSessionStorage(
        get_redis_client(), token, prefix=settings.member_session_key_prefix
    )
    return SessionStore(storage=storage, lookup=lookup_buyer_by_email)


async def open_session_store(token: str, reload: bool = False) -> SessionStore:
    """
    Cached store for token, creating and loading it on first sight.

    reload=True forces a fresh load(), re-deriving the tier from the buyer store.
    Only authenticated stores stay in the registry, so unknown or stale tokens
    cost a storage read per request but never hold memory.
    """
    store = registry.get(token)
    if store is None:
        store = build_session_store(token)
        await store.load()
    elif reload:
        await store.load()
    else:
        await store.expire_if_stale()

    remember_session(token, store)
    return store


def remember_session(token: str, store: SessionStore) -> None:
    if store.state == SessionState.AUTHENTICATED:
        registry.put(token, store)
    else:
        registry.discard(token)


async def get_session_store(
    x_member_session: Optional[str] = Header(None, alias=SESSION_HEADER),
) -> Optional[SessionStore]:
    if not x_member_session:
        return None
    return await open_session_store(x_member_session)


async def get_member_tier(
    store: Optional[SessionStore] = Depends(get_session_store),
) -> Optional[AccessType]:
    """Caller's tier, or None for anonymous visitors"""
    if store is None:
        return None
    return store.current_tier


async def require_member(
    store: Optional[SessionStore] = Depends(get_session_store),
) -> SessionStore:
    if store is None or not store.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Member session required",
        )
    return store
