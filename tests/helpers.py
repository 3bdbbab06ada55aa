import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from app.models.buyer import AccessType
from app.services.buyers import BuyerRecord
from app.services.member_session import MemorySessionStorage, SessionStore


def run(coro):
    return asyncio.run(coro)


class FakeClock:
    """Settable UTC clock for session expiry tests"""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


def make_member_store(tier=AccessType.BASIC, email="member@test.com", clock=None):
    """SessionStore already logged in as a buyer of the given tier"""
    lookup = AsyncMock(return_value=BuyerRecord(email=email, name="Member", access_type=tier))
    store = SessionStore(storage=MemorySessionStorage(), lookup=lookup, clock=clock or FakeClock())
    result = run(store.login(email))
    assert result.success
    return store
