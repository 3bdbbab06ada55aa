"""
Member session state machine.

A member "logs in" with the email used at purchase; there is no password at
this layer. The durable part of a session is only {email, established_at};
the access tier is re-derived from the buyer store on every load() and cached
on the SessionStore instance until logout or the next load(); expiry drops it.

States:
    UNKNOWN        fresh instance, load() not run yet
    ANONYMOUS      no valid session
    AUTHENTICATED  email + tier known

Logout always wins: a lookup that resolves after a logout issued while it was
in flight is discarded.

Storage I/O on the async paths (load, login, expire_if_stale) runs in the
threadpool; the sync expiry check on property access is the fallback for a
window that closes mid-request.
"""
import json
import logging
import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, Optional, Protocol

from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.exceptions import NotFoundError, PortalError, TransientError, ValidationError
from app.models.buyer import AccessType
from app.models.course import CourseAccessLevel
from app.services import access
from app.services.buyers import BuyerRecord, validate_email

logger = logging.getLogger(__name__)

SESSION_DURATION = timedelta(days=settings.member_session_days)

LOGIN_MESSAGES = {
    ValidationError: "Invalid email format.",
    NotFoundError: "Email not found. Use the email address you purchased with.",
    TransientError: "Could not verify access right now. Please try again later.",
}

BuyerLookup = Callable[[str], Awaitable[Optional[BuyerRecord]]]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, enum.Enum):
    UNKNOWN = "unknown"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class PersistedSession:
    email: str
    established_at: datetime


@dataclass
class LoginResult:
    success: bool
    error: Optional[PortalError] = None

    @property
    def message(self) -> Optional[str]:
        if self.error is None:
            return None
        return LOGIN_MESSAGES.get(type(self.error), self.error.message)


class SessionStorage(Protocol):
    def read(self) -> Optional[PersistedSession]: ...

    def write(self, email: str, established_at: datetime) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStorage:
    """In-process storage; one instance per client session"""

    def __init__(self):
        self._value: Optional[PersistedSession] = None

    def read(self) -> Optional[PersistedSession]:
        return self._value

    def write(self, email: str, established_at: datetime) -> None:
        self._value = PersistedSession(email=email, established_at=established_at)

    def clear(self) -> None:
        self._value = None


class RedisSessionStorage:
    """
    Redis-backed storage for one client session token.

    Email and timestamp are serialized into a single value so they are written
    (and expire) together. A value lacking either field reads as absent.
    """

    def __init__(self, redis_client, token: str, prefix: str = "member_session",
                 ttl: timedelta = SESSION_DURATION):
        self.redis = redis_client
        self.key = f"{prefix}:{token}"
        self.ttl = ttl

    def read(self) -> Optional[PersistedSession]:
        raw = self.redis.get(self.key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
            email = data.get("email")
            timestamp = data.get("established_at")
            if not email or timestamp is None:
                return None
            established_at = datetime.fromtimestamp(float(timestamp) / 1000, tz=timezone.utc)
        except (ValueError, TypeError, AttributeError):
            logger.warning("Discarding malformed member session at %s", self.key)
            return None
        return PersistedSession(email=email, established_at=established_at)

    def write(self, email: str, established_at: datetime) -> None:
        value = json.dumps({
            "email": email,
            "established_at": int(established_at.timestamp() * 1000),
        })
        self.redis.set(self.key, value, ex=int(self.ttl.total_seconds()))

    def clear(self) -> None:
        self.redis.delete(self.key)


class SessionStore:
    """Login/logout/revalidate for one client session. Inject, don't share."""

    def __init__(
        self,
        storage: SessionStorage,
        lookup: BuyerLookup,
        clock: Clock = utcnow,
        duration: timedelta = SESSION_DURATION,
    ):
        self.storage = storage
        self.lookup = lookup
        self.clock = clock
        self.duration = duration

        self.state = SessionState.UNKNOWN
        self.email: Optional[str] = None
        self.access_type: Optional[AccessType] = None
        self.established_at: Optional[datetime] = None
        self.last_error: Optional[PortalError] = None
        self._generation = 0

    # -- queries ---------------------------------------------------------

    def _is_fresh(self, established_at: datetime) -> bool:
        return self.clock() - established_at < self.duration

    def _check_expiry(self) -> None:
        if self.state == SessionState.AUTHENTICATED and not self._is_fresh(self.established_at):
            logger.info("Member session for %s expired", self.email)
            self.storage.clear()
            self._set_anonymous()

    @property
    def is_authenticated(self) -> bool:
        self._check_expiry()
        return self.state == SessionState.AUTHENTICATED

    @property
    def current_tier(self) -> Optional[AccessType]:
        self._check_expiry()
        return self.access_type if self.state == SessionState.AUTHENTICATED else None

    def can_access(self, level: CourseAccessLevel) -> bool:
        return access.can_access(self.current_tier, level)

    @property
    def has_pro_access(self) -> bool:
        return access.has_pro_access(self.current_tier)

    @property
    def has_basic_access(self) -> bool:
        return access.has_basic_access(self.current_tier)

    # -- transitions -----------------------------------------------------

    def _set_anonymous(self) -> None:
        self.state = SessionState.ANONYMOUS
        self.email = None
        self.access_type = None
        self.established_at = None

    def _set_authenticated(self, record: BuyerRecord, established_at: datetime) -> None:
        self.state = SessionState.AUTHENTICATED
        self.email = record.email
        self.access_type = access.parse_access_type(record.access_type)
        self.established_at = established_at
        self.last_error = None

    async def _drop(self) -> None:
        await run_in_threadpool(self.storage.clear)
        self._set_anonymous()

    async def expire_if_stale(self) -> bool:
        """Discard an authenticated session whose window has closed"""
        if self.state == SessionState.AUTHENTICATED and not self._is_fresh(self.established_at):
            logger.info("Member session for %s expired", self.email)
            await self._drop()
            return True
        return False

    async def load(self) -> SessionState:
        """Revalidate the persisted session against the buyer store."""
        generation = self._generation
        persisted = await run_in_threadpool(self.storage.read)

        if persisted is None:
            self._set_anonymous()
            return self.state

        if not self._is_fresh(persisted.established_at):
            await self._drop()
            return self.state

        try:
            record = await self.lookup(persisted.email)
        except Exception as e:
            logger.warning("Buyer lookup failed while revalidating %s: %s", persisted.email, e)
            if generation == self._generation:
                self.last_error = TransientError("Buyer lookup failed")
                self._set_anonymous()
            return self.state

        if generation != self._generation:
            logger.info("Discarding revalidation for %s: logged out meanwhile", persisted.email)
            return self.state

        if record is None:
            self.last_error = NotFoundError("Email not found in buyer store")
            await self._drop()
        else:
            self._set_authenticated(record, persisted.established_at)
        return self.state

    async def login(self, email: str) -> LoginResult:
        """
        Replace whatever session this store held. A failed attempt leaves the
        store ANONYMOUS in memory and in storage.
        """
        generation = self._generation
        try:
            normalized = validate_email(email)
        except ValidationError as e:
            self.last_error = e
            await self._drop()
            return LoginResult(success=False, error=e)

        try:
            record = await self.lookup(normalized)
        except Exception as e:
            logger.error("Buyer lookup failed during login for %s: %s", normalized, e)
            error = TransientError("Buyer lookup failed")
            if generation == self._generation:
                self.last_error = error
                await self._drop()
            return LoginResult(success=False, error=error)

        if generation != self._generation:
            logger.info("Discarding login for %s: logged out meanwhile", normalized)
            return LoginResult(success=False, error=TransientError("Session was closed during login"))

        if record is None:
            error = NotFoundError("Email not found in buyer store")
            self.last_error = error
            await self._drop()
            return LoginResult(success=False, error=error)

        established_at = self.clock()
        await run_in_threadpool(self.storage.write, record.email, established_at)
        if generation != self._generation:
            await run_in_threadpool(self.storage.clear)
            return LoginResult(success=False, error=TransientError("Session was closed during login"))
        self._set_authenticated(record, established_at)
        logger.info("Member %s logged in (access_type=%s)", record.email, self.access_type.value)
        return LoginResult(success=True)

    def logout(self) -> None:
        self._generation += 1
        self.storage.clear()
        self._set_anonymous()


class SessionRegistry:
    """
    Per-process map of client session token -> SessionStore.

    Keeps each authenticated client's store (and its cached tier) alive
    between requests so the buyer store is only consulted on load(). Only
    AUTHENTICATED stores are held; callers discard a store once it drops to
    ANONYMOUS. Each worker owns its own map.
    """

    def __init__(self):
        self._stores: Dict[str, SessionStore] = {}

    def get(self, token: str) -> Optional[SessionStore]:
        return self._stores.get(token)

    def put(self, token: str, store: SessionStore) -> None:
        self._stores[token] = store

    def discard(self, token: str) -> Optional[SessionStore]:
        return self._stores.pop(token, None)

    def clear(self) -> None:
        self._stores.clear()

    def __len__(self) -> int:
        return len(self._stores)


registry = SessionRegistry()
