from app.config import settings
from app.redis_client import get_redis_client


class RateLimiter:
    """Failed-attempt counter per identifier, kept in Redis with a sliding expiry"""

    def __init__(self, scope: str, max_attempts: int = None, window_minutes: int = None):
        self.scope = scope
        self.max_attempts = max_attempts or settings.rate_limit_failed_logins
        self.window_minutes = window_minutes or settings.rate_limit_window_minutes
        self._redis = None

    @property
    def redis(self):
        if self._redis is None:
            self._redis = get_redis_client()
        return self._redis

    def _get_key(self, identifier: str) -> str:
        return f"rate_limit:{self.scope}:{identifier.strip().lower()}"

    def is_blocked(self, identifier: str) -> bool:
        attempts = self.redis.get(self._get_key(identifier))
        if attempts is None:
            return False
        return int(attempts) >= self.max_attempts

    def record_failed_attempt(self, identifier: str) -> int:
        """Record a failed attempt and return the current count"""
        key = self._get_key(identifier)
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_minutes * 60)
        result = pipe.execute()
        return result[0]

    def remaining(self, attempts: int) -> int:
        return max(0, self.max_attempts - attempts)

    def reset(self, identifier: str):
        self.redis.delete(self._get_key(identifier))


admin_login_limiter = RateLimiter("admin_login")
member_login_limiter = RateLimiter("member_login")
