"""One-time codes keyed by phone number.

    issue(phone)        -> "482913"   (replaces any earlier code for phone)
    verify(phone, code) -> True once; False when missing, wrong or expired

A successful verify consumes the code.  A wrong guess does not, so a typo
leaves the real code usable until it expires.

InMemoryOtpStore keeps codes in an instance dict with an explicit expiry
per entry and evicts expired entries on every call (and on demand via
``evict_expired``).  The clock is injectable so tests can move time.

RedisOtpStore stores each code with SETEX and verifies with a small Lua
script that compares and deletes in one step, so two concurrent verifies
of the same correct code cannot both succeed.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import threading
import time
from collections.abc import Callable
from typing import Protocol

from app.core.config import SETTINGS
from app.db.redis import redis_pool

logger = logging.getLogger(__name__)

CODE_DIGITS = 6


def generate_code() -> str:
    return f"{secrets.randbelow(10**CODE_DIGITS):0{CODE_DIGITS}d}"


class OtpStore(Protocol):
    async def issue(self, phone: str) -> str: ...
    async def verify(self, phone: str, code: str) -> bool: ...


class InMemoryOtpStore:
    def __init__(
        self,
        ttl_seconds: int = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        # phone -> (code, expires_at)
        self._codes: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def evict_expired(self) -> int:
        """Drop every expired entry.  Returns how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [p for p, (_, exp) in self._codes.items() if exp <= now]
            for phone in expired:
                del self._codes[phone]
        return len(expired)

    async def issue(self, phone: str) -> str:
        self.evict_expired()
        code = generate_code()
        with self._lock:
            self._codes[phone] = (code, self._clock() + self._ttl)
        logger.info("One-time code issued for phone=%s", _mask(phone))
        return code

    async def verify(self, phone: str, code: str) -> bool:
        self.evict_expired()
        with self._lock:
            record = self._codes.get(phone)
            if record is None:
                return False
            expected, _ = record
            if not hmac.compare_digest(expected, code):
                return False
            del self._codes[phone]
        return True

    def __len__(self) -> int:
        return len(self._codes)


class RedisOtpStore:
    _PREFIX = "otp:"

    # KEYS[1] = otp key, ARGV[1] = submitted code
    _LUA_VERIFY = """
    local stored = redis.call('GET', KEYS[1])
    if stored and stored == ARGV[1] then
        redis.call('DEL', KEYS[1])
        return 1
    end
    return 0
    """

    def __init__(self, redis_client, ttl_seconds: int = 600) -> None:
        self._redis = redis_client
        self._ttl = ttl_seconds
        self._script = None

    def _get_script(self):
        if self._script is None:
            self._script = self._redis.register_script(self._LUA_VERIFY)
        return self._script

    async def issue(self, phone: str) -> str:
        code = generate_code()
        # SETEX: Redis expires the key itself, no cleanup job.
        await self._redis.setex(f"{self._PREFIX}{phone}", self._ttl, code)
        logger.info("One-time code issued for phone=%s", _mask(phone))
        return code

    async def verify(self, phone: str, code: str) -> bool:
        script = self._get_script()
        result = await script(keys=[f"{self._PREFIX}{phone}"], args=[code])
        return bool(int(result))


def _mask(phone: str) -> str:
    return f"***{phone[-4:]}" if len(phone) > 4 else "***"


def build_otp_store() -> OtpStore:
    if redis_pool is not None:
        return RedisOtpStore(redis_pool, ttl_seconds=SETTINGS.otp_ttl_seconds)
    return InMemoryOtpStore(ttl_seconds=SETTINGS.otp_ttl_seconds)
