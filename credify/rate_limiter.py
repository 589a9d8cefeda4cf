"""
Per-IP fixed-window rate limiting for the form API
In-memory counters by default; counts are kept in Redis when REDIS_URL is set
so several workers share one window.
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import Request

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."

# Every path under this prefix is counted, including unknown ones
API_PREFIX = "/api"

# Clean up expired entries every 60 seconds
MEMORY_CACHE_CLEANUP_INTERVAL = 60


def get_redis_client(redis_url: str) -> redis.Redis:
    """Create a Redis client from a URL and test the connection"""
    # Mask password in URL for logging
    if "@" in redis_url:
        url_parts = redis_url.split("@")
        protocol = url_parts[0].split(":")[0]
        masked_url = f"{protocol}:****@{url_parts[1]}"
    else:
        masked_url = redis_url
    logger.info(f"📡 Using Redis URL connection: {masked_url}")

    client = redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )
    client.ping()
    logger.info("Redis connected successfully via URL")
    return client


def get_client_ip(request: Request) -> str:
    """Client IP, trusting the first X-Forwarded-For hop (one proxy in front)"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """
    Fixed-window counter keyed by client IP.

    Each key allows ``limit`` hits per ``window_seconds``; the window starts
    at the first hit and resets when it expires.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        redis_client: Optional[redis.Redis] = None,
        key_prefix: str = "rate_limit:api",
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.redis_client = redis_client
        self.key_prefix = key_prefix
        # {key: {'count': int, 'reset_time': float}}
        self.memory_cache: dict[str, dict] = {}
        self.cache_lock = Lock()
        self.last_cleanup_time = 0.0

    def cleanup_expired_cache(self, now: float):
        """Remove expired entries from memory cache"""
        if now - self.last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
            return
        expired_keys = [k for k, v in self.memory_cache.items() if now >= v["reset_time"]]
        for k in expired_keys:
            del self.memory_cache[k]
        if expired_keys:
            logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")
        self.last_cleanup_time = now

    def _hit_memory(self, key: str, now: float) -> tuple[int, int]:
        with self.cache_lock:
            self.cleanup_expired_cache(now)
            entry = self.memory_cache.get(key)
            if entry is None or now >= entry["reset_time"]:
                entry = {"count": 0, "reset_time": now + self.window_seconds}
                self.memory_cache[key] = entry
            entry["count"] += 1
            return entry["count"], max(0, int(entry["reset_time"] - now))

    def _hit_redis(self, key: str) -> tuple[int, int]:
        # INCR and EXPIRE NX in one round trip; the first hit opens the window
        pipe = self.redis_client.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds, nx=True)
        pipe.ttl(key)
        count, _, ttl = pipe.execute()
        return int(count), max(0, int(ttl))

    def hit(self, client_ip: str, now: Optional[float] = None) -> tuple[bool, int, int]:
        """
        Record one request from ``client_ip``.

        Returns:
            Tuple of (is_allowed, current_count, seconds_until_reset)
        """
        now = time.time() if now is None else now
        key = f"{self.key_prefix}:{client_ip}"

        if self.redis_client is not None:
            try:
                count, ttl = self._hit_redis(key)
                return count <= self.limit, count, ttl
            except redis.RedisError as e:
                logger.warning(f"⚠️ Redis rate limit failed, using memory only: {e}")

        count, ttl = self._hit_memory(key, now)
        return count <= self.limit, count, ttl

    def headers(self, count: int, ttl: int) -> dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(max(0, self.limit - count)),
            "RateLimit-Reset": str(ttl),
        }


class RateLimitExceeded(Exception):
    """Client has used up its window"""

    def __init__(self, retry_after: int, headers: dict[str, str]):
        super().__init__(RATE_LIMIT_MESSAGE)
        self.retry_after = retry_after
        self.headers = headers


def is_rate_limited_path(path: str) -> bool:
    return path == API_PREFIX or path.startswith(API_PREFIX + "/")


def enforce_rate_limit(request: Request) -> dict[str, str]:
    """
    Count the request against the app's RateLimiter.

    Returns:
        RateLimit-* headers for the response

    Raises:
        RateLimitExceeded: Once the client is over the limit
    """
    limiter: RateLimiter = request.app.state.rate_limiter
    client_ip = get_client_ip(request)

    is_allowed, current_count, ttl = limiter.hit(client_ip)
    headers = limiter.headers(current_count, ttl)

    if not is_allowed:
        logger.warning(
            f"🚫 Rate limit EXCEEDED for {client_ip} - {current_count}/{limiter.limit} requests"
        )
        raise RateLimitExceeded(ttl, headers)
    return headers
