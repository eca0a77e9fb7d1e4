# backend/offleash/services/availability/travel_cache.py
"""
Travel-time cache (Redis hashes) and the cache-through lookup.

Key format: travel:{origin_location_id}:{destination_location_id}
Value: Hash {duration_minutes, distance_meters, fetched_at, expires_at}
       (timestamps are unix seconds, UTC).

Pairs are ordered: A→B and B→A are separate entries.
Staleness is decided against the injected clock; Redis key expiry only
evicts entries nobody reads any more.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx
from redis import Redis, RedisError

from ..clock import Clock, SystemClock
from ..routing import Coordinates, RoutingError, RoutingProvider
from ..timeutils import DEFAULT_TIMEZONE, to_local
from .config import TrafficConfig, get_traffic_config

logger = logging.getLogger(__name__)

# Seconds the Redis key outlives expires_at
EXPIRY_GRACE_SECONDS = 60


@dataclass(frozen=True)
class TravelCacheEntry:
    origin_location_id: int
    destination_location_id: int
    duration_minutes: int
    distance_meters: int
    fetched_at: datetime
    expires_at: datetime

    def is_stale(self, now: datetime) -> bool:
        return now > self.expires_at


class TravelTimeRedisStore:
    """Redis storage wrapper for travel cache entries."""

    KEY_PREFIX = "travel"

    def __init__(self, redis: Redis, clock: Clock | None = None):
        self.redis = redis
        self.clock = clock or SystemClock()

    def _key(self, origin_id: int, destination_id: int) -> str:
        return f"{self.KEY_PREFIX}:{origin_id}:{destination_id}"

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, origin_id: int, destination_id: int) -> TravelCacheEntry | None:
        """Entry for the ordered pair, or None when absent or stale."""
        key = self._key(origin_id, destination_id)
        raw = self.redis.hgetall(key)
        if not raw:
            return None

        data = {
            (k.decode() if isinstance(k, bytes) else k): (v.decode() if isinstance(v, bytes) else v)
            for k, v in raw.items()
        }
        try:
            entry = TravelCacheEntry(
                origin_location_id=origin_id,
                destination_location_id=destination_id,
                duration_minutes=int(data["duration_minutes"]),
                distance_meters=int(data["distance_meters"]),
                fetched_at=datetime.fromtimestamp(float(data["fetched_at"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(float(data["expires_at"]), tz=timezone.utc),
            )
        except (KeyError, ValueError):
            logger.warning(f"Dropping malformed travel cache entry {key}")
            self.redis.delete(key)
            return None

        if entry.is_stale(self.clock.now()):
            self.redis.delete(key)
            return None
        return entry

    # ── Write ────────────────────────────────────────────────────────────

    def set(
        self,
        origin_id: int,
        destination_id: int,
        duration_minutes: int,
        distance_meters: int,
        ttl: timedelta,
    ) -> TravelCacheEntry:
        """Overwrite the entry for the pair (last write wins)."""
        now = self.clock.now()
        entry = TravelCacheEntry(
            origin_location_id=origin_id,
            destination_location_id=destination_id,
            duration_minutes=duration_minutes,
            distance_meters=distance_meters,
            fetched_at=now,
            expires_at=now + ttl,
        )
        key = self._key(origin_id, destination_id)

        pipe = self.redis.pipeline()
        pipe.delete(key)
        pipe.hset(key, mapping={
            "duration_minutes": duration_minutes,
            "distance_meters": distance_meters,
            "fetched_at": now.timestamp(),
            "expires_at": entry.expires_at.timestamp(),
        })
        pipe.expire(key, int(ttl.total_seconds()) + EXPIRY_GRACE_SECONDS)
        pipe.execute()
        return entry

    # ── Delete ───────────────────────────────────────────────────────────

    def delete(self, origin_id: int, destination_id: int) -> int:
        return self.redis.delete(self._key(origin_id, destination_id))

    def invalidate_location(self, location_id: int) -> int:
        """
        Delete every pair with location_id as origin or destination.

        Returns:
            Number of deleted keys.
        """
        keys = set(self.redis.scan_iter(match=f"{self.KEY_PREFIX}:{location_id}:*", count=500))
        keys |= set(self.redis.scan_iter(match=f"{self.KEY_PREFIX}:*:{location_id}", count=500))
        if not keys:
            return 0
        return self.redis.delete(*keys)


@dataclass(frozen=True)
class TravelEstimate:
    """
    Result of a travel lookup.

    minutes is None when the provider could not answer.
    source: "same_location" | "cache" | "provider" | "unavailable"
    """
    minutes: int | None
    distance_meters: int | None
    source: str

    @property
    def is_known(self) -> bool:
        return self.minutes is not None


class TravelTimeService:
    """
    Cache-through travel lookup.

    ✓ Same location → 0 minutes, no I/O
    ✓ Cache hit → cached duration
    ✓ Miss → provider → write back
    ✗ Provider or cache failure → logged, never raised
    """

    def __init__(
        self,
        store: TravelTimeRedisStore,
        provider: RoutingProvider | None,
        clock: Clock | None = None,
        traffic: TrafficConfig | None = None,
        tz_name: str = DEFAULT_TIMEZONE,
    ):
        self.store = store
        self.provider = provider
        self.clock = clock or store.clock
        self.traffic = traffic or get_traffic_config()
        self.tz_name = tz_name

    def lookup(
        self,
        origin,
        destination,
        at: datetime | None = None,
        tz_name: str | None = None,
    ) -> TravelEstimate:
        """
        Travel time from origin to destination location rows.

        `at` is the aware local departure time; its hour decides whether the
        peak multiplier applies. Without `at` no multiplier is applied, and the
        cache TTL is picked from the fetch hour in tz_name (default: the
        service timezone).
        """
        if origin.id == destination.id:
            return TravelEstimate(minutes=0, distance_meters=0, source="same_location")

        entry = self._cached(origin.id, destination.id)
        if entry is not None:
            return TravelEstimate(
                minutes=self._adjust(entry.duration_minutes, at),
                distance_meters=entry.distance_meters,
                source="cache",
            )

        if self.provider is None:
            logger.warning(f"No routing provider configured, travel {origin.id}→{destination.id} unknown")
            return TravelEstimate(minutes=None, distance_meters=None, source="unavailable")

        try:
            route = self.provider.travel_time(
                Coordinates(origin.latitude, origin.longitude),
                Coordinates(destination.latitude, destination.longitude),
            )
        except (RoutingError, httpx.HTTPError) as e:
            logger.warning(f"Routing provider failed for {origin.id}→{destination.id}: {e}")
            return TravelEstimate(minutes=None, distance_meters=None, source="unavailable")

        self._write(origin.id, destination.id, route.duration_minutes, route.distance_meters, at, tz_name)
        return TravelEstimate(
            minutes=self._adjust(route.duration_minutes, at),
            distance_meters=route.distance_meters,
            source="provider",
        )

    def invalidate_location(self, location_id: int) -> int:
        deleted = self.store.invalidate_location(location_id)
        logger.info(f"Travel cache invalidated for location {location_id}: {deleted} keys")
        return deleted

    # ── Helpers ──────────────────────────────────────────────────────────

    def _cached(self, origin_id: int, destination_id: int) -> TravelCacheEntry | None:
        try:
            return self.store.get(origin_id, destination_id)
        except RedisError as e:
            logger.warning(f"Travel cache read failed, treating as miss: {e}")
            return None

    def _write(self, origin_id, destination_id, minutes, meters, at, tz_name) -> None:
        fetch_hour = self._local_hour(self.clock.now(), at, tz_name or self.tz_name)
        ttl = timedelta(minutes=self.traffic.ttl_minutes(fetch_hour))
        try:
            self.store.set(origin_id, destination_id, minutes, meters, ttl)
        except RedisError as e:
            logger.warning(f"Travel cache write skipped: {e}")

    def _adjust(self, minutes: int, at: datetime | None) -> int:
        if at is None:
            return minutes
        return self.traffic.adjust(minutes, at.hour)

    @staticmethod
    def _local_hour(instant: datetime, at: datetime | None, tz_name: str) -> int:
        if at is not None and at.tzinfo is not None:
            return instant.astimezone(at.tzinfo).hour
        return to_local(instant, tz_name).hour
