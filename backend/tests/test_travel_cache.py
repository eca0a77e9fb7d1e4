from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
from redis import ConnectionError as RedisConnectionError

from offleash.services.availability import TravelTimeRedisStore, TravelTimeService
from offleash.services.availability.config import TrafficConfig
from offleash.services.clock import FixedClock

HOME = SimpleNamespace(id=1, latitude=39.7392, longitude=-104.9903)
PARK = SimpleNamespace(id=2, latitude=39.7508, longitude=-104.9966)
VET = SimpleNamespace(id=3, latitude=39.7294, longitude=-104.8319)

DENVER = ZoneInfo("America/Denver")


@pytest.fixture
def store(redis, clock):
    return TravelTimeRedisStore(redis, clock)


@pytest.fixture
def service(store, routing, clock):
    return TravelTimeService(store, routing, clock)


# ── Store ────────────────────────────────────────────────────────────────────


def test_set_then_get(store, clock):
    store.set(1, 2, 14, 5200, timedelta(hours=24))
    entry = store.get(1, 2)
    assert entry.duration_minutes == 14
    assert entry.distance_meters == 5200
    assert entry.fetched_at == clock.now()
    assert entry.expires_at == clock.now() + timedelta(hours=24)


def test_pairs_are_ordered(store):
    store.set(1, 2, 14, 5200, timedelta(hours=1))
    assert store.get(2, 1) is None


def test_stale_entry_is_a_miss_and_is_deleted(store, redis, clock):
    store.set(1, 2, 14, 5200, timedelta(minutes=30))
    clock.advance(minutes=30)
    assert store.get(1, 2) is not None

    clock.advance(minutes=1)
    assert store.get(1, 2) is None
    assert not redis.exists("travel:1:2")


def test_last_write_wins(store):
    store.set(1, 2, 14, 5200, timedelta(hours=1))
    store.set(1, 2, 22, 6100, timedelta(hours=1))
    assert store.get(1, 2).duration_minutes == 22


def test_redis_key_outlives_entry(store, redis):
    store.set(1, 2, 14, 5200, timedelta(minutes=30))
    assert 30 * 60 < redis.ttl("travel:1:2") <= 31 * 60


def test_invalidate_location_removes_both_directions(store, redis):
    store.set(1, 2, 10, 1000, timedelta(hours=1))
    store.set(2, 1, 11, 1000, timedelta(hours=1))
    store.set(2, 3, 12, 1000, timedelta(hours=1))
    store.set(13, 2, 12, 1000, timedelta(hours=1))

    assert store.invalidate_location(1) == 2
    assert store.get(1, 2) is None
    assert store.get(2, 1) is None
    assert store.get(2, 3) is not None
    assert store.get(13, 2) is not None


def test_invalidate_unknown_location(store):
    assert store.invalidate_location(99) == 0


# ── Cache-through lookup ─────────────────────────────────────────────────────


def test_same_location_is_zero_without_io(service, routing):
    estimate = service.lookup(HOME, HOME)
    assert estimate.minutes == 0
    assert estimate.source == "same_location"
    assert routing.calls == []


def test_miss_calls_provider_then_hits_cache(service, routing):
    first = service.lookup(HOME, PARK)
    second = service.lookup(HOME, PARK)

    assert first.source == "provider"
    assert second.source == "cache"
    assert first.minutes == second.minutes == 10
    assert len(routing.calls) == 1


def test_provider_failure_degrades(store, routing, clock):
    routing.fail = True
    service = TravelTimeService(store, routing, clock)

    estimate = service.lookup(HOME, VET)
    assert estimate.minutes is None
    assert estimate.source == "unavailable"
    assert store.get(1, 3) is None


def test_no_provider_configured(store, clock):
    estimate = TravelTimeService(store, None, clock).lookup(HOME, PARK)
    assert not estimate.is_known


def test_peak_multiplier_rounds_up(service, routing):
    routing.minutes = 17
    rush = datetime(2026, 10, 26, 8, 0, tzinfo=DENVER)
    midday = datetime(2026, 10, 26, 12, 0, tzinfo=DENVER)

    assert service.lookup(HOME, PARK, rush).minutes == 23  # ceil(17 * 1.3)
    assert service.lookup(HOME, PARK, midday).minutes == 17


def test_ttl_depends_on_fetch_hour(store, routing, clock):
    # clock is 08:00 in Denver, a peak hour
    service = TravelTimeService(store, routing, clock)
    service.lookup(HOME, PARK, datetime(2026, 10, 26, 12, 0, tzinfo=DENVER))
    entry = store.get(1, 2)
    assert entry.expires_at - entry.fetched_at == timedelta(minutes=240)


def test_off_peak_ttl(redis, routing):
    night = FixedClock(datetime(2026, 10, 20, 4, 0, tzinfo=timezone.utc))  # 22:00 Denver
    store = TravelTimeRedisStore(redis, night)
    TravelTimeService(store, routing, night).lookup(HOME, PARK, datetime(2026, 10, 26, 12, 0, tzinfo=DENVER))
    entry = store.get(1, 2)
    assert entry.expires_at - entry.fetched_at == timedelta(minutes=1440)


def test_ttl_without_visit_time_uses_local_fetch_hour(store, redis, routing, clock):
    # 14:00 UTC is 08:00 in Denver, a peak hour
    TravelTimeService(store, routing, clock).lookup(HOME, PARK)
    entry = store.get(1, 2)
    assert entry.expires_at - entry.fetched_at == timedelta(minutes=240)
    assert redis.ttl("travel:1:2") <= 240 * 60 + 60


def test_ttl_without_visit_time_honours_given_zone(redis, routing):
    # 04:00 UTC: 22:00 in Denver, 17:00 in Auckland
    night = FixedClock(datetime(2026, 10, 20, 4, 0, tzinfo=timezone.utc))
    store = TravelTimeRedisStore(redis, night)
    service = TravelTimeService(store, routing, night)

    service.lookup(HOME, PARK)
    service.lookup(PARK, HOME, tz_name="Pacific/Auckland")

    assert store.get(1, 2).expires_at - store.get(1, 2).fetched_at == timedelta(minutes=1440)
    assert store.get(2, 1).expires_at - store.get(2, 1).fetched_at == timedelta(minutes=240)


class BrokenRedis:
    def hgetall(self, key):
        raise RedisConnectionError("redis down")

    def pipeline(self):
        raise RedisConnectionError("redis down")


def test_cache_failure_falls_through_to_provider(routing, clock):
    service = TravelTimeService(TravelTimeRedisStore(BrokenRedis(), clock), routing, clock)
    estimate = service.lookup(HOME, PARK)
    assert estimate.minutes == 10
    assert estimate.source == "provider"


def test_custom_traffic_config(store, routing, clock):
    flat = TrafficConfig(peak_multiplier=1.0)
    service = TravelTimeService(store, routing, clock, traffic=flat)
    assert service.lookup(HOME, PARK, datetime(2026, 10, 26, 8, 0, tzinfo=DENVER)).minutes == 10


def test_traffic_config_validation():
    with pytest.raises(ValueError):
        TrafficConfig(peak_multiplier=0.5)
    with pytest.raises(ValueError):
        TrafficConfig(peak_hours=((9, 7),))
