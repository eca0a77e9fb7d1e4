# backend/offleash/dependencies.py
"""
Shared FastAPI dependencies that assemble services from infrastructure.
"""

from fastapi import Depends
from redis import Redis

from .redis_client import get_redis
from .services.availability import TravelTimeRedisStore, TravelTimeService
from .services.clock import Clock, get_clock
from .services.routing import RoutingProvider, get_routing_provider


def get_travel_service(
    redis: Redis = Depends(get_redis),
    provider: RoutingProvider | None = Depends(get_routing_provider),
    clock: Clock = Depends(get_clock),
) -> TravelTimeService:
    return TravelTimeService(TravelTimeRedisStore(redis, clock), provider, clock)
