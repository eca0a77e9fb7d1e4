# backend/offleash/services/availability/__init__.py
"""
Walker availability.

Resolver: working hours − bookings − blocking blocks → open intervals
Generator: open intervals → quantized, travel-annotated slots
Travel cache: Redis hashes in front of the routing provider
"""

from .config import AvailabilityConfig, TrafficConfig, get_availability_config, get_traffic_config
from .intervals import Interval, subtract, subtract_all
from .resolver import open_intervals, resolve_open_intervals
from .generator import AvailableSlot, ScheduledVisit, generate_slots
from .travel_cache import TravelCacheEntry, TravelEstimate, TravelTimeRedisStore, TravelTimeService
from .engine import WalkerSlots, find_available_slots, find_walker_slots

__all__ = [
    "AvailabilityConfig",
    "TrafficConfig",
    "get_availability_config",
    "get_traffic_config",
    "Interval",
    "subtract",
    "subtract_all",
    "open_intervals",
    "resolve_open_intervals",
    "AvailableSlot",
    "ScheduledVisit",
    "generate_slots",
    "TravelCacheEntry",
    "TravelEstimate",
    "TravelTimeRedisStore",
    "TravelTimeService",
    "WalkerSlots",
    "find_available_slots",
    "find_walker_slots",
]
