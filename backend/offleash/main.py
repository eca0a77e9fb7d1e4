import logging

from fastapi import Depends, FastAPI
from redis import Redis, RedisError

from .config import settings
from .redis_client import get_redis
from .routers import availability, bookings, calendar, recurring_bookings, travel_time, working_hours

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Offleash Scheduling API")

app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(calendar.router)
app.include_router(recurring_bookings.router)
app.include_router(working_hours.router)
app.include_router(travel_time.router)


@app.get("/health")
def health(redis: Redis = Depends(get_redis)):
    try:
        redis_ok = bool(redis.ping())
    except RedisError:
        redis_ok = False
    return {"status": "ok", "redis": redis_ok}
