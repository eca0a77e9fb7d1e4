from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata

# All DateTime columns hold naive UTC instants.

ACTIVE_BOOKING_FILTER = "status != 'cancelled'"


class Organizations(Base):
    __tablename__ = 'organizations'

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    settings = Column(Text, nullable=False, server_default=text("'{}'"))
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    users = relationship('Users', back_populates='organization')
    services = relationship('Services', back_populates='organization')
    locations = relationship('Locations', back_populates='organization')


class Users(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    organization_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text)
    email = Column(Text)
    role = Column(Enum('customer', 'walker', 'admin', name='user_role'), nullable=False, server_default=text("'customer'"))
    timezone = Column(Text, nullable=False, server_default=text("'America/Denver'"))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    organization = relationship('Organizations', back_populates='users')
    working_hours = relationship('WorkingHours', back_populates='walker')
    blocks = relationship('Blocks', back_populates='walker')

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Locations(Base):
    __tablename__ = 'locations'

    id = Column(Integer, primary_key=True)
    organization_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    address = Column(Text, nullable=False)
    city = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    notes = Column(Text)

    organization = relationship('Organizations', back_populates='locations')


class Services(Base):
    __tablename__ = 'services'

    id = Column(Integer, primary_key=True)
    organization_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    base_price_cents = Column(Integer, nullable=False, server_default=text('0'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    description = Column(Text)

    organization = relationship('Organizations', back_populates='services')


class WorkingHours(Base):
    __tablename__ = 'working_hours'
    __table_args__ = (
        UniqueConstraint('walker_id', 'day_of_week'),
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='valid_day_of_week'),
        CheckConstraint('end_time > start_time', name='valid_working_hours'),
    )

    id = Column(Integer, primary_key=True)
    walker_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Text, nullable=False)  # "HH:MM", walker local time
    end_time = Column(Text, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    updated_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    walker = relationship('Users', back_populates='working_hours')


class Blocks(Base):
    __tablename__ = 'blocks'
    __table_args__ = (
        CheckConstraint('end_time > start_time', name='valid_block_times'),
        Index('idx_blocks_time_range', 'walker_id', 'start_time', 'end_time'),
    )

    id = Column(Integer, primary_key=True)
    walker_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    reason = Column(Text, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_blocking = Column(Integer, nullable=False, server_default=text('1'))
    recurrence_rule = Column(Text)  # WEEKLY:<days>:<weeks|INDEFINITE>
    series_key = Column(Text)  # groups occurrences of one recurring request
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    walker = relationship('Users', back_populates='blocks')


class RecurringBookingSeries(Base):
    __tablename__ = 'recurring_booking_series'
    __table_args__ = (
        CheckConstraint(
            '(end_date IS NOT NULL AND total_occurrences IS NULL) OR '
            '(end_date IS NULL AND total_occurrences IS NOT NULL)',
            name='valid_end_condition',
        ),
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='valid_series_day_of_week'),
    )

    id = Column(Integer, primary_key=True)
    organization_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    customer_id = Column(ForeignKey('users.id'), nullable=False)
    walker_id = Column(ForeignKey('users.id'), nullable=False)
    service_id = Column(ForeignKey('services.id'), nullable=False)
    location_id = Column(ForeignKey('locations.id'), nullable=False)
    frequency = Column(Enum('weekly', 'bi_weekly', 'monthly', name='recurrence_frequency'), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    time_of_day = Column(Text, nullable=False)  # "HH:MM", series timezone
    timezone = Column(Text, nullable=False, server_default=text("'America/Denver'"))
    start_date = Column(Date, nullable=False)
    end_date = Column(Date)
    total_occurrences = Column(Integer)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    status = Column(Text, nullable=False, server_default=text("'requested'"))
    price_cents_per_booking = Column(Integer, nullable=False, server_default=text('0'))
    default_notes = Column(Text)
    idempotency_key = Column(Text, unique=True)
    report = Column(Text)  # JSON of the materialization report
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    bookings = relationship('Bookings', back_populates='recurring_series', order_by='Bookings.scheduled_start')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        CheckConstraint('scheduled_end > scheduled_start', name='valid_booking_times'),
        Index(
            'idx_booking_uniqueness',
            'customer_id', 'service_id', 'scheduled_start',
            unique=True,
            sqlite_where=text(ACTIVE_BOOKING_FILTER),
            postgresql_where=text(ACTIVE_BOOKING_FILTER),
        ),
        Index('idx_bookings_walker_range', 'walker_id', 'scheduled_start', 'scheduled_end'),
    )

    id = Column(Integer, primary_key=True)
    organization_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    customer_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    walker_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id'), nullable=False)
    location_id = Column(ForeignKey('locations.id'), nullable=False)
    status = Column(
        Enum('pending', 'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show', name='booking_status'),
        nullable=False,
        server_default=text("'pending'"),
    )
    scheduled_start = Column(DateTime, nullable=False)
    scheduled_end = Column(DateTime, nullable=False)
    price_cents = Column(Integer, nullable=False, server_default=text('0'))
    notes = Column(Text)
    cancel_reason = Column(Text)
    recurring_series_id = Column(ForeignKey('recurring_booking_series.id', ondelete='SET NULL'))
    occurrence_number = Column(Integer)
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    location = relationship('Locations')
    recurring_series = relationship('RecurringBookingSeries', back_populates='bookings')
