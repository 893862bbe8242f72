# ==================== UTILS/PRICING.PY ====================
"""Parking and ride pricing.

Everything here is a pure function of its arguments. Amounts are returned as
whole-rupee ``Decimal`` values.
"""
import math
from decimal import Decimal, ROUND_HALF_UP

# (availability percentage strictly below, multiplier), checked in order
CONTENTION_TIERS = (
    (10, Decimal('1.25')),
    (40, Decimal('1.15')),
)
DEFAULT_MULTIPLIER = Decimal('1.0')

RIDE_RATE_PER_KM = 2 * 10
SHARED_RIDE_SURCHARGE = Decimal('1.25')


def round_amount(value):
    """Round half up to a whole currency unit"""
    return Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)


def price_multiplier(availability_percentage):
    for threshold, multiplier in CONTENTION_TIERS:
        if availability_percentage < threshold:
            return multiplier
    return DEFAULT_MULTIPLIER


def duration_hours(start, end):
    return Decimal(str((end - start).total_seconds())) / Decimal(3600)


def parking_price(base_price_per_hour, multiplier, hours):
    if hours <= 0:
        raise ValueError('Parking duration must be positive')
    return round_amount(Decimal(str(base_price_per_hour)) * Decimal(str(multiplier)) * Decimal(str(hours)))


def ride_base_fare(distance_km, vehicle_capacity):
    if distance_km <= 0:
        raise ValueError('Ride distance must be positive')
    return math.ceil(distance_km) * RIDE_RATE_PER_KM * vehicle_capacity


def ride_fare(distance_km, vehicle_capacity, seats_booked, is_shared):
    """Private rides pay for the whole vehicle; shared rides pay their seat
    share plus the sharing surcharge, rounded up."""
    base_fare = ride_base_fare(distance_km, vehicle_capacity)
    if not is_shared:
        return Decimal(base_fare)

    # divide last so whole shares stay exact
    share = Decimal(base_fare) * Decimal(seats_booked) * SHARED_RIDE_SURCHARGE / Decimal(vehicle_capacity)
    return Decimal(math.ceil(share))


def loyalty_points(amount, percent):
    return int(round_amount(Decimal(str(amount)) * Decimal(percent) / Decimal(100)))
