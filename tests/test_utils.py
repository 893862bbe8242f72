from datetime import timedelta
from decimal import Decimal

from django.test import SimpleTestCase

from utils.distance_calculator import DistanceCalculator
from utils.overlap import any_overlap, overlaps
from utils.pricing import (
    duration_hours, loyalty_points, parking_price, price_multiplier, ride_base_fare, ride_fare, round_amount,
)
from .factories import NOW


class OverlapTestCase(SimpleTestCase):
    def test_intersecting_windows_overlap(self):
        self.assertTrue(overlaps(NOW, NOW + timedelta(hours=2), NOW + timedelta(hours=1), NOW + timedelta(hours=3)))

    def test_contained_window_overlaps(self):
        self.assertTrue(overlaps(NOW, NOW + timedelta(hours=4), NOW + timedelta(hours=1), NOW + timedelta(hours=2)))

    def test_touching_windows_do_not_overlap(self):
        self.assertFalse(overlaps(NOW, NOW + timedelta(hours=1), NOW + timedelta(hours=1), NOW + timedelta(hours=2)))
        self.assertFalse(overlaps(NOW + timedelta(hours=1), NOW + timedelta(hours=2), NOW, NOW + timedelta(hours=1)))

    def test_any_overlap(self):
        windows = [
            (NOW, NOW + timedelta(hours=1)),
            (NOW + timedelta(hours=3), NOW + timedelta(hours=4)),
        ]
        self.assertFalse(any_overlap(NOW + timedelta(hours=1), NOW + timedelta(hours=3), windows))
        self.assertTrue(any_overlap(NOW + timedelta(minutes=30), NOW + timedelta(hours=2), windows))
        self.assertFalse(any_overlap(NOW, NOW + timedelta(hours=1), []))


class PricingTestCase(SimpleTestCase):
    def test_multiplier_tiers(self):
        self.assertEqual(price_multiplier(0), Decimal('1.25'))
        self.assertEqual(price_multiplier(9.99), Decimal('1.25'))
        self.assertEqual(price_multiplier(10), Decimal('1.15'))
        self.assertEqual(price_multiplier(39.9), Decimal('1.15'))
        self.assertEqual(price_multiplier(40), Decimal('1.0'))
        self.assertEqual(price_multiplier(100), Decimal('1.0'))

    def test_parking_price_rounds_half_up(self):
        hours = duration_hours(NOW, NOW + timedelta(hours=2))
        self.assertEqual(parking_price(50, Decimal('1.0'), hours), Decimal('100'))
        self.assertEqual(parking_price(50, Decimal('1.15'), hours), Decimal('115'))
        # 50 * 1.25 * 0.5 = 31.25
        half_hour = duration_hours(NOW, NOW + timedelta(minutes=30))
        self.assertEqual(parking_price(50, Decimal('1.25'), half_hour), Decimal('31'))
        self.assertEqual(round_amount(Decimal('12.5')), Decimal('13'))

    def test_parking_price_requires_positive_duration(self):
        with self.assertRaises(ValueError):
            parking_price(50, Decimal('1.0'), Decimal(0))

    def test_private_ride_pays_whole_vehicle(self):
        # ceil(3.2) = 4 km, 4 * 20 * 4 seats
        self.assertEqual(ride_base_fare(3.2, 4), 320)
        self.assertEqual(ride_fare(3.2, 4, 1, False), Decimal('320'))

    def test_shared_ride_pays_seat_share_with_surcharge(self):
        # 320 * 2 / 4 * 1.25 = 200
        self.assertEqual(ride_fare(3.2, 4, 2, True), Decimal('200'))
        # 5 km e-rickshaw: 300 * 1 / 3 * 1.25 = 125
        self.assertEqual(ride_fare(5, 3, 1, True), Decimal('125'))

    def test_ride_fare_requires_positive_distance(self):
        with self.assertRaises(ValueError):
            ride_base_fare(0, 4)

    def test_loyalty_points(self):
        self.assertEqual(loyalty_points(Decimal('100'), 10), 10)
        self.assertEqual(loyalty_points(Decimal('115'), 5), 6)
        self.assertEqual(loyalty_points(Decimal('0'), 15), 0)


class DistanceCalculatorTestCase(SimpleTestCase):
    class Place:
        def __init__(self, name, latitude, longitude):
            self.name = name
            self.latitude = latitude
            self.longitude = longitude

    def test_same_point_is_zero(self):
        self.assertEqual(DistanceCalculator.get_distance_km(28.6, 77.2, 28.6, 77.2), 0)

    def test_one_degree_of_latitude(self):
        # 6371 * pi / 180
        self.assertAlmostEqual(DistanceCalculator.get_distance_km(0, 0, 1, 0), 111.195, places=2)

    def test_nearest_filters_and_sorts(self):
        far = self.Place('far', 29.6, 77.2)
        near = self.Place('near', 28.61, 77.2)
        nearer = self.Place('nearer', 28.601, 77.2)

        found = DistanceCalculator.nearest([far, near, nearer], 28.6, 77.2, radius_km=10)

        self.assertEqual([place.name for place in found], ['nearer', 'near'])
        self.assertLess(found[0].distance_km, found[1].distance_km)

    def test_nearest_respects_limit(self):
        places = [self.Place(str(i), 28.6 + i * 0.001, 77.2) for i in range(5)]
        self.assertEqual(len(DistanceCalculator.nearest(places, 28.6, 77.2, radius_km=10, limit=3)), 3)
