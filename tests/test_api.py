from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from bookings.models import Reservation
from parking.models import MetroStation, ParkingSlot
from payments.services import WalletService
from rides.models import Driver
from .factories import NOW, make_driver, make_lot, make_reservation, make_slots, make_station, make_user, make_vehicle

START = NOW + timedelta(days=1)
END = START + timedelta(hours=2)


class AuthAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_register_creates_wallet_and_tokens(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'asha',
            'email': 'asha@test.com',
            'password': 'testpass123',
            'password_confirm': 'testpass123',
        })

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(Decimal(response.data['user']['wallet_balance']), 0)

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'asha', 'password': 'testpass123', 'password_confirm': 'different1',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login(self):
        make_user(username='ravi')
        response = self.client.post('/api/v1/auth/login/', {'username': 'ravi', 'password': 'testpass123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/api/v1/auth/login/', {'username': 'ravi', 'password': 'wrong'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_profile_requires_authentication(self):
        response = self.client.get('/api/v1/auth/profile/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ParkingAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.admin = make_user(is_staff=True)
        self.station = make_station()
        self.lot = make_lot(station=self.station)
        self.slots = make_slots(self.lot, 3)

    def test_station_search(self):
        make_station(name='Kashmere Gate')
        self.client.force_authenticate(user=self.user)

        response = self.client.get('/api/v1/metro-stations/search/', {'query': 'kashmere'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([station['name'] for station in response.data], ['Kashmere Gate'])

        response = self.client.get('/api/v1/metro-stations/search/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_nearby_stations(self):
        make_station(name='Far Away', latitude=19.07, longitude=72.87)
        self.client.force_authenticate(user=self.user)

        response = self.client.get('/api/v1/metro-stations/nearby/', {'lat': 28.63, 'lng': 77.22, 'radius': 5})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([station['name'] for station in response.data], ['Rajiv Chowk'])
        self.assertIsNotNone(response.data[0]['distance_km'])

    def test_only_staff_change_catalogue(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post('/api/v1/metro-stations/', {'name': 'New', 'latitude': 28.5, 'longitude': 77.1})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/api/v1/metro-stations/', {'name': 'New', 'latitude': 28.5, 'longitude': 77.1})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(MetroStation.objects.filter(name='New').exists())

    def test_station_in_use_cannot_be_deleted(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(f'/api/v1/metro-stations/{self.station.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_bulk_create_slots(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/api/v1/parking-slots/bulk-create/', {
            'lot': self.lot.id, 'zone': 'B', 'start_number': 1, 'count': 2,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['slots']), 2)
        self.assertTrue(ParkingSlot.objects.filter(lot=self.lot, slot_number='B2').exists())

    def test_lot_slots_grouped_by_zone(self):
        make_slots(self.lot, 1, zone='C')
        self.client.force_authenticate(user=self.user)

        response = self.client.get(f'/api/v1/parking-lots/{self.lot.id}/slots/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['zone_names'], ['A', 'C'])
        self.assertEqual(len(response.data['zones']['A']), 3)

    def test_lot_availability(self):
        make_reservation(self.user, self.slots[0], START)
        self.client.force_authenticate(user=self.user)

        response = self.client.get(f'/api/v1/parking-lots/{self.lot.id}/availability/', {
            'start_time': START.isoformat(), 'end_time': END.isoformat(),
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_count'], 3)
        self.assertEqual(response.data['available_count'], 2)
        self.assertEqual(response.data['zones']['A'][0]['reason'], 'reserved')

    def test_slot_availability_reports_restriction(self):
        slot = self.slots[1]
        slot.time_restrictions.create(
            start_time=START, end_time=END, reason='other', description='VIP event',
        )
        self.client.force_authenticate(user=self.user)

        response = self.client.get(f'/api/v1/parking-slots/{slot.id}/availability/', {
            'start_time': START.isoformat(), 'end_time': END.isoformat(),
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['available'])
        self.assertEqual(response.data['reason'], 'other')
        self.assertEqual(response.data['description'], 'VIP event')

    def test_slot_restrictions(self):
        self.client.force_authenticate(user=self.admin)
        slot = self.slots[0]

        response = self.client.post(f'/api/v1/parking-slots/{slot.id}/restrictions/', {
            'start_time': START.isoformat(), 'end_time': END.isoformat(), 'reason': 'other',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['time_restrictions']), 1)

        response = self.client.delete(f'/api/v1/parking-slots/{slot.id}/restrictions/0/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['time_restrictions'], [])

    def test_unknown_lot_is_404(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get('/api/v1/parking-lots/999999/availability/', {
            'start_time': START.isoformat(), 'end_time': END.isoformat(),
        })
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ReservationAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.lot = make_lot()
        self.slot = make_slots(self.lot, 1)[0]
        self.client.force_authenticate(user=self.user)

    def reserve(self, start=START, end=END):
        return self.client.post('/api/v1/reservations/', {
            'parking_lot': self.lot.id,
            'parking_slot': self.slot.id,
            'start_time': start.isoformat(),
            'end_time': end.isoformat(),
        }, format='json')

    def test_reserve_pay_and_cancel(self):
        response = self.reserve()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        reservation_id = response.data['id']

        self.assertEqual(self.reserve().status_code, status.HTTP_409_CONFLICT)

        WalletService.deposit(self.user, 500)
        response = self.client.post(f'/api/v1/reservations/{reservation_id}/payment/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reservation']['payment_status'], 'paid')

        response = self.client.post(f'/api/v1/reservations/{reservation_id}/payment/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post(f'/api/v1/reservations/{reservation_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['refund_reason'], 'full')
        self.assertEqual(Decimal(response.data['refund_amount']), Decimal('100'))

    def test_payment_without_funds(self):
        reservation_id = self.reserve().data['id']
        response = self.client.post(f'/api/v1/reservations/{reservation_id}/payment/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)

    def test_update_time(self):
        reservation = make_reservation(self.user, self.slot, START, payment_status='paid')
        response = self.client.put(f'/api/v1/reservations/{reservation.id}/update-time/', {
            'end_time': (START + timedelta(hours=1)).isoformat(),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['refund_amount']), Decimal('25'))

    def test_reservations_are_scoped_to_user(self):
        other = make_user()
        theirs = make_reservation(other, self.slot, START)

        response = self.client.get(f'/api/v1/reservations/{theirs.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.post(f'/api/v1/reservations/{theirs.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Reservation.objects.get(pk=theirs.pk).status, 'active')

    def test_slot_lot_mismatch(self):
        other_slot = make_slots(make_lot(name='Elsewhere'), 1, zone='Z')[0]
        response = self.client.post('/api/v1/reservations/', {
            'parking_lot': self.lot.id,
            'parking_slot': other_slot.id,
            'start_time': START.isoformat(),
            'end_time': END.isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class RideAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.admin = make_user(is_staff=True)
        self.station = make_station()
        self.driver = make_driver(make_vehicle(self.station, 'cab'))
        self.client.force_authenticate(user=self.user)

    def book(self, **extra):
        body = {
            'pickup': {'name': 'Rajiv Chowk Gate 7', 'latitude': 28.6328, 'longitude': 77.2197},
            'dropoff': {'name': 'Connaught Place', 'latitude': 28.6448, 'longitude': 77.2167},
            'ride_type': 'on-demand',
            'vehicle_type': 'cab',
            'seats': 2,
        }
        body.update(extra)
        return self.client.post('/api/v1/rides/', body, format='json')

    def test_book_and_complete(self):
        response = self.book()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['fare']), Decimal('160'))
        ride_id = response.data['id']

        WalletService.deposit(self.user, 500)
        with mock.patch('random.Random.randint', return_value=5):
            response = self.client.post(f'/api/v1/rides/{ride_id}/complete/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['ride']['status'], 'completed')
        self.assertEqual(response.data['loyalty_points_awarded'], 8)
        self.assertEqual(Driver.objects.get(pk=self.driver.pk).status, 'available')

    def test_invalid_seat_count(self):
        response = self.book(seats=5)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_no_vehicle(self):
        self.book()
        response = self.book()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_share_existing_ride(self):
        ride_id = self.book().data['id']
        response = self.client.patch(f'/api/v1/rides/{ride_id}/', {'is_shared': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_shared'])
        self.assertEqual(Decimal(response.data['fare']), Decimal('100'))

        response = self.client.get('/api/v1/rides/check-availability/', {
            'vehicle_type': 'cab', 'seats': 2, 'is_shared': 'true',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['shared_ride_available'])
        self.assertEqual(response.data['shared_ride']['remaining_seats'], 2)

    def test_check_private_availability(self):
        response = self.client.get('/api/v1/rides/check-availability/', {'vehicle_type': 'cab', 'seats': 1})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_available'])
        self.assertEqual(response.data['available_vehicles_count'], 1)

    def test_cancel(self):
        ride_id = self.book().data['id']
        response = self.client.post(f'/api/v1/rides/{ride_id}/cancel/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['ride']['status'], 'cancelled')
        self.assertEqual(Driver.objects.get(pk=self.driver.pk).status, 'available')

    def test_fleet_is_staff_only(self):
        response = self.client.get('/api/v1/drivers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/api/v1/vehicles/', {
            'type': 'shuttle', 'registration_number': 'DL1SH0001', 'model': 'Force Traveller',
            'base_station': self.station.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['capacity'], 8)

        response = self.client.get(f'/api/v1/vehicles/by-station/{self.station.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.post('/api/v1/drivers/', {
            'name': 'Sunil', 'phone_number': '+919811100011', 'license_number': 'DL-SUNIL-1',
            'vehicle': self.driver.vehicle_id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)


class WalletAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.client.force_authenticate(user=self.user)

    def test_add_money_and_history(self):
        response = self.client.post('/api/v1/wallet/add/', {'amount': '250'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['wallet']['balance']), Decimal('250'))

        response = self.client.get('/api/v1/wallet/')
        self.assertEqual(Decimal(response.data['balance']), Decimal('250'))

        response = self.client.get('/api/v1/wallet/transactions/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['transaction_type'], 'deposit')

    def test_redeem_points(self):
        response = self.client.post('/api/v1/wallet/redeem-points/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        WalletService.add_loyalty_points(self.user, 25)
        response = self.client.post('/api/v1/wallet/redeem-points/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['amount_added']), Decimal('5'))

    @mock.patch('payments.services.RazorpayService')
    def test_create_order_for_reservation(self, razorpay_cls):
        razorpay_cls.return_value.create_order.return_value = {'id': 'order_N9'}
        slot = make_slots(make_lot(), 1)[0]
        reservation = make_reservation(self.user, slot, START)

        response = self.client.post('/api/v1/payments/orders/', {'reservation_id': reservation.id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['razorpay_order_id'], 'order_N9')
        self.assertEqual(self.client.get('/api/v1/payments/').data[0]['status'], 'initiated')
