# ==================== UTILS/EXCEPTIONS.PY ====================
from rest_framework.exceptions import APIException
from rest_framework import status


# ---------- Not found ----------

class ResourceNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Requested resource was not found.'
    default_code = 'not_found'


class StationNotFound(ResourceNotFound):
    default_detail = 'Metro station not found.'
    default_code = 'station_not_found'


class LotNotFound(ResourceNotFound):
    default_detail = 'Parking lot not found.'
    default_code = 'lot_not_found'


class SlotNotFound(ResourceNotFound):
    default_detail = 'Parking slot not found.'
    default_code = 'slot_not_found'


class ReservationNotFound(ResourceNotFound):
    default_detail = 'Reservation not found.'
    default_code = 'reservation_not_found'


class DriverNotFound(ResourceNotFound):
    default_detail = 'Driver not found.'
    default_code = 'driver_not_found'


class VehicleNotFound(ResourceNotFound):
    default_detail = 'Vehicle not found or not registered.'
    default_code = 'vehicle_not_found'


class RideNotFound(ResourceNotFound):
    default_detail = 'Ride not found.'
    default_code = 'ride_not_found'


# ---------- Validation ----------

class InvalidRequest(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request.'
    default_code = 'validation_error'


class InvalidTimeWindow(InvalidRequest):
    default_detail = 'Start time must be before end time.'
    default_code = 'invalid_time_window'


class InvalidSeatCount(InvalidRequest):
    default_detail = 'Invalid number of seats for the selected vehicle type.'
    default_code = 'invalid_seat_count'


class SlotLotMismatch(InvalidRequest):
    default_detail = 'Parking slot does not belong to the specified parking lot.'
    default_code = 'slot_lot_mismatch'


# ---------- Conflicts ----------

class BookingConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Booking conflicts with existing bookings.'
    default_code = 'booking_conflict'


class SlotUnavailable(BookingConflict):
    default_detail = 'Parking slot is not available for the selected time.'
    default_code = 'slot_unavailable'

    def __init__(self, detail=None, code=None, reason=None):
        super().__init__(detail, code)
        self.reason = reason


class InvalidAmendment(BookingConflict):
    default_detail = 'Reservation time cannot be updated as requested.'
    default_code = 'invalid_amendment'


class NoAvailableVehicle(BookingConflict):
    default_detail = 'No available vehicle found. Please try again later or choose a different vehicle type.'
    default_code = 'no_available_vehicle'


class NoSuitableSharedRide(BookingConflict):
    default_detail = ('No suitable shared rides available at this time. '
                      'Please try again later or book a private ride.')
    default_code = 'no_suitable_shared_ride'


class VehicleAlreadyAssigned(BookingConflict):
    default_detail = 'Vehicle is already assigned to another driver.'
    default_code = 'vehicle_already_assigned'


class DuplicateResource(BookingConflict):
    default_detail = 'A resource with these identifiers already exists.'
    default_code = 'duplicate_resource'


# ---------- Invalid state transitions ----------

class InvalidState(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Operation not allowed in the current state.'
    default_code = 'invalid_state'


class AlreadyPaid(InvalidState):
    default_detail = 'Payment has already been completed.'
    default_code = 'already_paid'


class ResourceInUse(InvalidState):
    default_detail = 'Resource is in use and cannot be changed.'
    default_code = 'resource_in_use'


# ---------- Payments ----------

class PaymentFailed(APIException):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = 'Payment processing failed.'
    default_code = 'payment_failed'


class InsufficientBalance(PaymentFailed):
    default_detail = 'Insufficient wallet balance.'
    default_code = 'insufficient_balance'
