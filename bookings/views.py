# ==================== BOOKINGS/VIEWS.PY ====================
from rest_framework import viewsets, mixins, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from parking.services import SlotAllocator
from payments.serializers import PaymentMethodSerializer, PaymentSerializer
from .models import Reservation
from .serializers import ReservationSerializer, ReservationCreateSerializer, ReservationAmendSerializer
from .services import ReservationService


class ReservationViewSet(mixins.CreateModelMixin,
                         mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """Parking reservations of the signed-in user"""

    serializer_class = ReservationSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'payment_status', 'parking_lot']
    ordering_fields = ['created_at', 'start_time']
    ordering = ['-created_at']

    def get_queryset(self):
        return Reservation.objects.filter(user=self.request.user).select_related('parking_lot', 'parking_slot')

    def create(self, request, *args, **kwargs):
        """Reserve a slot

        Body: {"parking_lot": 1, "parking_slot": 4, "start_time": "...", "end_time": "..."}
        """
        serializer = ReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        reservation = SlotAllocator().reserve(
            data['parking_lot'], data['parking_slot'], data['start_time'], data['end_time'], request.user
        )
        return Response(ReservationSerializer(reservation).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        result = ReservationService().cancel(pk, request.user)
        return Response({
            'message': 'Reservation cancelled successfully',
            'reservation': ReservationSerializer(result.reservation).data,
            'refund_amount': str(result.refund_amount),
            'refund_reason': result.refund_reason,
        })

    @action(detail=True, methods=['post'])
    def payment(self, request, pk=None):
        """Pay for a reservation

        Body: {"payment_method": "wallet"} or razorpay checkout fields
        """
        serializer = PaymentMethodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ReservationService().pay(
            pk, request.user,
            payment_method=serializer.validated_data['payment_method'],
            gateway_data=serializer.gateway_data(),
        )
        return Response({
            'message': 'Payment completed successfully',
            'reservation': ReservationSerializer(result.reservation).data,
            'payment': PaymentSerializer(result.payment).data,
            'loyalty_points_awarded': result.loyalty_points_awarded,
        })

    @action(detail=True, methods=['put', 'post'], url_path='update-time')
    def update_time(self, request, pk=None):
        """Shorten the reservation window

        Body: {"start_time": "...", "end_time": "..."} (either may be omitted)
        """
        serializer = ReservationAmendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ReservationService().amend(
            pk, request.user,
            new_start=serializer.validated_data.get('start_time'),
            new_end=serializer.validated_data.get('end_time'),
        )
        return Response({
            'message': 'Reservation time updated successfully',
            'reservation': ReservationSerializer(result.reservation).data,
            'refund_amount': str(result.refund_amount),
        })
