# ==================== PAYMENTS/VIEWS.PY ====================
from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from django.conf import settings
import logging

from bookings.models import Reservation
from rides.models import Ride
from utils.exceptions import AlreadyPaid, InvalidState, ReservationNotFound, RideNotFound
from .models import Payment
from .serializers import (
    OrderCreateSerializer, PaymentSerializer, WalletDepositSerializer,
    WalletSerializer, WalletTransactionSerializer,
)
from .services import PaymentService, WalletService

logger = logging.getLogger(__name__)


class WalletViewSet(viewsets.ViewSet):
    """Balance, top-up, loyalty redemption and history of the user's wallet"""
    permission_classes = [permissions.IsAuthenticated]

    def retrieve(self, request):
        wallet = WalletService.get_or_create_wallet(request.user)
        return Response(WalletSerializer(wallet).data)

    @action(detail=False, methods=['post'])
    def add(self, request):
        """Add money to the wallet

        Body: {"amount": 500}
        """
        serializer = WalletDepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        wallet = WalletService.deposit(request.user, serializer.validated_data['amount'])
        return Response({
            'message': 'Money added to wallet successfully',
            'wallet': WalletSerializer(wallet).data,
        })

    @action(detail=False, methods=['post'])
    def redeem_points(self, request):
        wallet, amount, points = WalletService.redeem_loyalty_points(request.user)
        return Response({
            'message': f'Redeemed {points} loyalty points',
            'amount_added': str(amount),
            'wallet': WalletSerializer(wallet).data,
        })

    @action(detail=False, methods=['get'])
    def transactions(self, request):
        wallet = WalletService.get_or_create_wallet(request.user)
        serializer = WalletTransactionSerializer(wallet.transactions.all(), many=True)
        return Response(serializer.data)


class PaymentViewSet(viewsets.ViewSet):
    """Payment history and Razorpay order creation"""
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request):
        payments = Payment.objects.filter(user=request.user)
        return Response(PaymentSerializer(payments, many=True).data)

    @action(detail=False, methods=['post'])
    def orders(self, request):
        """Open a Razorpay order for a reservation or a ride

        Body: {"reservation_id": 1} or {"ride_id": 1}
        """
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        reservation = ride = None
        if data.get('reservation_id'):
            reservation = Reservation.objects.filter(pk=data['reservation_id'], user=request.user).first()
            if reservation is None:
                raise ReservationNotFound()
            if reservation.payment_status != 'pending':
                raise AlreadyPaid()
            if reservation.status != 'active':
                raise InvalidState('Only active reservations can be paid.')
            amount = reservation.price
        else:
            ride = Ride.objects.filter(pk=data['ride_id'], user=request.user).first()
            if ride is None:
                raise RideNotFound()
            if ride.payment_status != 'pending':
                raise AlreadyPaid()
            if ride.status != 'active':
                raise InvalidState('Only active rides can be paid.')
            amount = ride.fare

        payment, razorpay_order = PaymentService.create_order(
            request.user, amount, reservation=reservation, ride=ride
        )
        return Response({
            'payment_id': payment.id,
            'razorpay_order_id': razorpay_order['id'],
            'amount': str(amount),
            'currency': settings.RAZORPAY_CURRENCY,
            'key_id': settings.RAZORPAY_KEY_ID
        }, status=status.HTTP_201_CREATED)
