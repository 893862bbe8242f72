# ==================== PAYMENTS/SERIALIZERS.PY ====================
from rest_framework import serializers
from .models import Payment, Wallet, WalletTransaction


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            'id', 'reservation', 'ride', 'amount', 'payment_method', 'status',
            'razorpay_order_id', 'razorpay_payment_id', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class PaymentMethodSerializer(serializers.Serializer):
    """Body of reservation payment and ride completion requests"""
    payment_method = serializers.ChoiceField(choices=['wallet', 'razorpay'], default='wallet')
    razorpay_order_id = serializers.CharField(required=False)
    razorpay_payment_id = serializers.CharField(required=False)
    razorpay_signature = serializers.CharField(required=False)

    def validate(self, data):
        if data['payment_method'] == 'razorpay':
            missing = [
                name for name in ('razorpay_order_id', 'razorpay_payment_id', 'razorpay_signature')
                if not data.get(name)
            ]
            if missing:
                raise serializers.ValidationError({name: 'This field is required.' for name in missing})
        return data

    def gateway_data(self):
        return {
            name: self.validated_data.get(name)
            for name in ('razorpay_order_id', 'razorpay_payment_id', 'razorpay_signature')
        }


class OrderCreateSerializer(serializers.Serializer):
    reservation_id = serializers.IntegerField(required=False)
    ride_id = serializers.IntegerField(required=False)

    def validate(self, data):
        if bool(data.get('reservation_id')) == bool(data.get('ride_id')):
            raise serializers.ValidationError('Provide exactly one of reservation_id or ride_id.')
        return data


class WalletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Wallet
        fields = ['balance', 'loyalty_points', 'updated_at']
        read_only_fields = fields


class WalletDepositSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=1)


class WalletTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = WalletTransaction
        fields = ['id', 'transaction_type', 'amount', 'description', 'reservation', 'ride', 'created_at']
        read_only_fields = fields
