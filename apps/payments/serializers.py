from rest_framework import serializers

from .gateways import PayerDetails
from .models import PaymentRecord


class PaymentRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentRecord
        fields = [
            "id",
            "user",
            "plan",
            "amount",
            "currency",
            "provider",
            "status",
            "order_number",
            "transaction_id",
            "provider_reference",
            "metadata",
            "created_at",
            "updated_at",
            "paid_at",
        ]
        read_only_fields = fields


class InitiatePaymentSerializer(serializers.Serializer):
    provider = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    planName = serializers.CharField(max_length=50)
    currency = serializers.CharField(max_length=3, default="USD")
    email = serializers.EmailField()
    firstName = serializers.CharField(required=False, allow_blank=True, default="")
    lastName = serializers.CharField(required=False, allow_blank=True, default="")
    address = serializers.CharField(required=False, allow_blank=True, default="")
    city = serializers.CharField(required=False, allow_blank=True, default="")
    state = serializers.CharField(required=False, allow_blank=True, default="")
    country = serializers.CharField(required=False, allow_blank=True, default="CR")
    phone = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value

    def payer(self) -> PayerDetails:
        data = self.validated_data
        return PayerDetails(
            email=data["email"],
            first_name=data["firstName"],
            last_name=data["lastName"],
            address=data["address"],
            city=data["city"],
            state=data["state"],
            country=data["country"] or "CR",
            phone=data["phone"],
        )


class VerifyPaymentSerializer(serializers.Serializer):
    paymentId = serializers.UUIDField(required=False)
    orderNumber = serializers.CharField(required=False, max_length=64)

    def validate(self, attrs):
        if not attrs.get("paymentId") and not attrs.get("orderNumber"):
            raise serializers.ValidationError("Missing payment ID or order number")
        return attrs


class FreePlanActivationSerializer(serializers.Serializer):
    userId = serializers.UUIDField(required=False)
    planName = serializers.CharField(max_length=50)
    originalAmount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    finalAmount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    referralCode = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=50)
    discountPercentage = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=100)
    email = serializers.EmailField(required=False, allow_blank=True)


class PayPalPaymentTokenSerializer(serializers.Serializer):
    setupTokenId = serializers.CharField()
    paymentId = serializers.UUIDField()


class PayPalCaptureSerializer(serializers.Serializer):
    paymentId = serializers.UUIDField()
    paymentTokenId = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    currency = serializers.CharField(max_length=3, required=False)
