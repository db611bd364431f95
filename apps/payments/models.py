import uuid

from django.db import models


class PaymentRecord(models.Model):
    """
    A single payment attempt for a service plan.

    ``amount`` is fixed at creation. ``status`` only moves out of
    ``pending``; every later change goes through the guarded updates in
    ``apps.payments.ledger``.
    """

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_ABANDONED = "abandoned"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_ABANDONED, "Abandoned"),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED, STATUS_ABANDONED)

    PROVIDER_TILOPAY = "tilopay"
    PROVIDER_PAYPAL = "paypal"
    # Zero-amount plans; never reaches a gateway.
    PROVIDER_FREE = "free"

    PROVIDER_CHOICES = [
        (PROVIDER_TILOPAY, "Tilopay"),
        (PROVIDER_PAYPAL, "PayPal"),
        (PROVIDER_FREE, "Free plan"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        "authentication.User",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    plan = models.CharField(max_length=50)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    provider = models.CharField(max_length=20, choices=PROVIDER_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    order_number = models.CharField(max_length=64, unique=True)
    transaction_id = models.CharField(max_length=100, blank=True, null=True)
    provider_reference = models.CharField(max_length=100, blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="payments_pa_user_id_6e1f0c_idx"),
            models.Index(fields=["status", "created_at"], name="payments_pa_status_9b2d41_idx"),
        ]

    def __str__(self) -> str:
        return self.order_number

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES
