from django.contrib import admin

from .models import PaymentRecord


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    list_display = ("order_number", "user", "provider", "plan", "amount", "currency", "status", "created_at")
    search_fields = ("order_number", "transaction_id", "user__email")
    list_filter = ("provider", "status")
    readonly_fields = ("amount", "currency", "order_number", "provider", "created_at", "updated_at", "paid_at")
