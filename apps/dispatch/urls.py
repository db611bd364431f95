from django.urls import path

from .views import BulkSendView

urlpatterns = [
    path("bulk-send/", BulkSendView.as_view(), name="bulk-send"),
]
