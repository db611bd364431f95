from celery import shared_task

from . import services


@shared_task
def sweep_abandoned_payments() -> int:
    return services.sweep_abandoned_payments()
