# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly so the worker registers them
celery_app.conf.imports = (
    "storefront.tasks.housekeeping",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "resend-unsent-invoices": {
        "task": "storefront.tasks.housekeeping.resend_unsent_invoices_task",
        "schedule": 600.0,  # every 10 minutes
    },
    "purge-guest-carts": {
        "task": "storefront.tasks.housekeeping.purge_guest_carts_task",
        "schedule": 3600.0,  # hourly
    },
}

celery_app.conf.timezone = "UTC"
