"""
Celery worker running the daily certificate-expiry reminder sweep.
"""
from celery import Celery
from celery.schedules import crontab
import logging
from .config import settings
from .database import SessionLocal
from .services.document_store import DocumentStore
from .use_cases.notifications import send_expiry_reminders_use_case

logger = logging.getLogger(__name__)

celery_app = Celery(
    "memberdesk",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)


@celery_app.task(name="send_expiry_reminders")
def send_expiry_reminders(within_days: int | None = None):
    """Notify members whose certificate expires within `within_days` (default from settings)."""
    store = DocumentStore(SessionLocal)
    try:
        sent = send_expiry_reminders_use_case(store=store, within_days=within_days)
    except Exception:
        logger.exception("Expiry reminder sweep failed")
        raise
    finally:
        store.close()
    return {"sent": sent}


# Celery Beat schedule
celery_app.conf.beat_schedule = {
    'send-expiry-reminders-daily': {
        'task': 'send_expiry_reminders',
        'schedule': crontab(hour=6, minute=0),
    },
}


if __name__ == "__main__":
    celery_app.start()
