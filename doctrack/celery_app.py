from celery import Celery

from doctrack.config import settings

celery_app = Celery(
    "doctrack",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "doctrack.tasks.events",
        "doctrack.tasks.notifications",
        "doctrack.tasks.reconciliation",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
    beat_schedule={
        "check-ledger-consistency": {
            "task": "doctrack.tasks.reconciliation.check_ledger_consistency",
            "schedule": 3600.0,
        },
    },
)
