import os
from celery import Celery
from celery.schedules import crontab


def make_celery() -> Celery:
    broker = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    backend = os.getenv("CELERY_RESULT_BACKEND", broker)
    app = Celery("foodshare", broker=broker, backend=backend, include=[
        "foodshare.tasks.jobs.posts",
    ])
    app.conf.update(
        task_track_started=True,
        timezone="UTC",
        beat_schedule={
            "expire-overdue-posts": {
                "task": "foodshare.tasks.jobs.posts.expire_posts",
                "schedule": crontab(minute="*/10"),
            },
            "near-expiry-warnings": {
                "task": "foodshare.tasks.jobs.posts.warn_near_expiry",
                "schedule": crontab(minute=0),
            },
        },
    )
    return app

celery_app = make_celery()
