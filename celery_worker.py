# celery_worker.py
from celery.schedules import crontab

from app import create_app
from celery_config import create_celery_app
from logging_config import get_logger

logger = get_logger(__name__)

# Create Celery instance with shared configuration
celery = create_celery_app(__name__)

# Flask app that provides context for tasks when they run
flask_app = create_app()


# Tasks run inside the Flask app context
class ContextTask(celery.Task):
    def __call__(self, *args, **kwargs):
        with flask_app.app_context():
            return self.run(*args, **kwargs)


celery.Task = ContextTask

# --- Celery Beat Schedule ---
celery.conf.beat_schedule = {
    'geocode-missing-properties': {
        'task': 'tasks.geocoding_tasks.batch_geocode_properties_task',
        # Nightly at 3 AM UTC, after the working day's uploads
        'schedule': crontab(hour=3, minute=0),
        'kwargs': {'batch_size': 10, 'delay_between_batches': 1.0}
    },
}
celery.conf.timezone = 'UTC'

# Import tasks so they register with this Celery app
with flask_app.app_context():
    import tasks.geocoding_tasks  # noqa: F401
    logger.info("Registered tasks", tasks=sorted(celery.tasks.keys()))
