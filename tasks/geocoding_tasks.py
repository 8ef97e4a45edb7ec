"""
Celery tasks for geocoding properties in the background.

The HTTP batch endpoint can queue these instead of geocoding inside the
request, and the nightly beat entry picks up anything uploads left behind.
"""

from typing import Any, Dict

from celery import current_app as celery_app

from logging_config import get_logger
from utils.datetime_utils import utc_now

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=60
)
def batch_geocode_properties_task(self, batch_size: int = 10,
                                  delay_between_batches: float = 1.0) -> Dict[str, Any]:
    """
    Geocode every property that has no coordinates yet.

    Args:
        batch_size: Properties per batch
        delay_between_batches: Seconds to wait between batches

    Returns:
        Dict with the batch totals (camelCase, as the HTTP endpoint returns them)
    """
    from app import create_app

    app = create_app()

    with app.app_context():
        try:
            batch_service = app.services.get('batch_geocoding')
            result = batch_service.batch_geocode_all_properties(
                batch_size=batch_size,
                delay_between_batches=delay_between_batches
            )

            logger.info("Batch geocoding task completed",
                        task_id=self.request.id,
                        geocoded=result.geocoded_successfully,
                        failed=result.geocoding_failed)

            summary = result.to_dict()
            summary['completedAt'] = utc_now().isoformat()
            return summary

        except Exception as e:
            logger.error("Batch geocoding task failed",
                         task_id=self.request.id,
                         error=str(e))
            raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))


@celery_app.task(bind=True, max_retries=3, default_retry_delay=30)
def geocode_property_task(self, property_id: int) -> Dict[str, Any]:
    """Geocode a single property by id"""
    from app import create_app

    app = create_app()

    with app.app_context():
        result = app.services.get('batch_geocoding').geocode_property(property_id)
        if not result.success:
            logger.warning("Property geocoding task failed",
                           property_id=property_id,
                           error=result.error)
        return {'success': result.success, 'error': result.error}
