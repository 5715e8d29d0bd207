import logging

from celery import shared_task

from inventory.exceptions import SyncAlreadyRunning
from inventory.sync import run_inventory_sync

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def sync_inventory(self, policy=None):
    try:
        result = run_inventory_sync(policy=policy)
    except SyncAlreadyRunning as exc:
        logger.warning("Skipping scheduled sync: %s", exc)
        return {'success': False, 'message': str(exc), 'skipped': True}
    return result.to_dict()
