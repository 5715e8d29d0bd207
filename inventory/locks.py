import logging
import uuid
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from inventory.exceptions import SyncAlreadyRunning
from inventory.models import SyncLock

logger = logging.getLogger(__name__)

SYNC_LOCK_NAME = 'inventory-sync'


class SyncRunLock:
    """Single-slot lock row in the database, shared by every process that
    can start a reconciliation (web requests, celery beat).

    A lock older than ``timeout`` seconds is assumed to belong to a crashed
    run and is taken over.
    """

    def __init__(self, name=SYNC_LOCK_NAME, timeout=None, clock=None):
        self.name = name
        self.timeout = timeout if timeout is not None else settings.SYNC_LOCK_TIMEOUT
        self.clock = clock or timezone.now
        self.owner = uuid.uuid4().hex

    def acquire(self):
        now = self.clock()
        try:
            with transaction.atomic():
                SyncLock.objects.create(name=self.name, owner=self.owner, locked_at=now)
            logger.debug("Acquired %s lock (%s)", self.name, self.owner)
            return
        except IntegrityError:
            pass

        stale_before = now - timedelta(seconds=self.timeout)
        taken = SyncLock.objects.filter(name=self.name, locked_at__lt=stale_before).update(
            owner=self.owner, locked_at=now,
        )
        if not taken:
            raise SyncAlreadyRunning("Inventory sync already in progress")
        logger.warning("Took over stale %s lock", self.name)

    def release(self):
        SyncLock.objects.filter(name=self.name, owner=self.owner).delete()
        logger.debug("Released %s lock (%s)", self.name, self.owner)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
