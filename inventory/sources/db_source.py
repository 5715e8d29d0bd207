import logging

from django.db import DatabaseError

from inventory.exceptions import PersistenceFailure
from inventory.models import Product

from .base import BaseSource

logger = logging.getLogger(__name__)


class DatabaseProductSource(BaseSource):
    def load(self) -> list:
        try:
            return list(Product.objects.order_by('sku'))
        except DatabaseError as exc:
            logger.error("Could not list products: %s", exc)
            raise PersistenceFailure(f"Could not list products: {exc}") from exc
