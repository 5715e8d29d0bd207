import json
import logging
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone
from django.utils.module_loading import import_string

from inventory.exceptions import PersistenceFailure
from inventory.locks import SyncRunLock
from inventory.models import SyncLog
from inventory.transforms import compute_new_quantity, compute_sales

logger = logging.getLogger(__name__)

POLICY_OVERWRITE = 'overwrite'
POLICY_SALES_DELTA = 'sales_delta'
POLICIES = (POLICY_OVERWRITE, POLICY_SALES_DELTA)


@dataclass
class ProductSyncResult:
    sku: str
    amazon_updated: bool = False
    ml_updated: bool = False
    amazon_qty: Optional[int] = None
    ml_qty: Optional[int] = None
    sales: int = 0
    pushed_qty: Optional[int] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def synced(self):
        return not self.error and (self.amazon_updated or self.ml_updated)


@dataclass
class SyncResult:
    success: bool
    message: str
    details: List[ProductSyncResult] = field(default_factory=list)
    synced_count: int = 0
    error_count: int = 0
    total_sales: int = 0

    def to_dict(self):
        return asdict(self)


class InventoryReconciler:
    """One pass over every tracked product, pushing the authoritative
    quantity to each marketplace the product is listed on.

    ``overwrite`` pushes the warehouse quantity unchanged and records what the
    marketplaces reported. ``sales_delta`` treats marketplace decreases since
    the last run as sales, subtracts them from the warehouse quantity and
    pushes the result everywhere.
    """

    def __init__(self, source, amazon, mercadolibre, policy=None, clock=None):
        policy = policy or settings.SYNC_POLICY
        if policy not in POLICIES:
            raise ValueError(f"Unknown sync policy {policy!r}, expected one of {POLICIES}")
        self.source = source
        self.amazon = amazon
        self.mercadolibre = mercadolibre
        self.policy = policy
        self.clock = clock or timezone.now

    def run(self) -> SyncResult:
        logger.info("Starting inventory sync (policy=%s)", self.policy)
        details = []

        try:
            products = self.source.load()

            for product in products:
                detail = ProductSyncResult(sku=product.sku)
                try:
                    if self.policy == POLICY_SALES_DELTA:
                        self.reconcile_sales_delta(product, detail)
                    else:
                        self.reconcile_overwrite(product, detail)
                except Exception as exc:
                    logger.error("Failed to sync %s: %s", product.sku, exc)
                    detail.error = str(exc) or exc.__class__.__name__
                details.append(detail)

            result = self.summarize(details)
            SyncLog.objects.create(
                status=SyncLog.STATUS_SUCCESS if result.success else SyncLog.STATUS_PARTIAL,
                message=result.message,
                details=json.dumps([asdict(d) for d in details]),
            )
        except Exception as exc:
            logger.exception("Inventory sync aborted")
            message = str(exc) or "Inventory sync failed"
            SyncLog.objects.create(
                status=SyncLog.STATUS_ERROR,
                message=message,
                details=json.dumps({'error': message}),
            )
            return SyncResult(success=False, message=message)

        logger.info("Sync complete: %s", result.message)
        return result

    def summarize(self, details) -> SyncResult:
        synced = sum(1 for d in details if d.synced)
        errors = sum(1 for d in details if d.error)
        total_sales = sum(d.sales for d in details if not d.error)

        message = f"Synced {synced}/{len(details)} products, {errors} errors"
        if self.policy == POLICY_SALES_DELTA:
            message += f", {total_sales} units sold since last sync"

        return SyncResult(
            success=errors == 0,
            message=message,
            details=details,
            synced_count=synced,
            error_count=errors,
            total_sales=total_sales,
        )

    def reconcile_overwrite(self, product, result):
        current_amazon = self.fetch_amazon(product, result)
        current_ml = self.fetch_ml(product, result)

        self.push(product, product.warehouse_qty, result)

        product.amazon_qty = current_amazon if current_amazon is not None else product.amazon_qty
        product.ml_qty = current_ml if current_ml is not None else product.ml_qty
        product.last_sync_at = self.clock()
        self.save(product, ['amazon_qty', 'ml_qty', 'last_sync_at'])

        result.amazon_qty = product.amazon_qty
        result.ml_qty = product.ml_qty

    def reconcile_sales_delta(self, product, result):
        previous_amazon, previous_ml = product.amazon_qty, product.ml_qty

        current_amazon = self.fetch_amazon(product, result)
        current_ml = self.fetch_ml(product, result)
        if current_amazon is None:
            current_amazon = previous_amazon
        if current_ml is None:
            current_ml = previous_ml

        sales = compute_sales(previous_amazon, current_amazon) + compute_sales(previous_ml, current_ml)
        new_qty = compute_new_quantity(product.warehouse_qty, sales)
        if sales:
            logger.info("%s: %d sold since last sync, warehouse %d -> %d",
                        product.sku, sales, product.warehouse_qty, new_qty)

        self.push(product, new_qty, result)

        product.warehouse_qty = new_qty
        product.amazon_qty = new_qty
        product.ml_qty = new_qty
        product.last_sync_at = self.clock()
        self.save(product, ['warehouse_qty', 'amazon_qty', 'ml_qty', 'last_sync_at'])

        result.sales = sales
        result.amazon_qty = current_amazon
        result.ml_qty = current_ml

    def fetch_amazon(self, product, result):
        if not product.amazon_asin:
            return None
        outcome = self.amazon.get_inventory(product.sku)
        if outcome.is_ok:
            return outcome.value
        result.warnings.append(outcome.reason)
        return None

    def fetch_ml(self, product, result):
        if not product.ml_item_id:
            return None
        outcome = self.mercadolibre.get_inventory(product.ml_item_id, variation_id=product.ml_variation_id)
        if outcome.is_ok:
            return outcome.value
        result.warnings.append(outcome.reason)
        return None

    def push(self, product, quantity, result):
        result.pushed_qty = quantity

        if product.amazon_asin:
            outcome = self.amazon.update_inventory(product.sku, quantity)
            result.amazon_updated = outcome.is_ok
            if not outcome.is_ok:
                result.warnings.append(outcome.reason)

        if product.ml_item_id:
            outcome = self.mercadolibre.update_inventory(
                product.ml_item_id, quantity, variation_id=product.ml_variation_id,
            )
            result.ml_updated = outcome.is_ok
            if not outcome.is_ok:
                result.warnings.append(outcome.reason)

    def save(self, product, fields):
        try:
            product.save(update_fields=fields + ['updated_at'])
        except DatabaseError as exc:
            raise PersistenceFailure(f"Could not save {product.sku}: {exc}") from exc


@lru_cache(maxsize=None)
def get_marketplace_clients():
    """Process-wide client instances, so access tokens survive between runs."""
    amazon = import_string(settings.SYNC_AMAZON_CLIENT_CLASS)()
    mercadolibre = import_string(settings.SYNC_ML_CLIENT_CLASS)()
    return amazon, mercadolibre


def build_reconciler(policy=None) -> InventoryReconciler:
    source = import_string(settings.SYNC_SOURCE_CLASS)()
    amazon, mercadolibre = get_marketplace_clients()
    return InventoryReconciler(source=source, amazon=amazon, mercadolibre=mercadolibre, policy=policy)


def run_inventory_sync(reconciler=None, lock=None, policy=None) -> SyncResult:
    """Runs one reconciliation under the run lock.

    Raises SyncAlreadyRunning if another run holds the lock; nothing is
    logged to SyncLog in that case.
    """
    reconciler = reconciler or build_reconciler(policy=policy)
    lock = lock or SyncRunLock()
    with lock:
        return reconciler.run()
