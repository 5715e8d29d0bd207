import json
from datetime import datetime, timezone as dt_timezone
from unittest.mock import MagicMock, patch

import responses
from django.db import DatabaseError
from django.test import TestCase

from inventory.clients.amazon_client import AmazonClient
from inventory.clients.mercadolibre_client import MercadoLibreClient
from inventory.clients.results import Err, Ok
from inventory.exceptions import AuthError, PersistenceFailure, RemoteReadFailure, RemoteWriteFailure
from inventory.models import Product, SyncLog
from inventory.sources.db_source import DatabaseProductSource
from inventory.sync import POLICY_OVERWRITE, POLICY_SALES_DELTA, InventoryReconciler

SYNC_TIME = datetime(2024, 3, 1, 9, 30, tzinfo=dt_timezone.utc)


def _product(sku, warehouse=100, amazon=100, ml=100, asin="B0TEST", ml_item="MLM1", **extra):
    return Product.objects.create(
        sku=sku, name=f"Product {sku}", warehouse_qty=warehouse, amazon_qty=amazon, ml_qty=ml,
        amazon_asin=asin, ml_item_id=ml_item, **extra,
    )


def _clients(amazon_qty=100, ml_qty=100):
    amazon = MagicMock()
    amazon.get_inventory.return_value = Ok(amazon_qty)
    amazon.update_inventory.return_value = Ok(True)
    mercadolibre = MagicMock()
    mercadolibre.get_inventory.return_value = Ok(ml_qty)
    mercadolibre.update_inventory.return_value = Ok(True)
    return amazon, mercadolibre


def _reconciler(amazon, mercadolibre, policy, source=None):
    return InventoryReconciler(
        source=source or DatabaseProductSource(),
        amazon=amazon,
        mercadolibre=mercadolibre,
        policy=policy,
        clock=lambda: SYNC_TIME,
    )


class TestSalesDeltaPolicy(TestCase):
    def test_amazon_sale_reduces_all_quantities(self):
        product = _product("FQ-001", warehouse=100, amazon=100, ml=100)
        amazon, mercadolibre = _clients(amazon_qty=97, ml_qty=100)

        result = _reconciler(amazon, mercadolibre, POLICY_SALES_DELTA).run()

        detail = result.details[0]
        self.assertEqual(detail.sales, 3)
        self.assertEqual(detail.pushed_qty, 97)
        self.assertEqual(result.total_sales, 3)
        amazon.update_inventory.assert_called_once_with("FQ-001", 97)
        mercadolibre.update_inventory.assert_called_once_with("MLM1", 97, variation_id=None)

        product.refresh_from_db()
        self.assertEqual((product.warehouse_qty, product.amazon_qty, product.ml_qty), (97, 97, 97))
        self.assertEqual(product.last_sync_at, SYNC_TIME)

    def test_sales_on_both_marketplaces_add_up(self):
        _product("FQ-001", warehouse=50, amazon=50, ml=50)
        amazon, mercadolibre = _clients(amazon_qty=48, ml_qty=45)

        result = _reconciler(amazon, mercadolibre, POLICY_SALES_DELTA).run()

        self.assertEqual(result.details[0].sales, 7)
        self.assertEqual(Product.objects.get(sku="FQ-001").warehouse_qty, 43)
        self.assertIn("7 units sold", result.message)

    def test_marketplace_increase_is_not_negative_sales(self):
        _product("FQ-001", warehouse=20, amazon=20, ml=20)
        amazon, mercadolibre = _clients(amazon_qty=35, ml_qty=20)

        result = _reconciler(amazon, mercadolibre, POLICY_SALES_DELTA).run()

        self.assertEqual(result.details[0].sales, 0)
        self.assertEqual(Product.objects.get(sku="FQ-001").warehouse_qty, 20)

    def test_new_quantity_never_negative(self):
        _product("FQ-001", warehouse=5, amazon=30, ml=30)
        amazon, mercadolibre = _clients(amazon_qty=20, ml_qty=25)

        result = _reconciler(amazon, mercadolibre, POLICY_SALES_DELTA).run()

        self.assertEqual(result.details[0].pushed_qty, 0)
        product = Product.objects.get(sku="FQ-001")
        self.assertEqual((product.warehouse_qty, product.amazon_qty, product.ml_qty), (0, 0, 0))

    def test_failed_read_falls_back_to_previous(self):
        _product("FQ-001", warehouse=100, amazon=100, ml=100)
        amazon, mercadolibre = _clients(ml_qty=90)
        amazon.get_inventory.return_value = Err(RemoteReadFailure("Amazon unreachable"))

        result = _reconciler(amazon, mercadolibre, POLICY_SALES_DELTA).run()

        detail = result.details[0]
        self.assertEqual(detail.sales, 10)
        self.assertIn("Amazon unreachable", detail.warnings)
        self.assertIsNone(detail.error)
        self.assertTrue(result.success)

    def test_unlisted_marketplace_is_skipped(self):
        _product("FQ-001", warehouse=10, amazon=0, ml=10, asin=None)
        amazon, mercadolibre = _clients(ml_qty=8)

        result = _reconciler(amazon, mercadolibre, POLICY_SALES_DELTA).run()

        amazon.get_inventory.assert_not_called()
        amazon.update_inventory.assert_not_called()
        self.assertFalse(result.details[0].amazon_updated)
        self.assertTrue(result.details[0].ml_updated)
        self.assertEqual(Product.objects.get(sku="FQ-001").warehouse_qty, 8)


class TestOverwritePolicy(TestCase):
    def test_pushes_warehouse_and_records_marketplace_quantities(self):
        _product("FQ-001", warehouse=40, amazon=0, ml=0, ml_variation_id="183256741")
        amazon, mercadolibre = _clients(amazon_qty=35, ml_qty=38)

        result = _reconciler(amazon, mercadolibre, POLICY_OVERWRITE).run()

        amazon.update_inventory.assert_called_once_with("FQ-001", 40)
        mercadolibre.get_inventory.assert_called_once_with("MLM1", variation_id="183256741")
        mercadolibre.update_inventory.assert_called_once_with("MLM1", 40, variation_id="183256741")
        product = Product.objects.get(sku="FQ-001")
        self.assertEqual((product.warehouse_qty, product.amazon_qty, product.ml_qty), (40, 35, 38))
        self.assertEqual(product.last_sync_at, SYNC_TIME)
        self.assertEqual(result.synced_count, 1)
        self.assertNotIn("units sold", result.message)

    def test_failed_read_keeps_recorded_quantity(self):
        _product("FQ-001", warehouse=40, amazon=12, ml=0)
        amazon, mercadolibre = _clients(ml_qty=38)
        amazon.get_inventory.return_value = Err(RemoteReadFailure("timeout"))

        _reconciler(amazon, mercadolibre, POLICY_OVERWRITE).run()

        self.assertEqual(Product.objects.get(sku="FQ-001").amazon_qty, 12)

    def test_repeated_runs_are_idempotent(self):
        _product("FQ-001", warehouse=40)
        _product("FQ-002", warehouse=15)
        amazon, mercadolibre = _clients(amazon_qty=40, ml_qty=40)
        reconciler = _reconciler(amazon, mercadolibre, POLICY_OVERWRITE)

        first = reconciler.run()
        second = reconciler.run()

        pushed = [c.args for c in amazon.update_inventory.call_args_list]
        self.assertEqual(pushed, [("FQ-001", 40), ("FQ-002", 15), ("FQ-001", 40), ("FQ-002", 15)])
        statuses = list(SyncLog.objects.values_list('status', flat=True))
        self.assertEqual(statuses, [SyncLog.STATUS_SUCCESS, SyncLog.STATUS_SUCCESS])
        self.assertEqual(first.message, second.message)

    def test_write_failure_is_not_counted_as_synced(self):
        _product("FQ-001", asin=None)
        amazon, mercadolibre = _clients()
        mercadolibre.update_inventory.return_value = Err(RemoteWriteFailure("rejected"))

        result = _reconciler(amazon, mercadolibre, POLICY_OVERWRITE).run()

        self.assertTrue(result.success)
        self.assertEqual(result.synced_count, 0)
        self.assertEqual(result.error_count, 0)
        self.assertFalse(result.details[0].ml_updated)


class TestFailureIsolation(TestCase):
    def test_one_failing_product_does_not_abort_batch(self):
        _product("FQ-001")
        _product("FQ-002")
        _product("FQ-003")
        amazon, mercadolibre = _clients()

        def read(sku):
            if sku == "FQ-002":
                raise AuthError("Failed to get Amazon access token")
            return Ok(100)

        amazon.get_inventory.side_effect = read

        result = _reconciler(amazon, mercadolibre, POLICY_OVERWRITE).run()

        self.assertFalse(result.success)
        self.assertEqual(result.error_count, 1)
        self.assertEqual(result.synced_count, 2)
        updated = [c.args[0] for c in amazon.update_inventory.call_args_list]
        self.assertEqual(updated, ["FQ-001", "FQ-003"])
        self.assertEqual(result.details[1].error, "Failed to get Amazon access token")

        log = SyncLog.objects.get()
        self.assertEqual(log.status, SyncLog.STATUS_PARTIAL)
        details = json.loads(log.details)
        self.assertEqual([d["sku"] for d in details], ["FQ-001", "FQ-002", "FQ-003"])
        self.assertIsNone(Product.objects.get(sku="FQ-002").last_sync_at)

    def test_save_failure_is_isolated_to_its_product(self):
        _product("FQ-001")
        _product("FQ-002")
        _product("FQ-003")
        amazon, mercadolibre = _clients(amazon_qty=90)
        original_save = Product.save

        def save(product, *args, **kwargs):
            if product.sku == "FQ-002":
                raise DatabaseError("disk full")
            return original_save(product, *args, **kwargs)

        with patch.object(Product, "save", autospec=True, side_effect=save):
            result = _reconciler(amazon, mercadolibre, POLICY_OVERWRITE).run()

        self.assertEqual(result.error_count, 1)
        self.assertEqual(result.synced_count, 2)
        self.assertIn("Could not save FQ-002", result.details[1].error)
        self.assertEqual(Product.objects.get(sku="FQ-003").amazon_qty, 90)
        self.assertEqual(Product.objects.get(sku="FQ-002").amazon_qty, 100)
        self.assertEqual(SyncLog.objects.get().status, SyncLog.STATUS_PARTIAL)

    def test_listing_failure_logs_error(self):
        source = MagicMock()
        source.load.side_effect = PersistenceFailure("Could not list products: db down")
        amazon, mercadolibre = _clients()

        result = _reconciler(amazon, mercadolibre, POLICY_OVERWRITE, source=source).run()

        self.assertFalse(result.success)
        self.assertEqual(result.details, [])
        self.assertIn("db down", result.message)
        log = SyncLog.objects.get()
        self.assertEqual(log.status, SyncLog.STATUS_ERROR)
        amazon.get_inventory.assert_not_called()

    def test_empty_batch(self):
        amazon, mercadolibre = _clients()

        result = _reconciler(amazon, mercadolibre, POLICY_OVERWRITE).run()

        self.assertTrue(result.success)
        self.assertEqual((result.synced_count, result.error_count), (0, 0))
        self.assertEqual(result.message, "Synced 0/0 products, 0 errors")
        self.assertEqual(SyncLog.objects.get().status, SyncLog.STATUS_SUCCESS)
        amazon.get_inventory.assert_not_called()
        mercadolibre.update_inventory.assert_not_called()

    def test_unknown_policy_rejected(self):
        amazon, mercadolibre = _clients()
        with self.assertRaises(ValueError):
            _reconciler(amazon, mercadolibre, "mirror")


class TestEndToEnd(TestCase):
    @responses.activate
    def test_sales_delta_against_marketplace_apis(self):
        _product("FQ-001", warehouse=100, amazon=100, ml=100, ml_variation_id="2")
        responses.add(
            responses.POST, "https://api.amazon.com/auth/o2/token",
            json={"access_token": "amzn", "expires_in": 3600},
        )
        responses.add(
            responses.GET, "https://sellingpartnerapi-na.amazon.com/fba/inventory/v1/summaries",
            json={"payload": {"inventorySummaries": [{"totalQuantity": 97}]}},
        )
        responses.add(
            responses.PUT,
            "https://sellingpartnerapi-na.amazon.com/externalFulfillment/inventory/2021-01-06/"
            "locations/DEFAULT/skuQuantities",
            json={},
        )
        responses.add(
            responses.POST, "https://api.mercadolibre.com/oauth/token",
            json={"access_token": "ml", "refresh_token": "r2", "expires_in": 21600},
        )
        responses.add(
            responses.GET, "https://api.mercadolibre.com/items/MLM1",
            json={"available_quantity": 14, "variations": [
                {"id": 1, "available_quantity": 4}, {"id": 2, "available_quantity": 99},
            ]},
        )
        responses.add(responses.PUT, "https://api.mercadolibre.com/items/MLM1", json={})

        result = _reconciler(AmazonClient(), MercadoLibreClient(), POLICY_SALES_DELTA).run()

        self.assertTrue(result.success)
        self.assertEqual(result.synced_count, 1)
        self.assertEqual(result.details[0].sales, 4)
        self.assertEqual(Product.objects.get(sku="FQ-001").warehouse_qty, 96)
        ml_put = [c for c in responses.calls if c.request.method == "PUT" and "items" in c.request.url][0]
        self.assertEqual(
            json.loads(ml_put.request.body),
            {"variations": [{"id": 2, "available_quantity": 96}]},
        )
