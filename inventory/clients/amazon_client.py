import logging

import requests
from django.conf import settings

from inventory.exceptions import AuthError, RemoteReadFailure, RemoteWriteFailure
from .base import BaseMarketplaceClient
from .results import Err, Ok

logger = logging.getLogger(__name__)

SUMMARIES_PATH = '/fba/inventory/v1/summaries'
SKU_QUANTITIES_PATH = '/externalFulfillment/inventory/2021-01-06/locations/{location}/skuQuantities'


class AmazonClient(BaseMarketplaceClient):
    """Selling Partner API client for Seller Flex inventory, addressed by seller SKU."""

    name = 'Amazon'

    def __init__(self, client_id=None, client_secret=None, refresh_token=None,
                 base_url=None, marketplace_id=None, granularity_id=None, location_id=None,
                 **kwargs):
        super().__init__(**kwargs)
        self.token_url = settings.AMAZON_TOKEN_URL
        self.client_id = client_id if client_id is not None else settings.AMAZON_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.AMAZON_CLIENT_SECRET
        self.refresh_token = refresh_token if refresh_token is not None else settings.AMAZON_REFRESH_TOKEN
        self.base_url = (base_url or settings.AMAZON_API_BASE_URL).rstrip('/')
        self.marketplace_id = marketplace_id or settings.AMAZON_MARKETPLACE_ID
        self.granularity_id = granularity_id or settings.AMAZON_GRANULARITY_ID
        self.location_id = location_id or settings.AMAZON_LOCATION_ID

    def token_request_data(self) -> dict:
        if not self.refresh_token:
            raise AuthError("No Amazon refresh token configured (AMAZON_REFRESH_TOKEN)")
        return {
            'grant_type': 'refresh_token',
            'refresh_token': self.refresh_token,
            'client_id': self.client_id,
            'client_secret': self.client_secret,
        }

    def auth_headers(self, token) -> dict:
        return {
            'Authorization': f'Bearer {token}',
            'x-amz-access-token': token,
        }

    def get_inventory(self, sku):
        params = {
            'details': 'true',
            'granularityType': 'Marketplace',
            'granularityId': self.granularity_id,
            'sellerSkus': sku,
            'marketplaceIds': self.marketplace_id,
        }
        try:
            response = self.request('GET', f"{self.base_url}{SUMMARIES_PATH}", params=params)
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Amazon inventory error for %s: %s", sku, exc)
            return Err(RemoteReadFailure(f"Amazon inventory read failed for {sku}: {exc}"))

        # Live responses wrap the summaries in a "payload" object
        body = data.get('payload', data) if isinstance(data, dict) else None
        summaries = body.get('inventorySummaries') if isinstance(body, dict) else None
        if not summaries or not isinstance(summaries, list) or not isinstance(summaries[0], dict):
            logger.warning("Amazon returned no inventory summary for %s", sku)
            return Err(RemoteReadFailure(f"No Amazon inventory summary for {sku}"))

        try:
            return Ok(int(summaries[0].get('totalQuantity') or 0))
        except (TypeError, ValueError):
            logger.error("Unexpected Amazon totalQuantity for %s: %r", sku, summaries[0].get('totalQuantity'))
            return Err(RemoteReadFailure(f"Invalid Amazon quantity for {sku}"))

    def update_inventory(self, sku, quantity):
        url = f"{self.base_url}{SKU_QUANTITIES_PATH.format(location=self.location_id)}"
        payload = {'skuQuantities': [{'sellerSku': sku, 'quantity': quantity}]}
        try:
            self.request('PUT', url, json=payload)
        except requests.RequestException as exc:
            logger.error("Amazon update error for %s: %s", sku, exc)
            return Err(RemoteWriteFailure(f"Amazon inventory write failed for {sku}: {exc}"))

        logger.info("Amazon quantity for %s set to %d", sku, quantity)
        return Ok(True)
