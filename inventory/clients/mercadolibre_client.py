import logging
from urllib.parse import urlencode

import requests
from django.conf import settings

from inventory.exceptions import AuthError, RemoteReadFailure, RemoteWriteFailure
from .base import BaseMarketplaceClient
from .results import Err, Ok

logger = logging.getLogger(__name__)


class MercadoLibreClient(BaseMarketplaceClient):
    """Mercado Libre items API client.

    Listings may have variations (colour, size, ...). When a variation id is
    given, reads and writes target that variation's stock instead of the
    item-level ``available_quantity``.
    """

    name = 'Mercado Libre'

    def __init__(self, client_id=None, client_secret=None, refresh_token=None,
                 redirect_uri=None, base_url=None, auth_base_url=None, **kwargs):
        super().__init__(**kwargs)
        self.client_id = client_id if client_id is not None else settings.ML_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.ML_CLIENT_SECRET
        self.refresh_token = refresh_token if refresh_token is not None else settings.ML_REFRESH_TOKEN
        self.redirect_uri = redirect_uri or settings.ML_REDIRECT_URI
        self.base_url = (base_url or settings.ML_API_BASE_URL).rstrip('/')
        self.auth_base_url = (auth_base_url or settings.ML_AUTH_BASE_URL).rstrip('/')
        self.token_url = f"{self.base_url}/oauth/token"

    def token_request_data(self) -> dict:
        # Mercado Libre rotates refresh tokens, so prefer the one from the last exchange
        refresh_token = self.tokens.refresh_token or self.refresh_token
        if not refresh_token:
            raise AuthError("No Mercado Libre refresh token available. Authorize the app first.")
        return {
            'grant_type': 'refresh_token',
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'refresh_token': refresh_token,
        }

    def authorization_url(self) -> str:
        query = urlencode({
            'response_type': 'code',
            'client_id': self.client_id,
            'redirect_uri': self.redirect_uri,
        })
        return f"{self.auth_base_url}/authorization?{query}"

    def exchange_code(self, code) -> dict:
        """Trades an authorization code for tokens and caches them."""
        data = self.request_token({
            'grant_type': 'authorization_code',
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'code': code,
            'redirect_uri': self.redirect_uri,
        })
        self.tokens.store(data['access_token'], int(data['expires_in']), data.get('refresh_token'))
        logger.info("Mercado Libre authorization code exchanged")
        return data

    def get_inventory(self, item_id, variation_id=None):
        try:
            response = self.request('GET', f"{self.base_url}/items/{item_id}")
            item = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Mercado Libre inventory error for %s: %s", item_id, exc)
            return Err(RemoteReadFailure(f"Mercado Libre read failed for {item_id}: {exc}"))

        if not isinstance(item, dict):
            logger.error("Unexpected Mercado Libre item body for %s", item_id)
            return Err(RemoteReadFailure(f"Unexpected Mercado Libre response for {item_id}"))

        # Items without variations keep stock at the item level
        variations = item.get('variations')
        if variation_id and variations:
            match = next(
                (v for v in variations if isinstance(v, dict) and str(v.get('id')) == str(variation_id)),
                None,
            )
            if match is None:
                logger.error("Variation %s not found in item %s", variation_id, item_id)
                return Err(RemoteReadFailure(f"Variation {variation_id} not found in item {item_id}"))
            return self.parse_quantity(match, item_id)

        return self.parse_quantity(item, item_id)

    def parse_quantity(self, data, item_id):
        try:
            return Ok(int(data.get('available_quantity') or 0))
        except (TypeError, ValueError):
            logger.error("Unexpected available_quantity for %s: %r", item_id, data.get('available_quantity'))
            return Err(RemoteReadFailure(f"Invalid Mercado Libre quantity for {item_id}"))

    def update_inventory(self, item_id, quantity, variation_id=None):
        if variation_id:
            body = {'variations': [{'id': int(variation_id), 'available_quantity': quantity}]}
        else:
            body = {'available_quantity': quantity}

        try:
            self.request('PUT', f"{self.base_url}/items/{item_id}", json=body)
        except requests.RequestException as exc:
            logger.error("Mercado Libre update error for %s: %s", item_id, exc)
            return Err(RemoteWriteFailure(f"Mercado Libre write failed for {item_id}: {exc}"))

        logger.info("Mercado Libre quantity for %s set to %d", item_id, quantity)
        return Ok(True)
