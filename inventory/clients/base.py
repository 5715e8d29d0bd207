import logging
from abc import ABC, abstractmethod

import requests
from django.conf import settings

from inventory.exceptions import AuthError
from .tokens import TokenCache

logger = logging.getLogger(__name__)


class BaseMarketplaceClient(ABC):
    """OAuth refresh-token client for one marketplace.

    Each instance owns its own token cache, so two clients never share a
    token and tests can pass a fixed clock and a mocked session.
    """

    name = 'marketplace'
    token_url = None

    def __init__(self, session=None, clock=None, timeout=None):
        self.session = session or self.make_session()
        self.tokens = TokenCache(clock=clock)
        self.timeout = timeout if timeout is not None else settings.MARKETPLACE_HTTP_TIMEOUT

    def make_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({'Accept': 'application/json'})
        return session

    @abstractmethod
    def token_request_data(self) -> dict:
        """Form body for the refresh-token exchange. Raises AuthError if no credential is configured."""

    @abstractmethod
    def get_inventory(self, external_id, **kwargs):
        """Returns Ok(quantity) or Err(RemoteReadFailure)."""

    @abstractmethod
    def update_inventory(self, external_id, quantity, **kwargs):
        """Returns Ok(True) or Err(RemoteWriteFailure)."""

    def auth_headers(self, token) -> dict:
        return {'Authorization': f'Bearer {token}'}

    def authenticate(self) -> str:
        token = self.tokens.get()
        if token:
            return token

        logger.info("Requesting new %s access token", self.name)
        data = self.request_token(self.token_request_data())
        self.tokens.store(data['access_token'], int(data['expires_in']), data.get('refresh_token'))
        return data['access_token']

    def request_token(self, form) -> dict:
        try:
            response = self.session.post(self.token_url, data=form, timeout=self.timeout)
        except requests.RequestException as exc:
            raise AuthError(f"{self.name} token request failed: {exc}") from exc

        if not response.ok:
            raise AuthError(f"Failed to get {self.name} access token: {response.text}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AuthError(f"Malformed {self.name} token response: {exc}") from exc
        if not isinstance(data, dict) or 'access_token' not in data or 'expires_in' not in data:
            raise AuthError(f"Malformed {self.name} token response: {response.text}")
        return data

    def request(self, method, url, **kwargs) -> requests.Response:
        """Authenticated call. Raises AuthError before sending if no token can be
        obtained, and requests exceptions for transport errors or non-2xx responses."""
        token = self.authenticate()
        headers = {**self.auth_headers(token), **kwargs.pop('headers', {})}
        response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response
