"""Async client for the catalog service (products, buyers, user groups)."""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import AuthenticationError, CatalogAPIError
from ..extractors.base import Page
from ..models.catalog import CatalogPage
from ..models.migration import CatalogSettings
from ..models.record import Record

logger = logging.getLogger(__name__)


class ClientCredentialsAuth:
    """Fetches an access token with the OAuth2 client-credentials grant."""

    def __init__(
        self,
        settings: CatalogSettings,
        session: Optional[requests.Session] = None
    ):
        self.settings = settings
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        retries = Retry(
            total=3,
            backoff_factor=2.0,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def fetch_token(self) -> str:
        """Request a new access token."""
        if not self.settings.client_id or not self.settings.client_secret:
            raise AuthenticationError("Catalog client_id and client_secret are required")

        url = f"{self.settings.auth_url.rstrip('/')}/oauth/token"
        try:
            response = self._session.post(
                url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.settings.client_id,
                    "client_secret": self.settings.client_secret,
                    "scope": self.settings.scope,
                },
                headers={"Accept": "application/json"},
                timeout=self.settings.timeout_seconds,
            )
            response.raise_for_status()
            token = response.json().get("access_token")
        except requests.exceptions.HTTPError as e:
            raise AuthenticationError(
                f"Token request failed: {e.response.status_code} - {e.response.text}"
            ) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise AuthenticationError(f"Token request failed: {e}") from e

        if not token:
            raise AuthenticationError("Token response did not contain an access_token")

        logger.info(f"Authenticated catalog client {self.settings.client_id}")
        return token


class CatalogClient:
    """
    Catalog service REST client.

    List endpoints return ``{"Items": [...], "Meta": {...}}`` pages; the
    client turns them into Page objects whose cursor is the next page
    number. PATCH endpoints merge the supplied fields into the resource,
    ``xp`` included, so callers only send what they change.
    """

    def __init__(
        self,
        settings: CatalogSettings,
        http_client: Optional[httpx.AsyncClient] = None,
        auth: Optional[ClientCredentialsAuth] = None
    ):
        """
        Initialize the catalog client.

        Args:
            settings: Catalog connection settings
            http_client: Custom httpx client
            auth: Token provider (defaults to client credentials from settings)
        """
        self.settings = settings
        self._auth = auth or ClientCredentialsAuth(settings)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.api_url.rstrip("/"),
            timeout=settings.timeout_seconds,
        )
        self._token: Optional[str] = None
        self._token_lock = asyncio.Lock()

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_token(self) -> str:
        if self._token is None:
            async with self._token_lock:
                if self._token is None:
                    self._token = await asyncio.to_thread(self._auth.fetch_token)
        return self._token

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        token = await self._get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise CatalogAPIError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise CatalogAPIError(self._error_message(response), status_code=response.status_code)

        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract the error message from a catalog error body."""
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase

        errors = data.get("Errors") if isinstance(data, dict) else None
        if errors:
            return "; ".join(
                f"{e.get('ErrorCode', 'Error')}: {e.get('Message', '')}" for e in errors
            )
        return str(data)

    async def _list(
        self,
        path: str,
        entity: str,
        page: Optional[int],
        params: Optional[Dict[str, Any]]
    ) -> Page:
        page_number = page or 1
        query = {"page": page_number, "pageSize": self.settings.page_size}
        query.update(params or {})

        data = await self._request("GET", path, params=query)
        try:
            catalog_page = CatalogPage.model_validate(data)
        except ValidationError as e:
            raise CatalogAPIError(f"Unexpected list response from {path}: {e}") from e

        return Page(
            records=[Record.from_catalog(entity, item) for item in catalog_page.Items],
            has_more=catalog_page.has_more,
            next_cursor=page_number + 1 if catalog_page.has_more else None,
        )

    @staticmethod
    def _segment(value: str) -> str:
        return quote(str(value), safe="")

    async def list_products(self, page: Optional[int] = None, params: Optional[Dict[str, Any]] = None) -> Page:
        """List one page of products."""
        return await self._list("/products", "product", page, params)

    async def list_buyers(self, page: Optional[int] = None, params: Optional[Dict[str, Any]] = None) -> Page:
        """List one page of buyer organizations."""
        return await self._list("/buyers", "buyer", page, params)

    async def list_user_groups(
        self,
        buyer_id: str,
        page: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Page:
        """List one page of a buyer's user groups."""
        path = f"/buyers/{self._segment(buyer_id)}/usergroups"
        return await self._list(path, "user_group", page, params)

    async def patch_product(self, product_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Merge-patch a product."""
        return await self._request("PATCH", f"/products/{self._segment(product_id)}", json=partial)

    async def patch_user_group(
        self,
        buyer_id: str,
        user_group_id: str,
        partial: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Merge-patch a buyer's user group."""
        path = f"/buyers/{self._segment(buyer_id)}/usergroups/{self._segment(user_group_id)}"
        return await self._request("PATCH", path, json=partial)
