"""Generic REST client for CRUD operations on any entity type.

Endpoints follow the ``/{entity}`` and ``/{entity}/{item_id}`` pattern:

* ``GET /{entity}`` - :meth:`ApiClient.get_all`
* ``GET /{entity}/{item_id}`` - :meth:`ApiClient.get_by_id`
* ``POST /{entity}`` - :meth:`ApiClient.save_new`
* ``PUT /{entity}/{item_id}`` - :meth:`ApiClient.update`
* ``PATCH /{entity}/{item_id}`` - :meth:`ApiClient.patch`
* ``DELETE /{entity}/{item_id}`` - :meth:`ApiClient.delete`

Responses are JSON documents carrying the payload in a ``data`` field.
Any non-2xx response or transport failure raises :class:`ApiError`;
there is no retry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import requests

from . import config

logger = logging.getLogger(__name__)

Params = Mapping[str, Any]


class ApiError(Exception):
    """Raised when an API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApiClient:
    """Thin ``requests`` wrapper bound to a base URL."""

    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        timeout: float = config.API_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.headers: Dict[str, str] = {**config.DEFAULT_HEADERS, **(headers or {})}
        self.session = session or requests.Session()

    def _url(self, *parts: str) -> str:
        path = '/'.join(str(part).strip('/') for part in parts)
        return f"{self.base_url.rstrip('/')}/{path}"

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Params] = None,
        body: Optional[Any] = None,
        expect_body: bool = True,
    ) -> Any:
        query = {k: v for k, v in (params or {}).items() if v is not None} or None
        kwargs: Dict[str, Any] = {
            'headers': self.headers,
            'params': query,
            'timeout': self.timeout,
        }
        if body is not None and method != 'GET':
            kwargs['json'] = body

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.error("API request failed: %s %s: %s", method, url, exc)
            raise ApiError(f"API request failed: {exc}") from exc

        if not response.ok:
            logger.error("API request failed: %s %s returned %s", method, url, response.status_code)
            raise ApiError(
                f"API request failed: HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )

        if not expect_body or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.error("API response from %s %s is not valid JSON", method, url)
            raise ApiError("API request failed: invalid JSON response", response.status_code) from exc

    @staticmethod
    def _payload(document: Any) -> Any:
        if isinstance(document, dict) and 'data' in document:
            return document['data']
        return document

    @staticmethod
    def _split_id(data: Mapping[str, Any]) -> tuple:
        if 'id' not in data:
            raise ValueError("Update data must include an 'id'")
        body = {k: v for k, v in data.items() if k != 'id'}
        return str(data['id']), body

    def get_all(self, entity: str, params: Optional[Params] = None) -> Any:
        return self._payload(self._request('GET', self._url(entity), params=params))

    def get_by_id(self, entity: str, item_id: str) -> Any:
        return self._payload(self._request('GET', self._url(entity, item_id)))

    def save_new(self, entity: str, data: Mapping[str, Any]) -> Any:
        return self._payload(self._request('POST', self._url(entity), body=dict(data)))

    def update(self, entity: str, data: Mapping[str, Any]) -> Any:
        """Replace an entity; ``data['id']`` selects it and is left out of the body."""
        item_id, body = self._split_id(data)
        return self._payload(self._request('PUT', self._url(entity, item_id), body=body))

    def patch(self, entity: str, data: Mapping[str, Any]) -> Any:
        item_id, body = self._split_id(data)
        return self._payload(self._request('PATCH', self._url(entity, item_id), body=body))

    def delete(self, entity: str, item_id: str) -> None:
        self._request('DELETE', self._url(entity, item_id), expect_body=False)

    def set_headers(self, headers: Dict[str, str]) -> None:
        """Merge extra headers, e.g. for authentication."""
        self.headers = {**self.headers, **headers}

    def set_base_url(self, url: str) -> None:
        self.base_url = url

    def set_timeout(self, timeout: float) -> None:
        self.timeout = timeout


class EntityApi:
    """CRUD operations bound to a single entity name."""

    def __init__(self, client: ApiClient, entity: str):
        self.client = client
        self.entity = entity

    def get_all(self, params: Optional[Params] = None) -> Any:
        return self.client.get_all(self.entity, params)

    def get_by_id(self, item_id: str) -> Any:
        return self.client.get_by_id(self.entity, item_id)

    def save_new(self, data: Mapping[str, Any]) -> Any:
        return self.client.save_new(self.entity, data)

    def update(self, data: Mapping[str, Any]) -> Any:
        return self.client.update(self.entity, data)

    def patch(self, data: Mapping[str, Any]) -> Any:
        return self.client.patch(self.entity, data)

    def delete(self, item_id: str) -> None:
        self.client.delete(self.entity, item_id)


class Api:
    """Convenience bindings for the entities the application uses."""

    def __init__(self, client: Optional[ApiClient] = None):
        self.client = client or ApiClient()
        self.expenses = EntityApi(self.client, config.API_ENDPOINTS['expenses'])
        self.categories = EntityApi(self.client, config.API_ENDPOINTS['categories'])

    def entity(self, name: str) -> EntityApi:
        return EntityApi(self.client, name)


def create_api(client: Optional[ApiClient] = None) -> Api:
    return Api(client)
