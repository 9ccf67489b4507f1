r"""HTTP clients for the edit and persistence services.

Both clients share one ``requests`` session with a retrying adapter, accept an
injected session for testing, and translate transport and HTTP failures into
the package's error types so callers never see ``requests`` exceptions.

Example
-------
>>> from sitepatch.services import HttpPersistenceClient
>>> store = HttpPersistenceClient("https://store.example/api", timeout=5)  # doctest: +SKIP
>>> store.fetch_page("page-1").version  # doctest: +SKIP
3
"""

from __future__ import annotations

import json
import typing as typ
from http import HTTPStatus

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from sitepatch.editor.models import (
    ChatMessage,
    EditRequest,
    EditResponse,
    Page,
    chat_history_payload,
)
from sitepatch.errors import PersistenceError, SitepatchError, TransportError
from sitepatch.sections import Section, sections_payload

DEFAULT_TIMEOUT = 30.0
_USER_AGENT = "sitepatch/0.1"


def build_session(*, retry_methods: typ.Iterable[str] = ("GET", "HEAD")) -> requests.Session:
    """Return a session that retries idempotent requests on 5xx responses."""
    session = requests.Session()
    retry = Retry(
        total=5,
        read=5,
        connect=3,
        backoff_factor=0.5,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=tuple(retry_methods),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class _JsonClient:
    """Shared request plumbing for the service clients."""

    error_type: type[SitepatchError] = TransportError
    service_name = "service"

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        base = base_url.strip().rstrip("/")
        if not base:
            msg = f"{self.service_name} base URL cannot be empty"
            raise ValueError(msg)
        self._base_url = base
        self._session = session or build_session()
        self.timeout = timeout
        self._headers = {
            "Accept": "application/json",
            "User-Agent": _USER_AGENT,
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()

    def _request(
        self, method: str, path: str, *, payload: object | None = None
    ) -> typ.Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                headers=self._headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            msg = f"Failed to reach {self.service_name} at {url}: {exc}"
            raise self.error_type(msg) from exc

        if response.status_code >= HTTPStatus.BAD_REQUEST:
            msg = (
                f"{self.service_name} {method} {path} failed with status "
                f"{response.status_code}: {_error_detail(response)}"
            )
            raise self.error_type(msg)
        if response.status_code == HTTPStatus.NO_CONTENT or not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            msg = f"{self.service_name} response for {path} was not valid JSON"
            raise self.error_type(msg) from exc


class HttpEditServiceClient(_JsonClient):
    """Request component edits from the edit service over HTTP."""

    service_name = "Edit service"

    def request_edit(self, request: EditRequest) -> EditResponse:
        """POST ``request`` to ``<base>/edit`` and parse the reply."""
        body = self._request("POST", "/edit", payload=request.to_payload())
        if not isinstance(body, dict):
            msg = "Edit service returned an empty response"
            raise TransportError(msg)
        return EditResponse.from_mapping(_unwrap(body))


class HttpPersistenceClient(_JsonClient):
    """Store and publish page versions through the persistence REST API.

    Paths are relative to ``<base>/pages``:

    - ``GET {id}`` fetches a page.
    - ``POST {id}/drafts`` creates (or reuses) a draft cloned from it.
    - ``PUT {id}/sections`` replaces sections and edit transcripts.
    - ``POST {id}/publish`` publishes a draft.
    - ``GET {id}/versions/{v}`` fetches a stored version.
    - ``POST {id}/versions/{v}/restore`` copies a version into the draft.
    """

    error_type = PersistenceError
    service_name = "Persistence service"

    def fetch_page(self, page_id: str) -> Page:
        return self._page("GET", f"/pages/{page_id}")

    def create_draft_from_page(self, page_id: str) -> Page:
        return self._page("POST", f"/pages/{page_id}/drafts")

    def update_sections(
        self,
        page_id: str,
        sections: typ.Sequence[Section],
        chat_history: typ.Mapping[str, typ.Sequence[ChatMessage]],
    ) -> None:
        payload = {
            "sections": sections_payload(sections),
            "edit_chat_history": chat_history_payload(chat_history),
        }
        self._request("PUT", f"/pages/{page_id}/sections", payload=payload)

    def publish(self, page_id: str) -> Page:
        return self._page("POST", f"/pages/{page_id}/publish")

    def fetch_version(self, page_id: str, version_id: str) -> Page:
        return self._page("GET", f"/pages/{page_id}/versions/{version_id}")

    def restore_version(self, page_id: str, version_id: str) -> Page:
        return self._page("POST", f"/pages/{page_id}/versions/{version_id}/restore")

    def _page(self, method: str, path: str) -> Page:
        body = self._request(method, path)
        if not isinstance(body, dict):
            msg = f"Persistence service returned no page for {path}"
            raise PersistenceError(msg)
        data = _unwrap(body)
        try:
            return Page.from_mapping(data)
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Persistence service returned a malformed page for {path}"
            raise PersistenceError(msg) from exc


def _unwrap(body: dict[str, typ.Any]) -> dict[str, typ.Any]:
    """Return the ``data`` envelope when the service wraps its payload."""
    data = body.get("data")
    return data if isinstance(data, dict) else body


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error")
        if detail:
            return str(detail)
    return response.text[:200]


__all__ = [
    "DEFAULT_TIMEOUT",
    "HttpEditServiceClient",
    "HttpPersistenceClient",
    "build_session",
]
