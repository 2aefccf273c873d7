"""
HTTP client for the remote expense/income API
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd
import requests

from .config import API_BASE_URL, REQUEST_TIMEOUT
from .exceptions import (
    ApiError,
    AuthenticationError,
    RequestCancelled,
    SessionExpiredError,
)
from .records import Record, RecordKind, records_to_frame, validate_record
from .session import AppContext

logger = logging.getLogger(__name__)

# Matched case-sensitively against the server message.
SESSION_MARKERS = ('token', 'Unauthorized')
LOGIN_FAILED_MESSAGE = 'Invalid username or password. Please try again.'


class CancellationToken:
    """Set by a view when it goes away; checked before results are committed."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelled("View closed before the response arrived")


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ''
    if isinstance(body, dict):
        return str(body.get('message') or body.get('error') or '')
    return ''


class ApiClient:
    """Thin wrapper around ``requests.Session`` that attaches the bearer token."""

    def __init__(self, context: AppContext, base_url: str = API_BASE_URL,
                 timeout: float = REQUEST_TIMEOUT, session: Optional[requests.Session] = None):
        self.context = context
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        fallback_message: str = 'Request failed',
        cancel_token: Optional[CancellationToken] = None,
        require_auth: bool = True,
    ) -> Any:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        if require_auth and not self.context.access_token:
            raise AuthenticationError()

        headers = {}
        if self.context.access_token:
            headers['Authorization'] = f"Bearer {self.context.access_token}"

        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, json=json, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise ApiError(fallback_message) from exc

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        if response.status_code >= 400:
            self._raise_for_status(response, fallback_message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _raise_for_status(self, response: requests.Response, fallback_message: str) -> None:
        status = response.status_code
        message = _error_message(response)
        if status in (401, 403) and any(marker in message for marker in SESSION_MARKERS):
            logger.warning("Token expired or invalid, logging out...")
            self.context.teardown()
            raise SessionExpiredError(status=status)
        logger.error("API error %s: %s", status, message or fallback_message)
        raise ApiError(message or fallback_message, status=status)


class AuthService:
    """Account endpoints under ``/auth``."""

    def __init__(self, client: ApiClient):
        self.client = client

    def register(self, user_data: Dict[str, Any]) -> Any:
        return self.client.request('POST', '/auth/register', json=user_data,
                                   fallback_message='Registration failed', require_auth=False)

    def login(self, credentials: Dict[str, Any]) -> Dict[str, Any]:
        payload = self.client.request('POST', '/auth/login', json=credentials,
                                      fallback_message=LOGIN_FAILED_MESSAGE, require_auth=False)
        self.client.context.login(payload or {})
        logger.info("Logged in as %s", (payload or {}).get('username'))
        return payload

    def logout(self) -> None:
        try:
            self.client.request('POST', '/auth/logout', fallback_message='Logout failed')
        except (ApiError, AuthenticationError) as exc:
            logger.info("Logout error: %s", exc)
        finally:
            self.client.context.teardown()

    def refresh(self) -> Dict[str, Any]:
        payload = self.client.request(
            'POST', '/auth/refresh',
            json={'refreshToken': self.client.context.refresh_token},
            fallback_message='Could not refresh session', require_auth=False,
        ) or {}
        if payload.get('accessToken'):
            self.client.context.update_tokens(payload['accessToken'], payload.get('refreshToken'))
        return payload

    def me(self) -> Dict[str, Any]:
        return self.client.request('GET', '/auth/me', fallback_message='Failed to load profile')

    def update_profile(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        payload = self.client.request('PUT', '/auth/update', json=user_data,
                                      fallback_message='Failed to update profile')
        if isinstance(payload, dict) and self.client.context.user is not None:
            self.client.context.user.update(
                {k: v for k, v in payload.items() if k not in {'accessToken', 'refreshToken'}}
            )
            self.client.context.persist()
        return payload


class RecordService:
    """CRUD calls for one record kind."""

    def __init__(self, client: ApiClient, kind: Union[RecordKind, str]):
        self.client = client
        self.kind = RecordKind(kind)

    @property
    def path(self) -> str:
        return f"/{self.kind.plural}"

    def list_records(self, cancel_token: Optional[CancellationToken] = None) -> List[Record]:
        payload = self.client.request('GET', self.path, cancel_token=cancel_token,
                                      fallback_message=f"Failed to fetch {self.kind.plural}")
        return [Record.from_payload(item, self.kind) for item in payload or []]

    def create_record(self, record: Record,
                      cancel_token: Optional[CancellationToken] = None) -> Record:
        validate_record(record)
        payload = self.client.request('POST', self.path, json=record.to_payload(),
                                      cancel_token=cancel_token,
                                      fallback_message=f"Failed to add {self.kind.value}")
        return Record.from_payload(payload, self.kind) if isinstance(payload, dict) else record

    def update_record(self, record_id: Any, record: Record,
                      cancel_token: Optional[CancellationToken] = None) -> Record:
        validate_record(record)
        payload = self.client.request('PUT', f"{self.path}/{record_id}", json=record.to_payload(),
                                      cancel_token=cancel_token,
                                      fallback_message=f"Failed to update {self.kind.value}")
        if isinstance(payload, dict):
            return Record.from_payload(payload, self.kind)
        return record.with_id(record_id)

    def delete_record(self, record_id: Any,
                      cancel_token: Optional[CancellationToken] = None) -> None:
        self.client.request('DELETE', f"{self.path}/{record_id}", cancel_token=cancel_token,
                            fallback_message=f"Failed to delete {self.kind.value}")


class RecordStore:
    """In-memory collection for one view, kept in step with the server."""

    def __init__(self, service: RecordService, cancel_token: Optional[CancellationToken] = None):
        self.service = service
        self.cancel_token = cancel_token or CancellationToken()
        self.records: List[Record] = []
        self._lock = threading.Lock()
        self._loading = False

    @property
    def kind(self) -> RecordKind:
        return self.service.kind

    @property
    def frame(self) -> pd.DataFrame:
        return records_to_frame(self.records)

    def load(self) -> bool:
        """Refetch the full collection; returns False when a load is already running."""
        with self._lock:
            if self._loading:
                logger.info("Skipping %s reload; a fetch is already in flight", self.kind.plural)
                return False
            self._loading = True
        try:
            records = self.service.list_records(self.cancel_token)
            self.cancel_token.raise_if_cancelled()
            self.records = records
            return True
        finally:
            with self._lock:
                self._loading = False

    def add(self, record: Record) -> Record:
        created = self.service.create_record(record, self.cancel_token)
        self.load()
        return created

    def update(self, record_id: Any, record: Record) -> Record:
        updated = self.service.update_record(record_id, record, self.cancel_token)
        self.load()
        return updated

    def remove(self, record_id: Any) -> None:
        self.service.delete_record(record_id, self.cancel_token)
        self.records = [r for r in self.records if r.id != record_id]

    def close(self) -> None:
        self.cancel_token.cancel()


def load_collections(client: ApiClient,
                     cancel_token: Optional[CancellationToken] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Fetch expenses and incomes concurrently; returns ``(expenses, incomes)`` frames."""
    services = [RecordService(client, RecordKind.EXPENSE), RecordService(client, RecordKind.INCOME)]
    with ThreadPoolExecutor(max_workers=len(services)) as pool:
        futures = [pool.submit(service.list_records, cancel_token) for service in services]
        expenses, incomes = (future.result() for future in futures)
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    return records_to_frame(expenses), records_to_frame(incomes)
