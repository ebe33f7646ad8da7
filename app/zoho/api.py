import logging
import threading
import time
from functools import lru_cache
from typing import Optional

import httpx
import logfire

from app.core.config import settings
from app.zoho.models import CrmRecord, EntityResponse

logger = logging.getLogger('portal_sync.zoho')

RATE_LIMIT_STATUS_CODE = 429
UNAUTHORIZED_STATUS_CODE = 401
NO_CONTENT_STATUS_CODE = 204


class ZohoAuthError(Exception):
    """Raised when Zoho won't give us an access token"""

    pass


class ZohoClient:
    """
    Talks to the Zoho CRM v2 REST API. One of these should be shared by the whole process (see get_zoho_client) so we
    only authenticate once.
    """

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(transport=transport, timeout=settings.zoho_api_timeout)
        self._lock = threading.Lock()
        self._initialized = False
        self._access_token: Optional[str] = None
        self.api_domain = settings.zoho_api_domain

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self):
        """
        Gets an access token using our refresh token. Safe to call before every request; it only does anything the
        first time, or after the token has been thrown away.
        """
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            with logfire.span('zoho oauth refresh'):
                response = self._client.post(
                    f'{settings.zoho_accounts_url}/oauth/v2/token',
                    params={
                        'refresh_token': settings.zoho_refresh_token,
                        'client_id': settings.zoho_client_id,
                        'client_secret': settings.zoho_client_secret,
                        'grant_type': 'refresh_token',
                    },
                )
                response.raise_for_status()
                data = response.json()
                if 'access_token' not in data:
                    # Zoho returns 200 with an error key for bad credentials
                    raise ZohoAuthError(f'Unable to get Zoho access token: {data.get("error", data)}')
                self._access_token = data['access_token']
                self._initialized = True
                logger.info('Authenticated with Zoho, api_domain=%s', self.api_domain)

    def _reset_auth(self):
        with self._lock:
            self._initialized = False
            self._access_token = None

    def request(
        self,
        endpoint: str,
        *,
        method: str = 'GET',
        query_params: Optional[dict] = None,
        data: Optional[dict] = None,
        retry: int = 0,
        reauthed: bool = False,
    ) -> Optional[dict]:
        """
        Make a request to the Zoho CRM API.

        Args:
            endpoint: The API endpoint (without /crm/v2/ prefix)
            method: HTTP method (GET, POST, PUT)
            query_params: Query parameters dict
            data: Request body data
            retry: Internal retry counter
            reauthed: Whether we've already refreshed the token for this request

        Returns:
            Response JSON data, or None when Zoho has no content for us
        """
        self.initialize()
        url = f'{self.api_domain}/crm/{settings.zoho_api_version}/{endpoint}'
        headers = {'Authorization': f'Zoho-oauthtoken {self._access_token}', 'Accept': 'application/json'}

        with logfire.span(f'{method} {endpoint}'):
            response = self._client.request(method=method, url=url, headers=headers, params=query_params, json=data)
            logger.info(f'Request method={method} url={endpoint} status_code={response.status_code}')

            if response.status_code == UNAUTHORIZED_STATUS_CODE and not reauthed:
                # Access tokens only last an hour
                self._reset_auth()
                return self.request(endpoint, method=method, query_params=query_params, data=data, reauthed=True)

            if (
                response.status_code == RATE_LIMIT_STATUS_CODE
                and settings.zoho_api_enable_retry
                and retry < settings.zoho_api_max_retry
            ):
                wait_time = (retry + 1) * 2
                logger.warning(
                    f'Zoho API rate limit for {method} {endpoint}, retry {retry + 1}/{settings.zoho_api_max_retry}, '
                    f'waiting {wait_time}s...'
                )
                time.sleep(wait_time)
                return self.request(
                    endpoint, method=method, query_params=query_params, data=data, retry=retry + 1, reauthed=reauthed
                )

            if response.status_code == NO_CONTENT_STATUS_CODE:
                return None

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                try:
                    error_data = response.json()
                except ValueError:
                    error_data = response.text
                # Record level errors on writes still come back in the usual `data` list
                is_write = method in ('POST', 'PUT')
                if is_write and isinstance(error_data, dict) and isinstance(error_data.get('data'), list):
                    return error_data
                logger.error(f'Zoho API error: {e}. Response: {error_data}')
                raise
            return response.json()

    def _write_records(
        self, method: str, module: str, records: list[dict], triggers: list[str]
    ) -> list[EntityResponse]:
        result = self.request(module, method=method, data={'data': records, 'trigger': triggers})
        return [EntityResponse.model_validate(r) for r in result['data']]

    def create_records(self, module: str, records: list[dict], triggers: list[str]) -> list[EntityResponse]:
        """Create records, returning one response per record in the same order"""
        return self._write_records('POST', module, records, triggers)

    def update_records(self, module: str, records: list[dict], triggers: list[str]) -> list[EntityResponse]:
        """Update records, each record must include its `id`"""
        return self._write_records('PUT', module, records, triggers)

    def get_record(self, module: str, record_id: str) -> CrmRecord:
        result = self.request(f'{module}/{record_id}')
        if not result or not result.get('data'):
            raise httpx.HTTPStatusError(
                f'No {module} record with id {record_id}',
                request=httpx.Request('GET', f'{self.api_domain}/crm/{settings.zoho_api_version}/{module}/{record_id}'),
                response=httpx.Response(NO_CONTENT_STATUS_CODE),
            )
        return CrmRecord.model_validate(result['data'][0])

    def get_records(self, module: str, page: int = 1, per_page: int = 200) -> list[CrmRecord]:
        result = self.request(module, query_params={'page': page, 'per_page': per_page})
        return [CrmRecord.model_validate(r) for r in (result or {}).get('data', [])]

    def search_records_by_criteria(
        self, module: str, criteria: str, page: int = 1, per_page: int = 200
    ) -> list[CrmRecord]:
        result = self.request(
            f'{module}/search', query_params={'criteria': criteria, 'page': page, 'per_page': per_page}
        )
        return [CrmRecord.model_validate(r) for r in (result or {}).get('data', [])]

    def close(self):
        self._client.close()


@lru_cache
def get_zoho_client() -> ZohoClient:
    """
    The process wide client. Also used as a FastAPI dependency so tests can override it.
    """
    return ZohoClient()
