"""Base Snipe-IT client with authentication and core API functionality."""

import logging
import requests
from typing import Any, Dict, Iterator, Optional

from ..errors import SnipeITAPIError

logger = logging.getLogger(__name__)


class SnipeITBaseClient:
    """Base Snipe-IT client handling authentication and core API operations."""
    
    def __init__(self, config, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.get('SNIPE_IT_BASE_URL').rstrip('/')
        self.timeout = config.get_int('HTTP_TIMEOUT')
        self.page_size = config.get_int('SNIPE_IT_PAGE_SIZE')
        
        self.session = session or requests.Session()
        self.session.headers.update(self._get_headers())
        
        logger.info("🔧 Snipe-IT base client initialized:")
        logger.info(f"   - Base URL: {self.base_url}")
        logger.info(f"   - Page size: {self.page_size}")

    def _get_headers(self) -> Dict[str, str]:
        """Get API request headers."""
        return {
            "Authorization": f"Bearer {self.config.get('SNIPE_IT_TOKEN')}",
            "Accept": "application/json",
            "Content-Type": "application/json"
        }
        
    def _make_api_request(self, method: str, endpoint: str, data: Optional[Dict] = None,
                          params: Optional[Dict] = None) -> Dict[str, Any]:
        """Make an API request; any non-2xx status or transport failure raises SnipeITAPIError."""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        
        try:
            logger.debug(f"Making {method} request to: {url}")
            
            response = self.session.request(
                method=method,
                url=url,
                json=data,
                params=params,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"⚠️ Network issue with Snipe-IT API: {e}")
            raise SnipeITAPIError(str(e), method=method, endpoint=endpoint) from e

        logger.debug(f"Response status for {method} {endpoint}: {response.status_code}")

        if not response.ok:
            message = self._extract_error(response)
            logger.error(f"❌ HTTP error for {method} {endpoint}: {response.status_code}")
            logger.error(f"Response content: {response.text}")
            raise SnipeITAPIError(message, status_code=response.status_code, method=method, endpoint=endpoint)

        try:
            return response.json()
        except ValueError as e:
            raise SnipeITAPIError(
                f"Invalid JSON in response: {response.text[:200]}",
                status_code=response.status_code, method=method, endpoint=endpoint
            ) from e

    @staticmethod
    def _extract_error(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or "request failed"
        if isinstance(body, dict):
            return str(body.get('messages') or body.get('error') or body)
        return str(body)

    def _iter_rows(self, endpoint: str, params: Optional[Dict] = None) -> Iterator[Dict[str, Any]]:
        """Yield every row of a paginated listing, following limit/offset until total is reached."""
        offset = 0
        
        while True:
            query = dict(params or {}, limit=self.page_size, offset=offset)
            data = self._make_api_request('GET', endpoint, params=query)
            rows = data.get('rows') or []
            
            for row in rows:
                yield row
            
            offset += len(rows)
            total = data.get('total', 0)
            if not rows or offset >= total:
                break

    def test_connection(self) -> bool:
        """Test Snipe-IT API connection and return status."""
        try:
            self._make_api_request('GET', 'statuslabels', params={'limit': 1})
            logger.info("✅ Snipe-IT connection test successful")
            return True
        except SnipeITAPIError as e:
            logger.error(f"❌ Snipe-IT connection test failed: {e}")
            return False
