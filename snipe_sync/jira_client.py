"""Jira Cloud client for custom field options and issue comments."""

import logging
import requests
from typing import Any, Dict, List, Optional

from .errors import JiraAPIError
from .models import CustomFieldOption

logger = logging.getLogger(__name__)


class JiraClient:
    """Handle the Jira REST v3 calls used by field synchronization and run reporting."""
    
    def __init__(self, config, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = f"{config.get('JIRA_BASE_URL').rstrip('/')}/rest/api/3"
        self.timeout = config.get_int('HTTP_TIMEOUT')
        
        self.session = session or requests.Session()
        self.session.auth = (config.get('JIRA_EMAIL'), config.get('JIRA_API_TOKEN'))
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json"
        })
        
        logger.info(f"🔧 Jira client initialized: {self.base_url}")

    @staticmethod
    def _field_path(field_id: Any) -> str:
        field_id = str(field_id)
        if not field_id.startswith('customfield_'):
            field_id = f"customfield_{field_id}"
        return f"field/{field_id}"

    def _request(self, method: str, endpoint: str, data: Optional[Dict] = None,
                 params: Optional[Dict] = None) -> Optional[Dict[str, Any]]:
        """Issue a request; returns parsed JSON, or None for empty (204) responses."""
        url = f"{self.base_url}/{endpoint}"
        
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
            logger.warning(f"⚠️ Network issue with Jira API: {e}")
            raise JiraAPIError(str(e), method=method, endpoint=endpoint) from e
            
        if not response.ok:
            logger.error(f"❌ HTTP error for {method} {endpoint}: {response.status_code}")
            logger.error(f"Response content: {response.text}")
            raise JiraAPIError(
                self._extract_error(response),
                status_code=response.status_code, method=method, endpoint=endpoint
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _extract_error(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or "request failed"
        messages = list(body.get('errorMessages') or [])
        messages.extend(f"{key}: {value}" for key, value in (body.get('errors') or {}).items())
        return "; ".join(messages) or str(body)

    # ===========================================
    # CUSTOM FIELD OPTIONS
    # ===========================================

    def fetch_field_contexts(self, field_id: Any) -> List[Dict[str, Any]]:
        data = self._request('GET', f"{self._field_path(field_id)}/context") or {}
        logger.debug(f"Fetched {len(data.get('values', []))} contexts for field {field_id}")
        return data.get('values', [])

    def fetch_field_options(self, field_id: Any, context_id: Any) -> List[CustomFieldOption]:
        """Every option of one context, following startAt/isLast paging."""
        options = []
        start_at = 0
        
        while True:
            data = self._request(
                'GET', f"{self._field_path(field_id)}/context/{context_id}/option",
                params={'startAt': start_at}
            ) or {}
            values = data.get('values', [])
            options.extend(CustomFieldOption.from_api(row) for row in values)
            start_at += len(values)
            
            if data.get('isLast', True) or not values:
                break
                
        logger.debug(f"Fetched {len(options)} options for field {field_id} context {context_id}")
        return options

    def add_field_options(self, field_id: Any, context_id: Any, values: List[str]) -> List[CustomFieldOption]:
        payload = {'options': [{'value': value, 'disabled': False} for value in values]}
        data = self._request('POST', f"{self._field_path(field_id)}/context/{context_id}/option", payload) or {}
        return [CustomFieldOption.from_api(row) for row in data.get('options', [])]

    def replace_field_options(self, field_id: Any, context_id: Any, options: List[Dict[str, Any]]) -> List[CustomFieldOption]:
        """Bulk update existing options (each dict carries ``id`` plus the changed attributes)."""
        data = self._request(
            'PUT', f"{self._field_path(field_id)}/context/{context_id}/option", {'options': options}
        ) or {}
        return [CustomFieldOption.from_api(row) for row in data.get('options', [])]

    def delete_field_option(self, field_id: Any, context_id: Any, option_id: Any) -> None:
        self._request('DELETE', f"{self._field_path(field_id)}/context/{context_id}/option/{option_id}")

    # ===========================================
    # ISSUES
    # ===========================================

    def add_comment(self, issue_key: str, text: str) -> Dict[str, Any]:
        """Post a plain-text comment, one ADF paragraph per line."""
        paragraphs = [
            {"type": "paragraph", "content": [{"type": "text", "text": line}]}
            for line in text.splitlines() if line.strip()
        ]
        body = {"body": {"type": "doc", "version": 1, "content": paragraphs}}
        return self._request('POST', f"issue/{issue_key}/comment", body) or {}
