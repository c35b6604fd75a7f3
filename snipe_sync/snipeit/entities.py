"""Snipe-IT entity management for users, locations, and companies."""

import logging
from typing import Dict, List

from ..models import ApiResult, SnipeUser

logger = logging.getLogger(__name__)


class SnipeITEntityManager:
    """Lookups and on-demand creation of the entities an accessory hangs off."""
    
    def __init__(self, base_client):
        self.base_client = base_client
        self.config = base_client.config
        self.user_search_limit = self.config.get_int('SNIPE_IT_USER_SEARCH_LIMIT')

    # ===========================================
    # USER LOOKUP
    # ===========================================

    def search_users(self, query: str) -> List[SnipeUser]:
        """Search users; the API matches loosely, callers filter exactly."""
        data = self.base_client._make_api_request('GET', 'users', params={
            'search': query,
            'limit': self.user_search_limit
        })
        users = [SnipeUser.from_api(row) for row in data.get('rows') or []]
        logger.debug(f"Found {len(users)} users for search {query!r}")
        return users

    # ===========================================
    # LOCATION / COMPANY MANAGEMENT
    # ===========================================

    def list_locations(self) -> Dict[str, int]:
        """Return a name -> id mapping of every location."""
        locations = {
            row['name']: row['id']
            for row in self.base_client._iter_rows('locations', params={'sort': 'created_at'})
        }
        logger.debug(f"Loaded {len(locations)} locations from Snipe-IT")
        return locations

    def list_companies(self) -> Dict[str, int]:
        """Return a name -> id mapping of every company."""
        companies = {row['name']: row['id'] for row in self.base_client._iter_rows('companies')}
        logger.debug(f"Loaded {len(companies)} companies from Snipe-IT")
        return companies

    def create_location(self, name: str) -> ApiResult:
        if not name:
            return ApiResult.failure("Location name is empty")
        data = self.base_client._make_api_request('POST', 'locations', {'name': name})
        result = ApiResult.from_response(data)
        if result.ok:
            logger.info(f"✅ Created location {name} (ID: {result.payload_id})")
        return result

    def create_company(self, name: str) -> ApiResult:
        if not name:
            return ApiResult.failure("Company name is empty")
        data = self.base_client._make_api_request('POST', 'companies', {'name': name})
        result = ApiResult.from_response(data)
        if result.ok:
            logger.info(f"✅ Created company {name} (ID: {result.payload_id})")
        return result
