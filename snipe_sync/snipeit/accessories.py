"""Snipe-IT accessory operations: listing, creation, stock, checkout and check-in."""

import logging
from typing import Any, Dict, List, Optional

from ..matching import first_match, normalized_match
from ..models import Accessory, ApiResult, CheckoutAssignment

logger = logging.getLogger(__name__)


class SnipeITAccessoryManager:
    """Accessory endpoints of the Snipe-IT API."""
    
    def __init__(self, base_client):
        self.base_client = base_client

    # ===========================================
    # LOOKUPS
    # ===========================================

    def list_accessories(self) -> List[Accessory]:
        accessories = [Accessory.from_api(row) for row in self.base_client._iter_rows('accessories')]
        logger.debug(f"Fetched {len(accessories)} accessories")
        return accessories

    def search_accessories(self, name: str) -> List[Accessory]:
        rows = self.base_client._iter_rows('accessories', params={'search': name.strip()})
        return [Accessory.from_api(row) for row in rows]

    def find_accessory_details(self, name: str, location_id: Any) -> Optional[Accessory]:
        """Search by name, then pick the trimmed case-insensitive match at the location."""
        logger.debug(f"Fetching details for accessory: '{name}' at location ID: {location_id}")
        accessory = first_match(self.search_accessories(name), name, location_id, strategy=normalized_match)
        if accessory is None:
            logger.debug(f"No details found for accessory: '{name}' at location ID: {location_id}")
        return accessory

    def list_checked_out(self, accessory_id: int) -> List[CheckoutAssignment]:
        """Current assignments of one accessory."""
        data = self.base_client._make_api_request('GET', f'accessories/{accessory_id}/checkedout')
        rows = data.get('rows') or []
        logger.debug(f"Accessory {accessory_id} has {len(rows)} checked out units")
        return [CheckoutAssignment.from_api(row, accessory_id=accessory_id) for row in rows]

    def list_user_accessories(self, user_id: int) -> List[Dict[str, Any]]:
        data = self.base_client._make_api_request('GET', f'users/{user_id}/accessories')
        return data.get('rows') or []

    # ===========================================
    # MUTATIONS
    # ===========================================

    def create_accessory(self, name: str, quantity: int, category_id: Optional[int],
                         location_id: Optional[int], company_id: Optional[int]) -> ApiResult:
        logger.debug(
            f"Attempting to create accessory with Name: {name}, LocationId: {location_id}, "
            f"CompanyId: {company_id}, CategoryId: {category_id}"
        )
        if not company_id or not category_id:
            message = f"Cannot create accessory '{name}' without a valid CompanyId and CategoryId."
            logger.error(message)
            return ApiResult.failure(message)
        
        data = self.base_client._make_api_request('POST', 'accessories', {
            'name': name,
            'qty': quantity,
            'category_id': category_id,
            'location_id': location_id,
            'company_id': company_id
        })
        return ApiResult.from_response(data)

    def update_accessory_quantity(self, accessory_id: int, quantity: int) -> ApiResult:
        logger.debug(f"Updating quantity for accessory ID {accessory_id} to {quantity}")
        data = self.base_client._make_api_request('PATCH', f'accessories/{accessory_id}', {'qty': quantity})
        return ApiResult.from_response(data)

    def checkout_accessory(self, accessory_id: int, user_id: int, note: str) -> ApiResult:
        logger.debug(f"Checking out accessory with ID: {accessory_id} for user ID: {user_id}")
        data = self.base_client._make_api_request('POST', f'accessories/{accessory_id}/checkout', {
            'assigned_to': user_id,
            'checkout_to_type': 'user',
            'note': note
        })
        return ApiResult.from_response(data)

    def checkin_accessory(self, assigned_pivot_id: int) -> ApiResult:
        """Check in one assignment; the path takes the pivot id, not the accessory id."""
        data = self.base_client._make_api_request('POST', f'accessories/{assigned_pivot_id}/checkin')
        return ApiResult.from_response(data)
