"""Snipe-IT inventory gateway combining the base client and its managers."""

import logging
from typing import Any, Dict, List, Optional

from .models import Accessory, ApiResult, CheckoutAssignment, SnipeUser
from .snipeit import SnipeITAccessoryManager, SnipeITBaseClient, SnipeITEntityManager

logger = logging.getLogger(__name__)


class SnipeITClient:
    """Single entry point for every Snipe-IT call the reconciliation core makes."""
    
    def __init__(self, config, session=None):
        self.config = config
        self.base_client = SnipeITBaseClient(config, session=session)
        self.entities = SnipeITEntityManager(self.base_client)
        self.accessories = SnipeITAccessoryManager(self.base_client)

    def test_connection(self) -> bool:
        return self.base_client.test_connection()

    # Accessories

    def list_accessories(self) -> List[Accessory]:
        return self.accessories.list_accessories()

    def search_accessories(self, name: str) -> List[Accessory]:
        return self.accessories.search_accessories(name)

    def find_accessory_details(self, name: str, location_id: Any) -> Optional[Accessory]:
        return self.accessories.find_accessory_details(name, location_id)

    def create_accessory(self, name: str, quantity: int, category_id: Optional[int],
                         location_id: Optional[int], company_id: Optional[int]) -> ApiResult:
        return self.accessories.create_accessory(name, quantity, category_id, location_id, company_id)

    def update_accessory_quantity(self, accessory_id: int, quantity: int) -> ApiResult:
        return self.accessories.update_accessory_quantity(accessory_id, quantity)

    def checkout_accessory(self, accessory_id: int, user_id: int, note: str) -> ApiResult:
        return self.accessories.checkout_accessory(accessory_id, user_id, note)

    def checkin_accessory(self, assigned_pivot_id: int) -> ApiResult:
        return self.accessories.checkin_accessory(assigned_pivot_id)

    def list_checked_out(self, accessory_id: int) -> List[CheckoutAssignment]:
        return self.accessories.list_checked_out(accessory_id)

    def list_user_accessories(self, user_id: int) -> List[Dict[str, Any]]:
        return self.accessories.list_user_accessories(user_id)

    # Users, locations, companies

    def search_users(self, query: str) -> List[SnipeUser]:
        return self.entities.search_users(query)

    def list_locations(self) -> Dict[str, int]:
        return self.entities.list_locations()

    def list_companies(self) -> Dict[str, int]:
        return self.entities.list_companies()

    def create_location(self, name: str) -> ApiResult:
        return self.entities.create_location(name)

    def create_company(self, name: str) -> ApiResult:
        return self.entities.create_company(name)
