"""State scoped to a single reconciliation run."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import Accessory, SnipeUser

logger = logging.getLogger(__name__)


class UserAccessoryCache:
    """Memoizes one user's assigned-accessory listing until invalidated."""

    def __init__(self):
        self._user_id: Optional[int] = None
        self._data: Optional[Dict[str, Any]] = None

    def get_or_fetch(self, user_id: int, fetch: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        if self._data is not None and self._user_id == user_id:
            return self._data
        data = fetch()
        # empty listings are not cached
        if data.get('Count'):
            self._user_id = user_id
            self._data = data
        return data

    def invalidate(self) -> None:
        self._user_id = None
        self._data = None


class CategoryIndex:
    """Accessory name -> category id, first occurrence wins, built from one full listing."""

    def __init__(self, accessories: Iterable[Accessory]):
        self._by_name: Dict[str, int] = {}
        for accessory in accessories:
            if accessory.category_id is not None and accessory.name not in self._by_name:
                self._by_name[accessory.name] = accessory.category_id

    def category_for(self, name: str) -> Optional[int]:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self._by_name)


@dataclass
class RunContext:
    """Everything one run resolves once and reuses across accessory items."""
    user: SnipeUser
    location_name: str
    company_name: str
    issue_url: str
    location_id: Optional[int] = None
    company_id: Optional[int] = None
    locations: Dict[str, int] = field(default_factory=dict)
    companies: Dict[str, int] = field(default_factory=dict)
    user_accessories: UserAccessoryCache = field(default_factory=UserAccessoryCache)
    category_index: Optional[CategoryIndex] = None

    def remember_location(self, name: str, location_id: int) -> None:
        self.locations[name] = location_id
        self.location_id = location_id

    def remember_company(self, name: str, company_id: int) -> None:
        self.companies[name] = company_id
        self.company_id = company_id

    def close(self) -> None:
        """Drop cached listings so the next read reflects this run's writes."""
        self.user_accessories.invalidate()
        self.category_index = None


@dataclass
class ItemOutcome:
    """Result of processing one requested accessory name."""
    name: str
    success: bool
    action: str = ''
    error: Optional[str] = None
    skipped: bool = False
    conversion_errors: List[str] = field(default_factory=list)
