"""Keep Jira custom field options aligned with the Snipe-IT accessory catalog."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .models import CustomFieldOption

logger = logging.getLogger(__name__)


@dataclass
class OptionChanges:
    new_options: List[str] = field(default_factory=list)
    obsolete_options: List[CustomFieldOption] = field(default_factory=list)


@dataclass
class FieldSyncResult:
    field_id: str
    category: str
    added: int = 0
    removed: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {'error': self.error}
        return {
            'synchronized': f"Added {self.added} new options and removed {self.removed} obsolete options."
        }


def determine_option_changes(current_options: List[CustomFieldOption], fetched_names: Set[str]) -> OptionChanges:
    """Set difference both ways, by exact string match of decoded name against option value."""
    current_values = {option.value for option in current_options}
    return OptionChanges(
        new_options=sorted(name for name in fetched_names if name not in current_values),
        obsolete_options=[option for option in current_options if option.value not in fetched_names]
    )


class FieldSynchronizer:
    """Converges one custom field's options to the distinct accessory names of one category."""

    def __init__(self, inventory, tracker):
        self.inventory = inventory
        self.tracker = tracker

    def fetch_category_names(self, category: str) -> Set[str]:
        return {
            accessory.decoded_name
            for accessory in self.inventory.list_accessories()
            if accessory.category_name == category
        }

    def synchronize(self, field_id: str, category: str) -> FieldSyncResult:
        """Never raises; any failure is reported on the result for this field only."""
        result = FieldSyncResult(field_id=str(field_id), category=category)
        try:
            fetched_names = self.fetch_category_names(category)

            contexts = self.tracker.fetch_field_contexts(field_id)
            if not contexts:
                raise ValueError(f"Custom field {field_id} has no context")
            context_id = contexts[0]['id']

            current_options = self.tracker.fetch_field_options(field_id, context_id)
            changes = determine_option_changes(current_options, fetched_names)

            if changes.new_options:
                self.tracker.add_field_options(field_id, context_id, changes.new_options)
            for option in changes.obsolete_options:
                self.tracker.delete_field_option(field_id, context_id, option.id)

            result.added = len(changes.new_options)
            result.removed = len(changes.obsolete_options)
            logger.info(
                f"Field {field_id} ({category}): added {result.added}, removed {result.removed} "
                f"({len(fetched_names)} accessories in category)"
            )
        except Exception as e:
            logger.error(f"❌ Field {field_id} ({category}) synchronization failed: {e}")
            result.error = str(e)
        return result


def synchronize_all_fields(synchronizer: FieldSynchronizer, field_categories: Dict[str, str],
                           max_workers: int = 6) -> List[FieldSyncResult]:
    """One task per configured field; results come back in configuration order."""
    if not field_categories:
        return []

    with ThreadPoolExecutor(max_workers=max(1, min(int(max_workers), len(field_categories)))) as executor:
        futures = [
            executor.submit(synchronizer.synchronize, field_id, category)
            for field_id, category in field_categories.items()
        ]
        results = [future.result() for future in futures]

    logger.info("Field Update operation completed successfully.")
    return results
