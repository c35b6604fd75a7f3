"""Accessory name matching strategies.

Two strategies coexist on purpose and must not be merged:

* ``exact_match`` - case-sensitive name equality plus location id equality.
  Used by the primary lookup that scans the accessory list.
* ``normalized_match`` - trimmed, case-insensitive name equality plus numeric
  location id equality. Used by the detail lookup behind sustainable
  conversion.
"""

import html
from typing import Any, Iterable, Optional, TypeVar

T = TypeVar('T')


def decode_html_entities(value: str) -> str:
    """Snipe-IT stores names HTML-escaped (``&amp;``, ``&quot;`` ...)."""
    if not value:
        return value
    return html.unescape(value)


def _same_location(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    try:
        return int(left) == int(right)
    except (TypeError, ValueError):
        return False


def exact_match(accessory, name: str, location_id: Any) -> bool:
    return accessory.name == name and accessory.location_id == location_id


def normalized_match(accessory, name: str, location_id: Any) -> bool:
    return (
        accessory.name.strip().lower() == name.strip().lower()
        and _same_location(accessory.location_id, location_id)
    )


def first_match(accessories: Iterable[T], name: str, location_id: Any, strategy=exact_match) -> Optional[T]:
    for accessory in accessories:
        if strategy(accessory, name, location_id):
            return accessory
    return None
