"""Data containers shared by the gateways and the reconciliation core."""

import re
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from .errors import InvalidAccessoryType, PayloadError
from .matching import decode_html_entities

SUSTAINABLE_MARKER = "(Sustainable)"
SUSTAINABLE_SUFFIX = f" {SUSTAINABLE_MARKER}"


class RequestType(Enum):
    """Processing branch selected by the Jira accessory-type field."""
    STOCK = "Stock Accessory"
    NEW = "New Accessory"
    RETURN = "(DO NOT USE) Return Accessory"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "RequestType":
        """Resolve a Jira select label, raising InvalidAccessoryType for anything unknown."""
        if isinstance(label, dict):
            # select fields sometimes arrive as {"value": "..."}
            label = label.get('value')
        if not isinstance(label, str):
            raise InvalidAccessoryType(label)
        key = label.strip()
        request_type = _REQUEST_TYPE_ALIASES.get(key)
        if request_type is None:
            raise InvalidAccessoryType(label)
        return request_type


_REQUEST_TYPE_ALIASES = {member.value: member for member in RequestType}
_REQUEST_TYPE_ALIASES["Return Accessory"] = RequestType.RETURN


@dataclass
class ApiResult:
    """Outcome of a mutating Snipe-IT call: status indicator plus payload or messages."""
    status: str
    payload: Optional[Dict[str, Any]] = None
    messages: Any = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def payload_id(self) -> Optional[int]:
        if not self.payload:
            return None
        return self.payload.get('id')

    @property
    def error_message(self) -> str:
        if isinstance(self.messages, dict):
            return "; ".join(
                f"{key}: {', '.join(value) if isinstance(value, list) else value}"
                for key, value in self.messages.items()
            )
        return str(self.messages or "unknown error")

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "ApiResult":
        return cls(
            status=data.get('status', 'error'),
            payload=data.get('payload'),
            messages=data.get('messages')
        )

    @classmethod
    def failure(cls, message: str) -> "ApiResult":
        return cls(status="error", messages=message)


@dataclass
class Accessory:
    """One stocked item at one location."""
    id: int
    name: str
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    company_id: Optional[int] = None
    location_id: Optional[int] = None
    quantity: int = 0
    remaining_quantity: int = 0

    @property
    def decoded_name(self) -> str:
        return decode_html_entities(self.name)

    @property
    def is_sustainable(self) -> bool:
        return SUSTAINABLE_MARKER in self.name

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "Accessory":
        category = row.get('category') or {}
        company = row.get('company') or {}
        location = row.get('location') or {}
        quantity = int(row.get('qty') or 0)
        remaining = row.get('remaining_qty', row.get('remaining'))
        return cls(
            id=row['id'],
            name=row.get('name') or '',
            category_id=category.get('id'),
            category_name=category.get('name'),
            company_id=company.get('id'),
            location_id=location.get('id'),
            quantity=quantity,
            remaining_quantity=int(remaining) if remaining is not None else quantity
        )


def sustainable_name(name: str) -> str:
    return f"{name}{SUSTAINABLE_SUFFIX}"


@dataclass
class SnipeUser:
    id: int
    name: str = ''
    username: str = ''
    email: str = ''

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "SnipeUser":
        return cls(
            id=row['id'],
            name=row.get('name') or '',
            username=row.get('username') or '',
            email=row.get('email') or ''
        )


@dataclass
class CheckoutAssignment:
    """One unit of an accessory assigned to a user."""
    assigned_pivot_id: int
    accessory_id: Optional[int] = None
    user_id: Optional[int] = None
    username: str = ''
    note: str = ''

    @classmethod
    def from_api(cls, row: Dict[str, Any], accessory_id: Optional[int] = None) -> "CheckoutAssignment":
        return cls(
            assigned_pivot_id=row['assigned_pivot_id'],
            accessory_id=accessory_id,
            user_id=row.get('id'),
            username=row.get('username') or '',
            note=row.get('note') or ''
        )


@dataclass
class CustomFieldOption:
    id: str
    value: str
    disabled: bool = False

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "CustomFieldOption":
        return cls(id=str(row['id']), value=row.get('value', ''), disabled=bool(row.get('disabled', False)))


_ISSUE_KEY_PATTERN = re.compile(r'([A-Z][A-Z0-9_]+-\d+)/?$')


@dataclass
class RequestPayload:
    """Inbound Jira issue data for one accessory request."""
    reporter_email: str
    issue_url: str = ''
    issue_key: Optional[str] = None
    location_name: str = ''
    company_name: str = ''
    request_type_label: Any = None
    accessory_fields: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], config) -> "RequestPayload":
        """Build a payload from the webhook JSON using the configured field ids."""
        if not isinstance(data, dict):
            raise PayloadError("Webhook body must be a JSON object")
        reporter = data.get('reporterEmail')
        if not reporter:
            raise PayloadError("Webhook body is missing reporterEmail")

        issue_url = data.get('issueUrl') or ''
        if isinstance(issue_url, dict):
            issue_url = issue_url.get('issueUrl', '')

        issue_key = data.get('issueKey')
        if not issue_key and issue_url:
            match = _ISSUE_KEY_PATTERN.search(issue_url)
            issue_key = match.group(1) if match else None

        accessory_fields = {}
        for field_name in config.accessory_fields:
            value = data.get(field_name)
            if isinstance(value, str) and value:
                accessory_fields[field_name] = value

        return cls(
            reporter_email=reporter,
            issue_url=issue_url,
            issue_key=issue_key,
            location_name=data.get(config.get('JIRA_LOCATION_FIELD')) or '',
            company_name=data.get(config.get('JIRA_COMPANY_FIELD')) or '',
            request_type_label=data.get(config.get('JIRA_ACCESSORY_TYPE_FIELD')),
            accessory_fields=accessory_fields
        )

    def accessory_names(self) -> List[str]:
        """Requested names in field order then list order; duplicates are kept."""
        names = []
        for value in self.accessory_fields.values():
            names.extend(part.strip() for part in value.split(','))
        return [name for name in names if name]
