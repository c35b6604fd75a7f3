"""Exception hierarchy for the accessory synchronization service."""

from typing import Optional


class SnipeSyncError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(SnipeSyncError):
    """Required configuration is missing or malformed."""


class PayloadError(SnipeSyncError):
    """The inbound webhook body could not be parsed into a request."""


class UserNotFound(SnipeSyncError):
    """The reporter does not match any Snipe-IT user."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"User {identity} not found in Snipe-IT")


class LocationResolutionFailed(SnipeSyncError):
    """The target location neither exists nor could be created."""


class GatewayError(SnipeSyncError):
    """A remote API call failed (non-2xx status or transport failure)."""

    service = "remote"

    def __init__(self, message: str, status_code: Optional[int] = None, method: str = "", endpoint: str = ""):
        self.status_code = status_code
        self.method = method
        self.endpoint = endpoint
        prefix = f"{self.service} {method} {endpoint}".strip()
        if status_code is not None:
            prefix += f" [{status_code}]"
        super().__init__(f"{prefix}: {message}")
        self.message = message


class SnipeITAPIError(GatewayError):
    service = "Snipe-IT"


class JiraAPIError(GatewayError):
    service = "Jira"


# ===========================================
# ITEM-LEVEL ERRORS
# ===========================================

class ItemError(SnipeSyncError):
    """Failure scoped to a single requested accessory; the run continues."""


class AccessoryNotFound(ItemError):

    def __init__(self, name: str, location_name: str):
        self.name = name
        self.location_name = location_name
        super().__init__(f"Accessory {name} not found in Snipe-IT for location {location_name}.")


class CategoryResolutionFailed(ItemError):

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category ID not found for accessory: {name}")


class InvalidAccessoryType(ItemError):

    def __init__(self, label: Optional[str]):
        self.label = label
        super().__init__(f"Invalid accessory type: {label!r}")


class CheckoutFailed(ItemError):
    """Checkout (or the create/update that precedes it) was rejected."""


class CheckinFailed(ItemError):
    """No matching assignment, or the check-in call was rejected."""
