"""Reconciliation of a Jira accessory request against Snipe-IT inventory.

One run resolves the reporter, the target location and company, then walks
the requested accessory names strictly in payload order. Each name is an
independent item: a failure is logged and counted, and the run moves on.
Only an unknown reporter or an unresolvable location aborts the run.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .errors import (
    AccessoryNotFound,
    CategoryResolutionFailed,
    CheckinFailed,
    CheckoutFailed,
    InvalidAccessoryType,
    LocationResolutionFailed,
    SnipeSyncError,
    UserNotFound,
)
from .matching import exact_match, first_match
from .models import (
    Accessory,
    RequestPayload,
    RequestType,
    SnipeUser,
    sustainable_name,
)
from .run_cache import CategoryIndex, ItemOutcome, RunContext
from .run_log import RunCounters

logger = logging.getLogger(__name__)


@dataclass
class LegResult:
    """Outcome of one independent step of a sustainable conversion."""
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class ConversionResult:
    sustainable: LegResult
    original: LegResult

    @property
    def errors(self) -> List[str]:
        return [leg.error for leg in (self.sustainable, self.original) if not leg.ok and leg.error]


@dataclass
class RunSummary:
    reporter: str
    outcomes: List[ItemOutcome] = field(default_factory=list)
    counters: RunCounters = field(default_factory=RunCounters)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success and not outcome.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.skipped)


class ReconciliationEngine:
    """Drives Snipe-IT lookups and mutations for one accessory request at a time."""

    def __init__(self, inventory, counters: Optional[RunCounters] = None):
        self.inventory = inventory
        self.counters = counters if counters is not None else RunCounters()

        self._handlers: Dict[RequestType, Callable[[str, Optional[Accessory], RunContext], ItemOutcome]] = {
            RequestType.STOCK: self._process_stock_accessory,
            RequestType.NEW: self._process_new_accessory,
            RequestType.RETURN: self._process_return_accessory,
        }
        unhandled = set(RequestType) - set(self._handlers)
        if unhandled:
            raise RuntimeError(f"No handler registered for request types: {sorted(t.name for t in unhandled)}")

    # ===========================================
    # RUN
    # ===========================================

    def run(self, payload: RequestPayload) -> RunSummary:
        """Process every requested accessory; raises only for run-fatal errors."""
        user = self.resolve_user(payload.reporter_email)
        context = RunContext(
            user=user,
            location_name=payload.location_name,
            company_name=payload.company_name,
            issue_url=payload.issue_url
        )
        self._resolve_location(context)
        self._resolve_company(context)

        try:
            request_type = RequestType.from_label(payload.request_type_label)
            type_error = None
        except InvalidAccessoryType as e:
            request_type = None
            type_error = e

        summary = RunSummary(reporter=payload.reporter_email, counters=self.counters)
        names = payload.accessory_names()
        logger.debug(f"Requested accessories ({len(names)}): {names}")

        logger.info(f"Accessories assigned to {payload.reporter_email} in Snipe-IT BEFORE automation:")
        self._try_log_user_accessories(context)

        try:
            for index, name in enumerate(names, 1):
                logger.debug(f"[{index}/{len(names)}] Processing accessory: {name}")
                summary.outcomes.append(self._process_item(name, request_type, type_error, context))
        finally:
            logger.debug("Clearing user accessories cache.")
            context.close()

        logger.info(f"Accessories assigned to {payload.reporter_email} in Snipe-IT AFTER automation:")
        self._try_log_user_accessories(context)
        logger.info("Completed processing all accessories")
        return summary

    def _process_item(self, name: str, request_type: Optional[RequestType],
                      type_error: Optional[InvalidAccessoryType], context: RunContext) -> ItemOutcome:
        try:
            if request_type is None:
                raise type_error or InvalidAccessoryType(None)
            accessory = self.find_accessory(name, context)
            return self._handlers[request_type](name, accessory, context)
        except SnipeSyncError as e:
            logger.error(str(e))
            self.counters.errors += 1
            return ItemOutcome(name=name, success=False, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error processing accessory {name}: {e}", exc_info=True)
            self.counters.errors += 1
            return ItemOutcome(name=name, success=False, error=str(e))

    # ===========================================
    # RESOLUTION
    # ===========================================

    def resolve_user(self, identity: str) -> SnipeUser:
        """Exact email or username match among the search results."""
        for user in self.inventory.search_users(identity):
            if user.email == identity or user.username == identity:
                logger.debug(f"Matched user ID for {identity} in Snipe-IT: {user.id}")
                return user
        raise UserNotFound(identity)

    def _resolve_location(self, context: RunContext) -> None:
        context.locations = self.inventory.list_locations()
        location_id = context.locations.get(context.location_name)
        if location_id:
            context.location_id = location_id
            return

        logger.warning(f'Location "{context.location_name}" not found. Creating in Snipe-IT...')
        result = self.inventory.create_location(context.location_name)
        if not result.ok or not result.payload_id:
            raise LocationResolutionFailed(
                f"Failed to create location {context.location_name!r} in Snipe-IT: {result.error_message}"
            )
        context.remember_location(context.location_name, result.payload_id)

    def _resolve_company(self, context: RunContext) -> None:
        context.companies = self.inventory.list_companies()
        company_id = context.companies.get(context.company_name)
        if company_id:
            context.company_id = company_id
            return

        logger.warning(f'Company "{context.company_name}" not found. Creating in Snipe-IT...')
        result = self.inventory.create_company(context.company_name)
        if not result.ok or not result.payload_id:
            # accessories can still be checked out; creating new ones will fail per item
            logger.error(f"Failed to create company {context.company_name!r}: {result.error_message}")
            self.counters.errors += 1
            return
        context.remember_company(context.company_name, result.payload_id)

    def find_accessory(self, name: str, context: RunContext) -> Optional[Accessory]:
        """Exact (name, location) scan over a fresh listing; seeds the category index on first use."""
        accessories = self.inventory.list_accessories()
        if context.category_index is None:
            context.category_index = CategoryIndex(accessories)
            logger.debug(f"Category index built with {len(context.category_index)} names")
        return first_match(accessories, name, context.location_id, strategy=exact_match)

    def _category_for(self, name: str, context: RunContext) -> int:
        if context.category_index is None:
            context.category_index = CategoryIndex(self.inventory.list_accessories())
        category_id = context.category_index.category_for(name)
        if category_id is None:
            raise CategoryResolutionFailed(name)
        return category_id

    # ===========================================
    # REQUEST TYPES
    # ===========================================

    def _process_stock_accessory(self, name: str, accessory: Optional[Accessory], context: RunContext) -> ItemOutcome:
        if accessory is None:
            raise AccessoryNotFound(name, context.location_name)

        if accessory.remaining_quantity <= 0:
            logger.warning(
                f"No stock available for accessory: {accessory.name} in location {context.location_name}, "
                f"moving on to the next Accessory"
            )
            self.counters.warnings += 1
            return ItemOutcome(name=name, success=False, skipped=True, action='no_stock')

        logger.info(
            f"Accessory Checkout: {accessory.name} with current stock: {accessory.remaining_quantity} "
            f"in location {context.location_name}"
        )
        self._checkout(accessory.id, name, context)
        logger.info(
            f"Checked out to {context.user.name}: {accessory.name} and current stock remaining in location "
            f"{context.location_name}: {accessory.remaining_quantity - 1}"
        )
        return ItemOutcome(name=name, success=True, action='checked_out')

    def _process_new_accessory(self, name: str, accessory: Optional[Accessory], context: RunContext) -> ItemOutcome:
        if accessory is not None:
            logger.debug(f"Accessory {name} exists, updating stock.")
            result = self.inventory.update_accessory_quantity(accessory.id, accessory.quantity + 1)
            if not result.ok:
                raise CheckoutFailed(f"Failed to update stock for accessory: {name}: {result.error_message}")
            self._checkout(accessory.id, name, context)
            logger.info(f"Accessory {name} stock increased and checked out to user {context.user.name}.")
            return ItemOutcome(name=name, success=True, action='restocked_and_checked_out')

        logger.debug(f"Creating new accessory: {name}")
        category_id = self._category_for(name, context)
        result = self.inventory.create_accessory(name, 1, category_id, context.location_id, context.company_id)
        if not result.ok or not result.payload_id:
            raise CheckoutFailed(f"Failed to create accessory: {name}: {result.error_message}")

        new_id = result.payload_id
        self.counters.accessories_created += 1
        logger.info(f"Accessory '{name}' created successfully with ID: {new_id}")

        self._checkout(new_id, name, context)
        logger.info(f"Checked out accessory: {name} to user: {context.user.name}")
        return ItemOutcome(name=name, success=True, action='created_and_checked_out')

    def _process_return_accessory(self, name: str, accessory: Optional[Accessory], context: RunContext) -> ItemOutcome:
        if accessory is None:
            raise AccessoryNotFound(name, context.location_name)

        reporter = context.user.email or context.user.username
        usernames = {value for value in (context.user.email, context.user.username) if value}
        assignment = next(
            (row for row in self.inventory.list_checked_out(accessory.id) if row.username in usernames),
            None
        )
        if assignment is None:
            raise CheckinFailed(f"Accessory {name} not found as checked out to username {reporter}.")

        result = self.inventory.checkin_accessory(assignment.assigned_pivot_id)
        if not result.ok:
            raise CheckinFailed(f"Failed to check in accessory {name}: {result.error_message}")
        self.counters.checkins += 1
        logger.info(f"Accessory {name} checked in from {reporter} (assignment {assignment.assigned_pivot_id}).")

        outcome = ItemOutcome(name=name, success=True, action='checked_in')
        if accessory.is_sustainable:
            logger.debug(f"Checked in sustainable accessory without modifying the quantity: {name}")
            return outcome

        conversion = self.convert_to_sustainable(name, context)
        outcome.conversion_errors = conversion.errors
        return outcome

    def _checkout(self, accessory_id: int, name: str, context: RunContext) -> None:
        result = self.inventory.checkout_accessory(accessory_id, context.user.id, context.issue_url)
        if not result.ok:
            raise CheckoutFailed(f"Failed to check out accessory: {name}: {result.error_message}")
        self.counters.successful_checkouts += 1

    # ===========================================
    # SUSTAINABLE CONVERSION
    # ===========================================

    def convert_to_sustainable(self, name: str, context: RunContext) -> ConversionResult:
        """Move one returned unit onto the "(Sustainable)" variant.

        The variant leg (increment or create) and the original leg (decrement)
        run independently; both failures are reported, neither stops the other.
        """
        logger.debug(f"Starting conversion to sustainable for: {name}")
        variant_name = sustainable_name(name)

        original, lookup_error = self._lookup_details(name, context)
        sustainable = self._run_leg(variant_name, lambda: self._stock_sustainable_variant(name, original, context))

        if original is None:
            message = lookup_error or f"Original accessory not found for conversion to sustainable: {name}"
            logger.error(message)
            self.counters.errors += 1
            original_leg = LegResult(name=name, ok=False, error=message)
        else:
            original_leg = self._run_leg(name, lambda: self._decrement_original(original))

        logger.debug(f"Completed conversion to sustainable for: {name}")
        return ConversionResult(sustainable=sustainable, original=original_leg)

    def _lookup_details(self, name: str, context: RunContext):
        try:
            return self.inventory.find_accessory_details(name, context.location_id), None
        except SnipeSyncError as e:
            return None, f"Failed to look up {name} for conversion to sustainable: {e}"
        except Exception as e:
            logger.debug(f"Detail lookup for {name} raised", exc_info=True)
            return None, f"Failed to look up {name} for conversion to sustainable: {e}"

    def _run_leg(self, name: str, step: Callable[[], None]) -> LegResult:
        try:
            step()
            return LegResult(name=name, ok=True)
        except SnipeSyncError as e:
            logger.error(f"Failed to convert {name} to sustainable: {e}")
            self.counters.errors += 1
            return LegResult(name=name, ok=False, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error converting {name} to sustainable: {e}", exc_info=True)
            self.counters.errors += 1
            return LegResult(name=name, ok=False, error=str(e))

    def _stock_sustainable_variant(self, name: str, original: Optional[Accessory], context: RunContext) -> None:
        variant_name = sustainable_name(name)
        logger.debug(f"Checking for sustainable accessory: {variant_name}")
        existing = self.inventory.find_accessory_details(variant_name, context.location_id)

        if existing is not None:
            result = self.inventory.update_accessory_quantity(existing.id, existing.quantity + 1)
            if not result.ok:
                raise CheckoutFailed(f"Failed to update stock for {variant_name}: {result.error_message}")
            logger.info(f"Sustainable accessory '{variant_name}' stock increased to {existing.quantity + 1}")
            return

        category_id = self._category_for(name, context)
        company_id = original.company_id if original and original.company_id else context.company_id
        location_id = original.location_id if original and original.location_id else context.location_id
        result = self.inventory.create_accessory(variant_name, 1, category_id, location_id, company_id)
        if not result.ok or not result.payload_id:
            raise CheckoutFailed(f"Failed to create sustainable accessory: {variant_name}: {result.error_message}")
        self.counters.accessories_created += 1
        logger.info(f"Sustainable accessory '{variant_name}' created successfully with ID: {result.payload_id}")

    def _decrement_original(self, original: Accessory) -> None:
        logger.debug(f"Attempting to reduce stock for original accessory: {original.name}")
        new_quantity = max(0, original.quantity - 1)
        result = self.inventory.update_accessory_quantity(original.id, new_quantity)
        if not result.ok:
            raise CheckoutFailed(f"Failed to reduce stock for {original.name}: {result.error_message}")
        logger.info(f"Stock reduced for original accessory {original.name}: {original.quantity} -> {new_quantity}")

    # ===========================================
    # USER ACCESSORY LISTING
    # ===========================================

    def log_user_accessories(self, context: RunContext) -> Dict:
        """Log the user's assigned accessories, memoized for the run."""
        user = context.user

        def fetch() -> Dict:
            rows = self.inventory.list_user_accessories(user.id)
            if not rows:
                logger.warning(f"No accessories found for user ID {user.id}")
                return {"Action": "No Accessories Found", "Count": 0}
            accessories = [{"id": row.get('id'), "name": row.get('name')} for row in rows]
            for accessory in accessories:
                logger.info(f"Accessory ID: {accessory['id']}, Name: {accessory['name']}")
            return {"Action": "User Accessories Fetched", "Count": len(accessories), "Accessories": accessories}

        return context.user_accessories.get_or_fetch(user.id, fetch)

    def _try_log_user_accessories(self, context: RunContext) -> None:
        try:
            self.log_user_accessories(context)
        except SnipeSyncError as e:
            logger.warning(f"Could not list accessories for user ID {context.user.id}: {e}")
