"""Invocation entry points: parse the trigger, run the core, build the envelope."""

import json
import logging
from typing import Any, Dict, Optional, Union

from .errors import PayloadError, SnipeSyncError
from .field_sync import FieldSynchronizer, synchronize_all_fields
from .jira_client import JiraClient
from .models import RequestPayload
from .reconciliation import ReconciliationEngine
from .response_builder import build_log_summary_response, build_output, format_log_summary
from .run_log import capture_run_log
from .snipeit_client import SnipeITClient

logger = logging.getLogger(__name__)


def parse_body(body: Union[str, bytes, Dict[str, Any], None]) -> Dict[str, Any]:
    if isinstance(body, dict):
        return body
    if not body:
        raise PayloadError("Empty webhook body")
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise PayloadError(f"Webhook body is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise PayloadError("Webhook body must be a JSON object")
    return data


class AccessorySyncService:
    """Owns the gateways and exposes one method per trigger."""

    def __init__(self, config, inventory=None, tracker=None):
        self.config = config
        self.inventory = inventory or SnipeITClient(config)
        self.tracker = tracker or JiraClient(config)
        self.post_summary_comment = config.get_bool('JIRA_POST_SUMMARY_COMMENT')

    def handle_accessory_request(self, body) -> Dict[str, Any]:
        """Reconcile one Jira accessory request and return the plain-text summary."""
        with capture_run_log() as run_log:
            try:
                data = parse_body(body)
                logger.debug(f"Received JIRA payload: {json.dumps(data)}")
                payload = RequestPayload.from_dict(data, self.config)

                engine = ReconciliationEngine(self.inventory, counters=run_log.counters)
                summary = engine.run(payload)
                logger.debug(
                    f"Run finished for {summary.reporter}: {summary.succeeded} succeeded, "
                    f"{summary.failed} failed, {summary.skipped} skipped"
                )
            except SnipeSyncError as e:
                logger.error(f"Error in accessory request: {e}")
                return build_output({'error': str(e)})
            except Exception as e:
                logger.error(f"Unexpected error in accessory request: {e}", exc_info=True)
                return build_output({'error': str(e)})

            if self.post_summary_comment:
                self._post_comment(payload.issue_key, format_log_summary(run_log))
            return build_log_summary_response(run_log)

    def handle_field_sync(self) -> Dict[str, Any]:
        """Synchronize every configured custom field concurrently."""
        field_categories = self.config.field_categories
        synchronizer = FieldSynchronizer(self.inventory, self.tracker)
        results = synchronize_all_fields(
            synchronizer, field_categories, max_workers=self.config.get_int('FIELD_SYNC_WORKERS')
        )
        return build_output([result.to_dict() for result in results])

    def handle_checked_out_listing(self, body) -> Dict[str, Any]:
        """List the accessories currently assigned to the reporter."""
        try:
            data = parse_body(body)
            reporter = data.get('reporterEmail')
            if not reporter:
                raise PayloadError("Webhook body is missing reporterEmail")
            user = ReconciliationEngine(self.inventory).resolve_user(reporter)
            rows = self.inventory.list_user_accessories(user.id)
        except SnipeSyncError as e:
            logger.error(f"Error listing checked out accessories: {e}")
            return build_output({'error': str(e)})

        if not rows:
            logger.warning(f"No checked-out accessories found for user ID {user.id}")
            return build_output({"Action": "No Checked Out Accessories Found", "Count": 0})

        accessories = []
        for row in rows:
            last_checkout = row.get('last_checkout')
            if isinstance(last_checkout, dict):
                last_checkout = last_checkout.get('datetime')
            accessories.append({
                'assigned_pivot_id': row.get('assigned_pivot_id'),
                'name': row.get('name'),
                'last_checkout': last_checkout
            })
        return build_output({
            "Action": "Checked Out Accessories Fetched",
            "Count": len(accessories),
            "Accessories": accessories
        })

    def _post_comment(self, issue_key: Optional[str], text: str) -> None:
        if not issue_key:
            logger.warning("No issue key in payload, summary comment not posted")
            return
        try:
            self.tracker.add_comment(issue_key, text)
            logger.debug(f"Summary comment posted to {issue_key}")
        except SnipeSyncError as e:
            logger.warning(f"Could not post summary comment to {issue_key}: {e}")
