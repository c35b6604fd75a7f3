"""Flask app exposing the handlers to Jira automation webhooks.

Each accessory run collects its summary from the shared ``snipe_sync`` logger,
so calls must not overlap. The CLI serves with ``threaded=False``; behind a
WSGI server use a single-threaded worker per process.
"""

import hmac
import logging
from typing import Any, Dict

from flask import Blueprint, Flask, Response, current_app, jsonify, request

from .handlers import AccessorySyncService

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__)


def _to_response(envelope: Dict[str, Any]) -> Response:
    content_type = envelope['headers']['Content-Type'][0]
    return Response(envelope['body'], status=envelope['statusCode'], content_type=content_type)


def _service() -> AccessorySyncService:
    return current_app.extensions['snipe_sync']


@webhooks_bp.before_request
def check_shared_secret():
    secret = current_app.config.get('WEBHOOK_SHARED_SECRET')
    if not secret:
        return None
    provided = request.headers.get('X-Webhook-Secret', '')
    if not hmac.compare_digest(provided, secret):
        logger.warning(f"Rejected webhook call to {request.path}: bad shared secret")
        return Response("Unauthorized", status=401, content_type='text/plain; charset=utf-8')
    return None


@webhooks_bp.route("/webhooks/accessories", methods=["POST"])
def accessories_webhook():
    return _to_response(_service().handle_accessory_request(request.get_data(as_text=True)))


@webhooks_bp.route("/webhooks/accessories/checked-out", methods=["POST"])
def checked_out_webhook():
    return _to_response(_service().handle_checked_out_listing(request.get_data(as_text=True)))


@webhooks_bp.route("/tasks/sync-fields", methods=["POST"])
def sync_fields_task():
    return _to_response(_service().handle_field_sync())


def create_app(config, service: AccessorySyncService = None) -> Flask:
    app = Flask(__name__)
    app.config['WEBHOOK_SHARED_SECRET'] = config.get('WEBHOOK_SHARED_SECRET')
    app.extensions['snipe_sync'] = service or AccessorySyncService(config)

    app.register_blueprint(webhooks_bp)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    return app
