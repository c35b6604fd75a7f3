"""
Snipe-IT accessory sync: Jira webhook server, field option sync, and one-off payload runs.
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from .config import Config
from .errors import ConfigurationError
from .handlers import AccessorySyncService

logger = logging.getLogger(__name__)


def configure_logging(level: str = 'INFO', log_file: Optional[str] = 'snipe_sync.log') -> None:
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s',
        handlers=handlers
    )


class SnipeSyncApp:
    """Command-line orchestrator around AccessorySyncService."""

    def __init__(self, config: Config):
        self.config = config
        self.service = AccessorySyncService(config)
        logger.info("All components initialized successfully!")
        self._log_system_status()

    def _log_system_status(self):
        """Log current system configuration and status."""
        logger.info("System Configuration:")
        for key, value in self.config.export_safe_config().items():
            logger.info(f"   - {key}: {value}")

        logger.info("Service Status:")
        snipe_status = self.service.inventory.test_connection()
        logger.info(f"   - Snipe-IT: {'Connected' if snipe_status else 'Failed'}")

    def serve(self) -> None:
        from .webhook import create_app

        host = self.config.get('WEBHOOK_HOST')
        port = self.config.get_int('WEBHOOK_PORT')
        logger.info(f"Starting webhook server on {host}:{port}")
        # one request at a time: the run log buffer hangs off the shared package logger
        create_app(self.config, service=self.service).run(host=host, port=port, threaded=False)

    def sync_fields(self) -> int:
        start = time.time()
        envelope = self.service.handle_field_sync()
        logger.info(f"Field synchronization completed in {time.time() - start:.2f}s")
        print(envelope['body'])
        return 0

    def process(self, source: str) -> int:
        if source == '-':
            body = sys.stdin.read()
        else:
            with open(source, encoding='utf-8') as handle:
                body = handle.read()

        start = time.time()
        envelope = self.service.handle_accessory_request(body)
        logger.info(f"Accessory request processed in {time.time() - start:.2f}s")
        print(envelope['body'])
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--env-file', help="path to a .env file")
    commands = parser.add_subparsers(dest='command', required=True)
    commands.add_parser('serve', help="run the webhook server")
    commands.add_parser('sync-fields', help="synchronize Jira field options once")
    process = commands.add_parser('process', help="process one webhook payload")
    process.add_argument('payload', help="JSON file with the Jira payload, or - for stdin")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = Config(env_file=args.env_file)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.get('LOG_LEVEL'), config.get('LOG_FILE'))

    try:
        app = SnipeSyncApp(config)
        if args.command == 'serve':
            app.serve()
            return 0
        if args.command == 'sync-fields':
            return app.sync_fields()
        return app.process(args.payload)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        return 0
    except Exception as e:
        logger.critical(f"Application crashed: {e}", exc_info=True)
        return 1
