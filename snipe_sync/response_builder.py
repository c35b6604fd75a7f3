"""Response envelope construction for handler results."""

import json
from typing import Any, Dict

from .run_log import RunLogBuffer


def build_output(message: Any) -> Dict[str, Any]:
    """Wrap a message in the text/plain envelope; status is always 200."""
    if not isinstance(message, str):
        message = json.dumps(message, indent=2, default=str)
    return {
        'body': message,
        'headers': {
            'Content-Type': ['text/plain; charset=utf-8']
        },
        'statusCode': 200,
        'statusText': 'OK'
    }


def format_log_summary(buffer: RunLogBuffer) -> str:
    counters = buffer.counters
    lines = ["Processing Summary:", ""]
    lines.extend(f"- {line}" for line in buffer.lines)
    lines.append("")
    lines.append(
        f"Checkouts: {counters.successful_checkouts}, Check-ins: {counters.checkins}, "
        f"Created: {counters.accessories_created}, Warnings: {counters.warnings}, Errors: {counters.errors}"
    )
    return "\n".join(lines) + "\n"


def build_log_summary_response(buffer: RunLogBuffer) -> Dict[str, Any]:
    """Render the buffered run log, then reset the buffer."""
    summary = format_log_summary(buffer)
    buffer.clear()
    return build_output(summary)
