"""
Chronicle Telemetry — fire-and-forget event sink for the turn pipeline.

The pipeline reports through `safe_record()`, so a sink that raises can
never break a turn. ChronicleTelemetry is the default sink: it logs every
event and keeps small in-memory counters for the CLI and tests.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

logger = logging.getLogger("ChronicleTelemetry")


def safe_record(sink: Any, method: str, **payload) -> None:
    """Call `sink.<method>(**payload)` if the sink has it. Never raises."""
    if sink is None:
        return
    handler = getattr(sink, method, None)
    if handler is None:
        return
    try:
        handler(**payload)
    except Exception as e:
        logger.warning(f"Telemetry sink {method} raised (ignored): {e}")


class ChronicleTelemetry:
    """Default telemetry sink."""

    def __init__(self, max_errors: int = 200):
        self.max_errors = max_errors
        self.errors: List[Dict[str, Any]] = []
        self.not_run: Counter = Counter()
        self.transitions: Counter = Counter()
        self.outcomes: Counter = Counter()

    def record_tool_error(
        self,
        operation: str,
        chronicle_id: str,
        attempt: int,
        message: str,
        reference_id: Optional[str] = None,
    ) -> None:
        logger.warning(
            f"[{chronicle_id}] {operation} failed (attempt {attempt}): {message}"
            + (f" ref={reference_id}" if reference_id else "")
        )
        self.errors.append({
            "operation": operation,
            "chronicle_id": chronicle_id,
            "attempt": attempt,
            "message": message,
            "reference_id": reference_id,
        })
        if len(self.errors) > self.max_errors:
            self.errors = self.errors[-self.max_errors:]

    def record_tool_not_run(self, operation: str, chronicle_id: str) -> None:
        self.not_run[operation] += 1

    def record_transition(self, chronicle_id: str, turn_sequence: int, node_id: str, status: str) -> None:
        logger.debug(f"[{chronicle_id}#{turn_sequence}] {node_id}: {status}")
        self.transitions[(node_id, status)] += 1

    def record_check_run(self, result) -> None:
        self.outcomes[result.outcome_tier] += 1
