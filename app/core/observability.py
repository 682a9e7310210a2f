import time
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime
from contextlib import contextmanager

logger = logging.getLogger(__name__)

class LatencyTracker:
    """Tracks execution latency for pipeline stages and chat phases."""

    def __init__(self, scope: str = ""):
        self.scope = scope
        self.measurements: Dict[str, float] = {}

    @contextmanager
    def measure(self, operation_name: str):
        """Context manager to measure operation latency."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.measurements[operation_name] = duration_ms
            prefix = f"[{self.scope}] " if self.scope else ""
            logger.info(f"{prefix}{operation_name} completed in {duration_ms:.2f}ms")

    def get_measurement(self, operation_name: str) -> Optional[float]:
        return self.measurements.get(operation_name)

    def get_all_measurements(self) -> Dict[str, float]:
        return self.measurements.copy()

    def total_ms(self) -> float:
        return sum(self.measurements.values())


class StageTrace:
    """
    Ordered record of state transitions for one unit of work.

    Each entry keeps the state entered, when it was entered and, for
    failures, the error that caused the transition.
    """

    def __init__(self, initial_state: str):
        self.transitions: List[Dict[str, Any]] = []
        self._enter(initial_state, None)

    @property
    def current(self) -> str:
        return self.transitions[-1]["state"]

    def advance(self, state: str, error: Optional[str] = None):
        logger.debug(f"Stage transition {self.current} -> {state}")
        self._enter(state, error)

    def states(self) -> List[str]:
        return [t["state"] for t in self.transitions]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "transitions": [dict(t) for t in self.transitions],
        }

    def _enter(self, state: str, error: Optional[str]):
        self.transitions.append({
            "state": state,
            "entered_at": datetime.utcnow().isoformat(),
            "error": error,
        })
