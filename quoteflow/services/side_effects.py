"""Post-commit side effects for quote transitions."""
import logging
from typing import Callable, Dict, List, Tuple

from quoteflow.blueprints.metrics import side_effect_failures_total

logger = logging.getLogger(__name__)


class SideEffects:
    """
    Ordered list of best-effort actions run after the authoritative write
    has been committed.

    Each action is isolated: a failure is logged, the session is rolled back
    so the next action starts clean, and the remaining actions still run.
    An action returning False is also recorded as a failure (notification and
    scheduler helpers report failure that way instead of raising).
    """

    def __init__(self, session, context: str = ''):
        self.session = session
        self.context = context
        self._effects: List[Tuple[str, Callable, tuple, dict]] = []

    def add(self, name: str, func: Callable, *args, **kwargs) -> None:
        self._effects.append((name, func, args, kwargs))

    def __len__(self):
        return len(self._effects)

    def run(self) -> Dict[str, bool]:
        results: Dict[str, bool] = {}
        for name, func, args, kwargs in self._effects:
            try:
                outcome = func(*args, **kwargs)
                ok = outcome is not False
            except Exception as e:
                logger.warning(f"[SIDE EFFECT] {name} failed {self.context}: {e}")
                self.session.rollback()
                ok = False
            if not ok:
                side_effect_failures_total.labels(effect=name).inc()
            results[name] = ok
        self._effects = []
        return results
