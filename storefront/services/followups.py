# storefront/services/followups.py
from typing import Any, Callable, Dict, List, Tuple

from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class PostCommitActions:
    """
    Side effects that belong after a commit (cart clear, invoice mail).

    Actions are queued while the transaction is open and run only after it
    committed; a rollback discards them. Each action fails on its own: the
    error is logged and the rest still run.
    """

    def __init__(self):
        self._actions: List[Tuple[str, Callable[..., Any], tuple, dict]] = []

    def add(self, name: str, fn: Callable[..., Any], *args, **kwargs) -> None:
        self._actions.append((name, fn, args, kwargs))

    def discard(self) -> None:
        if self._actions:
            logger.info(f"Discarding {len(self._actions)} post-commit action(s) after rollback")
        self._actions.clear()

    def run(self) -> Dict[str, bool]:
        actions, self._actions = self._actions, []
        results: Dict[str, bool] = {}

        for name, fn, args, kwargs in actions:
            try:
                fn(*args, **kwargs)
                results[name] = True
            except Exception as e:
                # the transaction is already committed; nothing to unwind
                logger.warning(f"Post-commit action '{name}' failed: {e}", exc_info=True)
                results[name] = False

        return results

    def __len__(self) -> int:
        return len(self._actions)
