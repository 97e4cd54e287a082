"""Application rules checked before deleting or saving a record."""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# A rule returns True to accept, or False / an error message to reject.
Rule = Callable[[Any, Any], Union[bool, str]]

DELETE = "delete"
SAVE = "save"


class RulesChecker:
    """
    Holds named rules per operation and evaluates them against a record.

    Usage:
        rules = RulesChecker()
        rules.add_delete(lambda record, options: record.status != "locked",
                         name="not_locked")
    """

    def __init__(self) -> None:
        self._rules: Dict[str, List[Tuple[str, Rule]]] = {DELETE: [], SAVE: []}
        self.errors: List[str] = []

    def add(self, operation: str, rule: Rule, name: Optional[str] = None) -> None:
        if operation not in self._rules:
            raise ValueError(f"Unknown rule operation: {operation}")
        self._rules[operation].append((name or getattr(rule, "__name__", "rule"), rule))

    def add_delete(self, rule: Rule, name: Optional[str] = None) -> None:
        self.add(DELETE, rule, name)

    def add_save(self, rule: Rule, name: Optional[str] = None) -> None:
        self.add(SAVE, rule, name)

    def check(self, operation: str, record: Any, options: Any = None) -> bool:
        """
        Run every rule for ``operation``.

        All rules are evaluated so that ``errors`` lists every failure.

        Returns:
            True if no rule rejected the record
        """
        self.errors = []

        for name, rule in self._rules.get(operation, []):
            outcome = rule(record, options)
            if isinstance(outcome, str):
                self.errors.append(outcome)
            elif not outcome:
                self.errors.append(f"Rule '{name}' failed")

        if self.errors:
            logger.warning(
                f"{operation} rules rejected {record.__class__.__name__}: "
                f"{'; '.join(self.errors)}"
            )
            return False
        return True

    def check_delete(self, record: Any, options: Any = None) -> bool:
        return self.check(DELETE, record, options)

    def check_save(self, record: Any, options: Any = None) -> bool:
        return self.check(SAVE, record, options)
