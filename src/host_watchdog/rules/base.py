"""Base rule contract for alert evaluation."""

from __future__ import annotations

import math
from typing import Any, Optional, Protocol, runtime_checkable

from host_watchdog.exceptions import EvaluationError
from host_watchdog.models import Alert


@runtime_checkable
class AlertRule(Protocol):
    """Protocol for alert rules.

    A rule maps one snapshot to zero or one Alert. Rules are stateless
    apart from their construction-time configuration and clock, so a
    single instance may be evaluated concurrently.

    The rule set is closed: new kinds of rule are added to this package,
    not discovered at runtime.
    """

    def evaluate(self, snapshot: Any) -> Optional[Alert]:
        """Evaluate a snapshot.

        Returns:
            An Alert when the rule fires, None when the condition is not met.

        Raises:
            EvaluationError: If the snapshot is malformed and no comparison
                can be attempted.
        """
        ...


def require_instance(snapshot: Any, expected: type, rule_name: str) -> None:
    """Raise EvaluationError unless snapshot is an instance of expected."""
    if not isinstance(snapshot, expected):
        raise EvaluationError(
            f"{rule_name} expected {expected.__name__}, got {type(snapshot).__name__}"
        )


def require_finite(value: Any, field_name: str, rule_name: str) -> float:
    """Coerce a numeric field to float, rejecting non-finite or negative values.

    Args:
        value: Raw field value from the snapshot
        field_name: Field name for the error message
        rule_name: Rule name for the error message

    Returns:
        The value as a float

    Raises:
        EvaluationError: If the value is not a finite, non-negative number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EvaluationError(
            f"{rule_name}: {field_name} is not a number ({value!r})"
        )
    number = float(value)
    if not math.isfinite(number) or number < 0:
        raise EvaluationError(
            f"{rule_name}: {field_name} must be finite and non-negative, got {value!r}"
        )
    return number
