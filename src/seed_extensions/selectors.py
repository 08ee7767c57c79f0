"""Label selector evaluation.

This module evaluates Kubernetes label selectors (``matchLabels`` and
``matchExpressions``) against a label set, as used by the seed selectors
of ControllerRegistrations.
"""

import re
from typing import Any

from seed_extensions.exceptions import InvalidSelectorError

# Qualified label key: optional DNS subdomain prefix and a name segment
_LABEL_NAME_MAX_LENGTH = 63
_LABEL_PREFIX_MAX_LENGTH = 253
_LABEL_NAME_PATTERN = re.compile(r"^([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]$")
_LABEL_PREFIX_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")
_LABEL_VALUE_MAX_LENGTH = 63
_LABEL_VALUE_PATTERN = re.compile(r"^(([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?$")

OPERATOR_IN = "In"
OPERATOR_NOT_IN = "NotIn"
OPERATOR_EXISTS = "Exists"
OPERATOR_DOES_NOT_EXIST = "DoesNotExist"


def validate_label_key(key: str) -> None:
    """Validate a qualified label key.

    Args:
        key: The label key, e.g. 'seed.gardener.cloud/region'.

    Raises:
        InvalidSelectorError: If the key is not a valid qualified name.

    """
    prefix, sep, name = key.rpartition("/")
    if sep and (not prefix or len(prefix) > _LABEL_PREFIX_MAX_LENGTH or not _LABEL_PREFIX_PATTERN.match(prefix)):
        raise InvalidSelectorError(f"invalid label key prefix in {key!r}")
    if not name or len(name) > _LABEL_NAME_MAX_LENGTH or not _LABEL_NAME_PATTERN.match(name):
        raise InvalidSelectorError(f"invalid label key {key!r}")


def validate_label_value(value: Any) -> None:
    """Validate a label value.

    Raises:
        InvalidSelectorError: If the value is not a string of at most 63
            alphanumeric characters, dashes, underscores or dots.

    """
    if not isinstance(value, str):
        raise InvalidSelectorError(f"label value {value!r} must be a string")
    if len(value) > _LABEL_VALUE_MAX_LENGTH or not _LABEL_VALUE_PATTERN.match(value):
        raise InvalidSelectorError(f"invalid label value {value!r}")


def _expression_matches(expression: dict[str, Any], labels: dict[str, str]) -> bool:
    key = expression.get("key", "")
    operator = expression.get("operator")
    values = expression.get("values") or []
    validate_label_key(key)

    match operator:
        case "In" | "NotIn":
            if not values:
                raise InvalidSelectorError(f"values must be non-empty for operator {operator!r} on key {key!r}")
            for value in values:
                validate_label_value(value)
            present = key in labels and labels[key] in values
            return present if operator == OPERATOR_IN else not present
        case "Exists" | "DoesNotExist":
            if values:
                raise InvalidSelectorError(f"values must be empty for operator {operator!r} on key {key!r}")
            return (key in labels) == (operator == OPERATOR_EXISTS)
        case _:
            raise InvalidSelectorError(f"unsupported operator {operator!r} on key {key!r}")


def selector_matches(selector: dict[str, Any] | None, labels: dict[str, str]) -> bool:
    """Check whether a label selector matches a label set.

    An absent or empty selector matches every label set. All requirements
    of the selector are evaluated, so a malformed requirement is reported
    even when an earlier one already fails to match.

    Args:
        selector: The raw selector with optional 'matchLabels' and
            'matchExpressions' fields.
        labels: The labels to match against.

    Returns:
        True if every requirement of the selector is satisfied.

    Raises:
        InvalidSelectorError: If the selector is malformed.

    """
    if not selector:
        return True
    if not isinstance(selector, dict):
        raise InvalidSelectorError(f"selector must be a mapping, got {type(selector).__name__}")

    matches = True

    for key, value in (selector.get("matchLabels") or {}).items():
        validate_label_key(key)
        validate_label_value(value)
        if labels.get(key) != value:
            matches = False

    for expression in selector.get("matchExpressions") or []:
        if not isinstance(expression, dict):
            raise InvalidSelectorError(f"invalid match expression {expression!r}")
        if not _expression_matches(expression, labels):
            matches = False

    return matches
