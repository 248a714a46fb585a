from __future__ import annotations

from typing import Any, Mapping

from jobwatch.core.errors import InputValidationError
from jobwatch.core.schema import FeatureConfig, ValidationRule


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return not value
    return False


def _count_items(value: Any) -> int:
    if not isinstance(value, (list, tuple)):
        return 0
    return sum(1 for item in value if not _is_blank(item))


def check_rule(rule: ValidationRule, params: Mapping[str, Any]) -> None:
    value = params.get(rule.field)
    if rule.min_items is not None:
        if _count_items(value) < rule.min_items:
            raise InputValidationError(rule.message, field=rule.field)
        return
    if _is_blank(value):
        raise InputValidationError(rule.message, field=rule.field)


def validate_params(feature: FeatureConfig, params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Check submit parameters before any request is made.

    Returns a plain ``dict`` copy of the parameters; raises
    :class:`InputValidationError` with the first failing rule's message.
    """
    if params is not None and not isinstance(params, Mapping):
        raise InputValidationError("Job parameters must be an object")
    payload = dict(params or {})
    for rule in feature.validation:
        check_rule(rule, payload)
    return payload
