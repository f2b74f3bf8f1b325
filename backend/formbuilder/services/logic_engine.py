"""Conditional field logic.

Computes visible/required/disabled state for every field of a form schema
from the values currently entered. Everything here is pure and synchronous
so it can run on every keystroke; malformed, user-authored rules resolve to
a safe default instead of raising.
"""
from typing import Dict, Any, List
import logging
import math

from formbuilder.schemas.form import (
    ConditionType,
    FieldState,
    FormField,
    FormSchema,
    LogicAction,
    LogicCondition,
    LogicOperator,
    LogicRule,
)

logger = logging.getLogger(__name__)

NAN = float("nan")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_number(value: Any) -> float:
    """Coerce a submitted value to a float, NaN when it is not numeric."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        # Blank input counts as 0, like an untouched numeric field
        if not text:
            return 0.0
        # float() accepts digit separators, user input should not
        if "_" in text:
            return NAN
        try:
            return float(text)
        except ValueError:
            return NAN
    return NAN


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _loose_equals(left: Any, right: Any) -> bool:
    """Equality that treats "5" and 5 (or True and 1) as the same value."""
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    primitives = (str, int, float, bool)
    if isinstance(left, primitives) and isinstance(right, primitives):
        # NaN never equals anything, including itself
        return _to_number(left) == _to_number(right)
    return left == right


def _same_value(left: Any, right: Any) -> bool:
    if _is_number(left) and _is_number(right):
        return left == right
    return type(left) is type(right) and left == right


def _contains(field_value: Any, target: Any) -> bool:
    if target is None:
        return False
    if isinstance(field_value, str):
        return _to_text(target).lower() in field_value.lower()
    if isinstance(field_value, (list, tuple, set, frozenset)):
        return any(_same_value(item, target) for item in field_value)
    return False


def _compare(field_value: Any, target: Any, op) -> bool:
    left, right = _to_number(field_value), _to_number(target)
    if math.isnan(left) or math.isnan(right):
        return False
    return op(left, right)


_COMPARISONS = {
    LogicOperator.GT.value: lambda a, b: a > b,
    LogicOperator.LT.value: lambda a, b: a < b,
    LogicOperator.GTE.value: lambda a, b: a >= b,
    LogicOperator.LTE.value: lambda a, b: a <= b,
}


def evaluate_condition(condition: LogicCondition, form_data: Dict[str, Any]) -> bool:
    """Evaluate a single condition against the current form values"""
    field_value = form_data.get(condition.field_id)
    target = condition.value
    operator = condition.operator

    if operator == LogicOperator.EQUALS.value:
        return _loose_equals(field_value, target)
    if operator == LogicOperator.NOT_EQUALS.value:
        return not _loose_equals(field_value, target)
    if operator == LogicOperator.CONTAINS.value:
        return _contains(field_value, target)
    if operator in _COMPARISONS:
        return _compare(field_value, target, _COMPARISONS[operator])

    logger.debug(f"Unknown logic operator: {operator}")
    return False


def evaluate_rule(rule: LogicRule, form_data: Dict[str, Any]) -> bool:
    """A rule fires when all (AND) or any (OR) of its conditions hold"""
    if not rule.conditions:
        return False

    condition_type = rule.condition_type or ConditionType.AND.value
    results = (evaluate_condition(condition, form_data) for condition in rule.conditions)
    if condition_type == ConditionType.AND.value:
        return all(results)
    return any(results)


def evaluate_field_logic(field: FormField, form_data: Dict[str, Any]) -> FieldState:
    """Compute the state of one field.

    Starts from the field's own definition and applies every matching rule
    in declaration order, so a later rule overrides an earlier one for the
    attribute it touches.
    """
    state = FieldState(visible=True, required=field.required, disabled=False)

    for rule in field.logic:
        if not evaluate_rule(rule, form_data):
            continue

        action = rule.action
        if action == LogicAction.SHOW.value:
            state.visible = True
        elif action == LogicAction.HIDE.value:
            state.visible = False
        elif action == LogicAction.REQUIRE.value:
            state.required = True
        elif action == LogicAction.DISABLE.value:
            state.disabled = True
        elif action == LogicAction.SKIP_PAGE.value:
            # Paging is decided by the renderer, not at field level
            pass
        else:
            logger.debug(f"Ignoring unknown logic action '{action}' on field {field.id}")

    return state


def evaluate_all_field_logic(schema: FormSchema, form_data: Dict[str, Any]) -> Dict[str, FieldState]:
    """Compute states for all fields.

    Each field only sees the raw form values, never another field's
    computed state.
    """
    return {field.id: evaluate_field_logic(field, form_data) for field in schema.fields}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def find_missing_required_fields(schema: FormSchema, form_data: Dict[str, Any]) -> List[str]:
    """Return ids of fields that are mandatory for this submission but empty.

    A field is mandatory when its computed state is visible, required and
    not disabled.
    """
    states = evaluate_all_field_logic(schema, form_data)
    missing = []
    for field in schema.fields:
        state = states[field.id]
        if state.visible and state.required and not state.disabled and _is_empty(form_data.get(field.id)):
            missing.append(field.id)
    return missing
