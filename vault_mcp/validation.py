"""
Parameter Validator

Checks a call's raw arguments against a tool's declared parameters before
dispatch. Pure: never runs handler code and never touches the host.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from .base import ToolParameter, ValidationError

_TRUE_STRINGS = ("true", "1", "yes")
_FALSE_STRINGS = ("false", "0", "no")


class _Mismatch(Exception):
    pass


def _coerce(param: ToolParameter, value: Any) -> Any:
    """Return `value` converted to the declared type, or raise _Mismatch."""
    kind = param.type

    if kind == "string":
        if isinstance(value, str):
            return value
        raise _Mismatch()

    if kind == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise _Mismatch()

    if kind == "integer":
        # bool is an int subclass; never accept it as a number
        if isinstance(value, bool):
            raise _Mismatch()
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise _Mismatch()
        raise _Mismatch()

    if kind == "number":
        if isinstance(value, bool):
            raise _Mismatch()
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text)
            except ValueError:
                pass
            try:
                return float(text)
            except ValueError:
                raise _Mismatch()
        raise _Mismatch()

    if kind == "array":
        if isinstance(value, (list, tuple)):
            return list(value)
        raise _Mismatch()

    if kind == "object":
        if isinstance(value, Mapping):
            return dict(value)
        raise _Mismatch()

    raise _Mismatch()


def validate(
    parameters: Iterable[ToolParameter],
    raw_args: Optional[Mapping[str, Any]],
    tool_name: str = None,
) -> Dict[str, Any]:
    """
    Validate `raw_args` against `parameters`.

    Returns a new dict holding the declared fields coerced to their declared
    types, with defaults filled in. Unknown extra fields are dropped.
    Raises ValidationError listing every offending field.
    """
    if raw_args is None:
        raw_args = {}
    if not isinstance(raw_args, Mapping):
        raise ValidationError(
            "Invalid parameters provided.",
            field_errors=[{"field": None, "message": "Arguments must be an object"}],
            tool_name=tool_name,
        )

    validated: Dict[str, Any] = {}
    errors: List[Dict[str, Any]] = []

    for param in parameters:
        value = raw_args.get(param.name)

        if value is None:
            if param.required:
                errors.append({
                    "field": param.name,
                    "message": f"Missing required parameter: {param.name}",
                })
            elif param.default is not None:
                validated[param.name] = param.default
            continue

        try:
            coerced = _coerce(param, value)
        except _Mismatch:
            errors.append({
                "field": param.name,
                "expected": param.type,
                "message": f"Invalid type for parameter {param.name}: expected {param.type}",
            })
            continue

        if param.enum and coerced not in param.enum:
            allowed = ", ".join(str(v) for v in param.enum)
            errors.append({
                "field": param.name,
                "expected": list(param.enum),
                "message": f"Invalid value for parameter {param.name}: expected one of {allowed}",
            })
            continue

        validated[param.name] = coerced

    if errors:
        raise ValidationError("Invalid parameters provided.", field_errors=errors, tool_name=tool_name)

    return validated
