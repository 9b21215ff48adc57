"""
Shape validation for geo-lookup provider payloads.

A schema maps field names to FieldRule entries. Nested objects are described
with `children`. Unknown fields are ignored, matching how loosely the
providers evolve their responses.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type


@dataclass(frozen=True)
class FieldRule:
    types: Tuple[Type, ...]
    required: bool = False
    children: Optional[Dict[str, "FieldRule"]] = field(default=None)


Schema = Dict[str, FieldRule]


def _type_names(types: Tuple[Type, ...]) -> str:
    return " or ".join(t.__name__ for t in types)


def _matches(value: Any, types: Tuple[Type, ...]) -> bool:
    # bool is an int subclass; never let True satisfy a numeric rule
    if isinstance(value, bool) and bool not in types:
        return False
    return isinstance(value, types)


def required_str() -> FieldRule:
    return FieldRule(types=(str,), required=True)


def optional_str() -> FieldRule:
    return FieldRule(types=(str,))


def optional_bool() -> FieldRule:
    return FieldRule(types=(bool,))


def optional_object(children: Dict[str, FieldRule]) -> FieldRule:
    return FieldRule(types=(dict,), children=children)


def validate_payload(data: Any, schema: Schema, prefix: str = "") -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Only absent optional fields are accepted; an explicit null is a type mismatch.
    """
    if not isinstance(data, dict):
        return [f"{prefix.rstrip('.') or 'Payload'} must be an object"]

    errors: List[str] = []
    for name, rule in schema.items():
        path = f"{prefix}{name}"
        if name not in data:
            if rule.required:
                errors.append(f"Missing required field: {path}")
            continue
        value = data[name]
        if not _matches(value, rule.types):
            errors.append(f"Field '{path}' must be {_type_names(rule.types)}")
            continue
        if rule.children is not None:
            errors.extend(validate_payload(value, rule.children, prefix=f"{path}."))

    return errors


IP_API_SCHEMA: Schema = {
    "status": required_str(),
    "query": optional_str(),
    "country": optional_str(),
    "regionName": optional_str(),
    "city": optional_str(),
    "isp": optional_str(),
}

IPWHO_SCHEMA: Schema = {
    "success": optional_bool(),
    "ip": required_str(),
    "city": optional_str(),
    "region": optional_str(),
    "country": optional_str(),
    "connection": optional_object({"isp": optional_str()}),
}

DBIP_SCHEMA: Schema = {
    "ipAddress": optional_str(),
    "city": optional_str(),
    "regionName": optional_str(),
    "countryName": optional_str(),
    "isp": optional_str(),
}
