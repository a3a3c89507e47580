"""Validation primitives used by every entity setter."""

import re
from enum import Enum
from typing import Any, Pattern, Type, TypeVar, Union

from dronedispatch.core.exceptions import InvalidInputFormat

E = TypeVar("E", bound=Enum)


def validate_bounded_int(value: Any, lower: int, upper: int, field: str) -> int:
    # bool is an int subclass, True must not pass as 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputFormat(f"Invalid input format: {field} must be an integer, got {value!r}")
    if value < lower or value > upper:
        raise InvalidInputFormat.for_pattern(value, f"{field} in [{lower}, {upper}]")
    return value


def validate_non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputFormat(f"Invalid input format: {field} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidInputFormat.for_pattern(value, f"{field} >= 0")
    return value


def validate_pattern(value: Any, pattern: Union[str, Pattern[str]], field: str) -> str:
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    if not isinstance(value, str):
        raise InvalidInputFormat(f"Invalid input format: {field} must be a string, got {value!r}")
    if compiled.fullmatch(value) is None:
        raise InvalidInputFormat.for_pattern(value, compiled.pattern)
    return value


def validate_max_length(value: Any, max_length: int, field: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidInputFormat(f"Invalid input format: {field} must be a non-empty string")
    if len(value) > max_length:
        raise InvalidInputFormat.for_pattern(value, f"at most {max_length} characters")
    return value


def validate_enum_name(enum_type: Type[E], name: Any, field: str) -> E:
    if isinstance(name, enum_type):
        return name
    if not isinstance(name, str) or name not in enum_type.__members__:
        accepted = ", ".join(enum_type.__members__)
        raise InvalidInputFormat(f"Invalid input format: {field} \"{name}\" is not one of {accepted}")
    return enum_type[name]
