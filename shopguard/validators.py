"""
Shopguard field type validators.

Pure predicates checking a single field value against the semantic types
used by the document rules: integer, string, boolean, null, list of
strings, plus the constrained "safe string" used for identifiers and the
safe display text used for names.
"""

from __future__ import annotations

import re
from typing import Any, Callable


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_SAFE_STRING_LENGTH = 128

# Document ids as issued by the identity provider: letters, digits,
# underscore and hyphen.
SAFE_STRING_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

MAX_SAFE_TEXT_LENGTH = 256

# Display text such as person and shop names: letters of any script,
# digits, spaces and a little punctuation. No markup, quotes, brackets,
# colons or statement separators.
SAFE_TEXT_PATTERN = re.compile(r"[\w .,&-]+")


# ---------------------------------------------------------------------------
# Primitive type predicates
# ---------------------------------------------------------------------------

def is_integer(value: Any) -> bool:
    """True for ints. Booleans and floats are never integers."""
    return isinstance(value, int) and not isinstance(value, bool)


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


def is_null(value: Any) -> bool:
    return value is None


def is_string_list(value: Any) -> bool:
    """True for a list whose items are all strings (an empty list included)."""
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def is_safe_string(value: Any) -> bool:
    """Check that a value is a string safe to store as a document reference.

    Only the characters of SAFE_STRING_PATTERN are accepted, so markup,
    quotes, whitespace, URI schemes and statement separators are all
    rejected without having to enumerate them.

    Args:
        value: The candidate value.

    Returns:
        True when value is a non-empty string of at most
        MAX_SAFE_STRING_LENGTH allowed characters.
    """
    if not isinstance(value, str):
        return False
    if len(value) == 0 or len(value) > MAX_SAFE_STRING_LENGTH:
        return False
    return SAFE_STRING_PATTERN.fullmatch(value) is not None


def is_safe_text(value: Any) -> bool:
    """Check that a value is display text free of markup and script syntax."""
    if not isinstance(value, str):
        return False
    if len(value) == 0 or len(value) > MAX_SAFE_TEXT_LENGTH:
        return False
    return SAFE_TEXT_PATTERN.fullmatch(value) is not None


def is_safe_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(is_safe_string(v) for v in value)


# ---------------------------------------------------------------------------
# Named types
# ---------------------------------------------------------------------------

TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "integer": is_integer,
    "string": is_string,
    "boolean": is_boolean,
    "null": is_null,
    "string_list": is_string_list,
}

# Constrained string types: the base type a value must have, and the
# format it must then satisfy.
FORMATS: dict[str, tuple[str, Callable[[Any], bool]]] = {
    "id": ("string", is_safe_string),
    "text": ("string", is_safe_text),
    "id_list": ("string_list", is_safe_string_list),
}


def base_type(type_name: str) -> str:
    """The primitive type underlying a named type ("id" -> "string")."""
    if type_name in FORMATS:
        return FORMATS[type_name][0]
    return type_name


def check_type(type_name: str, value: Any) -> bool:
    """Validate value against the primitive type behind type_name.

    Raises:
        KeyError: When type_name is not a known type.
    """
    return TYPE_CHECKS[base_type(type_name)](value)


def check_format(type_name: str, value: Any) -> bool:
    """Validate the format of a constrained type; unconstrained types pass."""
    if type_name not in FORMATS:
        return True
    return FORMATS[type_name][1](value)


def type_name_of(value: Any) -> str:
    """Describe the semantic type of a value, for denial messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__
