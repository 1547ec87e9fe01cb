"""Shared pieces of the REST API: pagination, response envelope and errors."""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Any, Generic, Mapping, Optional, TypeVar

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

T = TypeVar("T")

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def eq_ignore_ascii_case(a: str, b: str) -> bool:
    """Compare two strings, folding only ASCII letters."""
    return a.translate(_ASCII_LOWER) == b.translate(_ASCII_LOWER)


class ApiError(Exception):
    """An error reported to the client as a JSON body with an HTTP status."""

    def __init__(self, error: str, code: str, status: int) -> None:
        super().__init__(error)
        self.error = error
        self.code = code
        self.status = status

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(message, "NOT_FOUND", 404)

    @classmethod
    def bad_request(cls, message: str) -> "ApiError":
        return cls(message, "BAD_REQUEST", 400)

    @classmethod
    def internal(cls, message: str) -> "ApiError":
        return cls(message, "INTERNAL_ERROR", 500)

    def to_dict(self) -> dict:
        return {"error": self.error, "code": self.code}


def parse_count(query: Mapping[str, str], key: str, default: int) -> int:
    """Read a non-negative integer query parameter."""
    value = query.get(key)
    if value is None:
        return default
    digits = value[1:] if value.startswith("+") else value
    if not digits or not (digits.isascii() and digits.isdigit()):
        raise ApiError.bad_request(
            f"Failed to deserialize query string: invalid value for '{key}'"
        )
    return int(digits)


def parse_flag(query: Mapping[str, str], key: str, default: bool) -> bool:
    """Read a ``true``/``false`` query parameter."""
    value = query.get(key)
    if value is None:
        return default
    if value == "true":
        return True
    if value == "false":
        return False
    raise ApiError.bad_request(f"Failed to deserialize query string: invalid value for '{key}'")


@dataclass
class PaginationParams:
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def normalized_limit(self) -> int:
        return min(self.limit, MAX_LIMIT)


def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


@dataclass
class ApiResponse(Generic[T]):
    """Response envelope carrying the data and the current sequence id."""

    data: T
    sequence_id: int
    total: Optional[int] = None

    def to_dict(self) -> dict:
        result = {"data": _jsonable(self.data), "sequence_id": self.sequence_id}
        if self.total is not None:
            result["total"] = self.total
        return result