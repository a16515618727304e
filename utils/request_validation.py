"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

import re
from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest

_INTEGER_TEXT = re.compile(r"-?[0-9]+")


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise BadRequest(
                "Missing required fields: {}.".format(
                    ", ".join(sorted(missing))
                )
            )

    return data


def parse_int_in_range(value: object, field: str, low: int, high: int) -> int:
    """Return ``value`` as an int within ``[low, high]`` or raise a 400 error.

    Booleans are rejected even though ``bool`` subclasses ``int``; numeric
    strings such as ``"3"`` are accepted since HTML forms post them.
    """

    if isinstance(value, bool) or value is None:
        raise BadRequest(f"{field} must be an integer between {low} and {high}.")
    if isinstance(value, str):
        value = value.strip()
        if not _INTEGER_TEXT.fullmatch(value):
            raise BadRequest(f"{field} must be an integer between {low} and {high}.")
        value = int(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or not low <= value <= high:
        raise BadRequest(f"{field} must be an integer between {low} and {high}.")
    return value


def optional_text(data: dict, field: str, default: str = "") -> str:
    """Return a stripped string field, ``default`` when absent or null."""

    value = data.get(field)
    if value is None:
        return default
    if not isinstance(value, str):
        raise BadRequest(f"{field} must be a string.")
    return value.strip()


def parse_bool(value: object) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    return None
