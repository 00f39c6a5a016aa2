# Overview: Uniform JSON envelope for API responses.

from flask import jsonify, request

from .validation import ValidationError, MAX_ID


INTERNAL_ERROR_MESSAGE = "Internal server error"


def ok(status: int = 200, **payload):
    body = {"success": True}
    body.update(payload)
    return jsonify(body), status


def fail(error: str, status: int, code: str | None = None):
    body = {"success": False, "error": error}
    if code:
        body["code"] = code
    return jsonify(body), status


def internal_error():
    return fail(INTERNAL_ERROR_MESSAGE, 500)


def optional_int_arg(name: str) -> int | None:
    """Read an optional integer query parameter; a non-integer value is a 400."""
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return None
    stripped = raw.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        raise ValidationError(f"{name} must be an integer")
    value = int(stripped)
    if value > MAX_ID:
        raise ValidationError(f"{name} is out of range")
    return value
