from flask import request

from ..validation import ValidationError


def json_payload() -> dict:
    """Request body as a dict; a missing body is {}, any non-object body is a 400."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("JSON body must be an object")
    return payload
