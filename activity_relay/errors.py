"""Shared error-parsing utilities for the Asana API."""

import json


def parse_asana_error(response_text: str) -> str:
    """Extract a readable message from an Asana API error response.

    Asana returns JSON like {"errors": [{"message": "...", "help": "..."}]}.
    The OAuth token endpoint instead returns {"error": "...", "error_description": "..."}.
    Returns the first message when parseable, raw text otherwise.
    """
    try:
        body = json.loads(response_text)
    except ValueError:
        return response_text
    if not isinstance(body, dict):
        return response_text

    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        msg = errors[0].get("message", "")
        if msg:
            return msg

    error = body.get("error")
    if isinstance(error, str) and error:
        desc = body.get("error_description", "")
        return f"{error}: {desc}" if desc else error
    return response_text


def is_token_expired_error(response_text: str) -> bool:
    """True when a 401 body says the bearer token has expired."""
    return "expired" in parse_asana_error(response_text).lower()
