from rest_framework import status
from rest_framework.exceptions import Throttled
from rest_framework.views import exception_handler

from apps.core.utils.extract_error import extract_validation_error_message


THROTTLE_MESSAGES = {
    "negotiation_create": "Too many new negotiations. Please wait before proposing another price.",
    "negotiation_respond": "Too many offer responses. Please wait before countering, accepting or rejecting again.",
    "negotiation": "Too many negotiation requests. Please wait before making more requests.",
}


def custom_exception_handler(exc, context):
    """
    Render every DRF exception in the project's response envelope:

        {"status": "error", "message": str, "data": Any, "status_code": int}

    Throttled errors get a scope specific message and a retry hint; errors
    carrying a list of rule violations (``exc.errors``) expose them in data.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, Throttled):
        view = context.get("view", None)
        throttles = [] if view is None else getattr(view, "get_throttles", lambda: [])()
        scope = None
        if throttles:
            scope = getattr(throttles[0], "scope", None)

        wait_seconds = int(exc.wait) if exc.wait is not None else None

        if scope in THROTTLE_MESSAGES:
            detail = THROTTLE_MESSAGES[scope]
        elif wait_seconds is not None:
            detail = f"Request rate limit exceeded. Please wait {wait_seconds} seconds and try again."
        else:
            detail = "Request rate limit exceeded. Please try again later."

        response.data = {
            "status": "error",
            "message": detail,
            "data": {"retry_after": wait_seconds},
            "status_code": status.HTTP_429_TOO_MANY_REQUESTS,
        }
        response.status_code = status.HTTP_429_TOO_MANY_REQUESTS
        return response

    errors = getattr(exc, "errors", None)
    response.data = {
        "status": "error",
        "message": extract_validation_error_message(exc),
        "data": {"errors": errors} if errors else None,
        "status_code": response.status_code,
    }
    return response
