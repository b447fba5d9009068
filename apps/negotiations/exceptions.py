from typing import Dict, List, Optional

from rest_framework import status
from rest_framework.exceptions import APIException


class NegotiationError(APIException):
    """
    Base class for every failure the negotiation service reports.

    ``code`` is stable and meant for clients; ``errors`` lists the individual
    rule violations as ``{"field", "message", "code"}`` dicts when there are
    any.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Negotiation request failed."
    default_code = "negotiation_error"

    def __init__(self, detail=None, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(detail=detail, code=self.default_code)
        self.code = self.default_code
        self.errors = errors or []

    def __str__(self):
        return str(self.detail)


class NegotiationValidationError(NegotiationError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Negotiation request is invalid."
    default_code = "validation_error"

    @classmethod
    def single(cls, field: str, message: str, code: str = "invalid"):
        return cls(message, errors=[violation(field, message, code)])


class NegotiationNotFound(NegotiationError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Negotiation not found."
    default_code = "not_found"


class NegotiationPermissionDenied(NegotiationError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only the farmer or the buyer on this negotiation can do that."
    default_code = "permission_denied"


class NegotiationConflict(NegotiationError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This negotiation was just updated, please refresh."
    default_code = "conflict"


class NegotiationInternalError(NegotiationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong while processing the negotiation."
    default_code = "internal_error"


def violation(field: str, message: str, code: str = "invalid") -> Dict[str, str]:
    return {"field": field, "message": message, "code": code}
