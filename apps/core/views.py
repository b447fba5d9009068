from rest_framework import status
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet
import logging

from apps.core.utils.extract_error import extract_validation_error_message

logger = logging.getLogger(__name__)


class BaseResponseMixin:
    """
    Standardizes the response format across the application.
    All responses have the format:
    {
        "status": "success" | "error",
        "message": str,
        "data": Any | None,
        "status_code": int
    }
    """

    def success_response(
        self, data=None, message="Success", status_code=status.HTTP_200_OK
    ):
        """Send a success response"""
        response_data = {
            "status": "success",
            "status_code": status_code,
            "message": message,
            "data": data,
        }
        return Response(response_data, status=status_code)

    def error_response(
        self,
        message="An error occurred",
        status_code=status.HTTP_400_BAD_REQUEST,
        data=None,
    ):
        """Send an error response"""
        response_data = {
            "status": "error",
            "message": message,
            "data": data,
            "status_code": status_code,
        }
        return Response(response_data, status=status_code)

    def invalid_input_response(self, serializer_errors):
        """400 for a request body or query string that failed serializer validation."""
        return self.error_response(
            message=extract_validation_error_message(serializer_errors),
            status_code=status.HTTP_400_BAD_REQUEST,
            data={"errors": serializer_errors},
        )

    def failure_response(self, error):
        """
        Render a typed service error (an APIException carrying ``code`` and,
        for rule violations, ``errors``) with its own HTTP status.
        """
        errors = getattr(error, "errors", None)
        return self.error_response(
            message=extract_validation_error_message(error),
            status_code=getattr(
                error, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            data={
                "error_code": getattr(error, "code", None),
                "errors": errors or [],
            },
        )


class BaseViewSet(GenericViewSet, BaseResponseMixin):
    """
    Base ViewSet whose actions delegate to a service layer and answer in
    the standard envelope.
    """
