from django.conf import settings
from drf_spectacular.extensions import OpenApiAuthenticationExtension


class CookieJWTAuthenticationExtension(OpenApiAuthenticationExtension):
    target_class = "apps.core.authentication.CookieJWTAuthentication"
    name = "cookieAuth"

    def get_security_definition(self, auto_schema):
        cookie_name = getattr(settings, "JWT_AUTH_COOKIE", "access_token")

        return {
            "type": "apiKey",
            "in": "cookie",
            "name": cookie_name,
            "description": "JWT access token; the Authorization header is accepted too.",
        }
