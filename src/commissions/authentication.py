"""Dashboard token authentication.

Dashboards are not tied to Django users: the presented token is carried on
``request.auth`` and checked by the permissions in
``commissions.permissions``.
"""

from django.contrib.auth.models import AnonymousUser
from rest_framework.authentication import BaseAuthentication
from rest_framework.request import Request

TOKEN_HEADER = "HTTP_X_COMMISSION_TOKEN"


class DashboardTokenAuthentication(BaseAuthentication):
    """Read the token from ``?token=`` or the ``X-Commission-Token`` header.

    A request without a token stays unauthenticated so the permission
    check answers 401; a wrong token is rejected later with 403.
    """

    def authenticate(self, request: Request):
        token = request.query_params.get("token") or request.META.get(TOKEN_HEADER)
        if not token:
            return None
        return AnonymousUser(), token

    def authenticate_header(self, request: Request) -> str:
        return 'Token realm="commissions"'
