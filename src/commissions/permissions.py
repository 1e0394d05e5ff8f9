"""Token permissions for the commission dashboards.

Each dashboard (one per representative, plus the exec view) has its own
shared access token configured in ``COMMISSION_ACCESS_TOKENS``.
"""
from __future__ import annotations

import hmac

from django.conf import settings
from rest_framework.permissions import BasePermission

EXEC_TOKEN_KEY = "exec"


def token_matches(presented: str | None, key: str) -> bool:
    """Constant-time comparison against the token configured for ``key``."""
    expected = settings.COMMISSION_ACCESS_TOKENS.get(key)
    if not presented or not expected:
        return False
    return hmac.compare_digest(str(presented).encode(), str(expected).encode())


class HasExecToken(BasePermission):
    message = "Invalid access token."

    def has_permission(self, request, view):
        return token_matches(request.auth, EXEC_TOKEN_KEY)


class HasRepresentativeToken(BasePermission):
    """The representative's own token (``rep_id`` URL kwarg) or the exec token."""

    message = "Invalid access token."

    def has_permission(self, request, view):
        rep_id = view.kwargs.get("rep_id", "")
        return token_matches(request.auth, rep_id) or token_matches(request.auth, EXEC_TOKEN_KEY)
