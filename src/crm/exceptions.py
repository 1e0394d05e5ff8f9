"""Errors raised at the CRM collaborator boundary."""


class CRMError(Exception):
    """Base class for every failure talking to the CRM."""


class CRMRequestError(CRMError):
    """Transport failure or non-2xx response (unreachable, rate limited...)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CRMSchemaError(CRMError):
    """The queried object, list or attribute does not exist in the workspace.

    Callers treat this as "no data" rather than as a fatal error.
    """
