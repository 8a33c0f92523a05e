"""
Error taxonomy shared by the policy, the services and the API layer.

Every error carries a ``kind`` (stable, machine-readable) and the HTTP
status the API surfaces it with.  Storage exceptions are never exposed
directly; the API classifies them before answering.
"""


class DomainError(Exception):
    kind = "DomainError"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class Unauthenticated(DomainError):
    kind = "Unauthenticated"
    status_code = 401


class InvalidCredentials(Unauthenticated):
    kind = "InvalidCredentials"


class UnknownUser(Unauthenticated):
    kind = "UnknownUser"


class AccountNotActive(Unauthenticated):
    kind = "AccountNotActive"
    status_code = 403


class Forbidden(DomainError):
    kind = "Forbidden"
    status_code = 403


class NotFound(DomainError):
    kind = "NotFound"
    status_code = 404


class InvalidTransition(DomainError):
    kind = "InvalidTransition"
    status_code = 409


class Conflict(DomainError):
    kind = "Conflict"
    status_code = 409


class ValidationError(DomainError):
    kind = "ValidationError"
    status_code = 422
