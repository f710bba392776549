"""
Error taxonomy shared by the domain, the services and the HTTP layer.

The HTTP layer maps each class to one status code (see tracker.main).
"""
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


class ValidationFailed(ValueError):
    """Input rejected; carries one FieldError per offending field"""

    def __init__(self, errors: list[FieldError], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.errors = list(errors)

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class NotFoundError(LookupError):
    """Entity absent or owned by somebody else (deliberately indistinguishable)"""

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.message = f"{entity} not found"


class ConflictError(ValueError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(Exception):
    """Missing, malformed or expired credential"""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)
        self.message = message


class IdentityProviderUnavailable(RuntimeError):
    def __init__(self, message: str = "Identity provider is not configured"):
        super().__init__(message)
        self.message = message


class IdentityTokenError(AuthError):
    """The identity provider rejected the token"""


class MailTransportError(RuntimeError):
    pass


def require(errors: list[FieldError], error_cls: type[ValidationFailed] = ValidationFailed) -> None:
    """Raise error_cls if any field error was collected"""
    if errors:
        raise error_cls(errors)
