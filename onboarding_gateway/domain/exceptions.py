"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidTransitionError(DomainException):
    """Wizard action is not allowed in the session's current state"""

    pass


class BranchNotOfferedError(InvalidTransitionError):
    """Selected profile branch is not offered by the session's entry flow"""

    pass


class UnknownFieldError(DomainException):
    """Field or attachment slot is not declared by the active stage"""

    def __init__(self, stage: str, names: list[str]):
        self.stage = stage
        self.names = sorted(names)
        super().__init__(f"Stage '{stage}' does not declare: {', '.join(self.names)}")


class EncodingError(DomainException):
    """Attachment could not be read or encoded"""

    def __init__(self, slot: str, reason: str):
        self.slot = slot
        self.reason = reason
        super().__init__(f"Could not encode attachment '{slot}': {reason}")


class AttachmentNotEncodedError(DomainException):
    """Reconciliation was attempted before every attachment was encoded"""

    pass


class CredentialError(DomainException):
    """Bearer credential for the account service is missing or unavailable"""

    pass


class AccountServiceError(DomainException):
    """Account/KYC service returned an error or is unavailable"""

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"{operation}: {message}")


class SubmissionInProgressError(DomainException):
    """A submission for this session is already running"""

    pass


class SessionNotFoundError(DomainException):
    """No onboarding session exists with the given id"""

    pass
