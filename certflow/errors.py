from typing import Iterable, Optional

from botocore.exceptions import BotoCoreError, ClientError


class WorkflowError(Exception):
    """Base class for every failure that aborts a certificate pipeline."""

    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.resource = resource

    def __str__(self) -> str:
        if self.resource:
            return f"{self.resource}: {self.message}"
        return self.message


class InputError(WorkflowError):
    """Invalid domain, malformed request or exhausted quota. Not retryable."""


class PropagationError(WorkflowError):
    """DNS write, zone lookup or permission failure on a named resource."""


class ValidationFailedError(WorkflowError):
    """The authority explicitly rejected one or more validations."""

    def __init__(self, message: str, resource: Optional[str] = None, domains: Iterable[str] = ()):
        super().__init__(message, resource)
        self.domains = tuple(domains)


class ValidationTimeoutError(WorkflowError):
    """No terminal state before the configured ceiling."""

    def __init__(self, message: str, resource: Optional[str] = None, pending: Iterable[str] = ()):
        super().__init__(message, resource)
        self.pending = tuple(pending)


class ValidationAbortedError(WorkflowError):
    """An operator cancelled the wait."""


class BindingError(WorkflowError):
    """A dependent resource was offered a certificate that is not issued."""


# Everything a boto3 call can raise: service replies and transport failures
AWS_ERRORS = (ClientError, BotoCoreError)

ACCESS_ERROR_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
    "InvalidClientTokenId",
    "ExpiredToken",
}


def error_code(error: Exception) -> str:
    if not isinstance(error, ClientError):
        return ""
    return error.response.get("Error", {}).get("Code", "")


def error_message(error: Exception) -> str:
    if not isinstance(error, ClientError):
        return str(error)
    return error.response.get("Error", {}).get("Message", str(error))


INPUT_ERROR_CODES = {
    "InvalidDomainValidationOptionsException",
    "InvalidParameterException",
    "ValidationException",
    "LimitExceededException",
    "InvalidArnException",
}


def translate(error: Exception, resource: str) -> WorkflowError:
    """Maps a service error onto the workflow taxonomy, keeping its message verbatim."""
    if isinstance(error, BotoCoreError):
        # Endpoint, credential and timeout failures never reached the service
        return PropagationError(str(error), resource=resource)
    code = error_code(error)
    if code in INPUT_ERROR_CODES:
        return InputError(error_message(error), resource=resource)
    if code in ACCESS_ERROR_CODES:
        return PropagationError(error_message(error), resource=resource)
    return WorkflowError(error_message(error), resource=resource)

