# services/errors.py


class LMSError(Exception):
    """Base class for every failure the LMS surfaces to its callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFound(LMSError):
    def __init__(self, entity: str, entity_id: str = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} not found: {entity_id}"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id

    @classmethod
    def from_message(cls, message: str):
        err = cls("Record")
        err.message = message
        err.args = (message,)
        return err


class ValidationFailed(LMSError):
    """Raised when a record breaks a shape invariant.

    ``reason`` names the rule (``MissingContent``, ``AnswerNotInOptions``, ...)
    so callers can react without parsing the message.
    """

    def __init__(self, reason: str, message: str = None):
        super().__init__(message or reason)
        self.reason = reason


class InvalidCredentials(LMSError):
    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class PermissionDenied(LMSError):
    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class TransportFailure(LMSError):
    """Backend unreachable, or it answered with something that is not an envelope."""


ERROR_TYPES = {
    cls.__name__: cls
    for cls in (NotFound, ValidationFailed, InvalidCredentials, PermissionDenied, TransportFailure)
}


def error_from_code(code: str, message: str, reason: str = None) -> LMSError:
    """Rebuild a typed error from the ``code``/``error`` fields of an RPC envelope."""
    if code == "NotFound":
        return NotFound.from_message(message)
    if code == "ValidationFailed":
        return ValidationFailed(reason or "ValidationFailed", message)
    cls = ERROR_TYPES.get(code)
    if cls is None:
        return LMSError(message)
    return cls(message)
