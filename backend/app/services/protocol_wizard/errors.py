from typing import Dict, Optional


class WizardError(Exception):
    """Base class for everything the protocol wizard surfaces to the user"""

    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StepValidationError(WizardError):
    """A step's completion predicate does not hold. Never reaches the network."""

    def __init__(self, step: str, errors: Dict[str, str]):
        self.step = step
        self.errors = dict(errors)
        details = "; ".join(f"{field}: {msg}" for field, msg in sorted(self.errors.items()))
        super().__init__(f"Step '{step}' is incomplete: {details}")


class InvalidTransitionError(WizardError):
    pass


class InvalidInputError(WizardError):
    """The server rejected the request body (4xx other than auth and 413)"""

    def __init__(self, message: str, status_code: int = 400, detail=None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class AuthError(WizardError):
    """401/403, the user must log in again"""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class PayloadTooLargeError(WizardError):
    status_code = 413

    def __init__(self, payload_bytes: int, limit: Optional[int] = None):
        self.payload_bytes = payload_bytes
        self.limit = limit
        limit_text = f" (limit {limit} bytes)" if limit is not None else ""
        super().__init__(f"Protocol payload of {payload_bytes} bytes is too large{limit_text}")


class ServerError(WizardError):
    retryable = True

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class NetworkError(WizardError):
    retryable = True
