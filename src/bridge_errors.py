"""
Error types shared by discovery, local control and cloud control
"""

from typing import Optional


class BridgeError(Exception):
    """Base class for every failure that crosses the bridge boundary"""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidError(BridgeError):
    """A device or service answered with something that cannot be interpreted"""

    kind = "invalid"


class InvalidInputError(InvalidError):
    """Caller supplied empty or malformed arguments (never retried)"""

    kind = "invalid_input"


class NetworkError(BridgeError):
    """Socket or HTTP transport failure, or a non-success HTTP status"""

    kind = "network"

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def require_text(value, name: str) -> str:
    """Return the stripped string or raise InvalidInputError if it is blank"""
    if value is None or not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"Missing {name}")
    return value.strip()
