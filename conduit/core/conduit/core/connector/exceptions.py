from enum import Enum


class ConnectorError(Exception):
    """Base class for errors raised by the connector layer itself."""


class UnknownOperationError(ConnectorError, LookupError):
    """Raised when a connector is asked to invoke an operation it does not expose."""

    def __init__(self, connector: str, operation: str):
        super().__init__(f"{connector} has no operation named '{operation}'")
        self.connector = connector
        self.operation = operation


class ConnectionExceptionCode(Enum):
    """Reasons a connector can fail to establish its connection."""

    UNKNOWN_HOST = "UNKNOWN_HOST"
    CANNOT_REACH = "CANNOT_REACH"
    INCORRECT_CREDENTIALS = "INCORRECT_CREDENTIALS"
    CREDENTIALS_EXPIRED = "CREDENTIALS_EXPIRED"
    UNKNOWN = "UNKNOWN"


class ConnectionException(ConnectorError):
    """Raised when a connector cannot connect.

    Args:
        code: Why the connection failed.
        message: Human readable description.
        key: Identifies the connection that failed, when known.
    """

    def __init__(self, code: ConnectionExceptionCode, message: str, key: str | None = None):
        super().__init__(message)
        self.code = code
        self.key = key

    def __str__(self) -> str:
        return f"[{self.code.value}] {super().__str__()}"
