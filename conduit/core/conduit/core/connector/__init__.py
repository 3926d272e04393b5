from conduit.core.connector.connector import Connector, operation_name, processor, summarize_value
from conduit.core.connector.exceptions import (
    ConnectionException,
    ConnectionExceptionCode,
    ConnectorError,
    UnknownOperationError,
)

__all__ = [
    "ConnectionException",
    "ConnectionExceptionCode",
    "Connector",
    "ConnectorError",
    "UnknownOperationError",
    "operation_name",
    "processor",
    "summarize_value",
]
