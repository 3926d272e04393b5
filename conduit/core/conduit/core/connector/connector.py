from abc import abstractmethod
from typing import Any, Callable, ClassVar, Dict, List, Optional

from conduit.core.base import Conduit, ConduitABC
from conduit.core.connector.exceptions import UnknownOperationError

PROCESSOR_ATTR = "__conduit_processor__"

# Longest rendering of a single parameter or result in invocation logs
MAX_LOGGED_VALUE_LENGTH = 200


def operation_name(function_name: str) -> str:
    """Default operation name for a processor method, e.g. ``find_objects`` -> ``find-objects``."""
    return function_name.strip("_").replace("_", "-")


def summarize_value(value: Any, max_length: int = MAX_LOGGED_VALUE_LENGTH) -> str:
    """Render a value for a log line without dumping payloads.

    Binary content is reduced to its type and size, readable streams to their type, and any other rendering longer
    than ``max_length`` is cut.

    Example:
        >>> summarize_value(b"abc")
        '<bytes: 3 bytes>'
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        size = value.nbytes if isinstance(value, memoryview) else len(value)
        return f"<{type(value).__name__}: {size} bytes>"
    if callable(getattr(value, "read", None)):
        return f"<{type(value).__name__} stream>"
    text = repr(value)
    if len(text) > max_length:
        return f"{text[:max_length]}... ({len(text)} chars)"
    return text


def _invocation_started(function: Callable, args: tuple, kwargs: dict) -> str:
    parameters = ", ".join(f"{name}={summarize_value(value)}" for name, value in kwargs.items())
    operation = args[0] if args else None
    return f"Operation {function.__name__} started for {operation!r} with parameters: {{{parameters}}}"


def _invocation_completed(function: Callable, result: Any) -> str:
    return f"Operation {function.__name__} completed with result: {summarize_value(result)}"


def processor(name: Optional[str] = None) -> Callable:
    """Mark a connector method as an operation the host framework can invoke.

    Args:
        name: Operation name. Defaults to the kebab-case method name.

    Example:
        .. code-block:: python

            class EchoConnector(Connector):
                @processor()
                def echo(self, message: str) -> str:
                    return message

            EchoConnector.operations()  # ["echo"]
    """

    def decorator(function: Callable) -> Callable:
        setattr(function, PROCESSOR_ATTR, name or operation_name(function.__name__))
        return function

    return decorator


class Connector(ConduitABC):
    """Base class for connectors driven by an integration host framework.

    The host framework never calls connector methods directly. It asks a connector for its `operations`, and calls
    `invoke` with an operation name and keyword parameters. Connectors manage a single connection: `invoke` connects
    on demand, and leaving a ``with`` block disconnects.

    Subclasses implement the connection lifecycle (`connect`, `disconnect`, `is_connected`, `connection_id`) and
    mark their operations with `processor`.
    """

    _processors: ClassVar[Dict[str, str]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        processors: Dict[str, str] = {}
        for klass in reversed(cls.__mro__):
            for attr_name, attr in vars(klass).items():
                op = getattr(attr, PROCESSOR_ATTR, None)
                if op is not None:
                    processors[op] = attr_name
        cls._processors = processors

    @classmethod
    def operations(cls) -> List[str]:
        """Names of the operations exposed by this connector."""
        return sorted(cls._processors)

    @classmethod
    def has_operation(cls, operation: str) -> bool:
        return operation in cls._processors

    @Conduit.autolog(prefix_formatter=_invocation_started, suffix_formatter=_invocation_completed)
    def invoke(self, operation: str, /, **parameters: Any) -> Any:
        """Invoke an operation by name, connecting first if needed.

        Args:
            operation: The operation name, as listed by `operations`.
            **parameters: Keyword parameters forwarded to the operation.

        Raises:
            UnknownOperationError: If the connector does not expose the operation.
        """
        method_name = self._processors.get(operation)
        if method_name is None:
            raise UnknownOperationError(self.name, operation)
        if not self.is_connected():
            self.connect()
        return getattr(self, method_name)(**parameters)

    @abstractmethod
    def connect(self, *args, **kwargs) -> None:
        """Establish the connection."""
        raise NotImplementedError

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection. Must be safe to call when not connected."""
        raise NotImplementedError

    @abstractmethod
    def is_connected(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def connection_id(self) -> str:
        """An identifier for the current connection, free of credentials."""
        raise NotImplementedError

    def validate_connection(self) -> bool:
        return self.is_connected()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return super().__exit__(exc_type, exc_val, exc_tb)
