"""Conduit class. Provides unified configuration, logging and context management."""

import inspect
import logging
import time
import traceback
from abc import ABC, ABCMeta
from functools import wraps
from typing import Callable, Optional

from conduit.core.config import CoreConfig, SettingsLike
from conduit.core.logging.logger import get_logger
from conduit.core.utils import ifnone

LOGGER_KWARGS = frozenset(
    {
        "log_dir",
        "logger_level",
        "stream_level",
        "file_level",
        "file_mode",
        "propagate",
        "max_bytes",
        "backup_count",
        "use_structlog",
        "structlog_json",
        "structlog_bind",
    }
)


class ConduitMeta(type):
    """Metaclass for the Conduit class.

    ConduitMeta lets classes deriving from Conduit use the same default logger within class methods as they do
    within instance methods:

    Example, logging in both class methods and instance methods::

        from conduit.core import Conduit

        class MyClass(Conduit):
            def instance_method(self):
                self.logger.info(f"Using logger: {self.logger.name}")  # Using logger: conduit.my_module.MyClass

            @classmethod
            def class_method(cls):
                cls.logger.info(f"Using logger: {cls.logger.name}")  # Using logger: conduit.my_module.MyClass
    """

    def __init__(cls, name, bases, attr_dict):
        super().__init__(name, bases, attr_dict)
        cls._logger = None
        cls._config = None
        cls._logger_kwargs = None
        cls._cached_logger_kwargs = None

    @property
    def logger(cls):
        current_kwargs = cls._logger_kwargs or {}

        # Recreate the logger when the kwargs it was built with have changed
        if cls._logger is not None and cls._cached_logger_kwargs not in (None, current_kwargs):
            cls._logger = None
            cls._cached_logger_kwargs = None

        if cls._logger is None:
            cls._logger = get_logger(cls.unique_name, **current_kwargs)
            cls._cached_logger_kwargs = dict(current_kwargs)
        return cls._logger

    @logger.setter
    def logger(cls, new_logger):
        cls._logger = new_logger

    @property
    def unique_name(cls) -> str:
        return cls.__module__ + "." + cls.__name__

    @property
    def config(cls):
        if cls._config is None:
            cls._config = CoreConfig()
        return cls._config

    @config.setter
    def config(cls, new_config):
        cls._config = new_config


class Conduit(metaclass=ConduitMeta):
    """Base class for all Conduit core classes.

    The Conduit class adds configuration, logging and context manager support. All classes deriving from Conduit
    can be used as context managers and use a unified logging format.

    .. code-block:: python

        from conduit.core import Conduit

        class MyClass(Conduit):
            def instance_method(self):
                self.logger.info(f"Using logger: {self.logger.name}")

        with MyClass() as instance:
            instance.instance_method()
    """

    def __init__(self, suppress: bool = False, *, config_overrides: SettingsLike | None = None, **kwargs):
        """
        Initialize the Conduit object.

        Args:
            suppress: Whether to suppress exceptions in context manager use.
            config_overrides: Additional settings to override the default config.
            **kwargs: Additional keyword arguments. Logger-related kwargs are passed to `get_logger`.
                Valid logger kwargs: log_dir, logger_level, stream_level, file_level, file_mode, propagate,
                max_bytes, backup_count, use_structlog, structlog_json, structlog_bind
        """
        self.config = CoreConfig(config_overrides)
        remaining_kwargs = {k: v for k, v in kwargs.items() if k not in LOGGER_KWARGS}
        super().__init__(**remaining_kwargs)

        self.suppress = suppress

        logger_kwargs = {k: v for k, v in kwargs.items() if k in LOGGER_KWARGS}
        type(self)._logger_kwargs = logger_kwargs
        self.logger = get_logger(self.unique_name, **logger_kwargs)

    @property
    def unique_name(self) -> str:
        return self.__module__ + "." + type(self).__name__

    @property
    def name(self) -> str:
        return type(self).__name__

    def __enter__(self):
        self.logger.debug(f"Initializing {self.name} as a context manager.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.debug(f"Exiting context manager for {self.name}.")
        if exc_type is not None:
            self.logger.exception("Exception occurred", exc_info=(exc_type, exc_val, exc_tb))
            return self.suppress
        return False

    @classmethod
    def autolog(
        cls,
        log_level=logging.DEBUG,
        prefix_formatter: Optional[Callable] = None,
        suffix_formatter: Optional[Callable] = None,
        exception_formatter: Optional[Callable] = None,
        self: Optional["Conduit"] = None,
        include_duration: bool = True,
    ):
        """Decorator that logs before and after the decorated method is called.

        By default the method name, args and kwargs are logged before the call, and the method name and result
        after it. Exceptions are logged together with their stack trace and re-raised. Results are rendered with
        ``str()``, so they should describe themselves without side effects.

        The decorator expects a logger at ``self.logger``. If the wrapped function does not take ``self`` as its
        first argument, the owning instance must be passed in as ``self``.

        Args:
            log_level: The log_level passed to logger.log().
            prefix_formatter: Called with (function, args, kwargs) to build the message logged before the call.
            suffix_formatter: Called with (function, result) to build the message logged after the call.
            exception_formatter: Called with (function, error, stack trace) to build the failure message.
            self: The instance owning the logger, for wrapped functions without a ``self`` argument.
            include_duration: If True, append the duration of the wrapped call to the closing record.

        Example::

            from conduit.core import Conduit

            class Calculator(Conduit):
                @Conduit.autolog()
                def divide(self, arg1, arg2):
                    return arg1 / arg2

            Calculator().divide(1, 0)

        The log file will then contain something similar to:

        .. code-block:: text

            Calculator - DEBUG - Operation divide started with args: (1, 0) and kwargs: {}
            Calculator - ERROR - Operation divide failed with the following error: division by zero
            Traceback (most recent call last):
            ...
        """
        prefix_formatter = ifnone(
            prefix_formatter,
            default=lambda function, args, kwargs: (
                f"Operation {function.__name__} started with args: {args} and kwargs: {kwargs}"
            ),
        )
        suffix_formatter = ifnone(
            suffix_formatter,
            default=lambda function, result: f"Operation {function.__name__} completed with result: {result}",
        )
        exception_formatter = ifnone(
            exception_formatter,
            default=lambda function, e, stack_trace: (
                f"Operation {function.__name__} failed with the following error: {e}\n{stack_trace}"
            ),
        )
        bound_self = self

        def decorator(function):
            def emit(logger_obj, level, message, started_at, *, is_error=False, **fields):
                if include_duration and started_at is not None:
                    fields["duration_ms"] = round((time.perf_counter() - started_at) * 1000.0, 2)
                if hasattr(logger_obj, "bind"):
                    # structlog: concise event plus structured fields
                    fields["operation"] = function.__name__
                    logger_obj.log(logging.ERROR if is_error else level, message.split("\n", 1)[0], **fields)
                    return
                if "duration_ms" in fields:
                    message = f"{message} | duration_ms={fields['duration_ms']:.2f}"
                if is_error:
                    logger_obj.error(message)
                else:
                    logger_obj.log(level, message)

            def start(logger_obj, args, kwargs) -> float:
                emit(logger_obj, log_level, prefix_formatter(function, args, kwargs), None)
                return time.perf_counter()

            def fail(logger_obj, e, started_at):
                emit(
                    logger_obj,
                    log_level,
                    exception_formatter(function, e, traceback.format_exc()),
                    started_at,
                    is_error=True,
                    exception=str(e),
                    exception_type=type(e).__name__,
                )

            def run(logger_obj, call, args, kwargs):
                started_at = start(logger_obj, args, kwargs)
                try:
                    result = call()
                except Exception as e:
                    fail(logger_obj, e, started_at)
                    raise
                emit(logger_obj, log_level, suffix_formatter(function, result), started_at)
                return result

            async def run_async(logger_obj, call, args, kwargs):
                started_at = start(logger_obj, args, kwargs)
                try:
                    result = await call()
                except Exception as e:
                    fail(logger_obj, e, started_at)
                    raise
                emit(logger_obj, log_level, suffix_formatter(function, result), started_at)
                return result

            is_async = inspect.iscoroutinefunction(function)

            if bound_self is None:
                if is_async:

                    @wraps(function)
                    async def wrapper(self, *args, **kwargs):
                        return await run_async(self.logger, lambda: function(self, *args, **kwargs), args, kwargs)

                else:

                    @wraps(function)
                    def wrapper(self, *args, **kwargs):
                        return run(self.logger, lambda: function(self, *args, **kwargs), args, kwargs)

            elif is_async:

                @wraps(function)
                async def wrapper(*args, **kwargs):
                    return await run_async(bound_self.logger, lambda: function(*args, **kwargs), args, kwargs)

            else:

                @wraps(function)
                def wrapper(*args, **kwargs):
                    return run(bound_self.logger, lambda: function(*args, **kwargs), args, kwargs)

            return wrapper

        return decorator


class ConduitABCMeta(ConduitMeta, ABCMeta):
    """Metaclass that combines ConduitMeta and ABCMeta.

    Python allows a class only one metaclass, so classes that are both abstract and Conduit classes need this
    combined metaclass to avoid a metaclass conflict.
    """

    pass


class ConduitABC(Conduit, ABC, metaclass=ConduitABCMeta):
    """Abstract base class combining Conduit functionality with ABC support.

    Use this class instead of Conduit when defining abstract methods or properties.

    Example:
        from abc import abstractmethod
        from conduit.core import ConduitABC

        class MyAbstractConnector(ConduitABC):
            @abstractmethod
            def connect(self):
                '''Must be implemented by concrete subclasses.'''
                pass
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
