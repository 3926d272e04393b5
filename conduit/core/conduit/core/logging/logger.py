import logging
import os
from collections import OrderedDict
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

from conduit.core.config import CoreSettings
from conduit.core.utils import ifnone

ROOT_LOGGER_NAME = "conduit"


def default_formatter(fmt: Optional[str] = None) -> logging.Formatter:
    """Returns a logging formatter with a default format if none is specified."""
    default_fmt = "[%(asctime)s] %(levelname)s: %(name)s: %(message)s"
    return logging.Formatter(fmt or default_fmt)


def _log_file_path(name: str, log_dir: Optional[Path], use_structlog: bool) -> str:
    child_log_path = f"{name}.log" if name == ROOT_LOGGER_NAME else os.path.join("modules", f"{name}.log")
    if log_dir is None:
        dir_paths = CoreSettings().CONDUIT_DIR_PATHS
        log_dir = dir_paths.STRUCT_LOGGER_DIR if use_structlog else dir_paths.LOGGER_DIR
    return os.path.join(log_dir, child_log_path)


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    *,
    log_dir: Optional[Path] = None,
    logger_level: int = logging.DEBUG,
    stream_level: int = logging.ERROR,
    add_stream_handler: bool = True,
    file_level: int = logging.DEBUG,
    file_mode: str = "a",
    add_file_handler: bool = True,
    propagate: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    use_structlog: Optional[bool] = None,
    structlog_json: Optional[bool] = True,
    structlog_bind: Optional[object] = None,
) -> Logger | structlog.stdlib.BoundLogger:
    """Configure and initialize logging for Conduit components.

    Sets up a rotating file handler and a console handler on the given logger. The log file defaults to
    ``<CONDUIT_DIR_PATHS.LOGGER_DIR>/conduit.log`` for the root logger and ``.../modules/{name}.log`` otherwise.

    Args:
        name: Logger name, defaults to "conduit".
        log_dir: Custom directory for the log file.
        logger_level: Overall logger level.
        stream_level: StreamHandler level (e.g., ERROR).
        add_stream_handler: Whether to add a stream handler.
        file_level: FileHandler level (e.g., DEBUG).
        file_mode: Mode for the file handler, default is 'a' (append).
        add_file_handler: Whether to add a file handler.
        propagate: Whether the logger should propagate messages to ancestor loggers.
        max_bytes: Maximum size in bytes before rotating the log file.
        backup_count: Number of backup files to retain.
        use_structlog: If True, configure and return a structlog BoundLogger. Defaults to
            ``CONDUIT_LOGGER.USE_STRUCTLOG``.
        structlog_json: If True, render JSON; otherwise use the console renderer.
        structlog_bind: Optional dict or callable(name)->dict of fields to bind.

    Returns:
        Logger | structlog.stdlib.BoundLogger: Configured logger instance.
    """
    use_structlog = ifnone(use_structlog, CoreSettings().CONDUIT_LOGGER.USE_STRUCTLOG)
    log_file_path = _log_file_path(name, log_dir, use_structlog)
    os.makedirs(Path(log_file_path).parent, exist_ok=True)

    # structlog output is already rendered, so the stdlib handlers only pass the message through
    formatter = logging.Formatter("%(message)s") if use_structlog else default_formatter()

    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(logger_level)
    logger.propagate = propagate

    if add_stream_handler:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(stream_level)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if add_file_handler:
        file_handler = RotatingFileHandler(
            filename=str(log_file_path), maxBytes=max_bytes, backupCount=backup_count, mode=file_mode
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if not use_structlog:
        return logger

    renderer = structlog.processors.JSONRenderer() if structlog_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _enforce_key_order_processor(["timestamp", "event", "operation", "duration_ms", "level", "logger"]),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    bound_logger = structlog.get_logger(name)
    if structlog_bind is not None:
        bind_dict = structlog_bind(name) if callable(structlog_bind) else dict(structlog_bind)
        if bind_dict:
            bound_logger = bound_logger.bind(**bind_dict)
    return bound_logger


def _enforce_key_order_processor(key_order: list[str]):
    def _processor(_logger, _method_name, event_dict):
        ordered = OrderedDict()
        for key in key_order:
            if key in event_dict:
                ordered[key] = event_dict.pop(key)
        for k in sorted(event_dict.keys()):
            ordered[k] = event_dict[k]
        return ordered

    return _processor


def get_logger(
    name: str | None = ROOT_LOGGER_NAME, use_structlog: bool | None = None, **kwargs
) -> logging.Logger | structlog.stdlib.BoundLogger:
    """
    Create or retrieve a named logger instance.

    Names are placed under the ``conduit`` logger hierarchy. Any already configured ancestor loggers are refreshed
    with the given settings (without a stream handler) so that propagated records end up in their files.

    Args:
        name (str): The name of the logger. Defaults to "conduit".
        use_structlog (bool): Whether to use structured logging. If None, uses the config default.
        **kwargs: Additional keyword arguments passed to `setup_logger`.

    Returns:
        logging.Logger | structlog.stdlib.BoundLogger: A configured logger instance.

    Example:
        .. code-block:: python

            from conduit.core.logging.logger import get_logger

            logger = get_logger("mongo.client")  # conduit.mongo.client
            logger.info("Connected.")
    """
    if not name:
        name = ROOT_LOGGER_NAME

    full_name = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
    kwargs.setdefault("propagate", True)
    use_structlog = ifnone(use_structlog, CoreSettings().CONDUIT_LOGGER.USE_STRUCTLOG)

    if kwargs.get("propagate"):
        parts = full_name.split(".")
        for i in range(1, len(parts)):
            parent_name = ".".join(parts[:i])
            if logging.getLogger(parent_name).handlers:
                setup_logger(parent_name, add_stream_handler=False, use_structlog=use_structlog, **kwargs)
    return setup_logger(full_name, use_structlog=use_structlog, **kwargs)
