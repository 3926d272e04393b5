from conduit.core.utils.checks import check_not_empty, check_not_none, first_not_none, ifnone
from conduit.core.config import Config, CoreConfig
from conduit.core.base import Conduit, ConduitABC, ConduitMeta
from conduit.core.logging.logger import get_logger, setup_logger

setup_logger()  # Initialize the default logger

from conduit.core.connector import (
    ConnectionException,
    ConnectionExceptionCode,
    Connector,
    ConnectorError,
    UnknownOperationError,
    processor,
)

__all__ = [
    "check_not_empty",
    "check_not_none",
    "Conduit",
    "ConduitABC",
    "ConduitMeta",
    "Config",
    "ConnectionException",
    "ConnectionExceptionCode",
    "Connector",
    "ConnectorError",
    "CoreConfig",
    "first_not_none",
    "get_logger",
    "ifnone",
    "processor",
    "UnknownOperationError",
]
