"""oozie-web logging — logging port and structlog adapter."""

from oozieweb.logging.port import LoggingPort
from oozieweb.logging.structlog_adapter import StructlogAdapter

__all__ = ["LoggingPort", "StructlogAdapter"]
