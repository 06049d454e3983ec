"""
Logging configuration for qmesh.

Console logging by default, with optional file output and JSON-structured
records for log shippers.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union
import json
from datetime import datetime, timezone


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredFormatter(logging.Formatter):
    """JSON-structured log formatter with metadata."""
    
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with timestamp and metadata."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        
        # Extra fields passed as logger.info(..., extra={"metadata": {...}})
        if hasattr(record, "metadata"):
            log_data["metadata"] = record.metadata
        
        return json.dumps(log_data, default=str)


def _make_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return StructuredFormatter()
    return logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)


def setup_logger(
    name: str = "qmesh",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    json_format: bool = False,
) -> logging.Logger:
    """
    Set up and configure a logger.
    
    Calling this again replaces the handlers installed by a previous call,
    so the CLI can reconfigure after reading a YAML config.
    
    Args:
        name: Logger name (default: "qmesh")
        level: Logging level, as int or level name (default: INFO)
        log_file: Optional file path for log output
        json_format: Use JSON-structured logging (default: False)
    
    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    
    logger = logging.getLogger(name)
    logger.setLevel(level)
    
    for handler in list(logger.handlers):
        if getattr(handler, "_qmesh_handler", False):
            logger.removeHandler(handler)
            handler.close()
    
    # Logs go to stderr so stdout stays clean for JSON output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(_make_formatter(json_format))
    console_handler._qmesh_handler = True
    logger.addHandler(console_handler)
    
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(_make_formatter(json_format))
        file_handler._qmesh_handler = True
        logger.addHandler(file_handler)
    
    return logger

