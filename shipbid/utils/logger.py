"""
Centralized logging configuration for shipbid.

Provides colored console logging and separate loggers for the
client subsystems (gateway, reader, driver, ledger, cli).
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog


class ShipBidLogger:
    """Centralized logger for shipbid components"""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
    ):
        """
        Setup logging configuration.

        Later calls adjust the level and may add the file handler; the
        console handler is only installed once.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_dir: Directory for log files. If None, uses ./logs
            log_to_file: Whether to write logs to file
        """
        root_logger = logging.getLogger("shipbid")

        if not cls._initialized:
            root_logger.handlers.clear()

            # Console handler with colors; stdout is left to rendered results
            console_handler = colorlog.StreamHandler(sys.stderr)
            console_formatter = colorlog.ColoredFormatter(
                "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors={
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            )
            console_handler.setFormatter(console_formatter)
            root_logger.addHandler(console_handler)
            cls._initialized = True

        if log_to_file and cls._log_dir is None:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(exist_ok=True, parents=True)

            file_handler = logging.FileHandler(cls._log_dir / "shipbid.log")
            file_formatter = logging.Formatter(
                "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            handler.setLevel(level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger for a specific subsystem.

        Args:
            name: Subsystem name (e.g., 'gateway', 'driver', 'ledger')

        Returns:
            Logger instance
        """
        if not cls._initialized:
            cls.setup()

        return logging.getLogger(f"shipbid.{name}")


# Convenience functions
def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific subsystem"""
    return ShipBidLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
):
    """Setup logging configuration"""
    ShipBidLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file)
