import logging
from typing import Optional
from functools import lru_cache
import sys
import os


class LoggerProvider:
    """Unified logging management class - singleton + LRU cache"""

    _instance: Optional['LoggerProvider'] = None
    _initialized: bool = False

    def __new__(cls) -> 'LoggerProvider':
        """Singleton pattern implementation"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize the logger provider"""
        if not self._initialized:
            self._setup_logging()
            self._initialized = True

    def _setup_root_logging(self):
        """Set up root logging configuration"""
        # Get log level from environment variable, default to INFO
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

        logging.basicConfig(
            level=getattr(logging, log_level, logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
            handlers=[logging.StreamHandler(sys.stdout)],
        )

    def _setup_logging(self):
        """Set up logging configuration"""
        self._setup_root_logging()

        # Silence per-request logs of the storage and search drivers
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('elastic_transport').setLevel(logging.WARNING)
        logging.getLogger('elasticsearch').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('aiohttp').setLevel(logging.WARNING)

    @lru_cache(maxsize=1000)
    def _get_cached_logger(self, module_name: str) -> logging.Logger:
        """Get cached logger (LRU cache, up to 1000)"""
        return logging.getLogger(f'{module_name}')

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get logger with specified name (recommended usage: explicitly pass module name)

        Args:
            name: Logger name, if None uses caller's module name (lower performance)

        Returns:
            logging.Logger: Logger instance
        """
        if name is None:
            frame = sys._getframe(1)
            name = frame.f_globals.get('__name__', 'unknown')

        return self._get_cached_logger(name)


# Create global logger provider instance
logger_provider = LoggerProvider()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get logger (recommended usage: explicitly pass __name__)

    Recommended usage:
        logger = get_logger(__name__)  # Get once at module top
        logger.info("High-frequency log calls")    # Use directly afterwards

    Args:
        name: Module name, recommended to pass __name__. If None, automatically get (lower performance)
    """
    return logger_provider.get_logger(name)
