# Utilities
from .logger import setup_logging, get_logger, MarketEventLogger

__all__ = ["setup_logging", "get_logger", "MarketEventLogger"]
