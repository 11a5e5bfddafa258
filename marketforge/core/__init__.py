"""
Market Forge Core
=================

Core utilities and shared functionality for Market Forge modules.
"""

from .config import Config, get_setting
from .database import Database
from .logging_service import LoggingService, db_log, logger

__all__ = ['Config', 'get_setting', 'Database', 'LoggingService', 'db_log', 'logger']
