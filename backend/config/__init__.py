"""
Configuration for the table data engine
"""
from config.logging_config import configure_logging
from config.settings import TableDataSettings

__all__ = ['TableDataSettings', 'configure_logging']
