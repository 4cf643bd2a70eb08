"""Utility modules for the Snake Duel project."""

from .logger import get_logger, setup_logging, LogLevel

__all__ = ['get_logger', 'setup_logging', 'LogLevel']
