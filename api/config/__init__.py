"""
Configuration module for StockWatch.

Centralizes all configurable values with environment variable overrides.
"""

from .settings import StockWatchConfig, get_config, reset_config

__all__ = ['StockWatchConfig', 'get_config', 'reset_config']
