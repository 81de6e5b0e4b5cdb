"""
Configuration for terrain generation and the service around it.
"""

from .config import Settings, settings

__all__ = ['Settings', 'settings']
