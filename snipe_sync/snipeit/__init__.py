"""Snipe-IT client module initialization."""

from .base_client import SnipeITBaseClient
from .entities import SnipeITEntityManager
from .accessories import SnipeITAccessoryManager

__all__ = ['SnipeITBaseClient', 'SnipeITEntityManager', 'SnipeITAccessoryManager']
