"""
Async Python client for the ContentHub API
"""

from .api import ContentHubClient
from .autosave import AutoSaver
from .session import SessionManager

__all__ = ["ContentHubClient", "AutoSaver", "SessionManager"]
