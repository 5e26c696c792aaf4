"""Core application modules."""
from pantry.core.config import settings, get_settings, Settings
from pantry.core.database import (
    Base,
    get_session_factory,
    create_engine_for,
    create_session_factory,
    init_db,
    close_db,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "Base",
    "get_session_factory",
    "create_engine_for",
    "create_session_factory",
    "init_db",
    "close_db",
]
