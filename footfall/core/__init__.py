"""
Core package containing configuration, database, security, and logging.
"""
from footfall.core.config import IngestionConfig, settings
from footfall.core.database import Base, DbSession, get_db_session
from footfall.core.logging import configure_logging, get_logger
from footfall.core.security import (
    create_access_token,
    decode_access_token,
    hash_identity,
    resolve_client_address,
)

__all__ = [
    "settings",
    "IngestionConfig",
    "Base",
    "DbSession",
    "get_db_session",
    "configure_logging",
    "get_logger",
    "hash_identity",
    "resolve_client_address",
    "create_access_token",
    "decode_access_token",
]
