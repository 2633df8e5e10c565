"""
Database module.
Contains connection management, models, statements and schema bootstrap.
"""

from pgqueue.db.bootstrap import validate_connection
from pgqueue.db.connection import (
    close_db,
    create_engine,
    get_engine,
    get_test_engine,
)
from pgqueue.db.models import Base, MetaInfo, TaskRecord

__all__ = [
    "create_engine",
    "get_engine",
    "get_test_engine",
    "close_db",
    "validate_connection",
    "Base",
    "MetaInfo",
    "TaskRecord",
]
