"""
Record store client: the interface repositories talk to, plus the
SQLAlchemy-backed implementation.
"""

from .base import AnyOf, Condition, Filter, Order, RecordStore, Row
from .sql import SQLAlchemyRecordStore

__all__ = [
    "AnyOf",
    "Condition",
    "Filter",
    "Order",
    "RecordStore",
    "Row",
    "SQLAlchemyRecordStore",
]
