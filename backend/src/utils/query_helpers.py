"""
Query helper utilities for database operations.

This module provides shared utilities for common query patterns used by the
availability and scheduling services.
"""

from datetime import datetime
from typing import Any, TypeVar
from sqlalchemy.orm import Query

from core.constants import EMPLOYEE_ROLE
from models import User

# Type variable for Query generic type
T = TypeVar('T')


def filter_active_employees(query: Query[T]) -> Query[T]:
    """
    Filter a User query to active accounts with the employee role.

    Example:
        ```python
        query = db.query(User).filter(User.clinic_id == clinic_id)
        employees = filter_active_employees(query).order_by(User.id).all()
        ```
    """
    return query.filter(
        User.role == EMPLOYEE_ROLE,
        User.is_active == True  # noqa: E712
    )


def filter_overlapping_range(
    query: Query[T],
    start_column: Any,
    end_column: Any,
    range_start: datetime,
    range_end: datetime
) -> Query[T]:
    """
    Keep rows whose [start_column, end_column) interval intersects [range_start, range_end).

    Args:
        query: Query to filter
        start_column: Mapped column holding the row's start
        end_column: Mapped column holding the row's (exclusive) end
        range_start: Start of the window
        range_end: End of the window (exclusive)
    """
    return query.filter(start_column < range_end, end_column > range_start)
