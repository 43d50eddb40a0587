"""
Shared enums and constants used across the application.
"""

from enum import Enum


class ChangeKind(str, Enum):
    """Kinds of committed mutation announced on the change bus"""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
