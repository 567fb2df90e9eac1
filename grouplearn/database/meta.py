"""
Meta functionality for the database.
"""

from .group import GroupMember
from .request import GroupRequest

ALL_TABLES = (
    GroupRequest,
    GroupMember,
)
