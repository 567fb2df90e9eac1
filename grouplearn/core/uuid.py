"""
UUID creation. uuid7 is used for new request ids because it sorts by creation
time; it is not part of the python standard library as of 3.12.
"""

from uuid import UUID as UUID

from uuid_extensions import uuid7 as uuid7

__ALL__ = ["UUID", "uuid7"]
