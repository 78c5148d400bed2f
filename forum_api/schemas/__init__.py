"""
Public Pydantic schemas used by FastAPI routes, repositories, and tests.

Read models are built from ORM rows (from_attributes); ForumStats is also the
return type of ForumRepository.get_forum_stats.
"""

from .common import MessageResponse  # noqa: F401
from .forum import ForumStats  # noqa: F401
