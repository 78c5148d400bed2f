"""
ORM models for the discussion board: forums, topics, posts, and the users,
groups and roles that moderate them.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

# Re-export commonly used models for convenience and to ensure import side-effects
# register all mapped classes with SQLAlchemy metadata.

from .forum import (  # noqa: F401
    Forum,
    Topic,
    Post,
    TOPIC_NORMAL,
    TOPIC_STICKY,
    TOPIC_ANNOUNCE,
)
from .security import (  # noqa: F401
    User,
    Group,
    Role,
    RoleValue,
    user_groups,
    MODERATE_FORUM_ROLE,
)
