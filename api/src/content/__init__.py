"""Post/comment content tree.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.content.models import (
    CONTENT_TABLES_CQL,
    Comment,
    ContentKind,
    ContentStatus,
    Post,
)
from src.content.repository import (
    CassandraContentRepository,
    ContentRepository,
    InMemoryContentRepository,
)
from src.content.service import ContentStore


__all__ = [
    "CONTENT_TABLES_CQL",
    "CassandraContentRepository",
    "Comment",
    "ContentKind",
    "ContentRepository",
    "ContentStatus",
    "ContentStore",
    "InMemoryContentRepository",
    "Post",
]
