"""Database models for the post/comment content tree.

Cassandra table definitions for:
- Posts: one row per post, poll definition inline
- Posts by category / by author: newest-first listing keys
- Poll votes: one row per (post, option, voter)
- Comments: adjacency list partitioned by post (parent_id for threading)
- Comments by id: O(1) lookup of a comment's partition and clustering key

Architecture: Adjacency List pattern for threaded comments
- parent_id references the parent comment (NULL for root comments)
- Children are never stored; the tree is rebuilt on read from parent edges
- Soft delete (tombstone) with edit history tracking
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.utils.clock import ensure_aware, utc_now


class ContentKind(str, Enum):
    """Kinds of votable, reportable content."""

    POST = "post"
    COMMENT = "comment"


class PostCategory(str, Enum):
    """Forum post categories."""

    GENERAL = "general"
    POLICY = "policy"
    DEVELOPMENT = "development"
    EDUCATION = "education"
    HEALTH = "health"
    ENVIRONMENT = "environment"
    GOVERNANCE = "governance"
    OTHER = "other"


class Visibility(str, Enum):
    """Who a post is addressed to."""

    PUBLIC = "public"
    PRIVATE = "private"
    CONSTITUENCY = "constituency"


class ContentStatus(str, Enum):
    """Moderation status carried by posts and comments."""

    VISIBLE = "visible"
    UNDER_REVIEW = "under_review"
    REMOVED = "removed"


class MediaType(str, Enum):
    """Media attachment types."""

    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    post_id UUID PRIMARY KEY,
    author_id UUID,
    title TEXT,
    body TEXT,
    category TEXT,
    tags LIST<TEXT>,
    county TEXT,
    constituency TEXT,
    ward TEXT,
    visibility TEXT,
    media LIST<FROZEN<MAP<TEXT, TEXT>>>,
    poll_question TEXT,
    poll_options LIST<TEXT>,
    poll_end_date TIMESTAMP,
    poll_allow_multiple BOOLEAN,
    moderation_status TEXT,
    edit_history LIST<FROZEN<MAP<TEXT, TEXT>>>,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    deleted_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Filter tables, newest first; full rows are read from posts
POSTS_BY_CATEGORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_category (
    category TEXT,
    created_at TIMESTAMP,
    post_id UUID,
    PRIMARY KEY (category, created_at, post_id)
) WITH CLUSTERING ORDER BY (created_at DESC, post_id ASC)
"""

POSTS_BY_AUTHOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_author (
    author_id UUID,
    created_at TIMESTAMP,
    post_id UUID,
    PRIMARY KEY (author_id, created_at, post_id)
) WITH CLUSTERING ORDER BY (created_at DESC, post_id ASC)
"""

# Partition by post so a poll's votes are read in one query
POLL_VOTES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.poll_votes (
    post_id UUID,
    option_index INT,
    actor_id UUID,
    voted_at TIMESTAMP,
    PRIMARY KEY ((post_id), option_index, actor_id)
)
"""

# Partition by post_id, clustering by created_at for chronological threads
COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    post_id UUID,
    created_at TIMESTAMP,
    comment_id UUID,
    parent_id UUID,
    author_id UUID,
    body TEXT,
    moderation_status TEXT,
    edit_history LIST<FROZEN<MAP<TEXT, TEXT>>>,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    deleted_by UUID,
    updated_at TIMESTAMP,
    PRIMARY KEY ((post_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at ASC, comment_id ASC)
"""

# Comments by ID - O(1) lookup of the primary key in the comments table
COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    post_id UUID,
    created_at TIMESTAMP
)
"""

CONTENT_TABLES_CQL = [
    POSTS_TABLE_CQL,
    POSTS_BY_CATEGORY_TABLE_CQL,
    POSTS_BY_AUTHOR_TABLE_CQL,
    POLL_VOTES_TABLE_CQL,
    COMMENTS_TABLE_CQL,
    COMMENTS_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Location:
    """Administrative location of a post."""

    county: str | None = None
    constituency: str | None = None
    ward: str | None = None

    def is_empty(self) -> bool:
        return not (self.county or self.constituency or self.ward)


@dataclass
class MediaReference:
    """Opaque reference to media held by the media service."""

    url: str
    media_type: MediaType
    caption: str | None = None

    def to_map(self) -> dict[str, str]:
        """Flatten for a Cassandra MAP<TEXT, TEXT> column."""
        data = {"url": self.url, "media_type": self.media_type.value}
        if self.caption:
            data["caption"] = self.caption
        return data

    @classmethod
    def from_map(cls, data: dict[str, str]) -> "MediaReference":
        return cls(
            url=data["url"],
            media_type=MediaType(data["media_type"]),
            caption=data.get("caption"),
        )


@dataclass
class PollOption:
    """One poll option and the actors who chose it."""

    text: str
    voters: set[UUID] = field(default_factory=set)

    @property
    def votes(self) -> int:
        return len(self.voters)


@dataclass
class Poll:
    """Time-boxed poll embedded in a post."""

    question: str
    options: list[PollOption]
    end_date: datetime
    allow_multiple_votes: bool = False

    def is_closed(self, now: datetime) -> bool:
        """A poll accepts votes only while now < end_date."""
        return now >= self.end_date

    def choices_of(self, actor_id: UUID) -> list[int]:
        """Indexes of the options the actor has chosen."""
        return [i for i, option in enumerate(self.options) if actor_id in option.voters]

    @property
    def total_votes(self) -> int:
        return sum(option.votes for option in self.options)


@dataclass
class Post:
    """Post entity, root of a content tree."""

    post_id: UUID
    author_id: UUID
    title: str
    body: str
    category: PostCategory
    tags: list[str]
    location: Location | None
    visibility: Visibility
    poll: Poll | None
    media: list[MediaReference]
    moderation_status: ContentStatus
    edit_history: list[dict[str, str]]
    is_edited: bool
    edited_at: datetime | None
    is_deleted: bool
    deleted_at: datetime | None
    deleted_by: UUID | None
    created_at: datetime
    updated_at: datetime

    @property
    def id(self) -> UUID:
        return self.post_id

    @property
    def kind(self) -> ContentKind:
        return ContentKind.POST

    @classmethod
    def from_row(cls, row: Any, poll_vote_rows: Any = ()) -> "Post":
        """Create Post from a Cassandra posts row plus its poll_votes rows."""
        poll = None
        if row.poll_question:
            options = [PollOption(text=text) for text in row.poll_options or []]
            for vote in poll_vote_rows:
                if 0 <= vote.option_index < len(options):
                    options[vote.option_index].voters.add(vote.actor_id)
            poll = Poll(
                question=row.poll_question,
                options=options,
                end_date=ensure_aware(row.poll_end_date),
                allow_multiple_votes=row.poll_allow_multiple or False,
            )

        location = Location(
            county=row.county, constituency=row.constituency, ward=row.ward
        )
        return cls(
            post_id=row.post_id,
            author_id=row.author_id,
            title=row.title,
            body=row.body,
            category=PostCategory(row.category),
            tags=list(row.tags or []),
            location=None if location.is_empty() else location,
            visibility=Visibility(row.visibility),
            poll=poll,
            media=[MediaReference.from_map(item) for item in row.media or []],
            moderation_status=ContentStatus(row.moderation_status or "visible"),
            edit_history=[dict(entry) for entry in row.edit_history or []],
            is_edited=row.is_edited or False,
            edited_at=ensure_aware(row.edited_at) if row.edited_at else None,
            is_deleted=row.is_deleted or False,
            deleted_at=ensure_aware(row.deleted_at) if row.deleted_at else None,
            deleted_by=row.deleted_by,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at or row.created_at),
        )


@dataclass
class Comment:
    """Comment entity. Replies point at their parent through parent_id."""

    comment_id: UUID
    post_id: UUID
    parent_id: UUID | None
    author_id: UUID
    body: str
    moderation_status: ContentStatus
    edit_history: list[dict[str, str]]
    is_edited: bool
    edited_at: datetime | None
    is_deleted: bool
    deleted_at: datetime | None
    deleted_by: UUID | None
    created_at: datetime
    updated_at: datetime

    @property
    def id(self) -> UUID:
        return self.comment_id

    @property
    def kind(self) -> ContentKind:
        return ContentKind.COMMENT

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            post_id=row.post_id,
            parent_id=row.parent_id,
            author_id=row.author_id,
            body=row.body,
            moderation_status=ContentStatus(row.moderation_status or "visible"),
            edit_history=[dict(entry) for entry in row.edit_history or []],
            is_edited=row.is_edited or False,
            edited_at=ensure_aware(row.edited_at) if row.edited_at else None,
            is_deleted=row.is_deleted or False,
            deleted_at=ensure_aware(row.deleted_at) if row.deleted_at else None,
            deleted_by=row.deleted_by,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at or row.created_at),
        )


@dataclass
class CommentNode:
    """A comment placed in the rebuilt tree."""

    comment: Comment
    depth: int
    hidden: bool
    children: list["CommentNode"] = field(default_factory=list)


@dataclass
class ContentTree:
    """A post and its comment forest, each level ordered by creation time."""

    post: Post
    comments: list[CommentNode]

    @property
    def comment_count(self) -> int:
        count = 0
        stack = list(self.comments)
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.children)
        return count


@dataclass
class PostPage:
    """One page of a post listing."""

    posts: list[Post]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


Content = Post | Comment


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_post(
    author_id: UUID,
    title: str,
    body: str,
    category: PostCategory,
    tags: list[str],
    visibility: Visibility,
    location: Location | None = None,
    poll: Poll | None = None,
    media: list[MediaReference] | None = None,
    now: datetime | None = None,
) -> Post:
    """Create a new visible post with default values."""
    now = now or utc_now()
    return Post(
        post_id=uuid4(),
        author_id=author_id,
        title=title,
        body=body,
        category=category,
        tags=tags,
        location=location,
        visibility=visibility,
        poll=poll,
        media=media or [],
        moderation_status=ContentStatus.VISIBLE,
        edit_history=[],
        is_edited=False,
        edited_at=None,
        is_deleted=False,
        deleted_at=None,
        deleted_by=None,
        created_at=now,
        updated_at=now,
    )


def create_comment(
    post_id: UUID,
    author_id: UUID,
    body: str,
    parent_id: UUID | None = None,
    now: datetime | None = None,
) -> Comment:
    """Create a new visible comment with default values."""
    now = now or utc_now()
    return Comment(
        comment_id=uuid4(),
        post_id=post_id,
        parent_id=parent_id,
        author_id=author_id,
        body=body,
        moderation_status=ContentStatus.VISIBLE,
        edit_history=[],
        is_edited=False,
        edited_at=None,
        is_deleted=False,
        deleted_at=None,
        deleted_by=None,
        created_at=now,
        updated_at=now,
    )


@dataclass
class PollDraft:
    """Poll as submitted with a new post, before validation."""

    question: str
    options: list[str]
    end_date: datetime
    allow_multiple_votes: bool = False
