"""Persistence for posts, comments and poll votes.

``ContentRepository`` is the storage contract; ``InMemoryContentRepository``
backs development and tests, ``CassandraContentRepository`` backs
production. Callers hold the per-content lock around read-modify-write
sequences; repositories do no locking of their own.
"""

import copy
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from .models import Comment, Post, PostCategory


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ContentRepository(ABC):
    """Storage contract for the content tree."""

    @abstractmethod
    async def get_post(self, post_id: UUID) -> Post | None:
        """Post by id including poll voters, tombstoned or not."""

    @abstractmethod
    async def save_post(self, post: Post) -> None:
        """Insert or overwrite a post. Poll voters are not written here."""

    @abstractmethod
    async def list_posts(
        self,
        category: PostCategory | None = None,
        author_id: UUID | None = None,
        limit: int = 1000,
    ) -> list[Post]:
        """Up to limit posts, newest first, tombstoned or not.

        Filters narrow the scan; callers re-check them on the returned posts.
        """

    @abstractmethod
    async def get_comment(self, comment_id: UUID) -> Comment | None:
        """Comment by id, tombstoned or not."""

    @abstractmethod
    async def save_comment(self, comment: Comment) -> None:
        """Insert or overwrite a comment."""

    @abstractmethod
    async def list_comments(self, post_id: UUID) -> list[Comment]:
        """All comments of a post, oldest first."""

    @abstractmethod
    async def add_poll_vote(
        self, post_id: UUID, option_index: int, actor_id: UUID, voted_at: datetime
    ) -> None:
        """Record that actor chose option_index."""

    @abstractmethod
    async def remove_poll_vote(
        self, post_id: UUID, option_index: int, actor_id: UUID
    ) -> None:
        """Forget that actor chose option_index."""


class InMemoryContentRepository(ContentRepository):
    """Dict-backed repository. Returns and stores copies, never shared objects."""

    def __init__(self) -> None:
        self._posts: dict[UUID, Post] = {}
        self._comments: dict[UUID, Comment] = {}

    async def get_post(self, post_id: UUID) -> Post | None:
        post = self._posts.get(post_id)
        return copy.deepcopy(post) if post else None

    async def save_post(self, post: Post) -> None:
        stored = copy.deepcopy(post)
        existing = self._posts.get(post.post_id)
        if stored.poll and existing and existing.poll:
            # Voters are owned by add/remove_poll_vote
            for option, kept in zip(
                stored.poll.options, existing.poll.options, strict=False
            ):
                option.voters = set(kept.voters)
        self._posts[post.post_id] = stored

    async def list_posts(
        self,
        category: PostCategory | None = None,
        author_id: UUID | None = None,
        limit: int = 1000,
    ) -> list[Post]:
        posts = [
            post
            for post in self._posts.values()
            if (category is None or post.category == category)
            and (author_id is None or post.author_id == author_id)
        ]
        posts.sort(key=lambda p: (p.created_at, p.post_id), reverse=True)
        return copy.deepcopy(posts[:limit])

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        comment = self._comments.get(comment_id)
        return copy.deepcopy(comment) if comment else None

    async def save_comment(self, comment: Comment) -> None:
        self._comments[comment.comment_id] = copy.deepcopy(comment)

    async def list_comments(self, post_id: UUID) -> list[Comment]:
        comments = [c for c in self._comments.values() if c.post_id == post_id]
        comments.sort(key=lambda c: (c.created_at, c.comment_id))
        return copy.deepcopy(comments)

    async def add_poll_vote(
        self, post_id: UUID, option_index: int, actor_id: UUID, voted_at: datetime
    ) -> None:
        post = self._posts.get(post_id)
        if post and post.poll:
            post.poll.options[option_index].voters.add(actor_id)

    async def remove_poll_vote(
        self, post_id: UUID, option_index: int, actor_id: UUID
    ) -> None:
        post = self._posts.get(post_id)
        if post and post.poll:
            post.poll.options[option_index].voters.discard(actor_id)


class CassandraContentRepository(ContentRepository):
    """Content storage on Cassandra via cassandra-asyncio-driver."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts
            (post_id, author_id, title, body, category, tags, county, constituency,
             ward, visibility, media, poll_question, poll_options, poll_end_date,
             poll_allow_multiple, moderation_status, edit_history, is_edited,
             edited_at, is_deleted, deleted_at, deleted_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?,
                    ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts WHERE post_id = ?
        """)

        self._insert_post_by_category = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts_by_category
            (category, created_at, post_id)
            VALUES (?, ?, ?)
        """)

        self._insert_post_by_author = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts_by_author
            (author_id, created_at, post_id)
            VALUES (?, ?, ?)
        """)

        self._get_posts_by_category = self.session.prepare(f"""
            SELECT created_at, post_id FROM {self.keyspace}.posts_by_category
            WHERE category = ? LIMIT ?
        """)

        self._get_posts_by_author = self.session.prepare(f"""
            SELECT created_at, post_id FROM {self.keyspace}.posts_by_author
            WHERE author_id = ? LIMIT ?
        """)

        self._get_poll_votes = self.session.prepare(f"""
            SELECT option_index, actor_id FROM {self.keyspace}.poll_votes
            WHERE post_id = ?
        """)

        self._insert_poll_vote = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.poll_votes
            (post_id, option_index, actor_id, voted_at)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_poll_vote = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.poll_votes
            WHERE post_id = ? AND option_index = ? AND actor_id = ?
        """)

        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments
            (post_id, created_at, comment_id, parent_id, author_id, body,
             moderation_status, edit_history, is_edited, edited_at, is_deleted,
             deleted_at, deleted_by, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_comment_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_id
            (comment_id, post_id, created_at)
            VALUES (?, ?, ?)
        """)

        self._get_comment_key = self.session.prepare(f"""
            SELECT post_id, created_at FROM {self.keyspace}.comments_by_id
            WHERE comment_id = ?
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._get_comments_by_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE post_id = ?
        """)

    async def get_post(self, post_id: UUID) -> Post | None:
        rows = await self.session.aexecute(self._get_post, [post_id])
        row = rows[0] if rows else None
        if not row:
            return None

        vote_rows = []
        if row.poll_question:
            vote_rows = await self.session.aexecute(self._get_poll_votes, [post_id])
        return Post.from_row(row, vote_rows)

    async def save_post(self, post: Post) -> None:
        poll = post.poll
        location = post.location
        await self.session.aexecute(
            self._insert_post,
            [
                post.post_id,
                post.author_id,
                post.title,
                post.body,
                post.category.value,
                post.tags,
                location.county if location else None,
                location.constituency if location else None,
                location.ward if location else None,
                post.visibility.value,
                [item.to_map() for item in post.media],
                poll.question if poll else None,
                [option.text for option in poll.options] if poll else None,
                poll.end_date if poll else None,
                poll.allow_multiple_votes if poll else None,
                post.moderation_status.value,
                post.edit_history,
                post.is_edited,
                post.edited_at,
                post.is_deleted,
                post.deleted_at,
                post.deleted_by,
                post.created_at,
                post.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_post_by_category,
            [post.category.value, post.created_at, post.post_id],
        )
        await self.session.aexecute(
            self._insert_post_by_author,
            [post.author_id, post.created_at, post.post_id],
        )

    async def list_posts(
        self,
        category: PostCategory | None = None,
        author_id: UUID | None = None,
        limit: int = 1000,
    ) -> list[Post]:
        if author_id is not None:
            keys = list(
                await self.session.aexecute(
                    self._get_posts_by_author, [author_id, limit]
                )
            )
        else:
            # Without a category, merge every category partition
            categories = [category] if category else list(PostCategory)
            keys = []
            for value in categories:
                keys.extend(
                    await self.session.aexecute(
                        self._get_posts_by_category, [value.value, limit]
                    )
                )
            keys.sort(key=lambda k: (k.created_at, k.post_id), reverse=True)

        posts = []
        for key in keys[:limit]:
            post = await self.get_post(key.post_id)
            if post:
                posts.append(post)
        return posts

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        keys = await self.session.aexecute(self._get_comment_key, [comment_id])
        key = keys[0] if keys else None
        if not key:
            return None

        rows = await self.session.aexecute(
            self._get_comment, [key.post_id, key.created_at, comment_id]
        )
        row = rows[0] if rows else None
        return Comment.from_row(row) if row else None

    async def save_comment(self, comment: Comment) -> None:
        await self.session.aexecute(
            self._insert_comment,
            [
                comment.post_id,
                comment.created_at,
                comment.comment_id,
                comment.parent_id,
                comment.author_id,
                comment.body,
                comment.moderation_status.value,
                comment.edit_history,
                comment.is_edited,
                comment.edited_at,
                comment.is_deleted,
                comment.deleted_at,
                comment.deleted_by,
                comment.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_comment_by_id,
            [comment.comment_id, comment.post_id, comment.created_at],
        )

    async def list_comments(self, post_id: UUID) -> list[Comment]:
        rows = await self.session.aexecute(self._get_comments_by_post, [post_id])
        return [Comment.from_row(row) for row in rows]

    async def add_poll_vote(
        self, post_id: UUID, option_index: int, actor_id: UUID, voted_at: datetime
    ) -> None:
        await self.session.aexecute(
            self._insert_poll_vote, [post_id, option_index, actor_id, voted_at]
        )

    async def remove_poll_vote(
        self, post_id: UUID, option_index: int, actor_id: UUID
    ) -> None:
        await self.session.aexecute(
            self._delete_poll_vote, [post_id, option_index, actor_id]
        )
