"""Content tree service layer.

Business logic for:
- Post and comment creation with bound checks
- Threaded replies with a depth cap
- Author edits with edit history
- Tombstone deletion by author or moderator
- Tree rebuild on read from parent edges
- Newest-first post listing with category, author and tag filters
- Moderation status changes requested by the moderation engine
"""

from typing import TYPE_CHECKING, Literal
from uuid import UUID

import structlog

from src.core.exceptions import (
    AuthorizationError,
    DepthExceededError,
    NotFoundError,
    ValidationError,
    require_actor,
)
from src.core.locks import ContentLockManager, content_key
from src.notifications.models import EventType
from src.utils.clock import Clock, utc_now

from .models import (
    Comment,
    CommentNode,
    Content,
    ContentKind,
    ContentStatus,
    ContentTree,
    Location,
    MediaReference,
    Poll,
    PollDraft,
    Post,
    PostCategory,
    PostPage,
    Visibility,
    create_comment,
    create_post,
)
from .repository import ContentRepository
from .validators import (
    normalize_comment_body,
    normalize_location,
    normalize_poll_options,
    normalize_poll_question,
    normalize_post_body,
    normalize_tags,
    normalize_title,
    validate_media,
    validate_poll_end_date,
)


if TYPE_CHECKING:
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)


DepthPolicy = Literal["reject", "reparent"]

POST_PAGE_MAX_LIMIT = 50

# Upper bound on posts read per listing before filtering and paging
POST_SCAN_LIMIT = 1000


class ContentStore:
    """Owns posts and comments and the tree between them."""

    def __init__(
        self,
        repository: ContentRepository,
        locks: ContentLockManager,
        notifications: "NotificationService | None" = None,
        max_depth: int = 5,
        depth_policy: DepthPolicy = "reject",
        clock: Clock = utc_now,
    ):
        """Initialize content store.

        Args:
            repository: Post/comment storage
            locks: Per-content lock manager
            notifications: Event publisher (optional)
            max_depth: Deepest allowed comment depth (root comments are 0)
            depth_policy: "reject" raises DepthExceededError for deeper replies,
                "reparent" attaches them to the deepest allowed ancestor
            clock: Source of the current time
        """
        self.repository = repository
        self.locks = locks
        self.notifications = notifications
        self.max_depth = max_depth
        self.depth_policy = depth_policy
        self.clock = clock

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def create_post(
        self,
        author_id: UUID | None,
        title: str,
        body: str,
        category: PostCategory = PostCategory.GENERAL,
        tags: list[str] | None = None,
        location: Location | None = None,
        visibility: Visibility = Visibility.PUBLIC,
        poll: PollDraft | None = None,
        media: list[MediaReference] | None = None,
    ) -> Post:
        """Create a post, optionally with a poll and media references."""
        require_actor(author_id)
        now = self.clock()

        title = normalize_title(title)
        body = normalize_post_body(body)
        tags = normalize_tags(tags)
        location = normalize_location(location, visibility)
        media = validate_media(media)
        poll_entity = None
        if poll is not None:
            poll_entity = Poll(
                question=normalize_poll_question(poll.question),
                options=normalize_poll_options(poll.options),
                end_date=validate_poll_end_date(poll.end_date, now),
                allow_multiple_votes=poll.allow_multiple_votes,
            )

        post = create_post(
            author_id=author_id,
            title=title,
            body=body,
            category=PostCategory(category),
            tags=tags,
            visibility=Visibility(visibility),
            location=location,
            poll=poll_entity,
            media=media,
            now=now,
        )
        await self.repository.save_post(post)

        logger.info(
            "post_created",
            post_id=str(post.post_id),
            author_id=str(author_id),
            category=post.category.value,
            has_poll=poll_entity is not None,
        )
        self._emit(
            EventType.POST_CREATED,
            post.post_id,
            author_id,
            category=post.category.value,
            has_poll=poll_entity is not None,
        )
        return post

    async def get_post(self, post_id: UUID, include_hidden: bool = False) -> Post:
        """Fetch a live post.

        Raises:
            NotFoundError: If missing, tombstoned, or removed and not include_hidden
        """
        post = await self.repository.get_post(post_id)
        if not post or post.is_deleted:
            raise NotFoundError("Post not found")
        if post.moderation_status == ContentStatus.REMOVED and not include_hidden:
            raise NotFoundError("Post not found")
        return post

    async def list_posts(
        self,
        viewer_id: UUID | None = None,
        category: PostCategory | None = None,
        author_id: UUID | None = None,
        tag: str | None = None,
        page: int = 1,
        limit: int = 10,
        include_hidden: bool = False,
    ) -> PostPage:
        """Newest-first page of posts.

        Tombstoned posts are never listed and removed ones only with
        include_hidden. Private posts are listed to their author alone.

        Raises:
            ValidationError: If page or limit is out of range
        """
        if page < 1:
            raise ValidationError("Page must be at least 1", "invalid_page")
        if not 1 <= limit <= POST_PAGE_MAX_LIMIT:
            raise ValidationError(
                f"Limit must be between 1 and {POST_PAGE_MAX_LIMIT}", "invalid_limit"
            )
        category = PostCategory(category) if category else None
        tag = tag.strip().lower() if tag else None

        candidates = await self.repository.list_posts(
            category=category, author_id=author_id, limit=POST_SCAN_LIMIT
        )
        posts = [
            post
            for post in candidates
            if not post.is_deleted
            and (include_hidden or post.moderation_status != ContentStatus.REMOVED)
            and (post.visibility != Visibility.PRIVATE or post.author_id == viewer_id)
            and (category is None or post.category == category)
            and (author_id is None or post.author_id == author_id)
            and (tag is None or tag in post.tags)
        ]

        start = (page - 1) * limit
        return PostPage(
            posts=posts[start : start + limit],
            page=page,
            limit=limit,
            total=len(posts),
        )

    async def count_comments(self, post_id: UUID) -> int:
        """Live comments on a post; deleted and removed ones are not counted."""
        comments = await self.repository.list_comments(post_id)
        return sum(
            1
            for comment in comments
            if not comment.is_deleted
            and comment.moderation_status != ContentStatus.REMOVED
        )

    async def edit_post(
        self,
        actor_id: UUID | None,
        post_id: UUID,
        title: str | None = None,
        body: str | None = None,
        category: PostCategory | None = None,
        tags: list[str] | None = None,
    ) -> Post:
        """Edit a post. Only the author may edit; previous text goes to history."""
        require_actor(actor_id)
        if title is None and body is None and category is None and tags is None:
            raise ValidationError("Nothing to update", "empty_update")

        new_title = normalize_title(title) if title is not None else None
        new_body = normalize_post_body(body) if body is not None else None
        new_tags = normalize_tags(tags) if tags is not None else None

        async with self.locks.hold(content_key(ContentKind.POST.value, post_id)):
            post = await self.repository.get_post(post_id)
            if not post or post.is_deleted:
                raise NotFoundError("Post not found")
            if post.author_id != actor_id:
                raise AuthorizationError("Only the author can edit this post")

            now = self.clock()
            post.edit_history.append(
                {"title": post.title, "body": post.body, "edited_at": now.isoformat()}
            )
            if new_title is not None:
                post.title = new_title
            if new_body is not None:
                post.body = new_body
            if category is not None:
                post.category = PostCategory(category)
            if new_tags is not None:
                post.tags = new_tags
            post.is_edited = True
            post.edited_at = now
            post.updated_at = now
            await self.repository.save_post(post)

        logger.info(
            "post_edited",
            post_id=str(post_id),
            revision=len(post.edit_history),
        )
        self._emit(EventType.POST_EDITED, post_id, actor_id)
        return post

    async def delete_post(
        self,
        actor_id: UUID | None,
        post_id: UUID,
        is_moderator: bool = False,
    ) -> Post:
        """Tombstone a post. Author or moderator; deleting twice is a no-op."""
        require_actor(actor_id)

        async with self.locks.hold(content_key(ContentKind.POST.value, post_id)):
            post = await self.repository.get_post(post_id)
            if not post:
                raise NotFoundError("Post not found")
            if post.author_id != actor_id and not is_moderator:
                raise AuthorizationError("Only the author or a moderator can delete")
            if post.is_deleted:
                return post

            now = self.clock()
            post.is_deleted = True
            post.deleted_at = now
            post.deleted_by = actor_id
            post.updated_at = now
            await self.repository.save_post(post)

        logger.info(
            "post_deleted",
            post_id=str(post_id),
            by_moderator=post.author_id != actor_id,
        )
        self._emit(EventType.POST_DELETED, post_id, actor_id)
        return post

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def create_comment(
        self,
        actor_id: UUID | None,
        post_id: UUID,
        body: str,
        parent_id: UUID | None = None,
    ) -> Comment:
        """Add a comment to a post, as a root comment or a reply.

        Raises:
            NotFoundError: If the post or the parent comment does not exist
            ValidationError: If the parent belongs to another post
            DepthExceededError: If the reply is too deep and the policy is reject
        """
        require_actor(actor_id)
        body = normalize_comment_body(body)

        async with self.locks.hold(content_key(ContentKind.POST.value, post_id)):
            await self.get_post(post_id)

            depth = 0
            if parent_id is not None:
                parent = await self.repository.get_comment(parent_id)
                if not parent or parent.is_deleted:
                    raise NotFoundError("Parent comment not found")
                if parent.post_id != post_id:
                    raise ValidationError(
                        "Parent comment belongs to another post", "parent_mismatch"
                    )
                parent_id, depth = await self._place_reply(parent)

            comment = create_comment(
                post_id=post_id,
                author_id=actor_id,
                body=body,
                parent_id=parent_id,
                now=self.clock(),
            )
            await self.repository.save_comment(comment)

        logger.info(
            "comment_created",
            comment_id=str(comment.comment_id),
            post_id=str(post_id),
            parent_id=str(parent_id) if parent_id else None,
            depth=depth,
        )
        self._emit(
            EventType.COMMENT_CREATED,
            comment.comment_id,
            actor_id,
            post_id=str(post_id),
            parent_id=str(parent_id) if parent_id else None,
        )
        return comment

    async def append_child(
        self,
        parent_comment_id: UUID,
        actor_id: UUID | None,
        body: str,
    ) -> Comment:
        """Reply to a comment; the post is taken from the parent."""
        require_actor(actor_id)
        parent = await self.repository.get_comment(parent_comment_id)
        if not parent or parent.is_deleted:
            raise NotFoundError("Parent comment not found")
        return await self.create_comment(
            actor_id, parent.post_id, body, parent_id=parent_comment_id
        )

    async def _place_reply(self, parent: Comment) -> tuple[UUID | None, int]:
        """Parent id and depth for a reply to ``parent``, applying the depth cap."""
        path = await self._path_from_root(parent)
        depth = len(path)
        if depth <= self.max_depth:
            return parent.comment_id, depth

        if self.depth_policy == "reject":
            raise DepthExceededError(self.max_depth)

        # Reparent under the ancestor sitting at max_depth - 1
        if self.max_depth == 0:
            return None, 0
        ancestor = path[self.max_depth - 1]
        logger.info(
            "comment_reparented",
            requested_parent_id=str(parent.comment_id),
            parent_id=str(ancestor.comment_id),
            max_depth=self.max_depth,
        )
        return ancestor.comment_id, self.max_depth

    async def _path_from_root(self, comment: Comment) -> list[Comment]:
        """Ancestors of ``comment`` from the root comment down, comment included."""
        path = [comment]
        seen = {comment.comment_id}
        current = comment
        while current.parent_id is not None and current.parent_id not in seen:
            parent = await self.repository.get_comment(current.parent_id)
            if parent is None:
                break
            path.append(parent)
            seen.add(parent.comment_id)
            current = parent
        path.reverse()
        return path

    async def depth_of(self, comment: Comment) -> int:
        """Depth of a comment: 0 for root comments, parent depth + 1 for replies."""
        return len(await self._path_from_root(comment)) - 1

    async def get_comment(self, comment_id: UUID) -> Comment:
        """Fetch a live comment.

        Raises:
            NotFoundError: If missing or tombstoned
        """
        comment = await self.repository.get_comment(comment_id)
        if not comment or comment.is_deleted:
            raise NotFoundError("Comment not found")
        return comment

    async def edit_comment(
        self,
        actor_id: UUID | None,
        comment_id: UUID,
        body: str,
    ) -> Comment:
        """Edit a comment. Only the author may edit; previous body goes to history."""
        require_actor(actor_id)
        body = normalize_comment_body(body)

        async with self.locks.hold(content_key(ContentKind.COMMENT.value, comment_id)):
            comment = await self.get_comment(comment_id)
            if comment.author_id != actor_id:
                raise AuthorizationError("Only the author can edit this comment")

            now = self.clock()
            comment.edit_history.append(
                {"body": comment.body, "edited_at": now.isoformat()}
            )
            comment.body = body
            comment.is_edited = True
            comment.edited_at = now
            comment.updated_at = now
            await self.repository.save_comment(comment)

        logger.info(
            "comment_edited",
            comment_id=str(comment_id),
            revision=len(comment.edit_history),
        )
        self._emit(
            EventType.COMMENT_EDITED,
            comment_id,
            actor_id,
            post_id=str(comment.post_id),
        )
        return comment

    async def delete_comment(
        self,
        actor_id: UUID | None,
        comment_id: UUID,
        is_moderator: bool = False,
    ) -> Comment:
        """Tombstone a comment. Replies stay in place and keep their parent."""
        require_actor(actor_id)

        async with self.locks.hold(content_key(ContentKind.COMMENT.value, comment_id)):
            comment = await self.repository.get_comment(comment_id)
            if not comment:
                raise NotFoundError("Comment not found")
            if comment.author_id != actor_id and not is_moderator:
                raise AuthorizationError("Only the author or a moderator can delete")
            if comment.is_deleted:
                return comment

            now = self.clock()
            comment.is_deleted = True
            comment.deleted_at = now
            comment.deleted_by = actor_id
            comment.updated_at = now
            await self.repository.save_comment(comment)

        logger.info(
            "comment_deleted",
            comment_id=str(comment_id),
            post_id=str(comment.post_id),
            by_moderator=comment.author_id != actor_id,
        )
        self._emit(
            EventType.COMMENT_DELETED,
            comment_id,
            actor_id,
            post_id=str(comment.post_id),
        )
        return comment

    # ==========================================================================
    # Tree
    # ==========================================================================

    async def get_content_tree(
        self,
        post_id: UUID,
        include_hidden: bool = False,
    ) -> ContentTree:
        """Rebuild the comment tree of a post.

        Deleted comments, and removed ones unless include_hidden, stay in
        place with ``hidden`` set so their replies keep their position.
        """
        post = await self.get_post(post_id, include_hidden=include_hidden)
        comments = await self.repository.list_comments(post_id)

        nodes: dict[UUID, CommentNode] = {}
        for comment in comments:
            hidden = comment.is_deleted or (
                comment.moderation_status == ContentStatus.REMOVED
                and not include_hidden
            )
            nodes[comment.comment_id] = CommentNode(
                comment=comment, depth=0, hidden=hidden
            )

        roots: list[CommentNode] = []
        for comment in comments:
            node = nodes[comment.comment_id]
            parent = nodes.get(comment.parent_id) if comment.parent_id else None
            if parent is None or parent is node:
                roots.append(node)
            else:
                parent.children.append(node)

        stack = [(node, 0) for node in roots]
        while stack:
            node, depth = stack.pop()
            node.depth = depth
            stack.extend((child, depth + 1) for child in node.children)

        return ContentTree(post=post, comments=roots)

    # ==========================================================================
    # Used by the vote, poll and moderation engines
    # ==========================================================================

    async def find_content(self, content_id: UUID, kind: ContentKind) -> Content | None:
        """Post or comment by id, including tombstoned ones."""
        if ContentKind(kind) == ContentKind.POST:
            return await self.repository.get_post(content_id)
        return await self.repository.get_comment(content_id)

    async def resolve_content(self, content_id: UUID, kind: ContentKind) -> Content:
        """Live (not tombstoned) post or comment.

        Raises:
            NotFoundError: If missing or tombstoned
        """
        content = await self.find_content(content_id, kind)
        if not content or content.is_deleted:
            raise NotFoundError(f"{ContentKind(kind).value.capitalize()} not found")
        return content

    async def set_moderation_status(
        self,
        content_id: UUID,
        kind: ContentKind,
        status: ContentStatus,
        only_from: ContentStatus | None = None,
    ) -> Content:
        """Change the moderation status of a post or comment.

        Tombstoned content is updated too so its audit trail stays accurate.
        With only_from, content in any other status is left unchanged.
        """
        kind = ContentKind(kind)
        async with self.locks.hold(content_key(kind.value, content_id)):
            content = await self.find_content(content_id, kind)
            if not content:
                raise NotFoundError(f"{kind.value.capitalize()} not found")
            if content.moderation_status == status:
                return content
            if only_from is not None and content.moderation_status != only_from:
                return content

            previous = content.moderation_status
            content.moderation_status = ContentStatus(status)
            content.updated_at = self.clock()
            if isinstance(content, Post):
                await self.repository.save_post(content)
            else:
                await self.repository.save_comment(content)

        logger.info(
            "content_status_changed",
            content_id=str(content_id),
            content_kind=kind.value,
            previous_status=previous.value,
            status=content.moderation_status.value,
        )
        return content

    def _emit(self, event_type: EventType, content_id: UUID, actor_id, **metadata):
        if self.notifications:
            self.notifications.emit(event_type, content_id, actor_id, **metadata)
