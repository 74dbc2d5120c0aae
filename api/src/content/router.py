"""Post and comment API endpoints.

Provides routes for:
- Post listing with engagement counts
- Post CRUD (create, read with comment tree, edit, delete)
- Comments and threaded replies
- Comment edit and delete
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.auth.dependencies import CurrentActor, OptionalActor, actor_id_of
from src.votes.dependencies import VoteLedgerDep

from .dependencies import ContentStoreDep
from .models import ContentKind, PostCategory
from .schemas import (
    CommentResponse,
    ContentTreeResponse,
    CreateCommentRequest,
    CreatePostRequest,
    CreateReplyRequest,
    MessageResponse,
    PostListResponse,
    PostResponse,
    PostSummaryResponse,
    UpdateCommentRequest,
    UpdatePostRequest,
)


router = APIRouter(prefix="/v1", tags=["content"])


# ==============================================================================
# Posts
# ==============================================================================


@router.post(
    "/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
async def create_post(
    data: CreatePostRequest,
    store: ContentStoreDep,
    actor: OptionalActor,
) -> PostResponse:
    """Create a post, optionally with a poll and media references."""
    post = await store.create_post(
        author_id=actor_id_of(actor),
        title=data.title,
        body=data.body,
        category=data.category,
        tags=data.tags,
        location=data.location.to_location() if data.location else None,
        visibility=data.visibility,
        poll=data.poll.to_draft() if data.poll else None,
        media=[item.to_reference() for item in data.media],
    )
    return PostResponse.from_post(post)


@router.get(
    "/posts",
    response_model=PostListResponse,
    summary="List posts",
)
async def list_posts(
    store: ContentStoreDep,
    ledger: VoteLedgerDep,
    actor: OptionalActor,
    category: PostCategory | None = None,
    author_id: UUID | None = None,
    tag: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> PostListResponse:
    """List posts newest first, with vote and comment counts.

    Removed posts are listed to moderators only.
    """
    viewer_id = actor_id_of(actor)
    result = await store.list_posts(
        viewer_id=viewer_id,
        category=category,
        author_id=author_id,
        tag=tag,
        page=page,
        limit=limit,
        include_hidden=bool(actor and actor.is_moderator),
    )

    posts = []
    for post in result.posts:
        tally = await ledger.get_tally(post.post_id, ContentKind.POST, viewer_id)
        comment_count = await store.count_comments(post.post_id)
        posts.append(PostSummaryResponse.from_listing(post, tally, comment_count))

    return PostListResponse(
        posts=posts,
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )


@router.get(
    "/posts/{post_id}",
    response_model=ContentTreeResponse,
    summary="Get post with comment tree",
)
async def get_post(
    post_id: UUID,
    store: ContentStoreDep,
    actor: OptionalActor,
) -> ContentTreeResponse:
    """Get a post and its comments as a tree.

    Moderators also see removed posts and the text of removed comments.
    """
    include_hidden = bool(actor and actor.is_moderator)
    tree = await store.get_content_tree(post_id, include_hidden=include_hidden)
    return ContentTreeResponse.from_tree(tree)


@router.patch(
    "/posts/{post_id}",
    response_model=PostResponse,
    summary="Edit post",
)
async def edit_post(
    post_id: UUID,
    data: UpdatePostRequest,
    store: ContentStoreDep,
    actor: OptionalActor,
) -> PostResponse:
    """Edit a post. Only the author can edit."""
    post = await store.edit_post(
        actor_id_of(actor),
        post_id,
        title=data.title,
        body=data.body,
        category=data.category,
        tags=data.tags,
    )
    return PostResponse.from_post(post)


@router.delete(
    "/posts/{post_id}",
    response_model=MessageResponse,
    summary="Delete post",
)
async def delete_post(
    post_id: UUID,
    store: ContentStoreDep,
    actor: CurrentActor,
) -> MessageResponse:
    """Delete a post (tombstone). Author or moderator."""
    await store.delete_post(actor.id, post_id, is_moderator=actor.is_moderator)
    return MessageResponse(message="Post deleted")


# ==============================================================================
# Comments
# ==============================================================================


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    post_id: UUID,
    data: CreateCommentRequest,
    store: ContentStoreDep,
    actor: OptionalActor,
) -> CommentResponse:
    """Add a root comment, or a reply when parent_id is given."""
    comment = await store.create_comment(
        actor_id_of(actor), post_id, data.body, parent_id=data.parent_id
    )
    return CommentResponse.from_comment(comment)


@router.post(
    "/comments/{comment_id}/replies",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to comment",
)
async def reply_to_comment(
    comment_id: UUID,
    data: CreateReplyRequest,
    store: ContentStoreDep,
    actor: OptionalActor,
) -> CommentResponse:
    """Reply to a comment."""
    comment = await store.append_child(comment_id, actor_id_of(actor), data.body)
    return CommentResponse.from_comment(comment)


@router.patch(
    "/comments/{comment_id}",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def edit_comment(
    comment_id: UUID,
    data: UpdateCommentRequest,
    store: ContentStoreDep,
    actor: OptionalActor,
) -> CommentResponse:
    """Edit a comment. Only the author can edit."""
    comment = await store.edit_comment(actor_id_of(actor), comment_id, data.body)
    return CommentResponse.from_comment(comment)


@router.delete(
    "/comments/{comment_id}",
    response_model=MessageResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    store: ContentStoreDep,
    actor: CurrentActor,
) -> MessageResponse:
    """Delete a comment (tombstone). Replies stay in the thread."""
    await store.delete_comment(actor.id, comment_id, is_moderator=actor.is_moderator)
    return MessageResponse(message="Comment deleted")
