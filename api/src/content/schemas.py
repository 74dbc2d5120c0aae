"""Pydantic schemas for posts, comments and content trees.

Request schemas check types and enum values only; bounds (lengths, counts,
dates) are enforced by the content store so every entry point gets the same
rules and error codes.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.votes.models import VoteDirection, VoteTally

from .models import (
    Comment,
    CommentNode,
    ContentStatus,
    ContentTree,
    Location,
    MediaReference,
    MediaType,
    PollDraft,
    Post,
    PostCategory,
    Visibility,
)


REMOVED_PLACEHOLDER = "[removed]"


# ==============================================================================
# Request Schemas
# ==============================================================================


class LocationSchema(BaseModel):
    """Administrative location."""

    county: str | None = None
    constituency: str | None = None
    ward: str | None = None

    def to_location(self) -> Location:
        return Location(
            county=self.county, constituency=self.constituency, ward=self.ward
        )


class MediaSchema(BaseModel):
    """Reference to media uploaded through the media service."""

    url: str
    media_type: MediaType
    caption: str | None = None

    def to_reference(self) -> MediaReference:
        return MediaReference(
            url=self.url, media_type=self.media_type, caption=self.caption
        )


class PollDraftSchema(BaseModel):
    """Poll attached to a new post."""

    question: str
    options: list[str]
    end_date: datetime = Field(..., description="Timezone-aware closing time")
    allow_multiple_votes: bool = False

    def to_draft(self) -> PollDraft:
        return PollDraft(
            question=self.question,
            options=self.options,
            end_date=self.end_date,
            allow_multiple_votes=self.allow_multiple_votes,
        )


class CreatePostRequest(BaseModel):
    """Request to create a post."""

    title: str
    body: str
    category: PostCategory = PostCategory.GENERAL
    tags: list[str] = Field(default_factory=list)
    location: LocationSchema | None = None
    visibility: Visibility = Visibility.PUBLIC
    poll: PollDraftSchema | None = None
    media: list[MediaSchema] = Field(default_factory=list)


class UpdatePostRequest(BaseModel):
    """Request to edit a post. Omitted fields are left unchanged."""

    title: str | None = None
    body: str | None = None
    category: PostCategory | None = None
    tags: list[str] | None = None


class CreateCommentRequest(BaseModel):
    """Request to add a comment to a post."""

    body: str
    parent_id: UUID | None = None


class CreateReplyRequest(BaseModel):
    """Request to reply to a comment."""

    body: str


class UpdateCommentRequest(BaseModel):
    """Request to edit a comment."""

    body: str


# ==============================================================================
# Response Schemas
# ==============================================================================


class PollSummaryResponse(BaseModel):
    """Poll definition; live results are served by the polls endpoints."""

    question: str
    options: list[str]
    end_date: datetime
    allow_multiple_votes: bool
    total_votes: int


class PostResponse(BaseModel):
    """Response for a single post."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    author_id: UUID
    title: str
    body: str
    category: PostCategory
    tags: list[str]
    location: LocationSchema | None = None
    visibility: Visibility
    poll: PollSummaryResponse | None = None
    media: list[MediaSchema] = Field(default_factory=list)
    moderation_status: ContentStatus
    is_edited: bool = False
    edited_at: datetime | None = None
    edit_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        """Create response from Post entity."""
        poll = None
        if post.poll:
            poll = PollSummaryResponse(
                question=post.poll.question,
                options=[option.text for option in post.poll.options],
                end_date=post.poll.end_date,
                allow_multiple_votes=post.poll.allow_multiple_votes,
                total_votes=post.poll.total_votes,
            )
        location = None
        if post.location:
            location = LocationSchema(
                county=post.location.county,
                constituency=post.location.constituency,
                ward=post.location.ward,
            )
        return cls(
            id=post.post_id,
            author_id=post.author_id,
            title=post.title,
            body=post.body,
            category=post.category,
            tags=post.tags,
            location=location,
            visibility=post.visibility,
            poll=poll,
            media=[
                MediaSchema(url=m.url, media_type=m.media_type, caption=m.caption)
                for m in post.media
            ],
            moderation_status=post.moderation_status,
            is_edited=post.is_edited,
            edited_at=post.edited_at,
            edit_count=len(post.edit_history),
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostSummaryResponse(PostResponse):
    """A listed post with its engagement counts."""

    upvotes: int = 0
    downvotes: int = 0
    score: int = 0
    comment_count: int = 0
    user_vote: VoteDirection | None = None

    @classmethod
    def from_listing(
        cls, post: Post, tally: VoteTally, comment_count: int
    ) -> "PostSummaryResponse":
        return cls(
            **PostResponse.from_post(post).model_dump(),
            upvotes=tally.upvotes,
            downvotes=tally.downvotes,
            score=tally.score,
            comment_count=comment_count,
            user_vote=tally.user_vote,
        )


class PostListResponse(BaseModel):
    """One page of posts, newest first."""

    posts: list[PostSummaryResponse]
    page: int
    limit: int
    total: int
    pages: int


class CommentResponse(BaseModel):
    """Response for a single comment."""

    id: UUID
    post_id: UUID
    parent_id: UUID | None = None
    author_id: UUID | None = None
    body: str
    moderation_status: ContentStatus
    is_edited: bool = False
    edited_at: datetime | None = None
    is_deleted: bool = False
    is_hidden: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_comment(cls, comment: Comment, hidden: bool = False) -> "CommentResponse":
        """Create response from Comment entity.

        Hidden comments keep their place in a thread but withhold body and author.
        """
        return cls(
            id=comment.comment_id,
            post_id=comment.post_id,
            parent_id=comment.parent_id,
            author_id=None if hidden else comment.author_id,
            body=REMOVED_PLACEHOLDER if hidden else comment.body,
            moderation_status=comment.moderation_status,
            is_edited=comment.is_edited,
            edited_at=comment.edited_at,
            is_deleted=comment.is_deleted,
            is_hidden=hidden,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class CommentNodeResponse(CommentResponse):
    """Comment with its depth and nested replies."""

    depth: int
    replies: list["CommentNodeResponse"] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: CommentNode) -> "CommentNodeResponse":
        base = CommentResponse.from_comment(node.comment, hidden=node.hidden)
        return cls(
            **base.model_dump(),
            depth=node.depth,
            replies=[cls.from_node(child) for child in node.children],
        )


class ContentTreeResponse(BaseModel):
    """A post with its full comment tree."""

    post: PostResponse
    comments: list[CommentNodeResponse]
    comment_count: int

    @classmethod
    def from_tree(cls, tree: ContentTree) -> "ContentTreeResponse":
        return cls(
            post=PostResponse.from_post(tree.post),
            comments=[CommentNodeResponse.from_node(node) for node in tree.comments],
            comment_count=tree.comment_count,
        )


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
