"""Tests for the content store.

Covers:
- Post creation, edit history and tombstones
- Comment threading and the depth cap
- Tree rebuild with hidden comments
- Post listing filters and paging
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from src.content.models import (
    ContentKind,
    ContentStatus,
    Location,
    MediaReference,
    MediaType,
    PollDraft,
    PostCategory,
    Visibility,
)
from src.content.service import ContentStore
from src.core.exceptions import (
    AuthenticationRequiredError,
    AuthorizationError,
    DepthExceededError,
    NotFoundError,
    ValidationError,
)


async def _thread(store: ContentStore, post_id, author_id, depth: int):
    """Create a chain of comments; returns them root first (depths 0..depth)."""
    chain = [await store.create_comment(author_id, post_id, "root comment")]
    for level in range(1, depth + 1):
        chain.append(
            await store.create_comment(
                author_id, post_id, f"reply {level}", parent_id=chain[-1].comment_id
            )
        )
    return chain


class TestCreatePost:
    """Tests for create_post."""

    @pytest.mark.asyncio
    async def test_create_post_normalizes_fields(self, content_store, author_id):
        post = await content_store.create_post(
            author_id=author_id,
            title="  Budget hearing  ",
            body=" Public hearing on Thursday. ",
            tags=["Budget", "budget", "Nairobi"],
            location=Location(county="Nairobi", constituency="  "),
            media=[
                MediaReference(
                    url="https://cdn.example.org/a.jpg", media_type=MediaType.IMAGE
                )
            ],
        )

        assert post.title == "Budget hearing"
        assert post.body == "Public hearing on Thursday."
        assert post.tags == ["budget", "nairobi"]
        assert post.location == Location(county="Nairobi")
        assert post.moderation_status == ContentStatus.VISIBLE
        assert len(post.media) == 1

        stored = await content_store.get_post(post.post_id)
        assert stored.title == "Budget hearing"

    @pytest.mark.asyncio
    async def test_create_post_requires_actor(self, content_store):
        with pytest.raises(AuthenticationRequiredError):
            await content_store.create_post(None, "Title here", "Body")

    @pytest.mark.asyncio
    async def test_too_many_tags_rejected_before_write(
        self, content_store, content_repository, author_id
    ):
        with pytest.raises(ValidationError) as exc:
            await content_store.create_post(
                author_id,
                "Title here",
                "Body",
                tags=["aa", "bb", "cc", "dd", "ee", "ff"],
            )

        assert exc.value.code == "invalid_tags"
        assert content_repository._posts == {}

    @pytest.mark.asyncio
    async def test_constituency_visibility_needs_constituency(
        self, content_store, author_id
    ):
        with pytest.raises(ValidationError) as exc:
            await content_store.create_post(
                author_id,
                "Title here",
                "Body",
                visibility=Visibility.CONSTITUENCY,
                location=Location(county="Kisumu"),
            )

        assert exc.value.code == "invalid_location"

    @pytest.mark.asyncio
    async def test_create_post_with_poll(self, content_store, author_id, clock):
        post = await content_store.create_post(
            author_id,
            "Road repairs",
            "Which road first?",
            poll=PollDraft(
                question="Which road should be fixed first?",
                options=["Ngong Road", " Jogoo Road "],
                end_date=clock.now + timedelta(days=3),
            ),
        )

        assert post.poll is not None
        assert [option.text for option in post.poll.options] == [
            "Ngong Road",
            "Jogoo Road",
        ]
        assert post.poll.total_votes == 0

    @pytest.mark.asyncio
    async def test_poll_end_date_in_past_rejected(
        self, content_store, author_id, clock
    ):
        with pytest.raises(ValidationError) as exc:
            await content_store.create_post(
                author_id,
                "Road repairs",
                "Which road first?",
                poll=PollDraft(
                    question="Which road should be fixed first?",
                    options=["A", "B"],
                    end_date=clock.now - timedelta(minutes=1),
                ),
            )

        assert exc.value.code == "invalid_end_date"

    @pytest.mark.asyncio
    async def test_create_post_emits_event(
        self, content_store, notifications, sink, make_post
    ):
        await make_post()
        await notifications.drain()

        assert sink.types() == ["post_created"]


class TestEditAndDeletePost:
    """Tests for edit_post and delete_post."""

    @pytest.mark.asyncio
    async def test_edit_keeps_history(self, content_store, make_post, author_id, clock):
        post = await make_post()
        clock.advance(minutes=5)

        edited = await content_store.edit_post(
            author_id, post.post_id, body="Water is back in some areas."
        )

        assert edited.body == "Water is back in some areas."
        assert edited.is_edited is True
        assert edited.edited_at == clock.now
        assert edited.edit_history == [
            {
                "title": post.title,
                "body": post.body,
                "edited_at": clock.now.isoformat(),
            }
        ]

    @pytest.mark.asyncio
    async def test_only_author_can_edit(self, content_store, make_post, actor_id):
        post = await make_post()

        with pytest.raises(AuthorizationError):
            await content_store.edit_post(actor_id, post.post_id, title="Hijacked")

    @pytest.mark.asyncio
    async def test_empty_edit_rejected(self, content_store, make_post, author_id):
        post = await make_post()

        with pytest.raises(ValidationError) as exc:
            await content_store.edit_post(author_id, post.post_id)

        assert exc.value.code == "empty_update"

    @pytest.mark.asyncio
    async def test_delete_is_tombstone(
        self, content_store, content_repository, make_post, author_id
    ):
        post = await make_post()

        await content_store.delete_post(author_id, post.post_id)

        with pytest.raises(NotFoundError):
            await content_store.get_post(post.post_id)
        stored = await content_repository.get_post(post.post_id)
        assert stored.is_deleted is True
        assert stored.deleted_by == author_id

    @pytest.mark.asyncio
    async def test_delete_twice_is_noop(
        self, content_store, make_post, author_id, clock
    ):
        post = await make_post()
        first = await content_store.delete_post(author_id, post.post_id)
        clock.advance(minutes=1)

        second = await content_store.delete_post(author_id, post.post_id)

        assert second.deleted_at == first.deleted_at

    @pytest.mark.asyncio
    async def test_moderator_can_delete(self, content_store, make_post, moderator_id):
        post = await make_post()

        deleted = await content_store.delete_post(
            moderator_id, post.post_id, is_moderator=True
        )

        assert deleted.deleted_by == moderator_id

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete(self, content_store, make_post, actor_id):
        post = await make_post()

        with pytest.raises(AuthorizationError):
            await content_store.delete_post(actor_id, post.post_id)

    @pytest.mark.asyncio
    async def test_removed_post_hidden_unless_requested(self, content_store, make_post):
        post = await make_post()
        await content_store.set_moderation_status(
            post.post_id, ContentKind.POST, ContentStatus.REMOVED
        )

        with pytest.raises(NotFoundError):
            await content_store.get_post(post.post_id)
        visible = await content_store.get_post(post.post_id, include_hidden=True)
        assert visible.moderation_status == ContentStatus.REMOVED


class TestComments:
    """Tests for comments and replies."""

    @pytest.mark.asyncio
    async def test_comment_on_missing_post(self, content_store, actor_id):
        with pytest.raises(NotFoundError):
            await content_store.create_comment(actor_id, uuid4(), "Hello")

    @pytest.mark.asyncio
    async def test_comment_body_bounds(self, content_store, make_post, actor_id):
        post = await make_post()

        with pytest.raises(ValidationError):
            await content_store.create_comment(actor_id, post.post_id, "   ")
        with pytest.raises(ValidationError):
            await content_store.create_comment(actor_id, post.post_id, "x" * 1001)

        comment = await content_store.create_comment(actor_id, post.post_id, "x" * 1000)
        assert len(comment.body) == 1000

    @pytest.mark.asyncio
    async def test_parent_from_other_post_rejected(
        self, content_store, make_post, actor_id
    ):
        first = await make_post()
        second = await make_post(title="Another post")
        parent = await content_store.create_comment(actor_id, first.post_id, "Hi")

        with pytest.raises(ValidationError) as exc:
            await content_store.create_comment(
                actor_id, second.post_id, "Reply", parent_id=parent.comment_id
            )

        assert exc.value.code == "parent_mismatch"

    @pytest.mark.asyncio
    async def test_append_child_uses_parent_post(
        self, content_store, make_post, actor_id
    ):
        post = await make_post()
        parent = await content_store.create_comment(actor_id, post.post_id, "Hi")

        reply = await content_store.append_child(parent.comment_id, actor_id, "Hello")

        assert reply.post_id == post.post_id
        assert reply.parent_id == parent.comment_id
        assert await content_store.depth_of(reply) == 1

    @pytest.mark.asyncio
    async def test_reply_at_max_depth_succeeds(
        self, content_store, make_post, actor_id
    ):
        post = await make_post()
        chain = await _thread(content_store, post.post_id, actor_id, depth=4)

        reply = await content_store.create_comment(
            actor_id, post.post_id, "deepest", parent_id=chain[-1].comment_id
        )

        assert await content_store.depth_of(reply) == content_store.max_depth

    @pytest.mark.asyncio
    async def test_reply_past_max_depth_rejected(
        self, content_store, make_post, actor_id
    ):
        post = await make_post()
        chain = await _thread(content_store, post.post_id, actor_id, depth=5)

        with pytest.raises(DepthExceededError) as exc:
            await content_store.create_comment(
                actor_id, post.post_id, "too deep", parent_id=chain[-1].comment_id
            )

        assert exc.value.code == "depth_exceeded"
        assert exc.value.kind == "validation_error"

    @pytest.mark.asyncio
    async def test_reparent_policy_attaches_to_deepest_allowed(
        self, content_repository, locks, clock, make_post, actor_id
    ):
        store = ContentStore(
            content_repository, locks, max_depth=2, depth_policy="reparent", clock=clock
        )
        post = await make_post()
        chain = await _thread(store, post.post_id, actor_id, depth=2)

        reply = await store.create_comment(
            actor_id, post.post_id, "too deep", parent_id=chain[-1].comment_id
        )

        assert reply.parent_id == chain[1].comment_id
        assert await store.depth_of(reply) == 2

    @pytest.mark.asyncio
    async def test_edit_comment_author_only(
        self, content_store, make_post, actor_id, author_id
    ):
        post = await make_post()
        comment = await content_store.create_comment(actor_id, post.post_id, "First")

        with pytest.raises(AuthorizationError):
            await content_store.edit_comment(author_id, comment.comment_id, "Changed")

        edited = await content_store.edit_comment(
            actor_id, comment.comment_id, "Second"
        )
        assert edited.body == "Second"
        assert edited.edit_history[0]["body"] == "First"


class TestContentTree:
    """Tests for get_content_tree."""

    @pytest.mark.asyncio
    async def test_tree_rebuilt_from_parent_edges(
        self, content_store, make_post, actor_id, clock
    ):
        post = await make_post()
        root = await content_store.create_comment(actor_id, post.post_id, "root")
        clock.advance(seconds=1)
        child = await content_store.create_comment(
            actor_id, post.post_id, "child", parent_id=root.comment_id
        )
        clock.advance(seconds=1)
        await content_store.create_comment(
            actor_id, post.post_id, "grandchild", parent_id=child.comment_id
        )
        clock.advance(seconds=1)
        await content_store.create_comment(actor_id, post.post_id, "second root")

        tree = await content_store.get_content_tree(post.post_id)

        assert tree.comment_count == 4
        assert [node.comment.body for node in tree.comments] == ["root", "second root"]
        grandchild = tree.comments[0].children[0].children[0]
        assert grandchild.comment.body == "grandchild"
        assert grandchild.depth == 2

    @pytest.mark.asyncio
    async def test_deleted_comment_keeps_replies_in_place(
        self, content_store, make_post, actor_id, clock
    ):
        post = await make_post()
        root = await content_store.create_comment(actor_id, post.post_id, "root")
        clock.advance(seconds=1)
        await content_store.create_comment(
            actor_id, post.post_id, "reply", parent_id=root.comment_id
        )
        await content_store.delete_comment(actor_id, root.comment_id)

        tree = await content_store.get_content_tree(post.post_id)

        assert tree.comments[0].hidden is True
        assert tree.comments[0].children[0].comment.body == "reply"
        assert tree.comments[0].children[0].hidden is False

    @pytest.mark.asyncio
    async def test_removed_comment_visible_to_moderators(
        self, content_store, make_post, actor_id
    ):
        post = await make_post()
        comment = await content_store.create_comment(actor_id, post.post_id, "rude")
        await content_store.set_moderation_status(
            comment.comment_id, ContentKind.COMMENT, ContentStatus.REMOVED
        )

        public = await content_store.get_content_tree(post.post_id)
        moderated = await content_store.get_content_tree(
            post.post_id, include_hidden=True
        )

        assert public.comments[0].hidden is True
        assert moderated.comments[0].hidden is False


class TestListPosts:
    """Tests for list_posts."""

    @pytest.mark.asyncio
    async def test_newest_first_with_paging(self, content_store, make_post, clock):
        posts = []
        for number in range(5):
            posts.append(await make_post(title=f"Ward meeting {number}"))
            clock.advance(minutes=1)

        first = await content_store.list_posts(page=1, limit=2)
        last = await content_store.list_posts(page=3, limit=2)

        assert [p.post_id for p in first.posts] == [
            posts[4].post_id,
            posts[3].post_id,
        ]
        assert [p.post_id for p in last.posts] == [posts[0].post_id]
        assert (first.total, first.pages) == (5, 3)

    @pytest.mark.asyncio
    async def test_filters(self, content_store, make_post, actor_id):
        health = await make_post(category=PostCategory.HEALTH, tags=["Water"])
        await make_post(category=PostCategory.EDUCATION, tags=["schools"])
        other_author = await make_post(
            author_id=actor_id, category=PostCategory.HEALTH
        )

        by_category = await content_store.list_posts(category=PostCategory.HEALTH)
        by_tag = await content_store.list_posts(tag=" water ")
        by_author = await content_store.list_posts(author_id=actor_id)

        assert {p.post_id for p in by_category.posts} == {
            health.post_id,
            other_author.post_id,
        }
        assert [p.post_id for p in by_tag.posts] == [health.post_id]
        assert [p.post_id for p in by_author.posts] == [other_author.post_id]

    @pytest.mark.asyncio
    async def test_deleted_and_removed_posts_skipped(
        self, content_store, make_post, author_id
    ):
        kept = await make_post()
        deleted = await make_post()
        removed = await make_post()
        await content_store.delete_post(author_id, deleted.post_id)
        await content_store.set_moderation_status(
            removed.post_id, ContentKind.POST, ContentStatus.REMOVED
        )

        public = await content_store.list_posts()
        moderated = await content_store.list_posts(include_hidden=True)

        assert [p.post_id for p in public.posts] == [kept.post_id]
        assert {p.post_id for p in moderated.posts} == {
            kept.post_id,
            removed.post_id,
        }

    @pytest.mark.asyncio
    async def test_private_posts_listed_to_author_only(
        self, content_store, make_post, author_id, actor_id
    ):
        private = await make_post(visibility=Visibility.PRIVATE)

        assert (await content_store.list_posts(viewer_id=actor_id)).total == 0
        own = await content_store.list_posts(viewer_id=author_id)
        assert [p.post_id for p in own.posts] == [private.post_id]

    @pytest.mark.asyncio
    async def test_page_bounds(self, content_store):
        with pytest.raises(ValidationError) as exc:
            await content_store.list_posts(page=0)
        assert exc.value.code == "invalid_page"
        with pytest.raises(ValidationError) as exc:
            await content_store.list_posts(limit=51)
        assert exc.value.code == "invalid_limit"

    @pytest.mark.asyncio
    async def test_count_comments_skips_hidden(
        self, content_store, make_post, actor_id
    ):
        post = await make_post()
        kept = await content_store.create_comment(actor_id, post.post_id, "kept")
        deleted = await content_store.create_comment(actor_id, post.post_id, "gone")
        removed = await content_store.create_comment(actor_id, post.post_id, "rude")
        await content_store.create_comment(
            actor_id, post.post_id, "reply", parent_id=kept.comment_id
        )
        await content_store.delete_comment(actor_id, deleted.comment_id)
        await content_store.set_moderation_status(
            removed.comment_id, ContentKind.COMMENT, ContentStatus.REMOVED
        )

        assert await content_store.count_comments(post.post_id) == 2


class TestSetModerationStatus:
    """Tests for set_moderation_status."""

    @pytest.mark.asyncio
    async def test_only_from_leaves_other_statuses(self, content_store, make_post):
        post = await make_post()
        await content_store.set_moderation_status(
            post.post_id, ContentKind.POST, ContentStatus.REMOVED
        )

        result = await content_store.set_moderation_status(
            post.post_id,
            ContentKind.POST,
            ContentStatus.UNDER_REVIEW,
            only_from=ContentStatus.VISIBLE,
        )

        assert result.moderation_status == ContentStatus.REMOVED
