"""Tests for the moderation engine.

Covers the pending to terminal transitions, new cycles after a closed one,
bans through the account gateway, bulk moderation and the queue.
"""

from uuid import uuid4

import pytest

from src.accounts.gateway import AccountGateway, AccountServiceError
from src.content.models import ContentStatus
from src.core.exceptions import (
    AuthenticationRequiredError,
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.moderation.models import (
    ModerationAction,
    ModerationStatus,
    ReportReason,
    ReportStatus,
    ReportTargetKind,
    Severity,
)
from src.moderation.service import ModerationEngine


@pytest.fixture
def reported_post(aggregator, make_post):
    """Async factory for a post with one open spam report."""

    async def _make(reason: ReportReason = ReportReason.SPAM, reporters: int = 1):
        post = await make_post()
        for _ in range(reporters):
            await aggregator.file_report(
                uuid4(), post.post_id, ReportTargetKind.POST, reason
            )
        return post

    return _make


class BrokenGateway(AccountGateway):
    async def suspend(self, user_id, reason=None) -> None:
        raise AccountServiceError("Account service timeout")

    async def activate(self, user_id) -> None:
        raise AccountServiceError("Account service timeout")


class TestModerate:
    """Tests for moderate."""

    @pytest.mark.asyncio
    async def test_approve_restores_visibility(
        self, engine, content_store, reported_post, moderator_id, clock
    ):
        post = await reported_post()
        clock.advance(hours=1)

        record = await engine.moderate(
            moderator_id, post.post_id, ModerationAction.APPROVE, True, "Looks fine"
        )

        assert record.status == ModerationStatus.APPROVED
        assert record.moderator_id == moderator_id
        assert record.notes == "Looks fine"
        assert record.decided_at == clock.now
        stored = await content_store.get_post(post.post_id)
        assert stored.moderation_status == ContentStatus.VISIBLE

    @pytest.mark.asyncio
    async def test_reject_removes_content_and_resolves_reports(
        self, engine, aggregator, content_store, reported_post, moderator_id
    ):
        post = await reported_post(reporters=3)

        await engine.moderate(
            moderator_id, post.post_id, ModerationAction.REJECT, True
        )

        with pytest.raises(NotFoundError):
            await content_store.get_post(post.post_id)
        reports = await aggregator.list_reports(post.post_id)
        assert {report.status for report in reports} == {ReportStatus.RESOLVED}

    @pytest.mark.asyncio
    async def test_terminal_record_rejects_further_actions(
        self, engine, reported_post, moderator_id
    ):
        post = await reported_post()
        await engine.moderate(moderator_id, post.post_id, ModerationAction.REJECT, True)

        for action in ModerationAction:
            with pytest.raises(InvalidTransitionError) as exc:
                await engine.moderate(moderator_id, post.post_id, action, True)
            assert exc.value.code == "invalid_transition"

        history = await engine.get_history(post.post_id)
        assert [record.status for record in history] == [ModerationStatus.REJECTED]

    @pytest.mark.asyncio
    async def test_new_report_opens_new_cycle(
        self, engine, aggregator, content_store, reported_post, moderator_id
    ):
        post = await reported_post()
        await engine.moderate(
            moderator_id, post.post_id, ModerationAction.APPROVE, True
        )

        record = await aggregator.file_report(
            uuid4(), post.post_id, ReportTargetKind.POST, ReportReason.MISINFORMATION
        )

        assert record.cycle == 2
        assert record.status == ModerationStatus.PENDING
        assert record.report_count == 1
        history = await engine.get_history(post.post_id)
        assert [(r.cycle, r.status) for r in history] == [
            (2, ModerationStatus.PENDING),
            (1, ModerationStatus.APPROVED),
        ]
        stored = await content_store.get_post(post.post_id)
        assert stored.moderation_status == ContentStatus.UNDER_REVIEW

    @pytest.mark.asyncio
    async def test_non_moderator_rejected(self, engine, reported_post, actor_id):
        post = await reported_post()

        with pytest.raises(AuthorizationError):
            await engine.moderate(
                actor_id, post.post_id, ModerationAction.APPROVE, False
            )

        history = await engine.get_history(post.post_id)
        assert history[0].status == ModerationStatus.PENDING

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, engine, reported_post):
        post = await reported_post()

        with pytest.raises(AuthenticationRequiredError):
            await engine.moderate(None, post.post_id, ModerationAction.APPROVE, True)

    @pytest.mark.asyncio
    async def test_unreported_target(self, engine, make_post, moderator_id):
        post = await make_post()

        with pytest.raises(NotFoundError):
            await engine.moderate(
                moderator_id, post.post_id, ModerationAction.REJECT, True
            )

    @pytest.mark.asyncio
    async def test_failed_record_write_leaves_nothing_applied(
        self,
        engine,
        aggregator,
        content_store,
        moderation_repository,
        reported_post,
        moderator_id,
        monkeypatch,
    ):
        post = await reported_post(reporters=2)

        async def failing_save(record, previous_status=None):
            raise RuntimeError("write timeout")

        monkeypatch.setattr(moderation_repository, "save_record", failing_save)

        with pytest.raises(RuntimeError):
            await engine.moderate(
                moderator_id, post.post_id, ModerationAction.REJECT, True
            )

        record = await moderation_repository.get_current_record(post.post_id)
        assert record.status == ModerationStatus.PENDING
        stored = await content_store.get_post(post.post_id)
        assert stored.moderation_status == ContentStatus.UNDER_REVIEW
        reports = await aggregator.list_reports(post.post_id)
        assert {report.status for report in reports} == {ReportStatus.OPEN}

    @pytest.mark.asyncio
    async def test_failed_content_write_leaves_record_pending(
        self,
        engine,
        content_store,
        moderation_repository,
        reported_post,
        moderator_id,
        monkeypatch,
    ):
        post = await reported_post()

        async def failing_status(*args, **kwargs):
            raise RuntimeError("write timeout")

        monkeypatch.setattr(content_store, "set_moderation_status", failing_status)

        with pytest.raises(RuntimeError):
            await engine.moderate(
                moderator_id, post.post_id, ModerationAction.REJECT, True
            )

        record = await moderation_repository.get_current_record(post.post_id)
        assert record.status == ModerationStatus.PENDING

    @pytest.mark.asyncio
    async def test_notes_too_long(self, engine, reported_post, moderator_id):
        post = await reported_post()

        with pytest.raises(ValidationError):
            await engine.moderate(
                moderator_id, post.post_id, ModerationAction.APPROVE, True, "n" * 1001
            )


class TestBan:
    """Tests for the ban action."""

    @pytest.mark.asyncio
    async def test_ban_on_post_suspends_author(
        self, engine, accounts, content_store, reported_post, author_id, moderator_id
    ):
        post = await reported_post(ReportReason.HATE_SPEECH)

        record = await engine.moderate(
            moderator_id, post.post_id, ModerationAction.BAN, True
        )

        assert record.status == ModerationStatus.BANNED_USER
        assert accounts.suspended == {author_id}
        stored = await content_store.get_post(post.post_id, include_hidden=True)
        assert stored.moderation_status == ContentStatus.REMOVED

    @pytest.mark.asyncio
    async def test_ban_on_user_target(
        self, engine, aggregator, accounts, moderator_id, notifications, sink
    ):
        user_id = uuid4()
        await aggregator.file_report(
            uuid4(), user_id, ReportTargetKind.USER, ReportReason.HARASSMENT
        )

        await engine.moderate(moderator_id, user_id, ModerationAction.BAN, True)
        await notifications.drain()

        assert accounts.calls == [("suspend", user_id)]
        assert "user_suspended" in sink.types()

    @pytest.mark.asyncio
    async def test_gateway_failure_keeps_ban(
        self,
        content_store,
        moderation_repository,
        locks,
        notifications,
        clock,
        reported_post,
        moderator_id,
        sink,
    ):
        engine = ModerationEngine(
            content_store,
            moderation_repository,
            locks,
            BrokenGateway(),
            notifications,
            clock=clock,
        )
        post = await reported_post()

        record = await engine.moderate(
            moderator_id, post.post_id, ModerationAction.BAN, True
        )
        await notifications.drain()

        assert record.status == ModerationStatus.BANNED_USER
        assert "user_suspended" not in sink.types()

    @pytest.mark.asyncio
    async def test_lift_ban(self, engine, accounts, moderator_id, actor_id):
        user_id = uuid4()
        accounts.suspended.add(user_id)

        with pytest.raises(AuthorizationError):
            await engine.lift_ban(actor_id, user_id, False)
        await engine.lift_ban(moderator_id, user_id, True)

        assert accounts.suspended == set()
        assert accounts.calls == [("activate", user_id)]


class TestModerateMany:
    """Tests for moderate_many."""

    @pytest.mark.asyncio
    async def test_failures_do_not_affect_other_items(
        self, engine, reported_post, moderator_id
    ):
        p1 = await reported_post()
        p2 = await reported_post()
        await engine.moderate(moderator_id, p2.post_id, ModerationAction.REJECT, True)

        result = await engine.moderate_many(
            moderator_id, [p1.post_id, p2.post_id], ModerationAction.APPROVE, True
        )

        first, second = result.outcomes
        assert first.target_id == p1.post_id
        assert first.success is True
        assert first.status == ModerationStatus.APPROVED
        assert second.target_id == p2.post_id
        assert second.success is False
        assert second.error_code == "invalid_transition"
        assert second.error_kind == "conflict"
        assert (result.succeeded, result.failed) == (1, 1)

    @pytest.mark.asyncio
    async def test_outcomes_follow_request_order(
        self, engine, reported_post, moderator_id
    ):
        posts = [await reported_post() for _ in range(3)]
        missing = uuid4()
        ids = [posts[2].post_id, missing, posts[0].post_id, posts[1].post_id]

        result = await engine.moderate_many(
            moderator_id, ids, ModerationAction.REJECT, True
        )

        assert [outcome.target_id for outcome in result.outcomes] == ids
        assert [outcome.success for outcome in result.outcomes] == [
            True,
            False,
            True,
            True,
        ]
        assert result.outcomes[1].error_kind == "not_found"

    @pytest.mark.asyncio
    async def test_non_moderator_fails_every_item(
        self, engine, reported_post, actor_id
    ):
        posts = [await reported_post() for _ in range(2)]

        result = await engine.moderate_many(
            actor_id, [p.post_id for p in posts], ModerationAction.APPROVE, False
        )

        assert result.succeeded == 0
        assert {outcome.error_kind for outcome in result.outcomes} == {"forbidden"}

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated(
        self, engine, reported_post, moderator_id, monkeypatch
    ):
        good = await reported_post()
        bad = await reported_post()
        original = engine.moderate

        async def flaky(moderator, target_id, *args, **kwargs):
            if target_id == bad.post_id:
                raise RuntimeError("disk on fire")
            return await original(moderator, target_id, *args, **kwargs)

        monkeypatch.setattr(engine, "moderate", flaky)

        result = await engine.moderate_many(
            moderator_id, [bad.post_id, good.post_id], ModerationAction.APPROVE, True
        )

        assert result.outcomes[0].error_kind == "internal_error"
        assert result.outcomes[1].success is True


class TestQueue:
    """Tests for get_queue."""

    @pytest.mark.asyncio
    async def test_queue_ordered_by_severity_count_age(
        self, engine, reported_post, moderator_id, clock
    ):
        low = await reported_post()
        clock.advance(minutes=1)
        medium = await reported_post(reporters=2)
        clock.advance(minutes=1)
        high_old = await reported_post(ReportReason.VIOLENCE)
        clock.advance(minutes=1)
        high_new = await reported_post(ReportReason.VIOLENCE)
        clock.advance(minutes=1)
        high_many = await reported_post(reporters=5)
        decided = await reported_post(ReportReason.VIOLENCE)
        await engine.moderate(
            moderator_id, decided.post_id, ModerationAction.APPROVE, True
        )

        queue = await engine.get_queue()

        assert [record.target_id for record in queue] == [
            high_many.post_id,
            high_old.post_id,
            high_new.post_id,
            medium.post_id,
            low.post_id,
        ]
        assert queue[0].severity == Severity.HIGH

    @pytest.mark.asyncio
    async def test_queue_by_status_and_limit(self, engine, reported_post, moderator_id):
        posts = [await reported_post() for _ in range(3)]
        for post in posts:
            await engine.moderate(
                moderator_id, post.post_id, ModerationAction.REJECT, True
            )

        rejected = await engine.get_queue(ModerationStatus.REJECTED, limit=2)

        assert len(rejected) == 2
        assert await engine.get_queue() == []
