"""Tests for the poll engine.

Covers single and multiple choice voting, the voting window, error
precedence and percentage rounding.
"""

from uuid import uuid4

import pytest

from src.core.exceptions import (
    AuthenticationRequiredError,
    InvalidOptionError,
    NotFoundError,
    PollClosedError,
)
from src.polls.service import percentage_of


class TestVoteOnPoll:
    """Tests for vote_on_poll."""

    @pytest.mark.asyncio
    async def test_single_choice_moves_vote(
        self, poll_engine, make_poll_post, actor_id
    ):
        post = await make_poll_post(options=("A", "B"))

        await poll_engine.vote_on_poll(actor_id, post.post_id, 0)
        results = await poll_engine.vote_on_poll(actor_id, post.post_id, 1)

        assert [option.votes for option in results.options] == [0, 1]
        assert results.total_votes == 1
        assert [option.selected for option in results.options] == [False, True]

    @pytest.mark.asyncio
    async def test_single_choice_state_is_persisted(
        self, poll_engine, content_store, make_poll_post, actor_id
    ):
        post = await make_poll_post(options=("A", "B"))
        await poll_engine.vote_on_poll(actor_id, post.post_id, 0)
        await poll_engine.vote_on_poll(actor_id, post.post_id, 1)

        stored = await content_store.get_post(post.post_id)

        assert stored.poll.choices_of(actor_id) == [1]

    @pytest.mark.asyncio
    async def test_multiple_choice_accumulates(
        self, poll_engine, make_poll_post, actor_id
    ):
        post = await make_poll_post(options=("A", "B", "C"), allow_multiple_votes=True)

        await poll_engine.vote_on_poll(actor_id, post.post_id, 0)
        results = await poll_engine.vote_on_poll(actor_id, post.post_id, 2)

        assert [option.votes for option in results.options] == [1, 0, 1]
        assert results.total_votes == 2

    @pytest.mark.asyncio
    async def test_repeat_vote_is_noop(
        self, poll_engine, make_poll_post, actor_id, notifications, sink
    ):
        post = await make_poll_post()

        await poll_engine.vote_on_poll(actor_id, post.post_id, 0)
        results = await poll_engine.vote_on_poll(actor_id, post.post_id, 0)
        await notifications.drain()

        assert results.total_votes == 1
        assert sink.types().count("poll_voted") == 1

    @pytest.mark.asyncio
    async def test_closed_poll_rejects_votes(
        self, poll_engine, make_poll_post, actor_id, clock
    ):
        post = await make_poll_post(days=1)
        await poll_engine.vote_on_poll(actor_id, post.post_id, 0)
        clock.advance(days=1, seconds=1)

        with pytest.raises(PollClosedError) as exc:
            await poll_engine.vote_on_poll(actor_id, post.post_id, 1)
        with pytest.raises(PollClosedError):
            await poll_engine.vote_on_poll(uuid4(), post.post_id, 0)

        assert exc.value.code == "poll_closed"
        assert exc.value.kind == "conflict"

    @pytest.mark.asyncio
    async def test_poll_closes_exactly_at_end_date(
        self, poll_engine, make_poll_post, actor_id, clock
    ):
        post = await make_poll_post(days=1)
        clock.advance(days=1)

        with pytest.raises(PollClosedError):
            await poll_engine.vote_on_poll(actor_id, post.post_id, 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index", [-1, 2, 10])
    async def test_invalid_option(self, poll_engine, make_poll_post, actor_id, index):
        post = await make_poll_post(options=("A", "B"))

        with pytest.raises(InvalidOptionError) as exc:
            await poll_engine.vote_on_poll(actor_id, post.post_id, index)

        assert exc.value.code == "invalid_option"

    @pytest.mark.asyncio
    async def test_closed_takes_precedence_over_invalid_option(
        self, poll_engine, make_poll_post, actor_id, clock
    ):
        post = await make_poll_post(days=1)
        clock.advance(days=2)

        with pytest.raises(PollClosedError):
            await poll_engine.vote_on_poll(actor_id, post.post_id, 99)

    @pytest.mark.asyncio
    async def test_post_without_poll(self, poll_engine, make_post, actor_id):
        post = await make_post()

        with pytest.raises(NotFoundError):
            await poll_engine.vote_on_poll(actor_id, post.post_id, 0)

    @pytest.mark.asyncio
    async def test_anonymous_vote(self, poll_engine, make_poll_post):
        post = await make_poll_post()

        with pytest.raises(AuthenticationRequiredError):
            await poll_engine.vote_on_poll(None, post.post_id, 0)


class TestResults:
    """Tests for get_results and percentages."""

    @pytest.mark.asyncio
    async def test_empty_poll_has_zero_percentages(self, poll_engine, make_poll_post):
        post = await make_poll_post(options=("A", "B", "C"))

        results = await poll_engine.get_results(post.post_id)

        assert results.total_votes == 0
        assert [option.percentage for option in results.options] == [0, 0, 0]
        assert results.is_closed is False

    @pytest.mark.asyncio
    async def test_percentages_round_half_up(self, poll_engine, make_poll_post):
        post = await make_poll_post(options=("A", "B", "C"))
        for index in (0, 1, 2):
            await poll_engine.vote_on_poll(uuid4(), post.post_id, index)

        results = await poll_engine.get_results(post.post_id)

        # 33.33 each; rounded independently
        assert [option.percentage for option in results.options] == [33, 33, 33]

    @pytest.mark.asyncio
    async def test_results_mark_caller_choice(
        self, poll_engine, make_poll_post, actor_id, clock
    ):
        post = await make_poll_post(days=1)
        await poll_engine.vote_on_poll(actor_id, post.post_id, 1)
        clock.advance(days=2)

        results = await poll_engine.get_results(post.post_id, actor_id)

        assert results.is_closed is True
        assert [option.selected for option in results.options] == [False, True]

    @pytest.mark.parametrize(
        ("votes", "total", "expected"),
        [(0, 0, 0), (1, 8, 13), (1, 2, 50), (1, 3, 33), (2, 3, 67), (5, 5, 100)],
    )
    def test_percentage_of(self, votes: int, total: int, expected: int) -> None:
        assert percentage_of(votes, total) == expected

    def test_percentage_bounds(self) -> None:
        for total in range(0, 30):
            for votes in range(0, total + 1):
                assert 0 <= percentage_of(votes, total) <= 100
