"""Time-boxed polls embedded in posts."""

from src.polls.service import PollEngine, PollResults, percentage_of, tally_poll


__all__ = ["PollEngine", "PollResults", "percentage_of", "tally_poll"]
