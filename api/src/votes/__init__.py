"""Per-actor vote ledger for posts and comments."""

from src.votes.models import VOTES_TABLES_CQL, VoteDirection, VoteOutcome, VoteTally
from src.votes.repository import (
    CassandraVoteRepository,
    InMemoryVoteRepository,
    VoteRepository,
)
from src.votes.service import VoteLedger


__all__ = [
    "VOTES_TABLES_CQL",
    "CassandraVoteRepository",
    "InMemoryVoteRepository",
    "VoteDirection",
    "VoteLedger",
    "VoteOutcome",
    "VoteRepository",
    "VoteTally",
]
