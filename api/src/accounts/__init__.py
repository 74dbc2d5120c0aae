"""Gateway to the external user-account service."""

from src.accounts.gateway import (
    AccountGateway,
    AccountServiceError,
    HttpAccountGateway,
    InMemoryAccountGateway,
)


__all__ = [
    "AccountGateway",
    "AccountServiceError",
    "HttpAccountGateway",
    "InMemoryAccountGateway",
]
