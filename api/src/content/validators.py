"""Validation for posts, comments and polls.

Every check runs before anything is written. Failures raise
``ValidationError`` with a code naming the offending field, so a client can
point at it. Normalizers return the cleaned value (trimmed text, lowercased
tags) that is actually stored.
"""

from datetime import datetime
from urllib.parse import urlparse

from src.core.exceptions import ValidationError

from .models import Location, MediaReference, MediaType, PollOption, Visibility


# ==============================================================================
# Constants for validation rules
# ==============================================================================

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 300
POST_BODY_MAX_LENGTH = 40_000
COMMENT_BODY_MAX_LENGTH = 1_000

MAX_TAGS = 5
TAG_MIN_LENGTH = 2
TAG_MAX_LENGTH = 30

LOCATION_FIELD_MAX_LENGTH = 100

MAX_MEDIA = 4
MEDIA_URL_MAX_LENGTH = 2048
MEDIA_CAPTION_MAX_LENGTH = 200
MEDIA_URL_SCHEMES = frozenset({"http", "https"})

POLL_QUESTION_MIN_LENGTH = 5
POLL_QUESTION_MAX_LENGTH = 200
POLL_MIN_OPTIONS = 2
POLL_MAX_OPTIONS = 10
POLL_OPTION_MAX_LENGTH = 100


def _bounded_text(
    value: str | None,
    field: str,
    min_length: int,
    max_length: int,
) -> str:
    text = (value or "").strip()
    if len(text) < min_length:
        if min_length == 1:
            msg = f"{field} must not be empty"
        else:
            msg = f"{field} must be at least {min_length} characters"
        raise ValidationError(msg, f"invalid_{field}")
    if len(text) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters", f"invalid_{field}"
        )
    return text


def normalize_title(title: str | None) -> str:
    """Trim a post title and check its length (3-300)."""
    return _bounded_text(title, "title", TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)


def normalize_post_body(body: str | None) -> str:
    """Trim a post body and check its length (1-40000)."""
    return _bounded_text(body, "body", 1, POST_BODY_MAX_LENGTH)


def normalize_comment_body(body: str | None) -> str:
    """Trim a comment body and check its length (1-1000)."""
    return _bounded_text(body, "body", 1, COMMENT_BODY_MAX_LENGTH)


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Lowercase, trim and de-duplicate tags, keeping first-seen order.

    Examples:
        >>> normalize_tags(["Water", " water ", "Roads"])
        ['water', 'roads']
    """
    normalized: list[str] = []
    for raw in tags or []:
        tag = raw.strip().lower()
        if not TAG_MIN_LENGTH <= len(tag) <= TAG_MAX_LENGTH:
            raise ValidationError(
                f"Tags must be {TAG_MIN_LENGTH}-{TAG_MAX_LENGTH} characters: {raw!r}",
                "invalid_tags",
            )
        if tag not in normalized:
            normalized.append(tag)

    if len(normalized) > MAX_TAGS:
        raise ValidationError(f"At most {MAX_TAGS} tags are allowed", "invalid_tags")
    return normalized


def normalize_location(
    location: Location | None,
    visibility: Visibility,
) -> Location | None:
    """Trim location fields; constituency visibility needs a constituency."""
    if location is not None:
        cleaned = {}
        for field in ("county", "constituency", "ward"):
            value = (getattr(location, field) or "").strip() or None
            if value and len(value) > LOCATION_FIELD_MAX_LENGTH:
                raise ValidationError(
                    f"Location {field} must be at most "
                    f"{LOCATION_FIELD_MAX_LENGTH} characters",
                    "invalid_location",
                )
            cleaned[field] = value
        location = Location(**cleaned)
        if location.is_empty():
            location = None

    if visibility == Visibility.CONSTITUENCY and (
        location is None or not location.constituency
    ):
        raise ValidationError(
            "Constituency posts need a location with a constituency",
            "invalid_location",
        )
    return location


def validate_media(media: list[MediaReference] | None) -> list[MediaReference]:
    """Check media references. URLs are opaque; only their syntax is checked."""
    media = list(media or [])
    if len(media) > MAX_MEDIA:
        raise ValidationError(
            f"At most {MAX_MEDIA} media items are allowed", "invalid_media"
        )

    cleaned = []
    for item in media:
        url = item.url.strip()
        parsed = urlparse(url)
        if (
            len(url) > MEDIA_URL_MAX_LENGTH
            or parsed.scheme not in MEDIA_URL_SCHEMES
            or not parsed.netloc
        ):
            raise ValidationError(f"Invalid media URL: {url[:80]!r}", "invalid_media")
        caption = (item.caption or "").strip() or None
        if caption and len(caption) > MEDIA_CAPTION_MAX_LENGTH:
            raise ValidationError(
                f"Media captions must be at most {MEDIA_CAPTION_MAX_LENGTH} characters",
                "invalid_media",
            )
        cleaned.append(
            MediaReference(
                url=url, media_type=MediaType(item.media_type), caption=caption
            )
        )
    return cleaned


def normalize_poll_question(question: str | None) -> str:
    """Trim a poll question and check its length (5-200)."""
    return _bounded_text(
        question, "question", POLL_QUESTION_MIN_LENGTH, POLL_QUESTION_MAX_LENGTH
    )


def normalize_poll_options(options: list[str] | None) -> list[PollOption]:
    """Trim option texts and check the option count (2-10) and lengths (1-100)."""
    options = options or []
    if not POLL_MIN_OPTIONS <= len(options) <= POLL_MAX_OPTIONS:
        raise ValidationError(
            f"Polls need {POLL_MIN_OPTIONS}-{POLL_MAX_OPTIONS} options",
            "invalid_options",
        )
    return [
        PollOption(text=_bounded_text(text, "option", 1, POLL_OPTION_MAX_LENGTH))
        for text in options
    ]


def validate_poll_end_date(end_date: datetime, now: datetime) -> datetime:
    """End date must be timezone-aware and strictly in the future."""
    if end_date.tzinfo is None:
        raise ValidationError(
            "Poll end date must include a timezone", "invalid_end_date"
        )
    if end_date <= now:
        raise ValidationError("Poll end date must be in the future", "invalid_end_date")
    return end_date
