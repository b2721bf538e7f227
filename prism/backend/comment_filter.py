"""Pre-classification filter that drops empty, short and bot-authored comments."""

from collections.abc import Iterable

from config import settings


def should_process(
    text: str | None,
    *,
    min_length: int | None = None,
    markers: Iterable[str] | None = None,
) -> bool:
    """Return True if a comment is worth sending to the classifier.

    The text must be longer than ``min_length`` characters and must not contain
    any boilerplate marker (case-insensitive).
    """
    if not text:
        return False

    if min_length is None:
        min_length = settings.MIN_COMMENT_LENGTH
    if len(text) <= min_length:
        return False

    lowered = text.lower()
    for marker in markers if markers is not None else settings.BOILERPLATE_MARKERS:
        if marker.lower() in lowered:
            return False
    return True
