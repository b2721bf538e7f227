"""Turn a single review comment into a Markdown insight via the classifier.

The classifier is asked to answer with labeled lines::

    Category: <Troubleshooting | Developer Trick | Term Definition | ...>
    Summary: <one or two sentences>
    Details: <optional extra context>

Parsing is best-effort. A field value runs from its label to the next
recognised label line (or the end of the reply), and labels may be wrapped
in bold markers (``**Summary:**`` or ``**Summary**:``). A missing field is
the empty string.
"""

import html
import logging
import re

import classifier
from comment_filter import should_process
from models import Comment, CommentThread, ExtractionResult

logger = logging.getLogger(__name__)

FIELD_LABELS = ("Category", "Summary", "Details")

NO_CONTENT_SENTINELS = ("No important content", "No content to extract")

# Meta/noise that shows up when the model describes the review tooling
# itself instead of the engineering content of a comment.
RESULT_DENYLIST = (
    "voted",
    "refs/heads/",
    "PR Assistant",
    "PRAssistant",
    "PR description",
    "No content",
    "No additional information",
    "Unknown",
)

SYSTEM_PROMPT = (
    "You read pull request review comments and pick out knowledge worth sharing "
    "with the rest of the team: troubleshooting steps, clever developer tricks, "
    "and definitions of internal terms or systems."
)

_LABEL_LINE = r"^[ \t]*(?:[-•][ \t]*)?(?:\*\*)?{label}(?:\*\*)?[ \t]*:(?:\*\*)?"
_ANY_LABEL_LINE = _LABEL_LINE.format(label="(?:" + "|".join(FIELD_LABELS) + ")")


def _field_pattern(label: str) -> re.Pattern:
    return re.compile(
        _LABEL_LINE.format(label=re.escape(label)) + r"(.*?)(?=" + _ANY_LABEL_LINE + r"|\Z)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )


_FIELD_PATTERNS = {label: _field_pattern(label) for label in FIELD_LABELS}


def split_comment(content: str) -> tuple[str, str]:
    """Split comment text into its first non-empty line and the rest joined by spaces."""
    lines = [line.strip() for line in content.splitlines() if line.strip()]
    if not lines:
        return "", ""
    return lines[0], " ".join(lines[1:])


def build_prompt(main_line: str, reply: str) -> str:
    return (
        "Given the following review comment and its follow-up text:\n"
        f"Comment: {main_line}\n"
        f"Reply: {reply}\n\n"
        "Decide whether it contains a troubleshooting step, an interesting developer "
        "trick, or the definition of a term or concept (a system, tool, framework, "
        "library, design pattern or acronym).\n\n"
        "If it does, answer using exactly these lines:\n"
        "Category: <Troubleshooting | Developer Trick | Term Definition>\n"
        "Summary: <one or two sentence summary of the knowledge>\n"
        "Details: <optional extra context, commands or caveats>\n\n"
        f"If it does not, answer only with '{NO_CONTENT_SENTINELS[0]}'."
    )


def extract_field(reply: str, label: str) -> str:
    """Return the value of ``label`` in ``reply``, or "" when the label is absent."""
    pattern = _FIELD_PATTERNS.get(label) or _field_pattern(label)
    match = pattern.search(reply)
    if not match:
        return ""
    lines = [line.strip() for line in match.group(1).splitlines() if line.strip()]
    return " ".join(lines)


def parse_reply(reply: str) -> ExtractionResult:
    return ExtractionResult(
        category=extract_field(reply, "Category"),
        summary=extract_field(reply, "Summary"),
        details=extract_field(reply, "Details"),
    )


def should_discard(reply: str, result: ExtractionResult) -> bool:
    """True when the reply is a no-content answer, lacks a summary, or is meta noise."""
    lowered_reply = reply.lower()
    if any(sentinel.lower() in lowered_reply for sentinel in NO_CONTENT_SENTINELS):
        return True
    if not result.summary:
        return True

    for value in (result.category, result.summary, result.details):
        lowered = value.lower()
        if any(noise.lower() in lowered for noise in RESULT_DENYLIST):
            return True
    return False


def render_fragment(thread_id: int, comment_id: int, result: ExtractionResult) -> str:
    lines = [f"### Thread {thread_id}, Comment {comment_id}", ""]
    for label, value in (
        ("Category", result.category),
        ("Summary", result.summary),
        ("Details", result.details),
    ):
        if value:
            # Model output is untrusted; the digest is rendered as HTML
            lines.append(f"**{label}:** {html.escape(value, quote=False)}")
    lines.append("")
    return "\n".join(lines) + "\n"


async def extract_insight(comment: Comment, thread: CommentThread, pr_link: str) -> str:
    """Classify one comment and return its Markdown fragment, or "" if nothing was kept.

    Classifier failures propagate to the caller.
    """
    if not should_process(comment.content):
        return ""

    main_line, reply = split_comment(comment.content)
    logger.debug(f"Classifying thread {thread.id} comment {comment.id} ({pr_link})")
    raw = await classifier.classify(SYSTEM_PROMPT, build_prompt(main_line, reply))

    result = parse_reply(raw)
    if should_discard(raw, result):
        return ""
    return render_fragment(thread.id, comment.id, result)
