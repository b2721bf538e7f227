"""The append-only Markdown digest written by each run."""

from collections.abc import Iterable
from pathlib import Path

from models import PRProcessResult


def header_text(days_back: int) -> str:
    return f"# Important Comments from PRs from the last {days_back} Days\n\n"


def ensure_header(path: Path, days_back: int) -> bool:
    """Write the header if the file is missing or empty. Returns True if it was written."""
    if path.exists() and path.stat().st_size > 0:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(header_text(days_back), encoding="utf-8")
    return True


def append_results(path: Path, results: Iterable[PRProcessResult]) -> int:
    """Append every has-content fragment in one pass. Returns how many were written."""
    written = 0
    with open(path, "a", encoding="utf-8") as f:
        for result in results:
            if result.has_content:
                f.write(result.content)
                written += 1
    return written


def has_findings(path: Path) -> bool:
    """True if the digest exists and holds at least one PR section beyond the header."""
    if not path.is_file():
        return False
    return "<details>" in path.read_text(encoding="utf-8")
