"""Pydantic models for review API payloads, extraction results and progress."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Author(BaseModel):
    """Comment author as returned by the review API."""

    email: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class Comment(BaseModel):
    """A single comment inside a thread."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    content: str = ""
    author: Author = Field(default_factory=Author)
    published_date: datetime | None = Field(default=None, alias="publishedDate")

    @field_validator("content", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        # System comments (votes, pushes) come back with null content
        return "" if value is None else value

    @field_validator("author", mode="before")
    @classmethod
    def _none_to_blank_author(cls, value: object) -> object:
        return {} if value is None else value


class CommentThread(BaseModel):
    """A comment thread on a pull request."""

    model_config = ConfigDict(frozen=True)

    id: int
    comments: list[Comment] = []


class ThreadList(BaseModel):
    value: list[CommentThread] = []


class PullRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pull_request_id: int = Field(alias="pullRequestId")


class PullRequestList(BaseModel):
    value: list[PullRequest] = []


class ExtractionResult(BaseModel):
    """Labeled fields parsed from one classifier reply. Missing fields are empty strings."""

    category: str = ""
    summary: str = ""
    details: str = ""


class PRProcessResult(BaseModel):
    """Outcome of processing one pull request."""

    pull_request_id: int
    has_content: bool = False
    content: str = ""


class ProgressSnapshot(BaseModel):
    """Point-in-time view of a run. total == -1 while PR ids are being fetched."""

    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    processed: int = 0
    found: int = 0
    current_pr: int = Field(default=0, alias="currentPR")


class RunSummary(BaseModel):
    """Counters reported when a run finishes."""

    total: int = 0
    processed: int = 0
    found: int = 0
