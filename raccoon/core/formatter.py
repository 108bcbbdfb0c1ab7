"""Render GitLab events as single-line IRC notifications."""

from __future__ import annotations

import re

from raccoon.webhooks.models import (
    BuildEvent,
    IssueEvent,
    MergeRequestEvent,
    NoteEvent,
    PipelineEvent,
    PushEvent,
    TagPushEvent,
    WebhookEvent,
    WikiPageEvent,
)

ELLIPSIS = "..."
NOTE_PREVIEW_CHARS = 40
FIELD_CHARS = 120
# PRIVMSG framing, channel name and the server-added prefix must fit in 512 bytes
LINE_BYTES = 400

_NEWLINES_RE = re.compile(r"[\r\n]+")
# C0 controls (IRC bold/colour/italic/reset codes live here) and DEL
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")

_VERBS = {
    "open": "opened",
    "close": "closed",
    "reopen": "reopened",
    "update": "updated",
    "merge": "merged",
    "create": "created",
    "delete": "deleted",
    "approve": "approved",
    "unapprove": "unapproved",
}


def sanitize(text: str) -> str:
    """Collapse line breaks to spaces and drop control characters."""
    return _CONTROL_RE.sub("", _NEWLINES_RE.sub(" ", text)).strip()


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + ELLIPSIS


def fit_line(line: str, max_bytes: int = LINE_BYTES) -> str:
    """Cut a line so its UTF-8 encoding is at most ``max_bytes``."""
    encoded = line.encode()
    if len(encoded) <= max_bytes:
        return line
    cut = encoded[: max_bytes - len(ELLIPSIS)].decode(errors="ignore")
    return cut.rstrip() + ELLIPSIS


def _field(text: str | None, limit: int = FIELD_CHARS) -> str:
    return truncate(sanitize(text or ""), limit)


def _verb(action: str) -> str:
    action = sanitize(action)
    return _VERBS.get(action, action or "updated")


def _repo(event: WebhookEvent) -> str:
    name = _field(event.repository.name)
    homepage = _field(event.repository.homepage)
    return f"{name} ({homepage})" if homepage else name


def _actor(event: WebhookEvent) -> str:
    user = getattr(event, "user", None)
    if user is not None:
        return _field(user.name)
    return _field(getattr(event, "user_name", ""))


def _commits(count: int) -> str:
    return "1 commit" if count == 1 else f"{count} commits"


# ---------------------------------------------------------------------------
# Per-kind rendering
# ---------------------------------------------------------------------------

def _format_push(event: PushEvent, max_commit_lines: int) -> list[str]:
    user = _field(event.user_name)
    branch = _field(event.branch)
    if event.deleted:
        return [f"🌋 {user} deleted branch {branch}: {_repo(event)}"]

    lines = [
        f"🌋 {user} pushed {_commits(event.total_commits_count)} to {branch}: {_repo(event)}"
    ]
    if max_commit_lines > 0:
        shown = event.commits[:max_commit_lines]
        for commit in shown:
            subject = commit.message.splitlines()[0] if commit.message else ""
            lines.append(f"  {sanitize(commit.id)[:8]} {_field(subject)}")
        hidden = event.total_commits_count - len(shown)
        if shown and hidden > 0:
            lines.append(f"  ... and {hidden} more")
    return lines


def _format_tag_push(event: TagPushEvent) -> str:
    action = "deleted" if event.deleted else "pushed"
    return f'🔖 {_field(event.user_name)} {action} tag "{_field(event.tag)}" to {_repo(event)}'


def _format_issue(event: IssueEvent) -> str:
    issue = event.issue
    number = f" #{issue.iid}" if issue.iid is not None else ""
    return (
        f'🐛 {_actor(event)} {_verb(issue.action)} issue{number} "{_field(issue.title)}" '
        f"({_field(issue.url)}) on {_repo(event)}"
    )


def _format_merge_request(event: MergeRequestEvent) -> str:
    mr = event.merge_request
    number = f" !{mr.iid}" if mr.iid is not None else ""
    branches = ""
    if mr.source_branch and mr.target_branch:
        branches = f" ({_field(mr.source_branch)} → {_field(mr.target_branch)})"
    return (
        f'🔀 {_actor(event)} {_verb(mr.action)} merge request{number} "{_field(mr.title)}"'
        f"{branches} ({_field(mr.url)}) on {_repo(event)}"
    )


def _format_note(event: NoteEvent) -> str:
    comment = event.comment
    preview = truncate(sanitize(comment.note), NOTE_PREVIEW_CHARS)
    return (
        f"💬 {_actor(event)} commented on {_field(comment.noteable_type).lower()} "
        f"{_field(comment.url)}: {preview}"
    )


def _format_wiki_page(event: WikiPageEvent) -> str:
    page = event.page
    return (
        f'📝 {_actor(event)} {_verb(page.action)} wiki page "{_field(page.title)}" '
        f"({_field(page.url)}) on {_repo(event)}"
    )


def _format_pipeline(event: PipelineEvent) -> str:
    pipeline = event.pipeline
    ref = f" on {_field(pipeline.ref)}" if pipeline.ref else ""
    return f"🚦 Pipeline {_field(pipeline.status)}{ref} (#{pipeline.id}): {_repo(event)}"


def _format_build(event: BuildEvent) -> str:
    stage = f" ({_field(event.build_stage)})" if event.build_stage else ""
    ref = f" on {_field(event.ref)}" if event.ref else ""
    return (
        f"🔨 Build {_field(event.build_name)}{stage} {_field(event.build_status)}"
        f"{ref}: {_repo(event)}"
    )


def format_fallback(event: WebhookEvent) -> str:
    return f"🔔 {event.kind} event on {_repo(event)}"


def format_event(event: WebhookEvent, *, max_commit_lines: int = 0) -> list[str]:
    """Render an event as one or more IRC-safe lines.

    Every supported kind produces at least one non-empty line; an event whose
    rendering comes out blank is reported with a generic line instead.
    """
    if isinstance(event, PushEvent):
        lines = _format_push(event, max_commit_lines)
    elif isinstance(event, TagPushEvent):
        lines = [_format_tag_push(event)]
    elif isinstance(event, IssueEvent):
        lines = [_format_issue(event)]
    elif isinstance(event, MergeRequestEvent):
        lines = [_format_merge_request(event)]
    elif isinstance(event, NoteEvent):
        lines = [_format_note(event)]
    elif isinstance(event, WikiPageEvent):
        lines = [_format_wiki_page(event)]
    elif isinstance(event, PipelineEvent):
        lines = [_format_pipeline(event)]
    elif isinstance(event, BuildEvent):
        lines = [_format_build(event)]
    else:
        lines = []

    lines = [fit_line(line) for line in lines if line.strip()]
    return lines or [fit_line(format_fallback(event))]
