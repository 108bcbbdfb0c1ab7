"""Tests for rendering events as IRC lines."""

import json

import pytest

from raccoon.core.formatter import (
    LINE_BYTES,
    NOTE_PREVIEW_CHARS,
    fit_line,
    format_event,
    format_fallback,
    sanitize,
    truncate,
)
from raccoon.webhooks.handlers import decode_event
from raccoon.webhooks.models import BLANK_SHA
from tests.fixtures.gitlab_events import ALL_SUPPORTED, payload

REPO = "raccoon (https://gitlab.example.com/team/raccoon)"


def _event(name, **overrides):
    return decode_event(json.dumps(payload(name, **overrides)).encode())


class TestSanitize:
    def test_newlines_become_spaces(self):
        assert sanitize("first\r\nsecond\nthird\rfourth") == "first second third fourth"

    def test_strips_irc_formatting_codes(self):
        assert sanitize("\x02bold\x02 \x0304red\x03 \x1fu\x1f\x0f") == "bold 04red u"

    def test_plain_text_unchanged(self):
        assert sanitize("Fix the build (again): café ✓") == "Fix the build (again): café ✓"


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("short", 10) == "short"

    def test_long_text_gets_ellipsis(self):
        assert truncate("a" * 50, 40) == "a" * 40 + "..."

    def test_trailing_space_trimmed_before_ellipsis(self):
        assert truncate("word " * 10, 10) == "word word..."

    def test_fit_line_caps_utf8_bytes(self):
        line = "🌋" * 200
        fitted = fit_line(line)
        assert len(fitted.encode()) <= LINE_BYTES
        assert fitted.endswith("...")


class TestFormatEvent:
    def test_push(self):
        assert format_event(_event("push")) == [
            f"🌋 Jane Doe pushed 2 commits to main: {REPO}"
        ]

    def test_push_single_commit(self):
        lines = format_event(_event("push", total_commits_count=1))
        assert lines == [f"🌋 Jane Doe pushed 1 commit to main: {REPO}"]

    def test_push_branch_deleted(self):
        lines = format_event(_event("push", after=BLANK_SHA, total_commits_count=0, commits=[]))
        assert lines == [f"🌋 Jane Doe deleted branch main: {REPO}"]

    def test_push_with_commit_lines(self):
        lines = format_event(_event("push", total_commits_count=5), max_commit_lines=2)
        assert lines == [
            f"🌋 Jane Doe pushed 5 commits to main: {REPO}",
            "  b6568db1 Update Catalan translation to e38cb41.",
            "  da156088 fixed readme",
            "  ... and 3 more",
        ]

    def test_tag_push(self):
        assert format_event(_event("tag_push")) == [
            f'🔖 John Smith pushed tag "v1.0.0" to {REPO}'
        ]

    def test_tag_deleted(self):
        lines = format_event(_event("tag_push", after=BLANK_SHA))
        assert lines[0].startswith('🔖 John Smith deleted tag "v1.0.0"')

    def test_issue(self):
        assert format_event(_event("issue")) == [
            '🐛 Jane Doe opened issue #23 "New API: create/update/delete file" '
            f"(https://gitlab.example.com/team/raccoon/-/issues/23) on {REPO}"
        ]

    def test_merge_request(self):
        assert format_event(_event("merge_request")) == [
            '🔀 Jane Doe opened merge request !1 "MS-Viewport" (ms-viewport → main) '
            f"(https://gitlab.example.com/team/raccoon/-/merge_requests/1) on {REPO}"
        ]

    def test_commit_comment(self):
        line = format_event(_event("note_commit"))[0]
        assert line == (
            "💬 Jane Doe commented on commit "
            "https://gitlab.example.com/team/raccoon/-/commit/cfe32cf6#note_1243: "
            "This is a commit comment. How does this..."
        )

    def test_merge_request_comment(self):
        line = format_event(_event("note_merge_request"))[0]
        assert "commented on mergerequest" in line
        assert line.endswith(": This MR needs work.")

    def test_snippet_comment_truncated(self):
        line = format_event(_event("note_snippet"))[0]
        assert "commented on snippet" in line
        assert line.endswith("...")
        preview = line.rsplit(": ", 1)[1]
        assert len(preview) <= NOTE_PREVIEW_CHARS + len("...")

    def test_wiki_page(self):
        assert format_event(_event("wiki_page")) == [
            '📝 Jane Doe created wiki page "Awesome" '
            f"(https://gitlab.example.com/team/raccoon/-/wikis/awesome) on {REPO}"
        ]

    def test_pipeline(self):
        assert format_event(_event("pipeline")) == [
            f"🚦 Pipeline success on main (#31): {REPO}"
        ]

    def test_build(self):
        assert format_event(_event("build")) == [
            f"🔨 Build test (test) created on gitlab-script-trigger: {REPO}"
        ]

    def test_fallback_line(self):
        assert format_fallback(_event("pipeline")) == f"🔔 pipeline event on {REPO}"

    def test_multiline_title_stays_on_one_line(self):
        data = payload("issue")
        data["object_attributes"]["title"] = "evil\r\nPRIVMSG #other :pwned"
        event = decode_event(json.dumps(data).encode())
        (line,) = format_event(event)
        assert "\n" not in line and "\r" not in line
        assert '"evil PRIVMSG #other :pwned"' in line


@pytest.mark.parametrize("name", sorted(ALL_SUPPORTED))
class TestFormatProperties:
    def test_non_empty(self, name):
        lines = format_event(_event(name), max_commit_lines=3)
        assert lines
        assert all(line.strip() for line in lines)

    def test_deterministic(self, name):
        event = _event(name)
        assert format_event(event) == format_event(event) == format_event(_event(name))

    def test_no_line_breaks(self, name):
        for line in format_event(_event(name), max_commit_lines=3):
            assert "\r" not in line
            assert "\n" not in line

    def test_fits_irc_line(self, name):
        for line in format_event(_event(name), max_commit_lines=3):
            assert len(line.encode()) <= LINE_BYTES
