"""Tests for kanban_sync.sync.mapper -- status and content mapping."""

from kanban_sync.sync.mapper import (
    UNTITLED,
    compose_content,
    generate_record_id,
    split_content,
    to_local_status,
    to_remote_state,
    transition_status,
)

from conftest import T0, at


class TestToLocalStatus:
    def test_closed_is_done(self, make_remote):
        remote = make_remote(state="closed", assignee="octocat")
        assert to_local_status(remote, "octocat") == "done"

    def test_assigned_to_current_user_is_todo(self, make_remote):
        remote = make_remote(assignee="octocat")
        assert to_local_status(remote, "octocat") == "todo"

    def test_assigned_to_someone_else_is_backlog(self, make_remote):
        remote = make_remote(assignee="other")
        assert to_local_status(remote, "octocat") == "backlog"

    def test_unknown_current_user_is_backlog(self, make_remote):
        remote = make_remote(assignee="octocat")
        assert to_local_status(remote, None) == "backlog"


class TestToRemoteState:
    def test_done_closes(self):
        assert to_remote_state("done") == "closed"

    def test_every_other_status_opens(self):
        for status in ("backlog", "todo", "in-progress", "review"):
            assert to_remote_state(status) == "open"


class TestTransitionStatus:
    def test_closing_moves_to_done_and_stamps(self):
        assert transition_status("review", "done", None, at(5)) == (
            "done",
            at(5),
        )

    def test_reopening_leaves_done_and_clears(self):
        assert transition_status("done", "todo", T0, at(5)) == ("todo", None)

    def test_open_issue_keeps_non_terminal_column(self):
        assert transition_status("in-progress", "backlog", None, at(5)) == (
            "in-progress",
            None,
        )

    def test_done_stays_done_with_original_stamp(self):
        assert transition_status("done", "done", T0, at(5)) == ("done", T0)


class TestContent:
    def test_split_first_heading(self):
        title, body = split_content("# Fix login\n\nSteps:\n\n1. open\n")
        assert title == "Fix login"
        assert body == "Steps:\n\n1. open"

    def test_split_skips_text_before_heading(self):
        title, body = split_content("intro\n# Real title\nbody")
        assert title == "Real title"
        assert body == "body"

    def test_split_without_heading(self):
        assert split_content("just text") == (UNTITLED, "just text")

    def test_subheadings_are_not_titles(self):
        title, _ = split_content("## Section\ntext")
        assert title == UNTITLED

    def test_compose_without_body(self):
        assert compose_content("Title", "") == "# Title"

    def test_compose_then_split(self):
        content = compose_content("Title", "Line one\n\nLine two")
        assert content == "# Title\n\nLine one\n\nLine two"
        assert split_content(content) == ("Title", "Line one\n\nLine two")


class TestGenerateRecordId:
    def test_slugifies(self):
        assert generate_record_id("Fix: Login bug!") == "fix-login-bug"

    def test_collapses_and_trims(self):
        assert generate_record_id("  --Hello   World--  ") == "hello-world"

    def test_empty_falls_back(self):
        assert generate_record_id("???") == "untitled"

    def test_length_is_capped(self):
        slug = generate_record_id("word " * 40)
        assert len(slug) <= 60
        assert not slug.endswith("-")
