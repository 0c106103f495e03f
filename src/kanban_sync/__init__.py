"""Two-way sync between a Markdown kanban board and GitHub issues."""

__version__ = "0.3.0"
