"""Markdown rendering for index documents."""
