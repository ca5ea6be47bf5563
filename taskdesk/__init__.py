"""Taskdesk: project and task tracker with live assignment notifications."""

__version__ = "1.0.0"
