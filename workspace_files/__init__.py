"""Workspace Files - expiring file storage with polymorphic attachments."""

__version__ = "1.0.0"
