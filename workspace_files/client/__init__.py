"""Async HTTP client for the Workspace Files API."""

from workspace_files.client.api_client import DownloadedFile, WorkspaceClient

__all__ = ["WorkspaceClient", "DownloadedFile"]
