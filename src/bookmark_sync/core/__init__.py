"""Core helpers shared by the sync engine, service and CLI."""

from .async_utils import run_sync, run_sync_limited

__all__ = ["run_sync", "run_sync_limited"]
