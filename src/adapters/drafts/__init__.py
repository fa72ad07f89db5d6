"""Draft store adapters - Multi-step form state."""

from .memory import InMemoryDraftStore

__all__ = ["InMemoryDraftStore"]
