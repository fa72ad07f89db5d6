"""Host platform adapters - User store, tenants and policies."""

from .memory import HostAccount, InMemoryHostPlatform

__all__ = ["HostAccount", "InMemoryHostPlatform"]
