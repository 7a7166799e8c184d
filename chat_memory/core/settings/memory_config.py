"""Conversational memory policy configuration."""

from datetime import timedelta

from pydantic import BaseModel


class MemoryConfig(BaseModel, frozen=True):
    """Retention, expiry and generation limits for chat sessions."""

    default_context_window: int
    session_ttl_days: int
    store_timeout_seconds: float | None
    generate_rate_limit: str
    max_variants: int

    @property
    def session_ttl(self) -> timedelta:
        """Lifetime granted to a session on every write."""
        return timedelta(days=self.session_ttl_days)
