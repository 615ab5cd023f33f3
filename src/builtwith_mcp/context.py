"""
Per-invocation credential context.

Every tool call gets its own InvocationContext, passed explicitly down to the
upstream client. Nothing is stored in module globals, thread-locals or
context variables, so concurrent HTTP requests cannot see each other's keys.
"""

from dataclasses import dataclass
from typing import Optional

from .config import Settings


@dataclass(frozen=True)
class InvocationContext:
    """Credential scope for one tool call or one HTTP request."""
    credential: Optional[str] = None
    fallback: Optional[str] = None

    @property
    def resolved_credential(self) -> Optional[str]:
        """Per-invocation credential, else the process-wide fallback, else None."""
        if self.credential:
            return self.credential
        if self.fallback:
            return self.fallback
        return None

    def __repr__(self) -> str:
        # Keys must not end up in logs or tracebacks.
        return (
            f"InvocationContext(credential={'set' if self.credential else None}, "
            f"fallback={'set' if self.fallback else None})"
        )


def with_credential(credential: Optional[str], settings: Settings) -> InvocationContext:
    """Open a fresh context carrying `credential` with the settings' fallback key."""
    return InvocationContext(credential=credential or None, fallback=settings.api_key)
