"""
On-failure policies.
"""

from __future__ import annotations

from dataclasses import dataclass

@dataclass(frozen=True, slots=True)
class ContinuePolicy:
    """Keep going when the step fails; it is reported, not rolled back."""
    pass

def continue_() -> ContinuePolicy:
    """Continue on failure."""
    return ContinuePolicy()


__all__ = ("ContinuePolicy", "continue_")
