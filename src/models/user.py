"""Identity and user models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """Verified caller identity extracted from a bearer token."""

    user_id: str
    is_admin: bool = False
