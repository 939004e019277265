"""User record."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from lemma.db.fields import column


class UserRole(StrEnum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


@dataclass
class User:
    """A user account. ``last_workspace_id`` points at the most recently used workspace."""

    id: int = column(use_default=True, default=0)
    email: str = ""
    display_name: str = ""
    password_hash: str = column(default="", repr=False)
    role: UserRole = UserRole.VIEWER
    created_at: datetime | None = column(use_default=True, default=None)
    last_workspace_id: int | None = None
