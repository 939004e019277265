"""
Workspace record.

A workspace belongs to one user and carries its editor settings plus the
optional git remote used for synchronisation. ``git_token`` is held in
plaintext on the record and stored encrypted.
"""

from dataclasses import dataclass
from datetime import datetime

from lemma.db.fields import column

DEFAULT_WORKSPACE_NAME = "Main"
DEFAULT_THEME = "dark"
DEFAULT_COMMIT_MSG_TEMPLATE = "${action} ${filename}"

# Settings columns, in the order they are written by settings updates
SETTINGS_COLUMNS = (
    "theme",
    "auto_save",
    "show_hidden_files",
    "git_enabled",
    "git_url",
    "git_user",
    "git_token",
    "git_auto_commit",
    "git_commit_msg_template",
    "git_commit_name",
    "git_commit_email",
)


@dataclass
class Workspace:
    id: int = column(use_default=True, default=0)
    user_id: int = 0
    name: str = ""
    created_at: datetime | None = column(use_default=True, default=None)
    last_opened_file_path: str = ""

    # Editor settings
    theme: str = ""
    auto_save: bool = False
    show_hidden_files: bool = False

    # Git settings
    git_enabled: bool = False
    git_url: str = column(omitempty=True, default="")
    git_user: str = column(omitempty=True, default="")
    git_token: str = column(omitempty=True, encrypted=True, default="", repr=False)
    git_auto_commit: bool = False
    git_commit_msg_template: str = ""
    git_commit_name: str = ""
    git_commit_email: str = ""

    def set_default_settings(self) -> None:
        """Fill in baseline settings. Auto-commit only stays on when git is enabled."""
        if not self.theme:
            self.theme = DEFAULT_THEME
        self.git_auto_commit = self.git_enabled and self.git_auto_commit
        if not self.git_commit_msg_template:
            self.git_commit_msg_template = DEFAULT_COMMIT_MSG_TEMPLATE
