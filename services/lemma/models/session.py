"""Login session record."""

from dataclasses import dataclass
from datetime import UTC, datetime

from lemma.db.fields import column

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass
class Session:
    """A refresh-token session. Only visible to lookups until ``expires_at``."""

    id: str = ""
    user_id: int = 0
    refresh_token: str = column(default="", repr=False)
    expires_at: datetime = _EPOCH
    created_at: datetime | None = column(use_default=True, default=None)

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or datetime.now(UTC))
