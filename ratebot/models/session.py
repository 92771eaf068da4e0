"""Per-user session models."""

from dataclasses import dataclass

# Bump when the stored record layout changes; older records are treated as absent.
SESSION_SCHEMA_VERSION = 1


@dataclass
class SessionRecord:
    """Durable per-user record of the last selected city."""

    user_id: int
    last_city: str | None = None
    version: int = SESSION_SCHEMA_VERSION

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "last_city": self.last_city,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionRecord | None":
        """Parse a stored record; None when it does not match the current schema."""
        if data.get("version") != SESSION_SCHEMA_VERSION:
            return None
        last_city = data.get("last_city")
        if not isinstance(last_city, str) or not last_city:
            return None
        user_id = data.get("user_id")
        if not isinstance(user_id, int):
            return None
        return cls(user_id=user_id, last_city=last_city)
