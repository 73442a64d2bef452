"""
Core data types. No behavior, just shapes.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import hashlib


def author_hash(author_id) -> str:
    """One-way hash of an upstream author id. Key for the users table."""
    return hashlib.sha256(str(author_id).encode()).hexdigest()


@dataclass
class Record:
    """A single contribution from the Detik feed."""
    contribution_id: int
    update_ts: int          # seconds since epoch, drives the age cutoff
    create_ts: int          # seconds since epoch, canonical report time
    text: str
    title: str
    url: str
    longitude: float
    latitude: float
    author_id: str
    photo_url: str | None = None

    @classmethod
    def from_json(cls, raw: dict) -> "Record":
        """
        Build a Record from one element of the feed's `result` array.
        Raises ValueError if a required field is missing or mistyped.
        """
        try:
            # no location block means no usable location, same as 0/0
            geo = (raw.get("location") or {}).get("geospatial") or {}
            files = raw.get("files") or {}
            return cls(
                contribution_id=int(raw["contributionId"]),
                update_ts=int(raw["date"]["update"]["sec"]),
                create_ts=int(raw["date"]["create"]["sec"]),
                text=raw.get("text") or "",
                title=raw.get("title") or "",
                url=raw.get("url") or "",
                longitude=float(geo.get("longitude") or 0),
                latitude=float(geo.get("latitude") or 0),
                author_id=str(raw["user"]["creator"]["id"]),
                photo_url=files.get("photo") or None,
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ValueError(f"Malformed result: {e!r}") from e

    @property
    def has_location(self) -> bool:
        """The feed sends 0/0 when there is no usable location."""
        return not (self.longitude == 0 and self.latitude == 0)

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.create_ts, tz=timezone.utc)

    def __repr__(self) -> str:
        return f"Record({self.contribution_id}, {self.title[:50]})"
