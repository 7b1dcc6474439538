"""
Track data model
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import uuid


@dataclass(frozen=True)
class Track:
    """
    Track data model

    Represents the media item currently loaded on a remote player.
    """

    id: str
    title: str = "Unknown Track"
    artist: str = "Unknown Artist"
    album: str = "Unknown Album"
    duration: float = 0.0  # seconds
    artwork_url: Optional[str] = None

    @property
    def duration_str(self) -> str:
        """Formatted duration string (m:ss)"""
        total_seconds = int(self.duration)
        minutes = total_seconds // 60
        seconds = total_seconds % 60
        return f"{minutes}:{seconds:02d}"

    @property
    def display_name(self) -> str:
        """Display name"""
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'uri': self.id,
            'title': self.title,
            'artist': self.artist,
            'album': self.album,
            'duration': self.duration,
            'image_url': self.artwork_url,
        }

    @classmethod
    def from_media(cls, media: Dict[str, Any]) -> 'Track':
        """Create Track from a server media dictionary

        Queue items nest the track under `media_item` or `media`.
        """
        media = media.get('media_item') or media.get('media') or media
        image_url = media.get('image_url')
        return cls(
            id=str(media.get('uri') or media.get('queue_item_id') or uuid.uuid4()),
            title=str(media.get('title') or 'Unknown Track'),
            artist=str(media.get('artist') or 'Unknown Artist'),
            album=str(media.get('album') or 'Unknown Album'),
            duration=parse_seconds(media.get('duration')),
            artwork_url=str(image_url) if image_url else None,
        )


def parse_seconds(value: Any, default: float = 0.0) -> float:
    """Accept int or float seconds; anything else maps to `default`."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default
