"""
Queue data model
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .track import Track


@dataclass(frozen=True)
class QueueItem:
    """
    One entry of a player queue

    The same track can appear twice in a queue, so items are addressed by
    `queue_item_id` rather than by the track's uri.
    """

    queue_item_id: str
    track: Track

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> 'QueueItem':
        """Create a QueueItem from a server queue item dictionary"""
        track = Track.from_media(item)
        return cls(queue_item_id=str(item.get('queue_item_id') or track.id), track=track)


@dataclass(frozen=True)
class QueueUpdate:
    """Push event: the items of a queue changed on the server"""

    queue_id: str
    items: Tuple[QueueItem, ...] = ()


def parse_queue_items(payload: Any) -> List[QueueItem]:
    """Decode a queue items response

    The server answers with either a bare list of items or a dictionary
    holding them under `items`.

    Raises:
        ValueError: the payload is neither
    """
    if isinstance(payload, dict):
        payload = payload.get('items', [])
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError(f"expected a list of queue items, got {type(payload).__name__}")
    return [QueueItem.from_dict(item) for item in payload if isinstance(item, dict)]


def format_total_duration(seconds: float) -> str:
    """h:mm:ss when an hour or longer, m:ss otherwise"""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
