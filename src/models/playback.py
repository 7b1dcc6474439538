"""
Playback data models

PlaybackSnapshot is the server's authoritative view of a player. Snapshots
are never mutated; a new one replaces the old one on every push event.
"""

from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from models.track import Track, parse_seconds


class PlaybackStatus(Enum):
    """Playback status"""
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"

    @classmethod
    def parse(cls, value: Any) -> "PlaybackStatus":
        text = str(value or "").lower()
        if text == "playing":
            return cls.PLAYING
        if text == "paused":
            return cls.PAUSED
        return cls.STOPPED


class RepeatMode(Enum):
    """Queue repeat mode"""
    OFF = "off"
    ALL = "all"
    ONE = "one"

    @classmethod
    def parse(cls, value: Any) -> "RepeatMode":
        try:
            return cls(str(value or "off").lower())
        except ValueError:
            return cls.OFF

    def next(self) -> "RepeatMode":
        """off -> all -> one -> off"""
        order = [RepeatMode.OFF, RepeatMode.ALL, RepeatMode.ONE]
        return order[(order.index(self) + 1) % len(order)]


class PlaybackField(Enum):
    """Fields the user can edit optimistically"""
    VOLUME = "volume"
    POSITION = "position"
    SHUFFLE = "shuffle"
    REPEAT = "repeat"
    FAVORITE = "favorite"


class EditOutcome(Enum):
    """How a submitted edit ended"""
    DISPATCHED = "dispatched"    # sent upstream and acknowledged
    SUPERSEDED = "superseded"    # replaced by a newer edit before dispatch
    DROPPED = "dropped"          # target track changed before dispatch
    CONFIRMED = "confirmed"      # server reported the value before dispatch


DEFAULT_VOLUME = 50.0


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Immutable view of a player's now-playing state"""

    player_id: str = ""
    track_id: Optional[str] = None
    title: str = ""
    artist: str = ""
    album: str = ""
    artwork_url: Optional[str] = None
    duration: float = 0.0
    position: float = 0.0
    status: PlaybackStatus = PlaybackStatus.STOPPED
    volume: float = DEFAULT_VOLUME
    shuffle: bool = False
    repeat: RepeatMode = RepeatMode.OFF
    favorite: bool = False

    @property
    def track(self) -> Optional[Track]:
        if self.track_id is None:
            return None
        return Track(
            id=self.track_id,
            title=self.title,
            artist=self.artist,
            album=self.album,
            duration=self.duration,
            artwork_url=self.artwork_url,
        )

    @property
    def is_playing(self) -> bool:
        return self.status == PlaybackStatus.PLAYING

    def value_of(self, playback_field: PlaybackField) -> Any:
        return getattr(self, playback_field.value)

    def with_field(self, playback_field: PlaybackField, value: Any) -> "PlaybackSnapshot":
        """Return a copy with one editable field replaced"""
        return replace(self, **{playback_field.value: value})

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'player_id': self.player_id,
            'current_media': self.track.to_dict() if self.track else None,
            'state': self.status.value,
            'elapsed_time': self.position,
            'volume_level': self.volume,
            'shuffle': self.shuffle,
            'repeat': self.repeat.value,
            'favorite': self.favorite,
        }

    @classmethod
    def from_player_data(cls, data: Dict[str, Any]) -> "PlaybackSnapshot":
        """
        Decode a player payload from the server.

        Shuffle and repeat may be reported at the top level or under
        `queue_settings`; a missing `volume_level` means 50.
        """
        queue_settings = data.get('queue_settings')
        if not isinstance(queue_settings, dict):
            queue_settings = {}

        media = data.get('current_media')
        track = Track.from_media(media) if isinstance(media, dict) else None

        shuffle = data.get('shuffle')
        if not isinstance(shuffle, bool):
            shuffle = queue_settings.get('shuffle')
        repeat = data.get('repeat')
        if not isinstance(repeat, str):
            repeat = queue_settings.get('repeat')

        favorite = data.get('favorite')
        if favorite is None and isinstance(media, dict):
            favorite = media.get('favorite')

        return cls(
            player_id=str(data.get('player_id') or data.get('id') or ''),
            track_id=track.id if track else None,
            title=track.title if track else "",
            artist=track.artist if track else "",
            album=track.album if track else "",
            artwork_url=track.artwork_url if track else None,
            duration=track.duration if track else 0.0,
            position=parse_seconds(data.get('elapsed_time')),
            status=PlaybackStatus.parse(data.get('state')),
            volume=parse_seconds(data.get('volume_level'), DEFAULT_VOLUME),
            shuffle=bool(shuffle) if isinstance(shuffle, bool) else False,
            repeat=RepeatMode.parse(repeat),
            favorite=bool(favorite),
        )


@dataclass
class OptimisticEdit:
    """
    A pending local change to one field

    Tagged with the track it was made against and a per-field sequence
    number. `future` resolves with an EditOutcome or fails with the
    dispatch error.
    """

    field: PlaybackField
    value: Any
    target_track_id: Optional[str]
    sequence: int
    dispatched: bool = False
    future: concurrent.futures.Future = field(
        default_factory=concurrent.futures.Future, repr=False, compare=False
    )

    def resolve(self, outcome: EditOutcome) -> None:
        if not self.future.done():
            self.future.set_result(outcome)

    def fail(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


class PlayerType(Enum):
    PLAYER = "player"
    GROUP = "group"


@dataclass(frozen=True)
class Player:
    """A playback target (device or group) on the server"""

    id: str
    name: str = ""
    is_active: bool = True
    type: PlayerType = PlayerType.PLAYER
    group_child_ids: Tuple[str, ...] = ()
    synced_to: Optional[str] = None

    @property
    def is_group(self) -> bool:
        return self.type == PlayerType.GROUP

    @property
    def is_synced(self) -> bool:
        return self.synced_to is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        """Create Player from a server player dictionary"""
        try:
            player_type = PlayerType(data.get('type', 'player'))
        except ValueError:
            player_type = PlayerType.PLAYER
        childs = data.get('group_childs') or []
        return cls(
            id=str(data.get('player_id') or data.get('id') or ''),
            name=str(data.get('display_name') or data.get('name') or ''),
            is_active=bool(data.get('available', True)),
            type=player_type,
            group_child_ids=tuple(str(c) for c in childs),
            synced_to=data.get('synced_to'),
        )
