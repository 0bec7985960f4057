"""Player animation data and the binary animation file reader."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

HITBOX_DIR_COUNT = 8
SHEET_SLOTS = 4
SHEET_BASE_ID = 16
SPRITE_DIRECTORY = "Data/Sprites/"
_SHEET_SUFFIXES = frozenset("fpx")
_HEADER_SIZE = 5

SheetLoader = Callable[[str, int], object]


class RotationFlag(enum.IntEnum):
    """How a sprite animation may be rotated."""

    NONE = 0
    FULL = 1
    DEG45 = 2
    STATIC_FRAMES = 3


@dataclass
class SpriteFrame:
    """One frame of a sprite animation."""

    spr_x: int = 0
    spr_y: int = 0
    width: int = 0
    height: int = 0
    pivot_x: int = 0
    pivot_y: int = 0
    sheet_id: int = 0
    hitbox_id: int = 0


@dataclass
class SpriteAnimation:
    """A sequence of frames played at a given speed."""

    speed: int = 0
    loop_point: int = 0
    rotation_flag: RotationFlag = RotationFlag.NONE
    frames: list[SpriteFrame] = field(default_factory=list)

    @property
    def frame_count(self) -> int:
        return len(self.frames)


def _direction_row() -> list[int]:
    return [0] * HITBOX_DIR_COUNT


@dataclass
class Hitbox:
    """Signed box edges for each of the eight collision directions."""

    left: list[int] = field(default_factory=_direction_row)
    top: list[int] = field(default_factory=_direction_row)
    right: list[int] = field(default_factory=_direction_row)
    bottom: list[int] = field(default_factory=_direction_row)


@dataclass
class PlayerAnimations:
    """Everything read from one player's animation file."""

    player_id: int
    sheet_ids: list[int] = field(default_factory=lambda: [0] * SHEET_SLOTS)
    animations: list[SpriteAnimation] = field(default_factory=list)
    hitboxes: list[Hitbox] = field(default_factory=list)

    def hitbox_for(self, animation: int, frame: int) -> Hitbox:
        """Return the hitbox used by a frame of an animation."""
        sprite_frame = self.animations[animation].frames[frame]
        return self.hitboxes[sprite_frame.hitbox_id]


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0

    def take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise ValueError("truncated animation file")
        chunk = bytes(self._data[self._pos:end])
        self._pos = end
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def sbyte(self) -> int:
        value = self.byte()
        return value - 0x100 if value >= 0x80 else value


def parse_animation_file(
    data: bytes, player_id: int, load_sheet: Optional[SheetLoader] = None
) -> PlayerAnimations:
    """Parse animation file contents for a player.

    ``load_sheet`` is called with the sprite path and graphics slot of each
    sheet whose name ends in a known image suffix.
    """
    reader = _Reader(data)
    reader.take(_HEADER_SIZE)
    result = PlayerAnimations(player_id=player_id)

    for slot in range(SHEET_SLOTS):
        length = reader.byte()
        if not length:
            continue
        name = reader.take(length).decode("latin-1")
        sheet_id = SHEET_BASE_ID + 4 * player_id + slot
        if load_sheet is not None and name[-1] in _SHEET_SUFFIXES:
            load_sheet(SPRITE_DIRECTORY + name, sheet_id)
        result.sheet_ids[slot] = sheet_id

    for _ in range(reader.byte()):
        frame_total = reader.byte()
        animation = SpriteAnimation(speed=reader.byte(), loop_point=reader.byte())
        for _ in range(frame_total):
            sheet_index = reader.byte()
            if sheet_index >= SHEET_SLOTS:
                raise ValueError(f"sheet index {sheet_index} out of range")
            animation.frames.append(
                SpriteFrame(
                    sheet_id=result.sheet_ids[sheet_index],
                    hitbox_id=reader.byte(),
                    spr_x=reader.byte(),
                    spr_y=reader.byte(),
                    width=reader.byte(),
                    height=reader.byte(),
                    pivot_x=reader.sbyte(),
                    pivot_y=reader.sbyte(),
                )
            )
        result.animations.append(animation)

    for _ in range(reader.byte()):
        hitbox = Hitbox()
        for direction in range(HITBOX_DIR_COUNT):
            hitbox.left[direction] = reader.sbyte()
            hitbox.top[direction] = reader.sbyte()
            hitbox.right[direction] = reader.sbyte()
            hitbox.bottom[direction] = reader.sbyte()
        result.hitboxes.append(hitbox)

    return result


def load_player_animation(
    path: str | Path, player_id: int, load_sheet: Optional[SheetLoader] = None
) -> PlayerAnimations:
    """Read and parse a player's animation file from disk."""
    return parse_animation_file(Path(path).read_bytes(), player_id, load_sheet)