"""Shared collision types: modes, tile data, bodies and the collision context."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field

from nexusphys.animation import Hitbox

TILE_SIZE = 16
CHUNK_SIZE = 128
TILE_COUNT = 0x400
CHUNK_COUNT = 0x200
LAYOUT_SIZE = 0x10000
SENSOR_COUNT = 6
PLANE_COUNT = 2
NO_FLOOR = 0x40


class CollisionSide(enum.IntEnum):
    FLOOR = 0
    LWALL = 1
    RWALL = 2
    ROOF = 3


class CollisionMode(enum.IntEnum):
    FLOOR = 0
    LWALL = 1
    ROOF = 2
    RWALL = 3


class Solidity(enum.IntEnum):
    ALL = 0
    TOP = 1
    LRB = 2
    NONE = 3


class ObjectCollisionType(enum.IntEnum):
    TOUCH = 0
    BOX = 1
    PLATFORM = 2


class TileFlip(enum.IntEnum):
    NONE = 0
    X = 1
    Y = 2
    XY = 3


@dataclass
class CollisionSensor:
    """A probe point in 16.16 fixed point or whole pixels, depending on use."""

    x: int = 0
    y: int = 0
    angle: int = 0
    collided: bool = False


def _filled(value: int, size: int) -> list[int]:
    return [value] * size


@dataclass
class CollisionMasks:
    """Per-column height masks and packed angles for one collision plane.

    Angles pack floor, left wall, right wall and roof into bytes 0 to 3.
    """

    floor_masks: list[int] = field(default_factory=lambda: _filled(NO_FLOOR, TILE_COUNT * TILE_SIZE))
    lwall_masks: list[int] = field(default_factory=lambda: _filled(NO_FLOOR, TILE_COUNT * TILE_SIZE))
    rwall_masks: list[int] = field(default_factory=lambda: _filled(-NO_FLOOR, TILE_COUNT * TILE_SIZE))
    roof_masks: list[int] = field(default_factory=lambda: _filled(-NO_FLOOR, TILE_COUNT * TILE_SIZE))
    angles: list[int] = field(default_factory=lambda: _filled(0, TILE_COUNT))


@dataclass
class ChunkTiles:
    """The 8x8 tile contents of every 128x128 chunk."""

    tile_index: list[int] = field(default_factory=lambda: _filled(0, CHUNK_COUNT * 64))
    direction: list[int] = field(default_factory=lambda: _filled(TileFlip.NONE, CHUNK_COUNT * 64))
    collision_flags: list[list[int]] = field(
        default_factory=lambda: [_filled(Solidity.NONE, CHUNK_COUNT * 64) for _ in range(PLANE_COUNT)]
    )


@dataclass
class StageLayout:
    """A foreground layer: a grid of chunk numbers, 256 chunks per row."""

    width: int = 0
    height: int = 0
    tiles: list[int] = field(default_factory=lambda: _filled(0, LAYOUT_SIZE))

    def chunk_at(self, chunk_x: int, chunk_y: int) -> int:
        """Return the chunk number stored at a chunk coordinate."""
        index = chunk_x + (chunk_y << 8)
        if index < 0 or index >= len(self.tiles):
            raise IndexError(f"chunk ({chunk_x}, {chunk_y}) outside layout")
        return self.tiles[index]


@dataclass
class Body:
    """A moving body: a player, or any object with a position."""

    x: int = 0
    y: int = 0
    x_velocity: int = 0
    y_velocity: int = 0
    speed: int = 0
    angle: int = 0
    rotation: int = 0
    gravity: int = 0
    collision_mode: CollisionMode = CollisionMode.FLOOR
    collision_plane: int = 0
    pushing: int = 0
    flailing: list[bool] = field(default_factory=lambda: [False, False, False])
    left: bool = False
    right: bool = False
    direction: int = 0
    hitbox: Hitbox = field(default_factory=Hitbox)


def _sin_table() -> list[int]:
    return [int(math.sin(i * math.pi / 128) * 256) for i in range(256)]


def _cos_table() -> list[int]:
    return [int(math.cos(i * math.pi / 128) * 256) for i in range(256)]


@dataclass
class CollisionContext:
    """Stage data and scratch state shared by the collision routines."""

    stage: StageLayout = field(default_factory=StageLayout)
    chunks: ChunkTiles = field(default_factory=ChunkTiles)
    masks: list[CollisionMasks] = field(default_factory=lambda: [CollisionMasks() for _ in range(PLANE_COUNT)])
    sensors: list[CollisionSensor] = field(default_factory=lambda: [CollisionSensor() for _ in range(SENSOR_COUNT)])
    collision_left: int = 0
    collision_top: int = 0
    collision_right: int = 0
    collision_bottom: int = 0
    check_result: int = 0
    sin256: list[int] = field(default_factory=_sin_table)
    cos256: list[int] = field(default_factory=_cos_table)

    def tile_at(self, x: int, y: int) -> int:
        """Return the chunk-tile index covering pixel (x, y)."""
        if x < 0 or y < 0:
            raise IndexError(f"pixel ({x}, {y}) outside layout")
        chunk = self.stage.chunk_at(x >> 7, y >> 7)
        return (chunk << 6) + ((x & 0x7F) >> 4) + (((y & 0x7F) >> 4) << 3)

    def reset_sensors(self) -> None:
        """Clear the collided flag of every sensor."""
        for sensor in self.sensors:
            sensor.collided = False

    def load_box(self, hitbox: Hitbox, direction: int) -> None:
        """Set the collision box edges from one direction of a hitbox."""
        self.collision_left = hitbox.left[direction]
        self.collision_top = hitbox.top[direction]
        self.collision_right = hitbox.right[direction]
        self.collision_bottom = hitbox.bottom[direction]