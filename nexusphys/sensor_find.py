"""Sensor probes that snap a grounded body's sensors onto nearby surfaces.

Each probe looks at up to three tiles along its axis (one tile before the
sensor, the sensor's own tile, one tile after) and stops at the first solid
column it finds. The sensor's coordinate on that axis is then in whole
pixels. When the hit is rejected, the coordinate goes back to the start
value in 16.16 fixed point.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from nexusphys.collision_types import (
    Body,
    CollisionContext,
    CollisionMasks,
    CollisionSensor,
    Solidity,
    TILE_SIZE,
    TileFlip,
)

_TSM1 = TILE_SIZE - 1
_HALF_TILE = TILE_SIZE // 2
_MISSING = 0x40
_ANGLE_TOLERANCE = 0x20
_WALL_ANGLE_TOLERANCE = 0x200
_VALID_FLIPS = frozenset(int(flip) for flip in TileFlip)

# Offsets of the three probed tiles relative to the sensor.
_PROBE_FORWARD = (-TILE_SIZE, 0, TILE_SIZE)
_PROBE_BACKWARD = (TILE_SIZE, 0, -TILE_SIZE)


@dataclass(frozen=True)
class _Surface:
    masks: Callable[[CollisionMasks], list[int]]
    angle_shift: int
    grows_down: bool

    def is_missing(self, value: int) -> bool:
        return value >= _MISSING if self.grows_down else value <= -_MISSING


_FLOOR = _Surface(lambda m: m.floor_masks, 0, True)
_LWALL = _Surface(lambda m: m.lwall_masks, 8, True)
_RWALL = _Surface(lambda m: m.rwall_masks, 16, False)
_ROOF = _Surface(lambda m: m.roof_masks, 24, False)


@dataclass(frozen=True)
class _Cell:
    masks: CollisionMasks
    tile_index: int
    direction: int
    solidity: int
    base_x: int
    base_y: int


def _cell_at(ctx: CollisionContext, body: Body, x: int, y: int) -> Optional[_Cell]:
    if x < 0 or y < 0:
        return None
    tile = ctx.tile_at(x, y)
    plane = body.collision_plane
    return _Cell(
        masks=ctx.masks[plane],
        tile_index=ctx.chunks.tile_index[tile],
        direction=ctx.chunks.direction[tile],
        solidity=ctx.chunks.collision_flags[plane][tile],
        base_x=x - (x & _TSM1),
        base_y=y - (y & _TSM1),
    )


def _resolve(
    cell: _Cell, primary: _Surface, opposite: _Surface, coord: int, horizontal: bool
) -> Optional[tuple[int, int]]:
    """Return the in-tile surface position and angle, or None for no surface.

    ``horizontal`` surfaces (floor, roof) read a column mirrored by an X flip
    and use the opposite mask under a Y flip; walls do the reverse.
    """
    if cell.direction not in _VALID_FLIPS:
        return None
    flip_x = cell.direction in (TileFlip.X, TileFlip.XY)
    flip_y = cell.direction in (TileFlip.Y, TileFlip.XY)
    mirrored, swapped = (flip_x, flip_y) if horizontal else (flip_y, flip_x)

    surface = opposite if swapped else primary
    local = coord & _TSM1
    if mirrored:
        local = _TSM1 - local
    value = surface.masks(cell.masks)[local + (cell.tile_index << 4)]
    if surface.is_missing(value):
        return None

    position = _TSM1 - value if swapped else value
    angle = (cell.masks.angles[cell.tile_index] >> surface.angle_shift) & 0xFF
    if flip_y:
        angle = (-0x80 - angle) & 0xFF
    if flip_x:
        angle = 0x100 - angle
    return position, angle


def _wrap_angle(angle: int) -> int:
    if angle < 0:
        angle += 0x100
    if angle > 0xFF:
        angle -= 0x100
    return angle


def _floor_solid(solidity: int) -> bool:
    return solidity not in (Solidity.LRB, Solidity.NONE)


def _any_solid(solidity: int) -> bool:
    return solidity < Solidity.NONE


def find_floor_position(
    ctx: CollisionContext, body: Body, sensor: CollisionSensor, start_y: int
) -> None:
    """Snap a sensor down or up onto the floor below or around it."""
    angle = sensor.angle
    for offset in _PROBE_FORWARD:
        if sensor.collided:
            continue
        x = sensor.x >> 16
        y = (sensor.y >> 16) + offset
        cell = _cell_at(ctx, body, x, y)
        if cell is None or not _floor_solid(cell.solidity):
            continue
        hit = _resolve(cell, _FLOOR, _ROOF, x, horizontal=True)
        if hit is None:
            continue
        sensor.y = hit[0] + cell.base_y
        sensor.angle = _wrap_angle(hit[1])
        sensor.collided = True

        if all(
            abs(candidate - angle) > _ANGLE_TOLERANCE
            for candidate in (sensor.angle, sensor.angle - 0x100, sensor.angle + 0x100)
        ):
            sensor.y = start_y << 16
            sensor.collided = False
            sensor.angle = angle
            break
        if sensor.y - start_y > _HALF_TILE or sensor.y - start_y < -_HALF_TILE:
            sensor.y = start_y << 16
            sensor.collided = False


def find_lwall_position(
    ctx: CollisionContext, body: Body, sensor: CollisionSensor, start_x: int
) -> None:
    """Snap a sensor onto a wall met while moving right (the wall's left face)."""
    angle = sensor.angle
    for offset in _PROBE_FORWARD:
        if sensor.collided:
            continue
        x = (sensor.x >> 16) + offset
        y = sensor.y >> 16
        cell = _cell_at(ctx, body, x, y)
        if cell is None or not _any_solid(cell.solidity):
            continue
        hit = _resolve(cell, _LWALL, _RWALL, y, horizontal=False)
        if hit is None:
            continue
        sensor.x = hit[0] + cell.base_x
        sensor.angle = _wrap_angle(hit[1])
        sensor.collided = True

        if abs(angle - sensor.angle) > _WALL_ANGLE_TOLERANCE:
            sensor.x = start_x << 16
            sensor.collided = False
            sensor.angle = angle
            break
        if sensor.x - start_x > _HALF_TILE or sensor.x - start_x < -_HALF_TILE:
            sensor.x = start_x << 16
            sensor.collided = False


def find_roof_position(
    ctx: CollisionContext, body: Body, sensor: CollisionSensor, start_y: int
) -> None:
    """Snap a sensor onto the ceiling above or around it."""
    for offset in _PROBE_BACKWARD:
        if sensor.collided:
            continue
        x = sensor.x >> 16
        y = (sensor.y >> 16) + offset
        cell = _cell_at(ctx, body, x, y)
        if cell is None or not _any_solid(cell.solidity):
            continue
        hit = _resolve(cell, _ROOF, _FLOOR, x, horizontal=True)
        if hit is None:
            continue
        sensor.y = hit[0] + cell.base_y
        sensor.angle = _wrap_angle(hit[1])
        sensor.collided = True

        if sensor.y - start_y > _TSM1:
            sensor.y = start_y << 16
            sensor.collided = False
        if sensor.y - start_y < -_TSM1:
            sensor.y = start_y << 16
            sensor.collided = False


def find_rwall_position(
    ctx: CollisionContext, body: Body, sensor: CollisionSensor, start_x: int
) -> None:
    """Snap a sensor onto a wall met while moving left (the wall's right face)."""
    angle = sensor.angle
    for offset in _PROBE_BACKWARD:
        if sensor.collided:
            continue
        x = (sensor.x >> 16) + offset
        y = sensor.y >> 16
        cell = _cell_at(ctx, body, x, y)
        if cell is None or not _any_solid(cell.solidity):
            continue
        hit = _resolve(cell, _RWALL, _LWALL, y, horizontal=False)
        if hit is None:
            continue
        sensor.x = hit[0] + cell.base_x
        sensor.angle = _wrap_angle(hit[1])
        sensor.collided = True

        if abs(sensor.angle - angle) > _ANGLE_TOLERANCE:
            sensor.x = start_x << 16
            sensor.collided = False
            sensor.angle = angle
            break
        if sensor.x - start_x > _HALF_TILE:
            # The engine shifts the wrong way here; the behaviour is kept.
            sensor.x = start_x >> 16
            sensor.collided = False
        elif sensor.x - start_x < -_HALF_TILE:
            sensor.x = start_x << 16
            sensor.collided = False