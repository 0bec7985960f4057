"""Sensor checks that stop an airborne body at the surfaces it runs into.

Each check looks at up to three tiles along its axis and stops at the first
column the sensor has pushed into. On a hit the sensor's coordinate on that
axis becomes the surface position in whole pixels. When the hit is too far
from the start, the coordinate goes back to the start value in 16.16 fixed
point.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

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
_VALID_FLIPS = frozenset(int(flip) for flip in TileFlip)
_PROBE_STEPS = (0, TILE_SIZE, TILE_SIZE * 2)


@dataclass(frozen=True)
class _Surface:
    masks: Callable[[CollisionMasks], list[int]]
    angle_shift: int


_FLOOR = _Surface(lambda m: m.floor_masks, 0)
_LWALL = _Surface(lambda m: m.lwall_masks, 8)
_RWALL = _Surface(lambda m: m.rwall_masks, 16)
_ROOF = _Surface(lambda m: m.roof_masks, 24)


def _floor_solid(solidity: int) -> bool:
    return solidity not in (Solidity.LRB, Solidity.NONE)


def _side_solid(solidity: int) -> bool:
    return solidity != Solidity.TOP and solidity < Solidity.NONE


@dataclass(frozen=True)
class _Check:
    primary: _Surface
    opposite: _Surface
    vertical: bool
    forward: bool
    solid: Callable[[int], bool]
    reject_full: bool
    sets_angle: bool
    upper: int
    lower: int


_FLOOR_CHECK = _Check(
    _FLOOR, _ROOF, vertical=True, forward=True, solid=_floor_solid,
    reject_full=True, sets_angle=True, upper=TILE_SIZE - 2, lower=-(TILE_SIZE + 1),
)
_ROOF_CHECK = _Check(
    _ROOF, _FLOOR, vertical=True, forward=False, solid=_side_solid,
    reject_full=False, sets_angle=True, upper=TILE_SIZE - 2, lower=-(TILE_SIZE - 2),
)
_LWALL_CHECK = _Check(
    _LWALL, _RWALL, vertical=False, forward=True, solid=_side_solid,
    reject_full=False, sets_angle=False, upper=_TSM1, lower=-_TSM1,
)
_RWALL_CHECK = _Check(
    _RWALL, _LWALL, vertical=False, forward=False, solid=_side_solid,
    reject_full=False, sets_angle=False, upper=_TSM1, lower=-_TSM1,
)


def _wrap_angle(angle: int) -> int:
    if angle < 0:
        angle += 0x100
    if angle > 0xFF:
        angle -= 0x100
    return angle


def _collide(ctx: CollisionContext, body: Body, sensor: CollisionSensor, check: _Check) -> None:
    plane = body.collision_plane
    masks = ctx.masks[plane]
    start = (sensor.y if check.vertical else sensor.x) >> 16

    for step in _PROBE_STEPS:
        if sensor.collided:
            break
        offset = step - TILE_SIZE if check.forward else TILE_SIZE - step
        x = sensor.x >> 16
        y = sensor.y >> 16
        if check.vertical:
            y += offset
        else:
            x += offset
        if x < 0 or y < 0:
            continue

        tile = ctx.tile_at(x, y)
        if not check.solid(ctx.chunks.collision_flags[plane][tile]):
            continue
        direction = ctx.chunks.direction[tile]
        if direction not in _VALID_FLIPS:
            continue
        flip_x = direction in (TileFlip.X, TileFlip.XY)
        flip_y = direction in (TileFlip.Y, TileFlip.XY)
        # Floors and roofs mirror their column on an X flip and read the
        # opposite mask on a Y flip; walls do the reverse.
        mirrored, swapped = (flip_x, flip_y) if check.vertical else (flip_y, flip_x)

        along, cross = (y, x) if check.vertical else (x, y)
        local = along & _TSM1
        column = cross & _TSM1
        if mirrored:
            column = _TSM1 - column
        tile_index = ctx.chunks.tile_index[tile]
        surface = check.opposite if swapped else check.primary
        value = surface.masks(masks)[column + (tile_index << 4)]

        if not swapped and check.reject_full and value >= _TSM1:
            continue
        edge = _TSM1 - value if swapped else value
        if check.forward:
            if local <= edge + offset:
                continue
        elif local >= edge + offset:
            continue

        position = edge + along - local
        if check.vertical:
            sensor.y = position
        else:
            sensor.x = position
        sensor.collided = True

        if check.sets_angle:
            angle = (masks.angles[tile_index] >> surface.angle_shift) & 0xFF
            if flip_y:
                angle = (-0x80 - angle) & 0xFF
            if flip_x:
                angle = 0x100 - angle
            sensor.angle = _wrap_angle(angle)

        delta = position - start
        if delta > check.upper or delta < check.lower:
            if check.vertical:
                sensor.y = start << 16
            else:
                sensor.x = start << 16
            sensor.collided = False


def floor_collision(ctx: CollisionContext, body: Body, sensor: CollisionSensor) -> None:
    """Stop a sensor that has sunk into a floor."""
    _collide(ctx, body, sensor, _FLOOR_CHECK)


def lwall_collision(ctx: CollisionContext, body: Body, sensor: CollisionSensor) -> None:
    """Stop a sensor that has moved right into a wall's left face."""
    _collide(ctx, body, sensor, _LWALL_CHECK)


def roof_collision(ctx: CollisionContext, body: Body, sensor: CollisionSensor) -> None:
    """Stop a sensor that has risen into a ceiling."""
    _collide(ctx, body, sensor, _ROOF_CHECK)


def rwall_collision(ctx: CollisionContext, body: Body, sensor: CollisionSensor) -> None:
    """Stop a sensor that has moved left into a wall's right face."""
    _collide(ctx, body, sensor, _RWALL_CHECK)