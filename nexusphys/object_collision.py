"""Collision between a body and object boxes, and object floor checks.

Box edges passed to the box and platform checks are 16.16 fixed point;
the touch check takes whole pixels. Each check stores its outcome in the
context's ``check_result`` and returns it as well.
"""

from __future__ import annotations

from typing import Optional

from nexusphys.collision_types import (
    Body,
    CollisionContext,
    CollisionMode,
    Solidity,
    TileFlip,
)

_TILE_MASK = 15
_MISSING = 64
_STEP_ABOVE = 0x20000
_STEP_BELOW = 0x80000

RESULT_NONE = 0
RESULT_TOP = 1
RESULT_LEFT = 2
RESULT_RIGHT = 3
RESULT_BOTTOM = 4

_WALL_MODES = (CollisionMode.LWALL, CollisionMode.RWALL)


def touch_collision(
    ctx: CollisionContext, body: Body, left: int, top: int, right: int, bottom: int
) -> int:
    """Report whether the body's hitbox overlaps a box given in pixels."""
    hitbox = body.hitbox
    base_x = body.x >> 16
    base_y = body.y >> 16
    ctx.collision_left = base_x + hitbox.left[0]
    ctx.collision_top = base_y + hitbox.top[0]
    ctx.collision_right = base_x + hitbox.right[0]
    ctx.collision_bottom = base_y + hitbox.bottom[0]
    ctx.check_result = int(
        ctx.collision_right > left
        and ctx.collision_left < right
        and ctx.collision_bottom > top
        and ctx.collision_top < bottom
    )
    return ctx.check_result


def _land(ctx: CollisionContext, body: Body, top: int) -> None:
    if not body.gravity and body.collision_mode in _WALL_MODES:
        body.x_velocity = 0
        body.speed = 0
    body.y = top - (ctx.collision_bottom << 16)
    body.gravity = 0
    body.y_velocity = 0
    body.angle = 0
    body.rotation = 0
    ctx.check_result = RESULT_TOP


def _box_top(ctx: CollisionContext, body: Body, left: int, top: int, right: int, bottom: int) -> bool:
    s = ctx.sensors
    for sensor in s[:3]:
        sensor.collided = False
    s[0].x = body.x + ((ctx.collision_left + 2) << 16)
    s[1].x = body.x
    s[2].x = body.x + ((ctx.collision_right - 2) << 16)
    feet = body.y + (ctx.collision_bottom << 16)
    for sensor in s[:3]:
        sensor.y = feet
    if body.y_velocity > -1:
        for i, sensor in enumerate(s[:3]):
            if left < sensor.x < right and sensor.y >= top and body.y - body.y_velocity < top:
                sensor.collided = True
                body.flailing[i] = True
    if not any(sensor.collided for sensor in s[:3]):
        return False
    _land(ctx, body, top)
    return True


def _box_bottom(ctx: CollisionContext, body: Body, left: int, top: int, right: int, bottom: int) -> bool:
    s = ctx.sensors
    s[0].collided = False
    s[1].collided = False
    s[0].x = body.x + ((ctx.collision_left + 2) << 16)
    s[1].x = body.x + ((ctx.collision_right - 2) << 16)
    s[0].y = body.y + (ctx.collision_top << 16)
    s[1].y = s[0].y
    for sensor in s[:2]:
        if left < sensor.x < right and sensor.y <= bottom and body.y - body.y_velocity > bottom:
            sensor.collided = True
    if not (s[0].collided or s[1].collided):
        return False
    if body.gravity == 1:
        body.y = bottom - (ctx.collision_top << 16)
    if body.y_velocity < 1:
        body.y_velocity = 0
    ctx.check_result = RESULT_BOTTOM
    return True


def _place_side_sensors(ctx: CollisionContext, body: Body, edge: int) -> None:
    s = ctx.sensors
    s[0].collided = False
    s[1].collided = False
    s[0].x = body.x + (edge << 16)
    s[1].x = s[0].x
    s[0].y = body.y - _STEP_ABOVE
    s[1].y = body.y + _STEP_BELOW


def _box_left(ctx: CollisionContext, body: Body, left: int, top: int, right: int, bottom: int) -> bool:
    s = ctx.sensors
    _place_side_sensors(ctx, body, ctx.collision_right)
    for sensor in s[:2]:
        if sensor.x >= left and body.x - body.x_velocity < left and s[1].y > top and s[0].y < bottom:
            sensor.collided = True
    if not (s[0].collided or s[1].collided):
        return False
    body.x = left - (ctx.collision_right << 16)
    if body.x_velocity > 0:
        if not body.direction:
            body.pushing = 2
        body.x_velocity = 0
        body.speed = 0
    ctx.check_result = RESULT_LEFT
    return True


def _box_right(ctx: CollisionContext, body: Body, left: int, top: int, right: int, bottom: int) -> bool:
    s = ctx.sensors
    _place_side_sensors(ctx, body, ctx.collision_left)
    for sensor in s[:2]:
        if sensor.x <= right and body.x - body.x_velocity > right and s[1].y > top and s[0].y < bottom:
            sensor.collided = True
    if not (s[0].collided or s[1].collided):
        return False
    body.x = right - (ctx.collision_left << 16)
    if body.x_velocity < 0:
        if body.direction == TileFlip.X:
            body.pushing = 2
        body.x_velocity = 0
        body.speed = 0
    ctx.check_result = RESULT_RIGHT
    return True


def box_collision(
    ctx: CollisionContext, body: Body, left: int, top: int, right: int, bottom: int
) -> int:
    """Push the body out of a solid box.

    Returns 1 when landed on top, 2 when stopped at the left side, 3 at the
    right side, 4 when hitting the underside, and 0 for no contact.
    """
    ctx.load_box(body.hitbox, 0)
    ctx.check_result = RESULT_NONE

    if body.collision_mode in (CollisionMode.FLOOR, CollisionMode.ROOF):
        spd = abs(body.x_velocity) if body.x_velocity else abs(body.speed)
    else:
        spd = abs(body.x_velocity)

    if spd <= abs(body.y_velocity):
        checks = (_box_top, _box_bottom, _box_left, _box_right)
    else:
        checks = (_box_left, _box_right, _box_top, _box_bottom)
    for check in checks:
        if check(ctx, body, left, top, right, bottom):
            break
    return ctx.check_result


def platform_collision(
    ctx: CollisionContext, body: Body, left: int, top: int, right: int, bottom: int
) -> int:
    """Land the body on a platform it is falling onto; return 1 on landing."""
    s = ctx.sensors
    ctx.load_box(body.hitbox, 0)
    for sensor in s[:3]:
        sensor.collided = False
    s[0].x = body.x + ((ctx.collision_left + 1) << 16)
    s[1].x = body.x
    s[2].x = body.x + (ctx.collision_right << 16)
    feet = body.y + (ctx.collision_bottom << 16)
    for sensor in s[:3]:
        sensor.y = feet
    ctx.check_result = RESULT_NONE
    for i, sensor in enumerate(s[:3]):
        if left < sensor.x < right and top - 2 < sensor.y < bottom and body.y_velocity >= 0:
            sensor.collided = True
            body.flailing[i] = True

    if not any(sensor.collided for sensor in s[:3]):
        return ctx.check_result
    _land(ctx, body, top)
    return ctx.check_result


def _in_stage(ctx: CollisionContext, x: int, y: int) -> bool:
    return 0 < x < ctx.stage.width << 7 and 0 < y < ctx.stage.height << 7


def _floor_at(ctx: CollisionContext, x: int, y: int, plane: int, grip: bool) -> Optional[int]:
    """Return the floor's pixel y in the tile at (x, y), or None."""
    tile = ctx.tile_at(x, y)
    if ctx.chunks.collision_flags[plane][tile] in (Solidity.LRB, Solidity.NONE):
        return None
    direction = ctx.chunks.direction[tile]
    if direction not in (TileFlip.NONE, TileFlip.X, TileFlip.Y, TileFlip.XY):
        return None
    masks = ctx.masks[plane]
    tile_index = ctx.chunks.tile_index[tile]
    column = x & _TILE_MASK
    if direction in (TileFlip.X, TileFlip.XY):
        column = _TILE_MASK - column
    c = column + (tile_index << 4)
    local = y & _TILE_MASK

    if direction in (TileFlip.NONE, TileFlip.X):
        value = masks.floor_masks[c]
        if value >= _MISSING if grip else local <= value:
            return None
        edge = value
    else:
        value = masks.roof_masks[c]
        edge = _TILE_MASK - value
        if value <= -_MISSING if grip else local <= edge:
            return None
    return edge + y - local


def object_floor_collision(
    ctx: CollisionContext, entity: Body, x_offset: int, y_offset: int, c_path: int
) -> int:
    """Stop an object that has sunk into the floor; return 1 on contact."""
    ctx.check_result = RESULT_NONE
    x = (entity.x >> 16) + x_offset
    y = (entity.y >> 16) + y_offset
    if _in_stage(ctx, x, y):
        floor = _floor_at(ctx, x, y, c_path, grip=False)
        if floor is not None:
            ctx.check_result = 1
            entity.y = (floor - y_offset) << 16
    return ctx.check_result


def object_floor_grip(
    ctx: CollisionContext, entity: Body, x_offset: int, y_offset: int, c_path: int
) -> int:
    """Snap an object onto the floor within a tile of it; return 1 on contact."""
    ctx.check_result = RESULT_NONE
    x = (entity.x >> 16) + x_offset
    origin = (entity.y >> 16) + y_offset
    for y in (origin - 16, origin, origin + 16):
        if ctx.check_result or not _in_stage(ctx, x, y):
            continue
        floor = _floor_at(ctx, x, y, c_path, grip=True)
        if floor is not None:
            entity.y = floor
            ctx.check_result = 1

    if ctx.check_result:
        if abs(entity.y - origin) < 16:
            entity.y = (entity.y - y_offset) << 16
        else:
            entity.y = (origin - y_offset) << 16
            ctx.check_result = RESULT_NONE
    return ctx.check_result