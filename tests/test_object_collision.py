import pytest

from nexusphys.animation import Hitbox
from nexusphys.collision_types import Body, CollisionContext, CollisionMode, Solidity, TileFlip
from nexusphys.object_collision import (
    box_collision,
    object_floor_collision,
    object_floor_grip,
    platform_collision,
    touch_collision,
)

FLOOR_ROW = 4  # floor tiles cover pixel rows 64..79 in every chunk


def make_ctx(direction=TileFlip.NONE):
    ctx = CollisionContext()
    ctx.stage.width = 4
    ctx.stage.height = 4
    for tile_x in range(8):
        tile = tile_x + (FLOOR_ROW << 3)
        ctx.chunks.tile_index[tile] = 1
        ctx.chunks.direction[tile] = direction
        ctx.chunks.collision_flags[0][tile] = Solidity.ALL
    for column in range(16):
        ctx.masks[0].floor_masks[16 + column] = 0
        ctx.masks[0].roof_masks[16 + column] = 15
    return ctx


def make_body(x, y, **kwargs):
    hitbox = Hitbox(left=[-10] * 8, top=[-20] * 8, right=[10] * 8, bottom=[20] * 8)
    return Body(x=x << 16, y=y << 16, hitbox=hitbox, **kwargs)


def test_touch_overlap():
    ctx = CollisionContext()
    body = make_body(100, 100)
    assert touch_collision(ctx, body, 95, 85, 120, 130) == 1
    assert ctx.check_result == 1
    assert ctx.collision_left == 100 - 10
    assert ctx.collision_bottom == 100 + 20


def test_touch_no_overlap():
    ctx = CollisionContext()
    body = make_body(100, 100)
    assert touch_collision(ctx, body, 200, 200, 220, 220) == 0


def test_platform_landing():
    ctx = CollisionContext()
    body = make_body(100, 100, y_velocity=0x100, gravity=1)
    top = 120 << 16
    result = platform_collision(ctx, body, 80 << 16, top, 130 << 16, 130 << 16)
    assert result == 1
    assert body.y == top - (20 << 16)
    assert body.gravity == 0
    assert body.y_velocity == 0
    assert body.flailing == [True, True, True]


def test_platform_ignored_when_rising():
    ctx = CollisionContext()
    body = make_body(100, 100, y_velocity=-0x100, gravity=1)
    result = platform_collision(ctx, body, 80 << 16, 120 << 16, 130 << 16, 130 << 16)
    assert result == 0
    assert body.y == 100 << 16
    assert body.gravity == 1


def test_box_land_on_top():
    ctx = CollisionContext()
    body = make_body(100, 100, y_velocity=0x20000, gravity=1)
    top = 119 << 16
    result = box_collision(ctx, body, 80 << 16, top, 130 << 16, 200 << 16)
    assert result == 1
    assert body.y == top - (20 << 16)
    assert body.gravity == 0
    assert body.y_velocity == 0


def test_box_left_side():
    ctx = CollisionContext()
    body = make_body(100, 100, x_velocity=0x40000, speed=0x40000)
    left = 108 << 16
    result = box_collision(ctx, body, left, 90 << 16, 200 << 16, 150 << 16)
    assert result == 2
    assert body.x == left - (10 << 16)
    assert body.pushing == 2
    assert body.x_velocity == 0
    assert body.speed == 0


def test_box_right_side():
    ctx = CollisionContext()
    body = make_body(100, 100, x_velocity=-0x40000, direction=TileFlip.X)
    right = 92 << 16
    result = box_collision(ctx, body, 0, 90 << 16, right, 150 << 16)
    assert result == 3
    assert body.x == right + (10 << 16)
    assert body.pushing == 2
    assert body.x_velocity == 0


def test_box_underside():
    ctx = CollisionContext()
    body = make_body(100, 100, y_velocity=-0x20000, gravity=1)
    bottom = 81 << 16
    result = box_collision(ctx, body, 80 << 16, 0, 130 << 16, bottom)
    assert result == 4
    assert body.y == bottom + (20 << 16)
    assert body.y_velocity == 0


def test_box_no_contact_leaves_body():
    ctx = CollisionContext()
    body = make_body(100, 100, x_velocity=0x10000, y_velocity=0x10000, gravity=1)
    result = box_collision(ctx, body, 500 << 16, 500 << 16, 600 << 16, 600 << 16)
    assert result == 0
    assert (body.x, body.y) == (100 << 16, 100 << 16)


def test_wall_mode_landing_stops_motion():
    ctx = CollisionContext()
    body = make_body(100, 100, y_velocity=0x100, x_velocity=0x50, speed=0x50,
                     collision_mode=CollisionMode.LWALL)
    platform_collision(ctx, body, 80 << 16, 120 << 16, 130 << 16, 130 << 16)
    assert body.x_velocity == 0
    assert body.speed == 0


@pytest.mark.parametrize("direction", [TileFlip.NONE, TileFlip.X, TileFlip.Y, TileFlip.XY])
def test_object_floor_collision_snaps_to_tile_top(direction):
    ctx = make_ctx(direction)
    entity = Body(x=20 << 16, y=70 << 16)
    assert object_floor_collision(ctx, entity, 0, 0, 0) == 1
    assert entity.y == (FLOOR_ROW * 16) << 16


def test_object_floor_collision_with_offset():
    ctx = make_ctx()
    entity = Body(x=20 << 16, y=60 << 16)
    assert object_floor_collision(ctx, entity, 0, 10, 0) == 1
    assert entity.y == (FLOOR_ROW * 16 - 10) << 16


def test_object_floor_collision_in_air():
    ctx = make_ctx()
    entity = Body(x=20 << 16, y=50 << 16)
    assert object_floor_collision(ctx, entity, 0, 0, 0) == 0
    assert entity.y == 50 << 16


def test_object_floor_collision_outside_stage():
    ctx = make_ctx()
    entity = Body(x=0, y=70 << 16)
    assert object_floor_collision(ctx, entity, 0, 0, 0) == 0
    assert entity.y == 70 << 16


def test_object_floor_grip_pulls_down():
    ctx = make_ctx()
    entity = Body(x=20 << 16, y=60 << 16)
    assert object_floor_grip(ctx, entity, 0, 0, 0) == 1
    assert entity.y == (FLOOR_ROW * 16) << 16


def test_object_floor_grip_offset():
    ctx = make_ctx()
    entity = Body(x=20 << 16, y=50 << 16)
    assert object_floor_grip(ctx, entity, 0, 10, 0) == 1
    assert entity.y == (FLOOR_ROW * 16 - 10) << 16


def test_object_floor_grip_no_floor():
    ctx = make_ctx()
    entity = Body(x=20 << 16, y=100 << 16)
    assert object_floor_grip(ctx, entity, 0, 0, 0) == 0
    assert entity.y == 100 << 16