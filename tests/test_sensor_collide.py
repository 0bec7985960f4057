import pytest

from nexusphys.collision_types import (
    Body,
    CollisionContext,
    CollisionSensor,
    Solidity,
    TILE_SIZE,
    TileFlip,
)
from nexusphys.sensor_collide import (
    floor_collision,
    lwall_collision,
    roof_collision,
    rwall_collision,
)

TILE_INDEX = 1
EDGE = 8


def make_ctx(tile_x, tile_y, solidity=Solidity.ALL, direction=TileFlip.NONE, plane=0):
    ctx = CollisionContext()
    tile = tile_x + tile_y * 8
    ctx.chunks.tile_index[tile] = TILE_INDEX
    ctx.chunks.direction[tile] = direction
    ctx.chunks.collision_flags[plane][tile] = solidity
    return ctx


def set_mask(ctx, name, value, plane=0):
    masks = getattr(ctx.masks[plane], name)
    start = TILE_INDEX << 4
    masks[start:start + TILE_SIZE] = [value] * TILE_SIZE


def sensor_at(x, y, angle=0):
    return CollisionSensor(x=x << 16, y=y << 16, angle=angle)


def test_floor_hit_snaps_to_surface_and_reads_angle():
    ctx = make_ctx(0, 1)
    set_mask(ctx, "floor_masks", EDGE)
    ctx.masks[0].angles[TILE_INDEX] = 0x10
    sensor = sensor_at(5, 27)
    floor_collision(ctx, Body(), sensor)
    assert sensor.collided
    assert sensor.y == EDGE + TILE_SIZE
    assert sensor.angle == 0x10


def test_floor_above_surface_is_not_collided():
    ctx = make_ctx(0, 1)
    set_mask(ctx, "floor_masks", EDGE)
    sensor = sensor_at(5, 20)
    floor_collision(ctx, Body(), sensor)
    assert not sensor.collided
    assert sensor.y == 20 << 16


def test_floor_full_mask_counts_as_missing():
    ctx = make_ctx(0, 1)
    set_mask(ctx, "floor_masks", TILE_SIZE - 1)
    sensor = sensor_at(5, 31)
    floor_collision(ctx, Body(), sensor)
    assert not sensor.collided
    assert sensor.y == 31 << 16


def test_floor_ignores_lrb_solidity():
    ctx = make_ctx(0, 1, solidity=Solidity.LRB)
    set_mask(ctx, "floor_masks", EDGE)
    sensor = sensor_at(5, 27)
    floor_collision(ctx, Body(), sensor)
    assert not sensor.collided


def test_floor_flip_x_mirrors_angle():
    plain_ctx = make_ctx(0, 1)
    set_mask(plain_ctx, "floor_masks", EDGE)
    plain_ctx.masks[0].angles[TILE_INDEX] = 0x10
    plain = sensor_at(5, 27)
    floor_collision(plain_ctx, Body(), plain)

    flipped_ctx = make_ctx(0, 1, direction=TileFlip.X)
    set_mask(flipped_ctx, "floor_masks", EDGE)
    flipped_ctx.masks[0].angles[TILE_INDEX] = 0x10
    flipped = sensor_at(5, 27)
    floor_collision(flipped_ctx, Body(), flipped)

    assert flipped.collided and plain.collided
    assert flipped.y == plain.y
    assert (plain.angle + flipped.angle) % 0x100 == 0


def test_floor_too_far_resets_to_start():
    ctx = make_ctx(0, 1)
    set_mask(ctx, "floor_masks", 0)
    sensor = sensor_at(5, 47)
    floor_collision(ctx, Body(), sensor)
    assert not sensor.collided
    assert sensor.y == 47 << 16


def test_roof_hit_snaps_and_reads_roof_angle():
    ctx = make_ctx(0, 1)
    set_mask(ctx, "roof_masks", EDGE)
    ctx.masks[0].angles[TILE_INDEX] = 0x40 << 24
    sensor = sensor_at(5, 20)
    roof_collision(ctx, Body(), sensor)
    assert sensor.collided
    assert sensor.y == EDGE + TILE_SIZE
    assert sensor.angle == 0x40


def test_roof_ignores_top_only_tiles():
    ctx = make_ctx(0, 1, solidity=Solidity.TOP)
    set_mask(ctx, "roof_masks", EDGE)
    sensor = sensor_at(5, 20)
    roof_collision(ctx, Body(), sensor)
    assert not sensor.collided
    assert sensor.y == 20 << 16


def test_lwall_hit_snaps_x():
    ctx = make_ctx(1, 0)
    set_mask(ctx, "lwall_masks", EDGE)
    sensor = sensor_at(27, 5, angle=0x33)
    lwall_collision(ctx, Body(), sensor)
    assert sensor.collided
    assert sensor.x == EDGE + TILE_SIZE
    assert sensor.angle == 0x33


def test_lwall_ignores_top_only_tiles():
    ctx = make_ctx(1, 0, solidity=Solidity.TOP)
    set_mask(ctx, "lwall_masks", EDGE)
    sensor = sensor_at(27, 5)
    lwall_collision(ctx, Body(), sensor)
    assert not sensor.collided
    assert sensor.x == 27 << 16


def test_rwall_hit_snaps_x():
    ctx = make_ctx(1, 0)
    set_mask(ctx, "rwall_masks", EDGE)
    sensor = sensor_at(20, 5)
    rwall_collision(ctx, Body(), sensor)
    assert sensor.collided
    assert sensor.x == EDGE + TILE_SIZE


def test_rwall_flip_x_reads_mirrored_left_mask():
    plain_ctx = make_ctx(1, 0)
    set_mask(plain_ctx, "rwall_masks", EDGE)
    plain = sensor_at(20, 5)
    rwall_collision(plain_ctx, Body(), plain)

    flipped_ctx = make_ctx(1, 0, direction=TileFlip.X)
    set_mask(flipped_ctx, "lwall_masks", TILE_SIZE - 1 - EDGE)
    flipped = sensor_at(20, 5)
    rwall_collision(flipped_ctx, Body(), flipped)

    assert plain.collided and flipped.collided
    assert flipped.x == plain.x


@pytest.mark.parametrize("check", [floor_collision, lwall_collision, roof_collision, rwall_collision])
def test_negative_coordinates_are_skipped(check):
    ctx = make_ctx(0, 0)
    sensor = CollisionSensor(x=-40 << 16, y=-40 << 16)
    check(ctx, Body(), sensor)
    assert not sensor.collided
    assert (sensor.x, sensor.y) == (-40 << 16, -40 << 16)


def test_collision_plane_selects_masks():
    ctx = make_ctx(0, 1, plane=1)
    set_mask(ctx, "floor_masks", EDGE, plane=1)
    on_other_plane = sensor_at(5, 27)
    floor_collision(ctx, Body(collision_plane=0), on_other_plane)
    on_plane = sensor_at(5, 27)
    floor_collision(ctx, Body(collision_plane=1), on_plane)
    assert not on_other_plane.collided
    assert on_plane.collided
    assert on_plane.y == EDGE + TILE_SIZE


def test_already_collided_sensor_is_left_alone():
    ctx = make_ctx(0, 1)
    set_mask(ctx, "floor_masks", EDGE)
    sensor = CollisionSensor(x=5 << 16, y=27 << 16, angle=0x22, collided=True)
    floor_collision(ctx, Body(), sensor)
    assert sensor.y == 27 << 16
    assert sensor.angle == 0x22