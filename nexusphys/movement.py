"""Body movement against the stage: airborne tracing and grounded path grip.

Positions and velocities are 16.16 fixed point. The six context sensors
serve as scratch probes. The box edges loaded into the context come from
the body's hitbox.
"""

from __future__ import annotations

from nexusphys.collision_types import Body, CollisionContext, CollisionMode
from nexusphys.sensor_collide import (
    floor_collision,
    lwall_collision,
    roof_collision,
    rwall_collision,
)
from nexusphys.sensor_find import (
    find_floor_position,
    find_lwall_position,
    find_roof_position,
    find_rwall_position,
)

_ONE = 0x10000
_SENSOR_REACH = 0x40000


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


def set_path_grip_sensors(ctx: CollisionContext, body: Body) -> None:
    """Place sensors 0 to 3 around sensor 4 for the body's collision mode."""
    s = ctx.sensors
    hitbox = body.hitbox
    mode = body.collision_mode
    if mode == CollisionMode.FLOOR:
        ctx.load_box(hitbox, 0)
        s[0].y = s[4].y + (ctx.collision_bottom << 16)
        s[1].y = s[0].y
        s[2].y = s[0].y
        s[3].y = s[4].y + _SENSOR_REACH
        s[0].x = s[4].x + ((hitbox.left[1] - 1) << 16)
        s[1].x = s[4].x
        s[2].x = s[4].x + (hitbox.right[1] << 16)
        if body.speed > 0:
            s[3].x = s[4].x + ((ctx.collision_right + 1) << 16)
        else:
            s[3].x = s[4].x + ((ctx.collision_left - 1) << 16)
    elif mode == CollisionMode.LWALL:
        ctx.load_box(hitbox, 2)
        s[0].x = s[4].x + (ctx.collision_right << 16)
        s[1].x = s[0].x
        s[2].x = s[0].x
        s[3].x = s[4].x + _SENSOR_REACH
        s[0].y = s[4].y + ((hitbox.top[3] - 1) << 16)
        s[1].y = s[4].y
        s[2].y = s[4].y + (hitbox.bottom[3] << 16)
        if body.speed > 0:
            s[3].y = s[4].y + (ctx.collision_top << 16)
        else:
            s[3].y = s[4].y + ((ctx.collision_bottom - 1) << 16)
    elif mode == CollisionMode.ROOF:
        ctx.load_box(hitbox, 4)
        s[0].y = s[4].y + ((ctx.collision_top - 1) << 16)
        s[1].y = s[0].y
        s[2].y = s[0].y
        s[3].y = s[4].y - _SENSOR_REACH
        s[0].x = s[4].x + ((hitbox.left[5] - 1) << 16)
        s[1].x = s[4].x
        s[2].x = s[4].x + (hitbox.right[5] << 16)
        if body.speed < 0:
            s[3].x = s[4].x + ((ctx.collision_right + 1) << 16)
        else:
            s[3].x = s[4].x + ((ctx.collision_left - 1) << 16)
    elif mode == CollisionMode.RWALL:
        ctx.load_box(hitbox, 6)
        s[0].x = s[4].x + ((ctx.collision_left - 1) << 16)
        s[1].x = s[0].x
        s[2].x = s[0].x
        s[3].x = s[4].x - _SENSOR_REACH
        s[0].y = s[4].y + ((hitbox.top[7] - 1) << 16)
        s[1].y = s[4].y
        s[2].y = s[4].y + (hitbox.bottom[7] << 16)
        if body.speed > 0:
            s[3].y = s[4].y + (ctx.collision_bottom << 16)
        else:
            s[3].y = s[4].y + ((ctx.collision_top - 1) << 16)


def process_traced_collision(ctx: CollisionContext, body: Body) -> None:
    """Move an airborne body pixel by pixel, stopping at walls, floors and roofs."""
    s = ctx.sensors
    ctx.load_box(body.hitbox, 0)
    left, top = ctx.collision_left, ctx.collision_top
    right, bottom = ctx.collision_right, ctx.collision_bottom

    moving_right = 0
    moving_left = 0
    if body.x_velocity >= 0:
        moving_right = 1
        s[0].y = ((top + 4) << 16) + body.y
        s[1].y = ((bottom - 4) << 16) + body.y
        s[0].x = (right << 16) + body.x
        s[1].x = (right << 16) + body.x
    if body.x_velocity <= 0:
        moving_left = 1
        s[2].y = ((top + 4) << 16) + body.y
        s[3].y = ((bottom - 4) << 16) + body.y
        s[2].x = ((left - 1) << 16) + body.x
        s[3].x = ((left - 1) << 16) + body.x
    s[4].x = ((left + 1) << 16) + body.x
    s[5].x = ((right - 2) << 16) + body.x
    ctx.reset_sensors()

    moving_down = 0
    moving_up = 0
    if body.y_velocity < 0:
        moving_up = 1
        s[4].y = ((top - 1) << 16) + body.y
        s[5].y = ((top - 1) << 16) + body.y
    elif body.y_velocity > 0:
        moving_down = 1
        s[4].y = (bottom << 16) + body.y
        s[5].y = (bottom << 16) + body.y

    x_dif = ((body.x_velocity + body.x) >> 16) - (body.x >> 16)
    y_dif = ((body.y_velocity + body.y) >> 16) - (body.y >> 16)
    abs_x, abs_y = abs(x_dif), abs(y_dif)
    count = 1
    x_vel = body.x_velocity
    y_vel = body.y_velocity
    if abs_x or abs_y:
        if abs_x <= abs_y:
            x_vel = _trunc_div(x_dif << 16, abs_y)
            count = abs_y
            y_vel = _ONE if y_dif >= 0 else -_ONE
        else:
            y_vel = _trunc_div(y_dif << 16, abs_x)
            count = abs_x
            x_vel = _ONE if x_dif >= 0 else -_ONE

    def advance(indices: range, check) -> bool:
        for i in indices:
            if not s[i].collided:
                s[i].x += x_vel
                s[i].y += y_vel
                check(ctx, body, s[i])
        return any(s[i].collided for i in indices)

    while count > 0:
        count -= 1
        if moving_right == 1 and advance(range(0, 2), lwall_collision):
            moving_right = 2
            count = 0
            x_vel = 0
        if moving_left == 1 and advance(range(2, 4), rwall_collision):
            moving_left = 2
            count = 0
            x_vel = 0
        if moving_down == 1:
            if advance(range(4, 6), floor_collision):
                moving_down = 2
                count = 0
        elif moving_up == 1:
            if advance(range(4, 6), roof_collision):
                moving_up = 2
                count = 0

    if moving_right == 2 or moving_left == 2:
        if moving_right == 2:
            body.x_velocity = 0
            body.speed = 0
            if not s[0].collided or not s[1].collided:
                if s[0].collided:
                    body.x = (s[0].x - right) << 16
                elif s[1].collided:
                    body.x = (s[1].x - right) << 16
            elif s[0].x >= s[1].x:
                body.x = (s[1].x - right) << 16
            else:
                body.x = (s[0].x - right) << 16
        if moving_left == 2:
            body.x_velocity = 0
            body.speed = 0
            if not s[2].collided or not s[3].collided:
                if s[2].collided:
                    body.x = (s[2].x - left + 1) << 16
                elif s[3].collided:
                    body.x = (s[3].x - left + 1) << 16
            elif s[2].x <= s[3].x:
                body.x = (s[3].x - left + 1) << 16
            else:
                body.x = (s[2].x - left + 1) << 16
    else:
        body.x += body.x_velocity

    if moving_up < 2 and moving_down < 2:
        body.y += body.y_velocity
        return

    if moving_down == 2:
        body.gravity = 0
        landed = None
        if s[4].collided and s[5].collided:
            landed = s[5] if s[4].y >= s[5].y else s[4]
        elif s[4].collided:
            landed = s[4]
        elif s[5].collided:
            landed = s[5]
        if landed is not None:
            body.y = (landed.y - bottom) << 16
            body.angle = landed.angle
        if 0xA0 < body.angle < 0xE0 and body.collision_mode != CollisionMode.LWALL:
            body.collision_mode = CollisionMode.LWALL
        if 0x20 < body.angle < 0x60 and body.collision_mode != CollisionMode.RWALL:
            body.collision_mode = CollisionMode.RWALL
        body.rotation = body.angle
        body.speed += body.y_velocity * ctx.sin256[body.angle] >> 8
        body.y_velocity = 0

    if moving_up == 2:
        body.y_velocity = 0
        hit = None
        if s[4].collided and s[5].collided:
            hit = s[5] if s[4].y <= s[5].y else s[4]
        elif s[4].collided:
            hit = s[4]
        elif s[5].collided:
            hit = s[5]
        if hit is not None:
            body.y = (hit.y - top + 1) << 16


def _pick(ctx: CollisionContext, better) -> int:
    s = ctx.sensors
    chosen = -1
    for i in range(3):
        if chosen > -1:
            if s[i].collided and better(s[i], s[chosen]):
                chosen = i
        elif s[i].collided:
            chosen = i
    return chosen


def _floor_better(candidate, current) -> bool:
    if candidate.y < current.y:
        return True
    return False


def _spread(ctx: CollisionContext, chosen: int, vertical: bool) -> None:
    s = ctx.sensors
    if vertical:
        s[0].y = s[chosen].y << 16
    else:
        s[0].x = s[chosen].x << 16
    s[0].angle = s[chosen].angle
    for i in (1, 2):
        if vertical:
            s[i].y = s[0].y
        else:
            s[i].x = s[0].x
        s[i].angle = s[0].angle


def _to_walls(ctx: CollisionContext, body: Body) -> None:
    angle = ctx.sensors[0].angle
    if 0xA0 < angle < 0xE0 and body.collision_mode != CollisionMode.LWALL:
        body.collision_mode = CollisionMode.LWALL
    if 0x20 < angle < 0x60 and body.collision_mode != CollisionMode.RWALL:
        body.collision_mode = CollisionMode.RWALL


def _to_floor_or_roof(ctx: CollisionContext, body: Body) -> None:
    angle = ctx.sensors[0].angle
    if (angle < 0x20 or angle > 0xE0) and body.collision_mode != CollisionMode.FLOOR:
        body.collision_mode = CollisionMode.FLOOR
    if 0x60 < angle < 0xA0 and body.collision_mode != CollisionMode.ROOF:
        body.collision_mode = CollisionMode.ROOF


def _grip_step(ctx: CollisionContext, body: Body, cos: int, sin: int) -> int:
    """Run one path-grip step; return the chosen sensor or -1 for none."""
    s = ctx.sensors
    mode = body.collision_mode
    chosen = -1
    if mode == CollisionMode.FLOOR:
        for i in range(3):
            s[i].x += cos
            s[i].y += sin
            find_floor_position(ctx, body, s[i], s[i].y >> 16)
        for i in range(3):
            if chosen > -1:
                if s[i].collided:
                    if s[i].y < s[chosen].y:
                        chosen = i
                    if s[i].y == s[chosen].y and (s[i].angle < 0x08 or s[i].angle > 0xF8):
                        chosen = i
            elif s[i].collided:
                chosen = i
        if chosen > -1:
            _spread(ctx, chosen, vertical=True)
            s[3].y = s[0].y - _SENSOR_REACH
            s[3].angle = s[0].angle
            s[4].x = s[1].x
            s[4].y = s[0].y - (ctx.collision_bottom << 16)
        s[3].x += cos
        if body.speed > 0:
            lwall_collision(ctx, body, s[3])
        if body.speed < 0:
            rwall_collision(ctx, body, s[3])
        _to_walls(ctx, body)
    elif mode == CollisionMode.LWALL:
        for i in range(3):
            s[i].x += cos
            s[i].y += sin
            find_lwall_position(ctx, body, s[i], s[i].x >> 16)
        chosen = _pick(ctx, lambda a, b: a.x < b.x)
        if chosen > -1:
            _spread(ctx, chosen, vertical=False)
            s[4].y = s[1].y
            s[4].x = s[1].x - (ctx.collision_right << 16)
        _to_floor_or_roof(ctx, body)
    elif mode == CollisionMode.ROOF:
        for i in range(3):
            s[i].x += cos
            s[i].y += sin
            find_roof_position(ctx, body, s[i], s[i].y >> 16)
        chosen = _pick(ctx, lambda a, b: a.y > b.y)
        if chosen > -1:
            _spread(ctx, chosen, vertical=True)
            s[3].y = s[0].y + _SENSOR_REACH
            s[3].angle = s[0].angle
            s[4].x = s[1].x
            s[4].y = s[0].y - ((ctx.collision_top - 1) << 16)
        s[3].x += cos
        if body.speed > 0:
            rwall_collision(ctx, body, s[3])
        if body.speed < 0:
            lwall_collision(ctx, body, s[3])
        _to_walls(ctx, body)
    elif mode == CollisionMode.RWALL:
        for i in range(3):
            s[i].x += cos
            s[i].y += sin
            find_rwall_position(ctx, body, s[i], s[i].x >> 16)
        chosen = _pick(ctx, lambda a, b: a.x > b.x)
        if chosen > -1:
            _spread(ctx, chosen, vertical=False)
            s[4].y = s[1].y
            s[4].x = s[1].x - ((ctx.collision_left - 1) << 16)
        _to_floor_or_roof(ctx, body)
    return chosen


def _fall_off(ctx: CollisionContext, body: Body) -> None:
    body.gravity = 1
    body.collision_mode = CollisionMode.FLOOR
    body.x_velocity = ctx.cos256[body.angle] * body.speed >> 8
    body.y_velocity = ctx.sin256[body.angle] * body.speed >> 8
    body.speed = body.x_velocity
    body.angle = 0


def _detach(body: Body) -> None:
    body.gravity = 1
    body.angle = 0
    body.collision_mode = CollisionMode.FLOOR
    body.speed = body.x_velocity


def _blocked_x(ctx: CollisionContext, body: Body) -> None:
    wall = ctx.sensors[3]
    if body.speed > 0:
        body.x = (wall.x - ctx.collision_right) << 16
    if body.speed < 0:
        body.x = (wall.x - ctx.collision_left + 1) << 16
    body.speed = 0


def _push(ctx: CollisionContext, body: Body) -> None:
    _blocked_x(ctx, body)
    if (body.left or body.right) and body.pushing < 2:
        body.pushing += 1


def process_path_grip(ctx: CollisionContext, body: Body) -> None:
    """Move a grounded body along the surface it stands on."""
    s = ctx.sensors
    s[4].x = body.x
    s[4].y = body.y
    for sensor in s:
        sensor.angle = body.angle
        sensor.collided = False
    set_path_grip_sensors(ctx, body)

    abs_speed = abs(body.speed)
    check_dist = abs_speed >> 18
    abs_speed &= 0x3FFFF
    start_mode = body.collision_mode

    while check_dist > -1:
        if check_dist >= 1:
            cos = ctx.cos256[body.angle] << 10
            sin = ctx.sin256[body.angle] << 10
            check_dist -= 1
        else:
            cos = abs_speed * ctx.cos256[body.angle] >> 8
            sin = abs_speed * ctx.sin256[body.angle] >> 8
            check_dist = -1
        if body.speed < 0:
            cos = -cos
            sin = -sin

        for i in range(3):
            s[i].collided = False
        s[4].x += cos
        s[4].y += sin

        chosen = _grip_step(ctx, body, cos, sin)
        if chosen <= -1:
            check_dist = -1
        else:
            body.angle = s[0].angle

        if not s[3].collided:
            set_path_grip_sensors(ctx, body)
        else:
            check_dist = -2

    grounded = s[0].collided or s[1].collided or s[2].collided
    if start_mode == CollisionMode.FLOOR:
        if grounded:
            body.angle = s[0].angle
            body.rotation = body.angle
            body.flailing = [s[0].collided, s[1].collided, s[2].collided]
            if not s[3].collided:
                body.pushing = 0
                body.x = s[4].x
            else:
                _push(ctx, body)
            body.y = s[4].y
        else:
            _fall_off(ctx, body)
            if not s[3].collided:
                body.pushing = 0
                body.x += body.x_velocity
            else:
                _push(ctx, body)
            body.y += body.y_velocity
    elif start_mode == CollisionMode.LWALL:
        if not grounded:
            _fall_off(ctx, body)
        elif body.speed >= 0x20000 or body.speed <= -1:
            body.angle = s[0].angle
            body.rotation = body.angle
        else:
            _detach(body)
        body.x = s[4].x
        body.y = s[4].y
    elif start_mode == CollisionMode.ROOF:
        if not grounded:
            _fall_off(ctx, body)
        elif body.speed <= -0x20000 or body.speed >= 0x20000:
            body.angle = s[0].angle
            body.rotation = body.angle
        else:
            _detach(body)
        if not s[3].collided:
            body.x = s[4].x
        else:
            _blocked_x(ctx, body)
        body.y = s[4].y
    elif start_mode == CollisionMode.RWALL:
        if not grounded:
            _fall_off(ctx, body)
        elif body.speed <= -0x20000 or body.speed >= 1:
            body.angle = s[0].angle
            body.rotation = body.angle
        else:
            _detach(body)
        body.x = s[4].x
        body.y = s[4].y


def process_player_tile_collisions(ctx: CollisionContext, body: Body) -> None:
    """Run tile collision for a body: traced when airborne, path grip otherwise."""
    body.flailing = [False, False, False]
    ctx.check_result = 0
    if body.gravity == 1:
        process_traced_collision(ctx, body)
    else:
        process_path_grip(ctx, body)