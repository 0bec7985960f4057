# nexusphys

This is the game-side core of a retro side-scrolling engine, as a plain Python
library. It uses only the standard library.

## Modules

- `nexusphys.animation`
  - `parse_animation_file(data, player_id, load_sheet=None)` reads the bytes of a
    player animation file. `load_player_animation(path, player_id, load_sheet=None)`
    reads the file from disk first.
  - Both return a `PlayerAnimations` with `sheet_ids`, `animations`
    (`SpriteAnimation` objects holding `SpriteFrame`s) and `hitboxes` (`Hitbox`
    objects with eight directions each).
  - `PlayerAnimations.hitbox_for(animation, frame)` returns the hitbox for one frame.
  - `load_sheet` is an optional callback. For each sprite sheet whose name ends in
    `f`, `p` or `x`, it is called with `"Data/Sprites/" + name` and the sheet's
    graphics slot.
  - A truncated file raises `ValueError`.
- `nexusphys.collision_types`
  - Enums: `CollisionMode`, `CollisionSide`, `Solidity`, `TileFlip` and
    `ObjectCollisionType`.
  - Stage data: `StageLayout`, `ChunkTiles` and `CollisionMasks`.
  - Moving objects: `Body` is a player or object, with 16.16 fixed-point position
    and velocity and a `Hitbox`.
  - `CollisionContext` holds the stage data, two collision planes, six
    `CollisionSensor`s, the current box edges, `check_result` and 256-entry
    sine and cosine tables.
- `nexusphys.sensor_find`
  - Surface-snapping probes for grounded movement: `find_floor_position`,
    `find_lwall_position`, `find_roof_position` and `find_rwall_position`.
- `nexusphys.sensor_collide`
  - Penetration checks for airborne movement: `floor_collision`,
    `lwall_collision`, `roof_collision` and `rwall_collision`.
- `nexusphys.movement`
  - `process_player_tile_collisions(ctx, body)` resets the body's flailing flags
    and `check_result`. It then runs `process_traced_collision` when
    `body.gravity == 1`, and `process_path_grip` otherwise.
  - `set_path_grip_sensors` places the grip sensors for the body's collision mode.
- `nexusphys.object_collision`
  - `touch_collision` checks the body's hitbox against a box whose edges are in
    whole pixels.
  - `box_collision` and `platform_collision` check against boxes whose edges are
    in 16.16 fixed point. `box_collision` returns 1 for top, 2 for left, 3 for
    right, 4 for bottom and 0 for none.
  - `object_floor_collision` and `object_floor_grip` stop or snap an object
    against the floor of a given collision plane.
  - Every check also stores its result in `ctx.check_result`.
- `nexusphys.audio`
  - `AudioEngine` is a software mixer. It has 16 music track slots, 256 sound
    effect slots and 4 channels.
  - `render(sample_count)` returns interleaved signed 16-bit stereo samples at
    44100 Hz.
  - `load_sfx` decodes 8- or 16-bit PCM WAV data. When `encrypted` is true the
    data is first XOR-ed with `0xFF`.
  - `load_global_sfx` reads the sound effect list from game config data. It loads
    each entry through the engine's `read_file` callback and returns the names.
  - The mixing primitives are `mix_into(dst, src, volume, pan)` and
    `clamp_samples(mix)`.
- `nexusphys.debuglog`
  - `DebugLog.log(message, *args)` works only when `enabled` is set. It formats
    the message with `%`, prints it, appends it to `path` (default `log.txt`)
    and returns it.
  - `DevMenu` lists the developer-menu screens.

## Example

```python
import io
import wave

from nexusphys.audio import AudioEngine

buffer = io.BytesIO()
with wave.open(buffer, "wb") as wav:
    wav.setnchannels(2)
    wav.setsampwidth(2)
    wav.setframerate(44100)
    wav.writeframes(b"\x00\x10" * 2000)

engine = AudioEngine()
engine.load_sfx("Jump.wav", 0, buffer.getvalue(), encrypted=False)
engine.play_sfx(0, loop=False)
samples = engine.render(512)  # list of ints, clamped to the 16-bit range
```

World coordinates are 16.16 fixed point, with the pixel in the high 16 bits.
Angles are bytes from 0 to 255.

## What it does not do

This is a library with no command and no window. It does not:

- draw sprites or open an audio device;
- decode Ogg music itself: music comes from the `music_decoder` callback you pass
  to `AudioEngine`, as interleaved stereo samples;
- load stage, tile or mask files: fill `StageLayout`, `ChunkTiles` and
  `CollisionMasks` yourself.

`DevMenu` only names the menu screens. There is no menu logic behind it.

## Installing

```
pip install .
pip install .[test]
pytest
```