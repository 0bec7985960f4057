"""Sound effect and music playback mixed in software into 16-bit stereo output."""

from __future__ import annotations

import enum
import io
import struct
import wave
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from nexusphys.debuglog import DebugLog

TRACK_COUNT = 0x10
SFX_COUNT = 0x100
CHANNEL_COUNT = 4
MAX_VOLUME = 100
MIX_BUFFER_SAMPLES = 256

DEVICE_FREQUENCY = 44100
DEVICE_CHANNELS = 2

SAMPLE_MAX = (1 << 15) - 1
SAMPLE_MIN = -(1 << 15)

MUSIC_DIRECTORY = "Data/Music/"
SFX_DIRECTORY = "Data/SoundFX/"

FileReader = Callable[[str], Optional[bytes]]
MusicDecoder = Callable[[str], Optional[Sequence[int]]]


class MusicStatus(enum.IntEnum):
    STOPPED = 0
    PLAYING = 1
    PAUSED = 2
    LOADING = 3
    READY = 4


@dataclass
class TrackInfo:
    """A music track slot: file path and whether it loops."""

    file_name: str = ""
    loop: bool = False


@dataclass
class SfxInfo:
    """A loaded sound effect, stored as interleaved device-format samples."""

    name: str = ""
    samples: Optional[tuple[int, ...]] = None
    loaded: bool = False

    @property
    def length(self) -> int:
        return len(self.samples) if self.samples is not None else 0


@dataclass
class Channel:
    """A playback channel for one sound effect."""

    sfx_id: int = -1
    samples: Optional[tuple[int, ...]] = None
    position: int = 0
    remaining: int = 0
    loop: bool = False
    pan: int = 0

    def clear(self) -> None:
        self.sfx_id = -1
        self.samples = None
        self.position = 0
        self.remaining = 0
        self.loop = False
        self.pan = 0


@dataclass
class _Music:
    samples: tuple[int, ...] = ()
    position: int = 0
    loop: bool = False
    loaded: bool = False


def _scale(sample: int, volume: int) -> int:
    product = sample * volume
    quotient = abs(product) // MAX_VOLUME
    return quotient if product >= 0 else -quotient


def mix_into(dst: list[int], src: Sequence[int], volume: int, pan: int) -> None:
    """Add ``src`` into ``dst`` at a volume (0-100) and stereo pan (-100 to 100)."""
    if volume == 0:
        return
    volume = min(volume, MAX_VOLUME)
    pan_left = pan_right = 0.0
    if pan < 0:
        pan_right = 1.0 - abs(pan / 100.0)
        pan_left = 1.0
    elif pan > 0:
        pan_left = 1.0 - abs(pan / 100.0)
        pan_right = 1.0
    for i, raw in enumerate(src):
        sample = _scale(raw, volume)
        if pan != 0:
            sample = int(sample * (pan_right if i % 2 else pan_left))
        dst[i] += sample


def clamp_samples(mix: Sequence[int]) -> list[int]:
    """Clamp mixed samples back to the signed 16-bit range."""
    return [max(SAMPLE_MIN, min(SAMPLE_MAX, sample)) for sample in mix]


class _ConfigReader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise ValueError("truncated game config")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def string(self) -> str:
        return self.take(self.byte()).decode("latin-1")


def _decode_wav(data: bytes) -> tuple[int, ...]:
    """Decode PCM WAV data into interleaved stereo 16-bit samples at device rate."""
    try:
        with wave.open(io.BytesIO(data), "rb") as wav:
            channels = wav.getnchannels()
            width = wav.getsampwidth()
            rate = wav.getframerate()
            raw = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError, struct.error) as exc:
        raise ValueError(f"unreadable sound data: {exc}") from exc

    if width == 1:
        values = [(b - 128) << 8 for b in raw]
    elif width == 2:
        count = len(raw) // 2
        values = list(struct.unpack(f"<{count}h", raw[: count * 2]))
    else:
        raise ValueError(f"unsupported sample width {width}")
    if channels < 1:
        raise ValueError("sound data has no channels")

    frames = [values[i:i + channels] for i in range(0, len(values) - channels + 1, channels)]
    stereo = [(f[0], f[0]) if channels == 1 else (f[0], f[1]) for f in frames]

    if rate != DEVICE_FREQUENCY and stereo:
        out_count = len(stereo) * DEVICE_FREQUENCY // rate
        stereo = [stereo[i * rate // DEVICE_FREQUENCY] for i in range(out_count)]

    return tuple(sample for frame in stereo for sample in frame)


class AudioEngine:
    """Software mixer for music tracks and sound effect channels.

    ``read_file`` supplies sound effect file contents by path; ``music_decoder``
    turns a track path into interleaved stereo 16-bit samples at 44100 Hz.
    Either may return None when the file cannot be loaded.
    """

    def __init__(
        self,
        enabled: bool = True,
        read_file: Optional[FileReader] = None,
        music_decoder: Optional[MusicDecoder] = None,
        log: Optional[DebugLog] = None,
    ) -> None:
        self.audio_enabled = enabled
        self.read_file = read_file
        self.music_decoder = music_decoder
        self.log = log if log is not None else DebugLog()
        self.master_volume = MAX_VOLUME
        self.sfx_volume = MAX_VOLUME
        self.bgm_volume = MAX_VOLUME
        self.track_id = -1
        self.track_buffer = -1
        self.music_status = MusicStatus.STOPPED
        self.next_channel_pos = 0
        self.global_sfx_count = 0
        self.stage_sfx_count = 0
        self.tracks = [TrackInfo() for _ in range(TRACK_COUNT)]
        self.sfx = [SfxInfo() for _ in range(SFX_COUNT)]
        self.channels = [Channel() for _ in range(CHANNEL_COUNT)]
        self._music = _Music()
        self.stop_all_sfx()

    # Loading

    def load_global_sfx(self, config_data: bytes) -> list[str]:
        """Read the sound effect list from game config data and load each one."""
        reader = _ConfigReader(config_data)
        for _ in range(3):
            reader.string()
        for _ in range(reader.byte()):
            reader.string()
        for _ in range(reader.byte()):
            reader.string()
            reader.take(4)

        self.global_sfx_count = reader.byte()
        names = []
        for sfx_id in range(self.global_sfx_count):
            name = reader.string()
            names.append(name)
            if self.read_file is None:
                continue
            data = self.read_file(SFX_DIRECTORY + name)
            if data is not None:
                self.load_sfx(name, sfx_id, data, False)

        self.next_channel_pos = 0
        for channel in self.channels:
            channel.sfx_id = -1
        return names

    def load_sfx(self, name: str, sfx_id: int, data: bytes, encrypted: bool) -> None:
        """Decode WAV data into a sound effect slot."""
        if not self.audio_enabled:
            return
        if not 0 <= sfx_id < SFX_COUNT:
            raise IndexError(f"sfx id {sfx_id} out of range")
        raw = bytes(b ^ 0xFF for b in data) if encrypted else bytes(data)
        try:
            samples = _decode_wav(raw)
        except ValueError:
            self.log.log("Unable to read sfx: %s", name)
            raise
        self.sfx[sfx_id] = SfxInfo(name=name, samples=samples, loaded=True)

    # Music

    def set_music_track(self, file_path: str, track_id: int, loop: bool) -> None:
        """Assign a file to a music track slot."""
        if not 0 <= track_id < TRACK_COUNT:
            raise IndexError(f"track id {track_id} out of range")
        self.tracks[track_id] = TrackInfo(MUSIC_DIRECTORY + file_path, loop)

    def play_music(self, track: int) -> bool:
        """Queue a track to start on the next render; return False if impossible."""
        if not self.audio_enabled:
            return False
        if not 0 <= track < TRACK_COUNT:
            self.stop_music()
            self.track_buffer = -1
            return False
        self.track_buffer = track
        self.music_status = MusicStatus.LOADING
        return True

    def stop_music(self) -> None:
        """Stop and unload the current music."""
        self.music_status = MusicStatus.STOPPED
        if self._music.loaded:
            self._music = _Music()

    def set_music_volume(self, volume: int) -> None:
        self.master_volume = max(0, min(MAX_VOLUME, volume))

    def pause_sound(self) -> None:
        if self.music_status == MusicStatus.PLAYING:
            self.music_status = MusicStatus.PAUSED

    def resume_sound(self) -> None:
        if self.music_status == MusicStatus.PAUSED:
            self.music_status = MusicStatus.PLAYING

    # Sound effects

    def _check_sfx(self, sfx: int) -> SfxInfo:
        if not 0 <= sfx < SFX_COUNT:
            raise IndexError(f"sfx id {sfx} out of range")
        return self.sfx[sfx]

    def play_sfx(self, sfx: int, loop: bool) -> None:
        """Start a sound effect, reusing its channel if it is already playing."""
        info = self._check_sfx(sfx)
        channel_id = self.next_channel_pos
        self.next_channel_pos += 1
        for index, channel in enumerate(self.channels):
            if channel.sfx_id == sfx:
                channel_id = index
                break
        channel = self.channels[channel_id]
        channel.sfx_id = sfx
        channel.samples = info.samples
        channel.position = 0
        channel.remaining = info.length
        channel.loop = bool(loop)
        channel.pan = 0
        if self.next_channel_pos == CHANNEL_COUNT:
            self.next_channel_pos = 0

    def stop_sfx(self, sfx: int) -> None:
        """Stop every channel playing a sound effect."""
        for channel in self.channels:
            if channel.sfx_id == sfx:
                channel.clear()

    def stop_all_sfx(self) -> None:
        for channel in self.channels:
            channel.sfx_id = -1

    def set_sfx_attributes(self, sfx: int, loop_count: int, pan: int) -> None:
        """(Re)start a sound effect with a loop setting and pan.

        A ``loop_count`` of -1 keeps the channel's current loop setting.
        """
        info = self._check_sfx(sfx)
        channel = next(
            (c for c in self.channels if c.sfx_id == sfx or c.sfx_id == -1), None
        )
        if channel is None:
            return
        channel.samples = info.samples
        channel.position = 0
        channel.remaining = info.length
        if loop_count != -1:
            channel.loop = bool(loop_count)
        channel.pan = pan
        channel.sfx_id = sfx

    def _release(self, index: int) -> None:
        if 0 <= index < SFX_COUNT and self.sfx[index].loaded:
            self.sfx[index] = SfxInfo()

    def release_global_sfx(self) -> None:
        self.stop_all_sfx()
        for index in range(self.global_sfx_count - 1, -1, -1):
            self._release(index)
        self.global_sfx_count = 0

    def release_stage_sfx(self) -> None:
        top = self.stage_sfx_count + self.global_sfx_count
        for index in range(top, self.global_sfx_count - 1, -1):
            self._release(index)
        self.stage_sfx_count = 0

    def release_audio_device(self) -> None:
        self.stop_music()
        self.stop_all_sfx()
        self.release_stage_sfx()
        self.release_global_sfx()

    # Mixing

    def _load_pending_track(self) -> bool:
        if not 0 <= self.track_buffer < TRACK_COUNT:
            self.stop_music()
            return False
        track = self.tracks[self.track_buffer]
        if not track.file_name:
            self.stop_music()
            return False
        if self._music.loaded:
            self.stop_music()
        samples = self.music_decoder(track.file_name) if self.music_decoder else None
        if samples is not None:
            self._music = _Music(samples=tuple(samples), loop=track.loop, loaded=True)
            self.music_status = MusicStatus.PLAYING
            self.master_volume = MAX_VOLUME
            self.track_id = self.track_buffer
            self.track_buffer = -1
        return True

    def _mix_music(self, mix: list[int]) -> None:
        music = self._music
        if not music.loaded:
            return
        if self.music_status not in (MusicStatus.READY, MusicStatus.PLAYING):
            return
        wanted = len(mix)
        buffer: list[int] = []
        while len(buffer) < wanted:
            if music.position >= len(music.samples):
                if music.loop and music.samples:
                    music.position = 0
                    continue
                self.music_status = MusicStatus.STOPPED
                break
            take = min(wanted - len(buffer), len(music.samples) - music.position)
            buffer.extend(music.samples[music.position:music.position + take])
            music.position += take
        if buffer:
            mix_into(mix, buffer, self.bgm_volume * self.master_volume // MAX_VOLUME, 0)

    def _pull_sfx(self, channel: Channel, wanted: int) -> list[int]:
        buffer: list[int] = []
        while len(buffer) < wanted:
            take = min(channel.remaining, wanted - len(buffer))
            samples = channel.samples or ()
            buffer.extend(samples[channel.position:channel.position + take])
            channel.position += take
            channel.remaining -= take
            if channel.remaining == 0:
                info = self.sfx[channel.sfx_id]
                if channel.loop and info.length > 0:
                    channel.samples = info.samples
                    channel.position = 0
                    channel.remaining = info.length
                else:
                    self.stop_sfx(channel.sfx_id)
                    break
        return buffer

    def render(self, sample_count: int) -> list[int]:
        """Mix and return ``sample_count`` interleaved 16-bit stereo samples."""
        if sample_count < 0:
            raise ValueError("sample count must not be negative")
        if not self.audio_enabled:
            return [0] * sample_count
        if self.music_status == MusicStatus.LOADING and not self._load_pending_track():
            return [0] * sample_count

        output: list[int] = []
        remaining = sample_count
        while remaining:
            todo = min(remaining, MIX_BUFFER_SAMPLES)
            mix = [0] * todo
            self._mix_music(mix)
            for channel in self.channels:
                if channel.sfx_id < 0 or channel.samples is None:
                    continue
                buffer = self._pull_sfx(channel, todo)
                mix_into(mix, buffer, self.sfx_volume, channel.pan)
            output.extend(clamp_samples(mix))
            remaining -= todo
        return output