"""Completion cues, synthesized with numpy and played via QSoundEffect.

Cues are rendered once into WAV files under the app-support directory;
later launches just load them.

Sound names
-----------
- ``focus_complete``  bright arpeggio when a focus segment ends
- ``break_complete``  short ascending chime, back to work
- ``timer_complete``  soft bell for quick-timer runs
"""

from __future__ import annotations

import io
import wave
from pathlib import Path

import numpy as np

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QSoundEffect

from ..settings import APP_SUPPORT_DIR

SOUNDS_DIR = APP_SUPPORT_DIR / "sounds"

SOUND_NAMES = ("focus_complete", "break_complete", "timer_complete")

SAMPLE_RATE = 44100


# ═══════════════════════════════════════════════════════════════════════════
#  WAV SYNTHESIS HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _envelope(length: int, attack: int, release: int, sustain: float = 0.6) -> np.ndarray:
    """Attack / hold / release envelope (durations in samples)."""
    env = np.full(length, sustain, dtype=np.float64)
    a = min(attack, length)
    if a > 0:
        env[:a] = np.linspace(0.0, sustain, a)
    r = min(release, length - a)
    if r > 0:
        env[length - r:] = np.linspace(sustain, 0.0, r)
    return env


def _tone(freq: float, duration_s: float, level: float = 0.5) -> np.ndarray:
    t = np.linspace(0, duration_s, int(SAMPLE_RATE * duration_s), endpoint=False)
    return np.sin(2 * np.pi * freq * t) * level


def _silence(duration_s: float) -> np.ndarray:
    return np.zeros(int(SAMPLE_RATE * duration_s))


def _to_wav_bytes(samples: np.ndarray) -> bytes:
    """Convert a float64 array in [-1, 1] to 16-bit mono PCM WAV bytes."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


def _notes(freqs: list[float], note_s: float, gap_s: float, tail_s: float) -> np.ndarray:
    parts: list[np.ndarray] = []
    for i, freq in enumerate(freqs):
        last = i == len(freqs) - 1
        tone = _tone(freq, tail_s if last else note_s)
        parts.append(tone * _envelope(len(tone), attack=80, release=len(tone) // 2 if last else 200))
        if not last:
            parts.append(_silence(gap_s))
    return np.concatenate(parts)


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND GENERATORS
# ═══════════════════════════════════════════════════════════════════════════


def _generate_focus_complete() -> bytes:
    """C5 → E5 → G5 → C6, last note held."""
    return _to_wav_bytes(_notes([523.25, 659.25, 783.99, 1046.50], 0.10, 0.02, 0.35))


def _generate_break_complete() -> bytes:
    """G4 → C5 → E5, quick and light."""
    samples = _notes([392.00, 523.25, 659.25], 0.12, 0.03, 0.20)
    return _to_wav_bytes(np.concatenate([samples, _silence(0.05)]))


def _generate_timer_complete() -> bytes:
    """A4 bell with an octave overtone and a long decay."""
    duration = 1.0
    combined = _tone(440.0, duration, 0.35) + _tone(880.0, duration, 0.08)
    env = _envelope(
        len(combined),
        attack=int(SAMPLE_RATE * 0.05),
        release=int(SAMPLE_RATE * 0.7),
        sustain=0.8,
    )
    return _to_wav_bytes(combined * env)


_GENERATORS = {
    "focus_complete": _generate_focus_complete,
    "break_complete": _generate_break_complete,
    "timer_complete": _generate_timer_complete,
}


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND MANAGER
# ═══════════════════════════════════════════════════════════════════════════


class SoundManager(QObject):
    """Caches the cue files and plays them.

    Usage::

        mgr = SoundManager(parent=self)
        mgr.set_volume(70)
        mgr.play("focus_complete")
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        sounds_dir: Path | None = None,
    ) -> None:
        super().__init__(parent)
        self._volume = 0.7  # 0.0–1.0
        self._sounds_dir = sounds_dir or SOUNDS_DIR
        self._effects: dict[str, QSoundEffect] = {}

        self._ensure_wav_files()
        self._load_effects()

    def set_volume(self, level: int) -> None:
        """Set volume (0-100).  Updates all loaded effects."""
        self._volume = max(0, min(level, 100)) / 100.0
        for effect in self._effects.values():
            effect.setVolume(self._volume)

    def play(self, name: str) -> None:
        """Play a cue by name.  Unknown names are ignored."""
        effect = self._effects.get(name)
        if effect is not None:
            effect.play()

    @property
    def volume(self) -> int:
        return round(self._volume * 100)

    @property
    def loaded(self) -> tuple[str, ...]:
        return tuple(self._effects)

    def _ensure_wav_files(self) -> None:
        self._sounds_dir.mkdir(parents=True, exist_ok=True)
        for name, generate in _GENERATORS.items():
            path = self._sounds_dir / f"{name}.wav"
            if not path.exists():
                path.write_bytes(generate())

    def _load_effects(self) -> None:
        for name in SOUND_NAMES:
            path = self._sounds_dir / f"{name}.wav"
            if path.exists():
                effect = QSoundEffect(self)
                effect.setSource(QUrl.fromLocalFile(str(path)))
                effect.setVolume(self._volume)
                self._effects[name] = effect
