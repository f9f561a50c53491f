"""Spoken alert dispatch with a single-flight guarantee.

The manager plays at most one utterance at a time. Requests made while an
utterance is in flight are dropped, never queued, so stale alerts are not
read out after the condition has passed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, TextIO

from pyspeedlimiter.exceptions import SpeechError

_logger = logging.getLogger(__name__)

_DEFAULT_COMMANDS: tuple[str, ...] = ("espeak-ng", "espeak")

# espeak nominal values for rate/pitch/volume == 1.0
_NOMINAL_WPM = 175
_NOMINAL_PITCH = 50
_NOMINAL_AMPLITUDE = 100


@dataclass
class SpeechState:
    is_speaking: bool = False


class SpeechBackend(Protocol):
    async def speak(self, text: str, *, rate: float, pitch: float, volume: float) -> None: ...


class CommandSpeechBackend:
    """Speak through an espeak-compatible command line tool."""

    def __init__(self, command: str) -> None:
        self.command = command

    def build_args(self, text: str, *, rate: float, pitch: float, volume: float) -> list[str]:
        words_per_minute = max(80, int(round(_NOMINAL_WPM * rate)))
        pitch_value = max(0, min(99, int(round(_NOMINAL_PITCH * pitch))))
        amplitude = max(0, min(200, int(round(_NOMINAL_AMPLITUDE * volume))))
        return [
            self.command,
            "-s",
            str(words_per_minute),
            "-p",
            str(pitch_value),
            "-a",
            str(amplitude),
            "--",
            text,
        ]

    async def speak(self, text: str, *, rate: float, pitch: float, volume: float) -> None:
        args = self.build_args(text, rate=rate, pitch=pitch, volume=volume)
        _logger.debug("Speaking via %s: %s", self.command, text)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SpeechError(f"Could not start {self.command}: {exc}") from exc

        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise SpeechError(f"{self.command} exited with {proc.returncode}: {detail[:200]}")


class NotificationSpeechBackend:
    """Fallback when no speech capability exists: a blocking console notice."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    async def speak(self, text: str, *, rate: float, pitch: float, volume: float) -> None:
        self.notify(text)

    def notify(self, text: str) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        print(f"[ALERT] {text}", file=stream, flush=True)
        _logger.warning("Alert: %s", text)


def create_speech_backend(command: str | None = None) -> SpeechBackend:
    """Pick the speech command on ``PATH``, or the console notification fallback."""
    candidates = (command,) if command else _DEFAULT_COMMANDS
    for candidate in candidates:
        resolved = shutil.which(candidate)
        if resolved:
            _logger.debug("Using speech command %s", resolved)
            return CommandSpeechBackend(resolved)
    _logger.info("No speech command found (%s); alerts use console notifications", ", ".join(candidates))
    return NotificationSpeechBackend()


class SpeechAlertManager:
    """Fire-and-forget utterances, one at a time."""

    def __init__(
        self,
        backend: SpeechBackend | None = None,
        *,
        rate: float = 1.0,
        pitch: float = 1.0,
        volume: float = 1.0,
    ) -> None:
        self._backend = backend if backend is not None else create_speech_backend()
        self._rate = rate
        self._pitch = pitch
        self._volume = volume
        self.state = SpeechState()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_speaking(self) -> bool:
        return self.state.is_speaking

    def speak(
        self,
        text: str,
        rate: float | None = None,
        pitch: float | None = None,
        volume: float | None = None,
        *,
        on_done: Callable[[], None] | None = None,
    ) -> bool:
        """Start an utterance; return ``False`` if one is already in flight."""
        if self.state.is_speaking:
            _logger.debug("Dropping utterance while speaking: %s", text)
            return False

        self.state.is_speaking = True
        self._task = asyncio.get_running_loop().create_task(
            self._run(
                text,
                rate=self._rate if rate is None else rate,
                pitch=self._pitch if pitch is None else pitch,
                volume=self._volume if volume is None else volume,
                on_done=on_done,
            )
        )
        return True

    async def _run(
        self,
        text: str,
        *,
        rate: float,
        pitch: float,
        volume: float,
        on_done: Callable[[], None] | None,
    ) -> None:
        try:
            await self._backend.speak(text, rate=rate, pitch=pitch, volume=volume)
        except SpeechError as exc:
            _logger.warning("Speech alert failed: %s", exc)
        except Exception as exc:
            _logger.warning("Speech backend error: %s", exc)
            _logger.debug("Speech backend error detail", exc_info=True)
        finally:
            self.state.is_speaking = False
            if on_done is not None:
                try:
                    on_done()
                except Exception:
                    _logger.debug("Speech completion callback failed", exc_info=True)

    async def wait_idle(self) -> None:
        """Wait for the in-flight utterance, if any, to complete."""
        task = self._task
        if task is not None and not task.done():
            with contextlib.suppress(asyncio.CancelledError):
                await task
