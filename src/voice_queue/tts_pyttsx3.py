"""Speech engine backend powered by ``pyttsx3``."""

from __future__ import annotations

import logging
import math
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Mapping

from .config import settings
from .interfaces import SpeechEngine
from .models import PARAM_VOLUME, EngineStatus, LanguageStatus, QueueMode

_SHUTDOWN_JOIN_SECONDS = 2.0


@dataclass(slots=True, frozen=True)
class VoiceInfo:
    """Snapshot of one installed driver voice."""

    id: str
    name: str
    languages: tuple[str, ...] = field(default_factory=tuple)

    def matches(self, locale: str) -> bool:
        wanted = normalize_locale(locale)
        wanted_language = wanted.split("_", 1)[0]
        candidates = [normalize_locale(language) for language in self.languages]
        if any(candidate == wanted or candidate.split("_", 1)[0] == wanted_language for candidate in candidates):
            return True
        # SAPI voices usually report no languages but carry the locale in their id.
        return not candidates and wanted.replace("_", "-") in self.id.lower()


@dataclass(slots=True)
class _Utterance:
    text: str
    rate: float
    pitch: float
    volume: float
    voice_id: str | None
    generation: int


_STOP = object()


def normalize_locale(value: str | bytes) -> str:
    """Normalize driver language tags such as ``b'\\x05en-us'`` to ``en_us``."""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    cleaned = "".join(ch for ch in value if ch.isalnum() or ch in "-_")
    return cleaned.replace("-", "_").lower()


class Pyttsx3SpeechEngine(SpeechEngine):
    """Local speech engine running a pyttsx3 driver on a dedicated worker thread.

    The driver is created on the worker thread, which reports the outcome through
    the ``initialize`` callback and then plays queued utterances one at a time.
    Rate and pitch are multipliers: rate scales ``base_words_per_minute`` and
    pitch scales the driver's own pitch when it exposes one.
    """

    def __init__(
        self,
        *,
        voice_id: str | None = None,
        base_words_per_minute: int | None = None,
        default_volume: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        try:
            import pyttsx3
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Speech engine backend unavailable. Install extras with: pip install 'voice-queue[voice]'"
            ) from exc
        self._pyttsx3 = pyttsx3
        self._logger = logger or logging.getLogger("voice_queue.tts_pyttsx3")

        self._voice_id = voice_id or settings.voice_id
        self._base_wpm = base_words_per_minute or settings.base_words_per_minute
        self._default_volume = settings.default_volume if default_volume is None else default_volume

        self._lock = threading.Lock()
        self._queue: queue.Queue[object] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._engine = None
        self._voices: tuple[VoiceInfo, ...] = ()
        self._base_pitch: float | None = None
        self._selected_voice: str | None = None
        self._rate = 1.0
        self._pitch = 1.0
        self._generation = 0
        self._closed = False
        self._idle = threading.Event()
        self._idle.set()

    @property
    def voices(self) -> tuple[VoiceInfo, ...]:
        return self._voices

    def initialize(self, on_ready: Callable[[EngineStatus], None]) -> None:
        if self._thread is not None:
            raise RuntimeError("pyttsx3 speech engine is already initialized")
        self._thread = threading.Thread(
            target=self._run,
            args=(on_ready,),
            name="pyttsx3-speech-engine",
            daemon=True,
        )
        self._thread.start()

    def set_language(self, locale: str) -> LanguageStatus:
        if not self._voices:
            return LanguageStatus.LANG_MISSING_DATA

        for voice in self._voices:
            if voice.matches(locale):
                with self._lock:
                    self._selected_voice = voice.id
                self._logger.info("speech_voice_selected", extra={"voice_id": voice.id, "locale": locale})
                return LanguageStatus.OK
        return LanguageStatus.LANG_NOT_SUPPORTED

    def set_speech_rate(self, rate: float) -> None:
        with self._lock:
            self._rate = rate

    def set_pitch(self, pitch: float) -> None:
        with self._lock:
            self._pitch = pitch

    def speak(self, text: str, mode: QueueMode, params: Mapping[str, str] | None = None) -> None:
        volume = self._default_volume
        if params and PARAM_VOLUME in params:
            volume = float(params[PARAM_VOLUME])

        with self._lock:
            if self._closed:
                raise RuntimeError("pyttsx3 speech engine has been shut down")
            if mode == QueueMode.FLUSH:
                self._flush()
            self._idle.clear()
            self._queue.put(
                _Utterance(
                    text=text,
                    rate=self._rate,
                    pitch=self._pitch,
                    volume=volume,
                    voice_id=self._voice_id or self._selected_voice,
                    generation=self._generation,
                )
            )

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until every queued utterance has been played."""
        return self._idle.wait(timeout)

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._flush()
            self._idle.set()
            self._queue.put(_STOP)

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=_SHUTDOWN_JOIN_SECONDS)

    def _flush(self) -> None:
        self._generation += 1
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        if self._engine is not None:
            self._engine.stop()

    def _run(self, on_ready: Callable[[EngineStatus], None]) -> None:
        try:
            engine = self._pyttsx3.init()
            voices = tuple(
                VoiceInfo(
                    id=str(voice.id),
                    name=str(getattr(voice, "name", voice.id)),
                    languages=tuple(getattr(voice, "languages", None) or ()),
                )
                for voice in engine.getProperty("voices") or ()
            )
        except Exception:  # noqa: BLE001 - reported through the init callback.
            self._logger.exception("pyttsx3_init_failed")
            on_ready(EngineStatus.ERROR)
            return

        try:
            self._base_pitch = float(engine.getProperty("pitch"))
        except (KeyError, TypeError, ValueError):
            self._logger.debug("pyttsx3_pitch_unsupported")

        with self._lock:
            self._engine = engine
            self._voices = voices
        self._logger.info("pyttsx3_ready", extra={"voice_count": len(voices)})
        on_ready(EngineStatus.SUCCESS)

        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            if item.generation == self._generation:
                try:
                    self._play(engine, item)
                except Exception:  # noqa: BLE001 - one bad utterance must not stop the worker.
                    self._logger.exception("utterance_playback_failed", extra={"text": item.text})
            with self._lock:
                if self._queue.empty():
                    self._idle.set()

        try:
            engine.stop()
        except Exception:  # noqa: BLE001
            self._logger.exception("pyttsx3_stop_failed")

    def _finite(self, value: float, name: str) -> float:
        # Drivers cannot play nan/inf; use the normal voice (or default volume) instead.
        if math.isfinite(value):
            return value
        fallback = self._default_volume if name == "volume" else 1.0
        self._logger.warning("non_finite_speech_value", extra={"parameter": name, "fallback": fallback})
        return fallback

    def _play(self, engine, item: _Utterance) -> None:
        if item.voice_id:
            engine.setProperty("voice", item.voice_id)
        engine.setProperty("rate", int(self._base_wpm * self._finite(item.rate, "rate")))
        engine.setProperty("volume", max(0.0, min(1.0, self._finite(item.volume, "volume"))))
        if self._base_pitch is not None:
            engine.setProperty("pitch", self._base_pitch * self._finite(item.pitch, "pitch"))
        engine.say(item.text)
        engine.runAndWait()
