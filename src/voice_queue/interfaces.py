"""Contracts for speech engines and error observers."""

from typing import Callable, Mapping, Protocol

from .models import EngineStatus, LanguageStatus, QueueMode


class SpeechEngine(Protocol):
    """Asynchronous text-to-speech engine driven by the utterance queue."""

    def initialize(self, on_ready: Callable[[EngineStatus], None]) -> None:
        """Start the engine and invoke ``on_ready`` once when loading finishes."""

    def set_language(self, locale: str) -> LanguageStatus:
        """Select the voice language, e.g. ``en_US``."""

    def set_speech_rate(self, rate: float) -> None:
        """Set the rate multiplier for subsequent utterances."""

    def set_pitch(self, pitch: float) -> None:
        """Set the pitch multiplier for subsequent utterances."""

    def speak(self, text: str, mode: QueueMode, params: Mapping[str, str] | None = None) -> None:
        """Queue ``text`` for playback without waiting for audio to finish."""

    def shutdown(self) -> None:
        """Release engine resources."""


class ErrorListener(Protocol):
    """Receives human-readable messages for every speech error."""

    def on_error(self, message: str) -> None:
        """Handle an error message."""
