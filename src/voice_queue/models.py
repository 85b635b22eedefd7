from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

DEFAULT_RATE = 1.0
DEFAULT_PITCH = 1.0
DEFAULT_VOLUME = 0.5

# Key used by speech engines for the per-utterance volume parameter.
PARAM_VOLUME = "volume"


class UtteranceSource(str, Enum):
    """Where an utterance came from; only USER text is scanned for directives."""

    USER = "user"
    SYSTEM = "system"


class QueueMode(str, Enum):
    FLUSH = "flush"
    ADD = "add"


class EngineStatus(str, Enum):
    """Outcome reported by a speech engine's one-shot init callback."""

    SUCCESS = "success"
    ERROR = "error"


class LanguageStatus(str, Enum):
    OK = "ok"
    LANG_MISSING_DATA = "lang_missing_data"
    LANG_NOT_SUPPORTED = "lang_not_supported"


class ControllerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class SpeechError(str, Enum):
    """Error conditions reported to listeners instead of being raised."""

    ENGINE_NOT_READY = "engine_not_ready"
    ENGINE_INIT_FAILED = "engine_init_failed"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    ENGINE_CLOSED = "engine_closed"
    ENGINE_FAILURE = "engine_failure"

    @property
    def message(self) -> str:
        return _ERROR_MESSAGES[self]


_ERROR_MESSAGES = {
    SpeechError.ENGINE_NOT_READY: "TTS Not Initialized",
    SpeechError.ENGINE_INIT_FAILED: "Initialization Failed!",
    SpeechError.UNSUPPORTED_LANGUAGE: "This Language is not supported",
    SpeechError.ENGINE_CLOSED: "TTS Closed",
    SpeechError.ENGINE_FAILURE: "Speech engine failure",
}


@dataclass(slots=True, frozen=True)
class SpeechParameters:
    """Rate, pitch and volume applied to the next utterance.

    Values are multipliers around the engine's normal voice (``1.0``) except
    volume, which is a ``0..1`` gain. Values are not clamped.
    """

    rate: float = DEFAULT_RATE
    pitch: float = DEFAULT_PITCH
    volume: float = DEFAULT_VOLUME

    @classmethod
    def defaults(cls) -> SpeechParameters:
        return cls()

    def with_changes(self, **changes: float) -> SpeechParameters:
        return replace(self, **changes)

    def as_engine_params(self) -> dict[str, str]:
        """Render the string mapping passed alongside text to ``SpeechEngine.speak``."""
        return {PARAM_VOLUME: str(self.volume)}


@dataclass(slots=True)
class SubmissionResult:
    """Outcome of a single submit call."""

    accepted: bool
    text: str
    mode: QueueMode
    parameters: SpeechParameters | None = None
    error: SpeechError | None = None

    @classmethod
    def ok(cls, text: str, mode: QueueMode, parameters: SpeechParameters | None = None) -> SubmissionResult:
        return cls(accepted=True, text=text, mode=mode, parameters=parameters)

    @classmethod
    def failed(cls, error: SpeechError, text: str, mode: QueueMode) -> SubmissionResult:
        return cls(accepted=False, text=text, mode=mode, error=error)

    def __bool__(self) -> bool:
        return self.accepted
