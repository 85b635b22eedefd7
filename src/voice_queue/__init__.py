"""Voice output queue driven by spoken speed, pitch and volume directives."""

from .controller import UtteranceQueueController
from .directives import Directive, DirectiveKind, ParameterResolver, resolve_parameters
from .interfaces import ErrorListener, SpeechEngine
from .models import (
    ControllerState,
    EngineStatus,
    LanguageStatus,
    QueueMode,
    SpeechError,
    SpeechParameters,
    SubmissionResult,
    UtteranceSource,
)

__all__ = [
    "ControllerState",
    "Directive",
    "DirectiveKind",
    "EngineStatus",
    "ErrorListener",
    "LanguageStatus",
    "ParameterResolver",
    "QueueMode",
    "SpeechEngine",
    "SpeechError",
    "SpeechParameters",
    "SubmissionResult",
    "UtteranceQueueController",
    "UtteranceSource",
    "resolve_parameters",
]
