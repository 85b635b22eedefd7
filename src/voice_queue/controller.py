"""Readiness-gated utterance queue that applies spoken directives to a speech engine."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, InvalidStateError
from typing import Callable

from .config import settings
from .directives import ParameterResolver
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

_WARNING_ERRORS = frozenset({SpeechError.UNSUPPORTED_LANGUAGE})


class UtteranceQueueController:
    """Owns the session's speech parameters and feeds utterances to one engine.

    Errors are never raised from submissions. They are logged, forwarded to the
    registered :class:`ErrorListener` and returned as a failed
    :class:`SubmissionResult`.
    """

    def __init__(
        self,
        engine: SpeechEngine | None = None,
        *,
        resolver: ParameterResolver | None = None,
        listener: ErrorListener | None = None,
        language: str | None = None,
        defaults: SpeechParameters | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._resolver = resolver or ParameterResolver()
        self._listener = listener
        self._language = language or settings.language
        self._defaults = defaults or SpeechParameters(
            rate=settings.default_rate,
            pitch=settings.default_pitch,
            volume=settings.default_volume,
        )
        self._logger = logger or logging.getLogger("voice_queue.controller")

        self._lock = threading.RLock()
        self._parameters = self._defaults
        self._state = ControllerState.UNINITIALIZED
        self._engine: SpeechEngine | None = None
        self._init_result: Future[EngineStatus] | None = None
        self._init_settled = threading.Event()

        if engine is not None:
            self.initialize(engine)

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ControllerState.READY

    @property
    def parameters(self) -> SpeechParameters:
        """Parameters the next USER utterance is resolved against."""
        return self._parameters

    @property
    def language(self) -> str:
        return self._language

    def set_listener(self, listener: ErrorListener | None) -> None:
        """Register the single error listener, replacing any previous one."""
        self._listener = listener

    def initialize(self, engine: SpeechEngine) -> None:
        """Start ``engine`` and become ready when its init callback reports success."""
        with self._lock:
            if self._state == ControllerState.CLOSED:
                self._report(SpeechError.ENGINE_CLOSED)
                return
            if self._engine is not None:
                self._logger.warning("speech_engine_already_initialized")
                return

            result: Future[EngineStatus] = Future()
            result.add_done_callback(self._on_engine_init)
            self._engine = engine
            self._init_result = result

        self._logger.info("speech_engine_initializing", extra={"language": self._language})
        # Engines may fire the callback synchronously, so call outside the lock.
        engine.initialize(self._one_shot(result))

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        """Block until the init callback has been handled; return readiness."""
        if self._init_result is None:
            return False
        self._init_settled.wait(timeout)
        return self.is_ready

    def submit(self, text: str, source: UtteranceSource) -> SubmissionResult:
        """Submit ``text`` through the entry point matching its source."""
        if source == UtteranceSource.USER:
            return self.submit_user(text)
        return self.submit_system(text)

    def submit_user(self, text: str, mode: QueueMode = QueueMode.ADD) -> SubmissionResult:
        """Resolve directives in ``text``, push parameters and enqueue the text."""
        with self._lock:
            error = self._submission_error()
            if error is not None:
                return self._reject(error, text, mode)

            resolved = self._resolver.resolve(text, self._parameters)
            self._parameters = resolved
            try:
                self._engine.set_speech_rate(resolved.rate)
                self._engine.set_pitch(resolved.pitch)
                self._engine.speak(text, mode, resolved.as_engine_params())
            except Exception:  # noqa: BLE001 - engine failures are reported, not raised.
                self._logger.exception("speech_engine_failed", extra={"text": text, "mode": mode.value})
                return self._reject(SpeechError.ENGINE_FAILURE, text, mode)

            self._logger.info(
                "utterance_enqueued",
                extra={
                    "source": UtteranceSource.USER.value,
                    "mode": mode.value,
                    "rate": resolved.rate,
                    "pitch": resolved.pitch,
                    "volume": resolved.volume,
                },
            )
            return SubmissionResult.ok(text, mode, resolved)

    def submit_system(self, text: str) -> SubmissionResult:
        """Speak ``text`` verbatim, interrupting anything queued."""
        mode = QueueMode.FLUSH
        with self._lock:
            error = self._submission_error()
            if error is not None:
                return self._reject(error, text, mode)

            try:
                self._engine.speak(text, mode, None)
            except Exception:  # noqa: BLE001 - engine failures are reported, not raised.
                self._logger.exception("speech_engine_failed", extra={"text": text, "mode": mode.value})
                return self._reject(SpeechError.ENGINE_FAILURE, text, mode)

            self._logger.info(
                "utterance_enqueued",
                extra={"source": UtteranceSource.SYSTEM.value, "mode": mode.value},
            )
            return SubmissionResult.ok(text, mode)

    def shut_down(self) -> None:
        """Release the engine. Safe to call more than once."""
        with self._lock:
            if self._state == ControllerState.CLOSED:
                return
            self._state = ControllerState.CLOSED
            engine = self._engine
            self._init_settled.set()

        if engine is not None:
            engine.shutdown()
        self._logger.info("speech_engine_shutdown")

    def _one_shot(self, result: Future[EngineStatus]) -> Callable[[EngineStatus], None]:
        def on_ready(status: EngineStatus) -> None:
            try:
                result.set_result(EngineStatus(status))
            except InvalidStateError:
                self._logger.warning("speech_engine_init_repeated", extra={"status": str(status)})

        return on_ready

    def _on_engine_init(self, result: Future[EngineStatus]) -> None:
        try:
            with self._lock:
                if self._state == ControllerState.CLOSED:
                    self._logger.info("speech_engine_init_after_shutdown", extra={"status": result.result().value})
                    return
                if result.result() != EngineStatus.SUCCESS:
                    self._report(SpeechError.ENGINE_INIT_FAILED)
                    return

                try:
                    language_status = LanguageStatus(self._engine.set_language(self._language))
                except Exception:  # noqa: BLE001 - treated as a failed initialization.
                    self._logger.exception("speech_engine_language_failed", extra={"language": self._language})
                    self._report(SpeechError.ENGINE_INIT_FAILED)
                    return

                self._parameters = self._parameters.with_changes(volume=self._defaults.volume)
                self._state = ControllerState.READY
                self._logger.info(
                    "speech_engine_ready",
                    extra={"language": self._language, "language_status": language_status.value},
                )
                if language_status in (LanguageStatus.LANG_MISSING_DATA, LanguageStatus.LANG_NOT_SUPPORTED):
                    self._report(SpeechError.UNSUPPORTED_LANGUAGE)
        finally:
            self._init_settled.set()

    def _submission_error(self) -> SpeechError | None:
        if self._state == ControllerState.CLOSED:
            return SpeechError.ENGINE_CLOSED
        if self._state != ControllerState.READY:
            return SpeechError.ENGINE_NOT_READY
        return None

    def _reject(self, error: SpeechError, text: str, mode: QueueMode) -> SubmissionResult:
        self._report(error)
        return SubmissionResult.failed(error, text, mode)

    def _report(self, error: SpeechError) -> None:
        level = logging.WARNING if error in _WARNING_ERRORS else logging.ERROR
        self._logger.log(level, "speech_error", extra={"error": error.value, "error_message": error.message})

        listener = self._listener
        if listener is None:
            return
        try:
            listener.on_error(error.message)
        except Exception:  # noqa: BLE001 - a faulty listener must not break the queue.
            self._logger.exception("error_listener_failed", extra={"error": error.value})
