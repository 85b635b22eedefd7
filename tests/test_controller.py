from __future__ import annotations

import logging
import threading

from voice_queue.controller import UtteranceQueueController
from voice_queue.models import (
    ControllerState,
    EngineStatus,
    LanguageStatus,
    QueueMode,
    SpeechError,
    SpeechParameters,
    UtteranceSource,
)


class StubEngine:
    def __init__(
        self,
        status: EngineStatus = EngineStatus.SUCCESS,
        language_status: LanguageStatus = LanguageStatus.OK,
        auto_ready: bool = True,
    ) -> None:
        self.status = status
        self.language_status = language_status
        self.auto_ready = auto_ready
        self.on_ready = None
        self.languages: list[str] = []
        self.rates: list[float] = []
        self.pitches: list[float] = []
        self.spoken: list[tuple[str, QueueMode, dict | None]] = []
        self.shutdown_calls = 0

    def initialize(self, on_ready) -> None:
        self.on_ready = on_ready
        if self.auto_ready:
            on_ready(self.status)

    def set_language(self, locale: str) -> LanguageStatus:
        self.languages.append(locale)
        return self.language_status

    def set_speech_rate(self, rate: float) -> None:
        self.rates.append(rate)

    def set_pitch(self, pitch: float) -> None:
        self.pitches.append(pitch)

    def speak(self, text: str, mode: QueueMode, params=None) -> None:
        self.spoken.append((text, mode, None if params is None else dict(params)))

    def shutdown(self) -> None:
        self.shutdown_calls += 1


class BrokenEngine(StubEngine):
    def speak(self, text: str, mode: QueueMode, params=None) -> None:
        raise RuntimeError("audio device gone")


class RecordingListener:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def on_error(self, message: str) -> None:
        self.messages.append(message)


class ExplodingListener:
    def on_error(self, message: str) -> None:
        raise ValueError("listener bug")


def _ready_controller(engine: StubEngine | None = None, **kwargs) -> tuple[UtteranceQueueController, StubEngine]:
    engine = engine or StubEngine()
    controller = UtteranceQueueController(engine, language="en_US", **kwargs)
    return controller, engine


def test_submit_before_initialize_reports_not_ready() -> None:
    listener = RecordingListener()
    controller = UtteranceQueueController(listener=listener)

    result = controller.submit_user("hello there")

    assert not result
    assert result.error == SpeechError.ENGINE_NOT_READY
    assert listener.messages == ["TTS Not Initialized"]
    assert controller.state == ControllerState.UNINITIALIZED


def test_submit_while_init_pending_does_not_speak() -> None:
    engine = StubEngine(auto_ready=False)
    controller = UtteranceQueueController(engine)

    result = controller.submit_user("speed 2 hello")

    assert result.error == SpeechError.ENGINE_NOT_READY
    assert engine.spoken == []
    assert controller.parameters.rate == 1.0

    engine.on_ready(EngineStatus.SUCCESS)

    assert controller.is_ready
    assert controller.submit_user("hello").accepted


def test_successful_init_sets_language_and_default_volume() -> None:
    controller, engine = _ready_controller(defaults=SpeechParameters(volume=0.5))

    assert controller.state == ControllerState.READY
    assert engine.languages == ["en_US"]
    assert controller.parameters == SpeechParameters(rate=1.0, pitch=1.0, volume=0.5)
    assert controller.wait_until_ready(timeout=0.1) is True


def test_submit_user_resolves_and_pushes_parameters() -> None:
    controller, engine = _ready_controller()

    result = controller.submit_user("say this slowly")

    assert result.accepted
    assert result.mode == QueueMode.ADD
    assert result.parameters == SpeechParameters(rate=0.5, pitch=1.0, volume=0.5)
    assert engine.rates == [0.5]
    assert engine.pitches == [1.0]
    assert engine.spoken == [("say this slowly", QueueMode.ADD, {"volume": "0.5"})]


def test_directives_persist_across_utterances() -> None:
    controller, engine = _ready_controller()

    controller.submit_user("speed 2.0 toot 0.8 please")
    controller.submit_user("and now something else")

    assert engine.rates == [2.0, 2.0]
    assert engine.spoken[-1] == ("and now something else", QueueMode.ADD, {"volume": "0.8"})
    assert controller.parameters == SpeechParameters(rate=2.0, pitch=1.0, volume=0.8)


def test_submit_user_honors_flush_mode() -> None:
    controller, engine = _ready_controller()

    controller.submit_user("interrupt", mode=QueueMode.FLUSH)

    assert engine.spoken[0][1] == QueueMode.FLUSH


def test_submit_system_speaks_verbatim_with_flush() -> None:
    controller, engine = _ready_controller()

    result = controller.submit_system("speak quickly and loud")

    assert result.accepted
    assert result.parameters is None
    assert engine.spoken == [("speak quickly and loud", QueueMode.FLUSH, None)]
    assert engine.rates == []
    assert controller.parameters == SpeechParameters()


def test_submit_dispatches_by_source() -> None:
    controller, engine = _ready_controller()

    controller.submit("high voice", UtteranceSource.USER)
    controller.submit("system notice", UtteranceSource.SYSTEM)

    assert [(text, mode) for text, mode, _ in engine.spoken] == [
        ("high voice", QueueMode.ADD),
        ("system notice", QueueMode.FLUSH),
    ]
    assert controller.parameters.pitch == 3.0


def test_init_failure_keeps_controller_uninitialized() -> None:
    listener = RecordingListener()
    engine = StubEngine(status=EngineStatus.ERROR)
    controller = UtteranceQueueController(engine, listener=listener)

    assert controller.state == ControllerState.UNINITIALIZED
    assert controller.wait_until_ready(timeout=0.1) is False
    assert engine.languages == []

    result = controller.submit_system("anyone there?")

    assert result.error == SpeechError.ENGINE_NOT_READY
    assert listener.messages == ["Initialization Failed!", "TTS Not Initialized"]


def test_unsupported_language_is_reported_but_ready() -> None:
    listener = RecordingListener()
    engine = StubEngine(language_status=LanguageStatus.LANG_MISSING_DATA)
    controller = UtteranceQueueController(engine, listener=listener)

    assert controller.is_ready
    assert listener.messages == ["This Language is not supported"]
    assert controller.submit_user("hello").accepted


def test_repeated_init_callback_is_ignored() -> None:
    engine = StubEngine(auto_ready=False)
    controller = UtteranceQueueController(engine)

    engine.on_ready(EngineStatus.SUCCESS)
    engine.on_ready(EngineStatus.ERROR)

    assert controller.is_ready
    assert engine.languages == ["en_US"]


def test_shut_down_is_idempotent_and_closes_submissions() -> None:
    listener = RecordingListener()
    controller, engine = _ready_controller(listener=listener)

    controller.shut_down()
    controller.shut_down()

    assert engine.shutdown_calls == 1
    assert controller.state == ControllerState.CLOSED
    assert controller.submit_user("hello").error == SpeechError.ENGINE_CLOSED
    assert controller.submit_system("hello").error == SpeechError.ENGINE_CLOSED
    assert engine.spoken == []
    assert listener.messages == ["TTS Closed", "TTS Closed"]


def test_init_callback_after_shutdown_is_ignored() -> None:
    engine = StubEngine(auto_ready=False)
    controller = UtteranceQueueController(engine)

    controller.shut_down()
    engine.on_ready(EngineStatus.SUCCESS)

    assert controller.state == ControllerState.CLOSED
    assert engine.languages == []


def test_set_listener_replaces_previous_listener() -> None:
    first = RecordingListener()
    second = RecordingListener()
    controller = UtteranceQueueController(listener=first)

    controller.set_listener(second)
    controller.submit_user("hello")

    assert first.messages == []
    assert second.messages == ["TTS Not Initialized"]


def test_failing_listener_does_not_break_submission() -> None:
    controller = UtteranceQueueController(listener=ExplodingListener())

    result = controller.submit_user("hello")

    assert result.error == SpeechError.ENGINE_NOT_READY


def test_engine_failure_is_reported_not_raised() -> None:
    listener = RecordingListener()
    controller, _ = _ready_controller(BrokenEngine(), listener=listener)

    result = controller.submit_system("hello")

    assert result.error == SpeechError.ENGINE_FAILURE
    assert listener.messages == ["Speech engine failure"]


def test_errors_are_logged(caplog) -> None:
    controller = UtteranceQueueController()

    with caplog.at_level(logging.ERROR, logger="voice_queue.controller"):
        controller.submit_user("hello")

    assert [record.getMessage() for record in caplog.records] == ["speech_error"]
    assert caplog.records[0].error == SpeechError.ENGINE_NOT_READY.value


def test_controllers_do_not_share_parameters() -> None:
    first, _ = _ready_controller()
    second, _ = _ready_controller()

    first.submit_user("speed 2.5")

    assert first.parameters.rate == 2.5
    assert second.parameters.rate == 1.0


def test_concurrent_submissions_are_serialized() -> None:
    controller, engine = _ready_controller()
    barrier = threading.Barrier(8)

    def _submit(index: int) -> None:
        barrier.wait()
        controller.submit_user(f"message {index}")

    threads = [threading.Thread(target=_submit, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=2)

    assert sorted(text for text, _, _ in engine.spoken) == sorted(f"message {index}" for index in range(8))
    assert len(engine.rates) == 8


def test_language_not_supported_is_reported_but_ready() -> None:
    listener = RecordingListener()
    engine = StubEngine(language_status=LanguageStatus.LANG_NOT_SUPPORTED)
    controller = UtteranceQueueController(engine, listener=listener)

    assert controller.is_ready
    assert listener.messages == ["This Language is not supported"]


def test_set_language_failure_fails_initialization() -> None:
    class _NoLanguageEngine(StubEngine):
        def set_language(self, locale: str) -> LanguageStatus:
            raise RuntimeError("voice data unavailable")

    listener = RecordingListener()
    controller = UtteranceQueueController(_NoLanguageEngine(), listener=listener)

    assert controller.state == ControllerState.UNINITIALIZED
    assert controller.wait_until_ready(timeout=0.1) is False
    assert listener.messages == ["Initialization Failed!"]


def test_initialize_after_shutdown_reports_closed() -> None:
    listener = RecordingListener()
    controller = UtteranceQueueController(listener=listener)
    controller.shut_down()
    engine = StubEngine()

    controller.initialize(engine)

    assert controller.state == ControllerState.CLOSED
    assert engine.on_ready is None
    assert listener.messages == ["TTS Closed"]
