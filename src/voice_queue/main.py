"""CLI entrypoint for the voice queue."""

from __future__ import annotations

import typer
from rich import print

from voice_queue.config import settings
from voice_queue.controller import UtteranceQueueController
from voice_queue.directives import ParameterResolver
from voice_queue.models import QueueMode, SpeechParameters
from voice_queue.telemetry import configure_logging

app = typer.Typer(help="Voice output queue with spoken speed, pitch and volume directives")

_EXIT_WORDS = {"quit", "exit", "stop listening"}


class _ConsoleErrorListener:
    """Echo speech errors to the terminal."""

    def on_error(self, message: str) -> None:
        print({"error": message})


def _build_engine():
    try:
        from voice_queue.tts_pyttsx3 import Pyttsx3SpeechEngine
    except ImportError:
        print({"error": "Voice extras are missing. Install with: pip install 'voice-queue[voice]'"})
        raise typer.Exit(code=1)

    try:
        return Pyttsx3SpeechEngine()
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)


def _start_controller(ready_timeout: float):
    configure_logging(settings.log_level)
    engine = _build_engine()
    controller = UtteranceQueueController(listener=_ConsoleErrorListener())
    controller.initialize(engine)
    if not controller.wait_until_ready(timeout=ready_timeout):
        controller.shut_down()
        print({"error": "Speech engine did not become ready"})
        raise typer.Exit(code=1)
    return engine, controller


def _describe(parameters: SpeechParameters) -> dict[str, float]:
    return {"rate": parameters.rate, "pitch": parameters.pitch, "volume": parameters.volume}


@app.command()
def start() -> None:
    """Show runtime configuration."""
    print(
        {
            "app_name": settings.app_name,
            "language": settings.language,
            "voice_id": settings.voice_id,
            "defaults": {
                "rate": settings.default_rate,
                "pitch": settings.default_pitch,
                "volume": settings.default_volume,
            },
            "base_words_per_minute": settings.base_words_per_minute,
        }
    )


@app.command()
def resolve(
    text: str,
    rate: float = typer.Option(settings.default_rate, help="Starting rate multiplier"),
    pitch: float = typer.Option(settings.default_pitch, help="Starting pitch multiplier"),
    volume: float = typer.Option(settings.default_volume, help="Starting volume (0..1)"),
) -> None:
    """Show the directives found in TEXT and the parameters they resolve to."""
    resolver = ParameterResolver()
    current = SpeechParameters(rate=rate, pitch=pitch, volume=volume)
    directives = resolver.detect(text)
    print(
        {
            "text": text,
            "directives": [
                {"keyword": directive.keyword, "kind": directive.kind.value, "value": directive.value}
                for directive in directives
            ],
            "parameters": _describe(resolver.resolve(text, current)),
        }
    )


@app.command()
def say(
    text: str,
    system: bool = typer.Option(False, help="Speak verbatim, skipping directive resolution"),
    flush: bool = typer.Option(False, help="Interrupt pending speech instead of queueing after it"),
    ready_timeout: float = typer.Option(10.0, help="Seconds to wait for the speech engine"),
) -> None:
    """Speak TEXT through the local pyttsx3 engine."""
    engine, controller = _start_controller(ready_timeout)
    try:
        if system:
            result = controller.submit_system(text)
        else:
            result = controller.submit_user(text, mode=QueueMode.FLUSH if flush else QueueMode.ADD)
        if not result:
            raise typer.Exit(code=1)
        print({"spoken": text, "mode": result.mode.value, "parameters": _describe(controller.parameters)})
        engine.wait_until_idle()
    finally:
        controller.shut_down()


@app.command()
def chat(
    greeting: str = typer.Option("Voice queue ready.", help="System utterance spoken at startup"),
    ready_timeout: float = typer.Option(10.0, help="Seconds to wait for the speech engine"),
) -> None:
    """Read lines from the terminal and speak each one, keeping directive changes."""
    engine, controller = _start_controller(ready_timeout)
    controller.submit_system(greeting)
    print({"chat": "started", "hint": "Type text to speak; 'quit' to exit."})

    try:
        while True:
            try:
                line = input("> ").strip()
            except EOFError:
                break
            if not line:
                continue
            if line.lower() in _EXIT_WORDS:
                break

            result = controller.submit_user(line)
            if result:
                print({"parameters": _describe(controller.parameters)})
        engine.wait_until_idle()
    finally:
        controller.shut_down()
        print({"chat": "stopped"})


if __name__ == "__main__":
    app()
