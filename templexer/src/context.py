"""
Context and Console classes for templexer.
"""
import sys
from dataclasses import dataclass
from typing import TextIO

from core.command_runner import CommandRunner


class Console:
    """Console output handler with configurable log level.

    Levels: none < error < warning < info < debug < trace
    Every level writes to ``stream`` (stderr unless told otherwise) so the
    primary output stream stays free for rendered manifests.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warning": 2,
        "info": 3,
        "debug": 4,
        "trace": 5,
    }

    def __init__(self, level: str = "warning", stream: TextIO | None = None):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown console level: {level}")
        self.level_name = level
        self.level = self.LEVELS[level]
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def enabled_for(self, level: str) -> bool:
        return self.level >= self.LEVELS[level]

    def _emit(self, level: str, message: str) -> None:
        if self.enabled_for(level):
            print(f"[{level.upper()}] {message}", file=self.stream)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def debug(self, message: str) -> None:
        self._emit("debug", message)

    def trace(self, message: str) -> None:
        self._emit("trace", message)


def level_for_verbosity(count: int) -> str:
    """Map the number of ``-v`` flags to a console level."""
    if count <= 0:
        return "warning"
    if count == 1:
        return "info"
    if count == 2:
        return "debug"
    return "trace"


@dataclass
class Context:
    console: Console
    runner: CommandRunner
