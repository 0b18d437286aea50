"""
Progress Reporting

Stages report what they are doing through a ``PipelineProgress`` that is
chosen once, when the pipeline is built, and passed into every stage.

=============================================================================
IMPLEMENTATIONS:
=============================================================================

    InteractiveProgress   One status line rewritten in place with a spinner
                          frame; succeed/fail/info print permanent lines.
    VerboseProgress       One line per event, including debug lines.
    SilentProgress        No output at all (library and test use).

    progress = create_progress(verbose=settings.verbose, silent=settings.silent)

Progress output never affects pipeline results.
=============================================================================
"""

import sys
from dataclasses import dataclass
from typing import Optional, Protocol, TextIO

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


@dataclass(frozen=True)
class PipelineStage:
    name: str
    number: int
    total_stages: int = 5

    @property
    def label(self) -> str:
        return f"[{self.number}/{self.total_stages}] {self.name.capitalize()}"


class PipelineProgress(Protocol):
    def start(self, message: str) -> None: ...

    def update(self, message: str) -> None: ...

    def update_with_count(self, current: int, total: int, detail: Optional[str] = None) -> None: ...

    def succeed(self, message: str) -> None: ...

    def fail(self, message: str) -> None: ...

    def debug(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def set_stage(self, stage: PipelineStage) -> None: ...

    def get_current_stage(self) -> Optional[PipelineStage]: ...


def _count_message(current: int, total: int, detail: Optional[str]) -> str:
    progress = f"{current}/{total}"
    return f"{detail} ({progress})" if detail else progress


class _StageTracking:
    _stage: Optional[PipelineStage] = None

    def set_stage(self, stage: PipelineStage) -> None:
        self._stage = stage

    def get_current_stage(self) -> Optional[PipelineStage]:
        return self._stage


class SilentProgress(_StageTracking):
    """Tracks the current stage and prints nothing."""

    def start(self, message: str) -> None:
        pass

    def update(self, message: str) -> None:
        pass

    def update_with_count(self, current: int, total: int, detail: Optional[str] = None) -> None:
        pass

    def succeed(self, message: str) -> None:
        pass

    def fail(self, message: str) -> None:
        pass

    def debug(self, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        pass


class VerboseProgress(_StageTracking):
    """Line-per-event reporter. Debug lines are printed too."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout

    def _write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()

    def start(self, message: str) -> None:
        self._write(f"… {message}")

    def update(self, message: str) -> None:
        self._write(f"… {message}")

    def update_with_count(self, current: int, total: int, detail: Optional[str] = None) -> None:
        self.update(_count_message(current, total, detail))

    def succeed(self, message: str) -> None:
        self._write(f"✓ {message}")

    def fail(self, message: str) -> None:
        self._write(f"✗ {message}")

    def debug(self, message: str) -> None:
        self._write(f"  [debug] {message}")

    def info(self, message: str) -> None:
        self._write(f"  {message}")


class InteractiveProgress(_StageTracking):
    """
    Single status line redrawn in place.

    Each start/update advances the spinner one frame. Permanent lines
    (succeed, fail, info) clear the status line first; an active status is
    redrawn after an info line so it stays at the bottom.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout
        self._status: Optional[str] = None
        self._frame = 0

    def _clear(self) -> None:
        if self._status is not None:
            self._stream.write("\r\033[2K")

    def _draw(self) -> None:
        frame = SPINNER_FRAMES[self._frame % len(SPINNER_FRAMES)]
        self._frame += 1
        self._stream.write(f"\r\033[2K{frame} {self._status}")
        self._stream.flush()

    def _permanent(self, line: str) -> None:
        self._clear()
        self._stream.write(line + "\n")
        self._stream.flush()

    def start(self, message: str) -> None:
        self._status = message
        self._draw()

    def update(self, message: str) -> None:
        self.start(message)

    def update_with_count(self, current: int, total: int, detail: Optional[str] = None) -> None:
        self.start(_count_message(current, total, detail))

    def succeed(self, message: str) -> None:
        self._permanent(f"✓ {message}")
        self._status = None

    def fail(self, message: str) -> None:
        self._permanent(f"✗ {message}")
        self._status = None

    def debug(self, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        self._permanent(f"  {message}")
        if self._status is not None:
            self._draw()


def create_progress(
    verbose: bool = False,
    silent: bool = False,
    stream: Optional[TextIO] = None,
) -> PipelineProgress:
    """Pick a reporter. ``silent`` wins over ``verbose``."""
    if silent:
        return SilentProgress()
    if verbose:
        return VerboseProgress(stream)
    return InteractiveProgress(stream)
