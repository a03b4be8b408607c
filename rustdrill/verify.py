"""Checking exercises in order and prompting once one of them passes."""

from __future__ import annotations

import sys
from enum import Enum, auto
from typing import Iterable

from rustdrill.exercise import CompiledExercise, CompileError, Exercise, Mode, RunError
from rustdrill.ui import blue, bold, green, no_emoji, red, success, warn

_BAR_WIDTH = 60

_SUCCESS_VERBS = {
    Mode.COMPILE: "ran",
    Mode.TEST: "tested",
    Mode.CLIPPY: "compiled",
    Mode.BUILDSCRIPT: "compiled",
}


class RunMode(Enum):
    """Whether a passing test exercise should prompt for completion."""

    INTERACTIVE = auto()
    NON_INTERACTIVE = auto()


class VerificationError(Exception):
    """Raised when an exercise fails to compile, run or pass its tests."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"{exercise} did not pass")
        self.exercise = exercise


def _is_terminal(stream) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class _Spinner:
    """A single status line on stderr, shown only on a terminal."""

    def __init__(self, message: str) -> None:
        self._stream = sys.stderr
        self._live = _is_terminal(self._stream)
        self.set_message(message)

    def set_message(self, message: str) -> None:
        if self._live:
            self._stream.write(f"\r\x1b[2K{message}")
            self._stream.flush()

    def finish_and_clear(self) -> None:
        if self._live:
            self._stream.write("\r\x1b[2K")
            self._stream.flush()
            self._live = False


class _ProgressBar:
    """Overall progress drawn on stderr, shown only on a terminal."""

    def __init__(self, total: int, position: int) -> None:
        self._total = total
        self._position = position
        self._stream = sys.stderr
        self._live = _is_terminal(self._stream)

    def inc(self) -> None:
        self._position += 1

    def _bar(self) -> str:
        if self._total <= 0:
            filled = _BAR_WIDTH
        else:
            filled = min(_BAR_WIDTH, _BAR_WIDTH * self._position // self._total)
        if filled >= _BAR_WIDTH:
            return green("#" * _BAR_WIDTH)
        return green("#" * filled + ">") + red("-" * (_BAR_WIDTH - filled - 1))

    def draw(self, message: str) -> None:
        if self._live:
            self._stream.write(
                f"\r\x1b[2KProgress: [{self._bar()}] {self._position}/{self._total} {message}\n"
            )
            self._stream.flush()


def verify(exercises: Iterable[Exercise], progress, verbose: bool, success_hints: bool) -> None:
    """Check exercises in order; raise VerificationError at the first that fails."""
    num_done, total = progress
    step = 100.0 / total if total else 0.0
    percentage = num_done * step
    bar = _ProgressBar(total, num_done)
    bar.draw(f"({percentage:.1f} %)")

    for exercise in exercises:
        if exercise.mode in (Mode.TEST, Mode.BUILDSCRIPT):
            passed = _compile_and_test(exercise, RunMode.INTERACTIVE, verbose, success_hints)
        elif exercise.mode is Mode.COMPILE:
            passed = _compile_and_run_interactively(exercise, success_hints)
        else:
            passed = _compile_only(exercise, success_hints)
        if not passed:
            raise VerificationError(exercise)
        percentage += step
        bar.inc()
        bar.draw(f"({percentage:.1f} %)")


def test(exercise: Exercise, verbose: bool) -> None:
    """Compile and run an exercise's test harness without prompting."""
    if not _compile_and_test(exercise, RunMode.NON_INTERACTIVE, verbose, False):
        raise VerificationError(exercise)


def _compile(exercise: Exercise, spinner: _Spinner) -> CompiledExercise | None:
    try:
        return exercise.compile()
    except CompileError as exc:
        spinner.finish_and_clear()
        warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(exc.output.stderr)
        return None


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    spinner = _Spinner(f"Compiling {exercise}...")
    compiled = _compile(exercise, spinner)
    if compiled is None:
        return False
    compiled.close()
    spinner.finish_and_clear()
    return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    spinner = _Spinner(f"Compiling {exercise}...")
    compiled = _compile(exercise, spinner)
    if compiled is None:
        return False

    spinner.set_message(f"Running {exercise}...")
    with compiled:
        try:
            output = compiled.run()
        except RunError as exc:
            spinner.finish_and_clear()
            warn(f"Ran {exercise} with errors")
            print(exc.output.stdout)
            print(exc.output.stderr)
            return False
    spinner.finish_and_clear()
    return prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, run_mode: RunMode, verbose: bool, success_hints: bool
) -> bool:
    spinner = _Spinner(f"Testing {exercise}...")
    compiled = _compile(exercise, spinner)
    if compiled is None:
        return False

    with compiled:
        try:
            output = compiled.run()
        except RunError as exc:
            spinner.finish_and_clear()
            warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
            print(exc.output.stdout)
            return False
    spinner.finish_and_clear()

    if verbose:
        print(output.stdout)
    if run_mode is RunMode.INTERACTIVE:
        return prompt_for_completion(exercise, None, success_hints)
    return True


def _success_message(mode: Mode, emoji_off: bool) -> str:
    if mode is Mode.COMPILE:
        return "The code is compiling!"
    if mode is Mode.TEST:
        return "The code is compiling, and the tests pass!"
    if mode is Mode.CLIPPY:
        if emoji_off:
            return "The code is compiling, and Clippy is happy!"
        return "The code is compiling, and 📎 Clippy 📎 is happy!"
    return "Build script works!"


def prompt_for_completion(exercise: Exercise, prompt_output, success_hints: bool) -> bool:
    """Return True if the exercise is done; otherwise show where the marker sits."""
    state = exercise.state()
    if state.is_done:
        return True

    success(f"Successfully {_SUCCESS_VERBS[exercise.mode]} {exercise}!")

    emoji_off = no_emoji()
    message = _success_message(exercise.mode, emoji_off)
    print()
    if emoji_off:
        print(f"~*~ {message} ~*~")
    else:
        print(f"🎉 🎉  {message} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        print(separator())
        print(prompt_output)
        print(separator())
        print()
    if success_hints:
        print("Hints:")
        print(separator())
        print(exercise.hint)
        print(separator())
        print()

    print("You can keep working on this exercise,")
    print(f"or jump into the next one by removing the {bold('`I AM NOT DONE`')} comment:")
    print()
    for context_line in state.context:
        text = bold(context_line.line) if context_line.important else context_line.line
        print(f"{blue(bold(f'{context_line.number:>2}'))} {blue('|')}  {text}")

    return False


def separator() -> str:
    """The bold rule that frames output and hints."""
    return bold("====================")