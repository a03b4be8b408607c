"""Running a single exercise and resetting it."""

from __future__ import annotations

import subprocess

from rustdrill.exercise import CompileError, Exercise, Mode, RunError
from rustdrill.ui import success, warn
from rustdrill.verify import VerificationError, _Spinner, test


def run(exercise: Exercise, verbose: bool) -> None:
    """Compile and run (or test) one exercise; raise VerificationError on failure."""
    if exercise.mode in (Mode.TEST, Mode.BUILDSCRIPT):
        test(exercise, verbose)
    else:
        _compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Stash local changes to the exercise file with git."""
    return subprocess.Popen(["git", "stash", "--", str(exercise.path)])


def _compile_and_run(exercise: Exercise) -> None:
    spinner = _Spinner(f"Compiling {exercise}...")
    try:
        compiled = exercise.compile()
    except CompileError as exc:
        spinner.finish_and_clear()
        warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(exc.output.stderr)
        raise VerificationError(exercise) from exc

    spinner.set_message(f"Running {exercise}...")
    with compiled:
        try:
            output = compiled.run()
        except RunError as exc:
            spinner.finish_and_clear()
            print(exc.output.stdout)
            print(exc.output.stderr)
            warn(f"Ran {exercise} with errors")
            raise VerificationError(exercise) from exc
    spinner.finish_and_clear()

    print(output.stdout)
    success(f"Successfully ran {exercise}")