"""Watch mode: re-verify exercises whenever a file under ./exercises changes."""

from __future__ import annotations

import os
import queue
import subprocess
import sys
import threading
from enum import Enum, auto
from pathlib import Path
from typing import Iterable, Iterator

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from rustdrill.exercise import Exercise
from rustdrill.verify import VerificationError, verify

WATCH_DIR = "./exercises"
POLL_INTERVAL = 1.0
DEBOUNCE = 1.0


class WatchStatus(Enum):
    """How watch mode ended."""

    FINISHED = auto()
    UNFINISHED = auto()


def _ends_with(path: Path, suffix: Path) -> bool:
    tail = suffix.parts
    parts = path.parts
    return len(tail) <= len(parts) and parts[len(parts) - len(tail):] == tail


def pending_order(exercises: Iterable[Exercise], changed_path) -> Iterator[Exercise]:
    """Yield the changed exercise first, then every other pending one."""
    exercises = list(exercises)
    changed = Path(changed_path)
    matched = next((e for e in exercises if _ends_with(changed, e.path)), None)
    if matched is not None:
        yield matched
    yield from (
        e for e in exercises if not e.looks_done() and not _ends_with(changed, e.path)
    )


class WatchShell:
    """Reads commands from the user while watch mode runs."""

    def __init__(self, hint: str | None = None, stream=None) -> None:
        self._lock = threading.Lock()
        self._hint = hint
        self._stream = stream
        self.should_quit = threading.Event()

    @property
    def hint(self) -> str | None:
        with self._lock:
            return self._hint

    @hint.setter
    def hint(self, value: str | None) -> None:
        with self._lock:
            self._hint = value

    def handle(self, line: str) -> None:
        """Carry out one command line."""
        command = line.strip()
        if command == "hint":
            hint = self.hint
            if hint is not None:
                print(hint)
        elif command == "clear":
            print("\x1B[2J\x1B[1;1H")
        elif command == "quit":
            self.should_quit.set()
            print("Bye!")
        elif command == "help":
            print("Commands available to you in watch mode:")
            print("  hint   - prints the current exercise's hint")
            print("  clear  - clears the screen")
            print("  quit   - quits watch mode")
            print("  !<cmd> - executes a command, like `!rustc --explain E0381`")
            print("  help   - displays this help message")
            print()
            print("Watch mode automatically re-evaluates the current exercise")
            print("when you edit a file's contents.")
        elif command.startswith("!"):
            cmd = command[1:]
            parts = cmd.split()
            if not parts:
                print("no command provided")
            else:
                try:
                    subprocess.run(parts, check=False)
                except OSError as exc:
                    print(f"failed to execute command `{cmd}`: {exc}")
        else:
            print(f"unknown command: {command}")

    def _loop(self) -> None:
        stream = self._stream if self._stream is not None else sys.stdin
        while not self.should_quit.is_set():
            try:
                line = stream.readline()
            except (OSError, ValueError) as exc:
                print(f"error reading command: {exc}")
                return
            if not line:
                return
            self.handle(line)

    def start(self) -> threading.Thread:
        """Read commands on a background thread."""
        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        thread = threading.Thread(target=self._loop, daemon=True)
        thread.start()
        return thread


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, events: queue.Queue) -> None:
        super().__init__()
        self._events = events

    def _push(self, event) -> None:
        if not event.is_directory:
            self._events.put(os.fsdecode(event.src_path))

    def on_created(self, event) -> None:
        self._push(event)

    def on_modified(self, event) -> None:
        self._push(event)


def _clear_screen() -> None:
    print("\x1bc")


def _settled_paths(events: queue.Queue, first: str) -> list[str]:
    paths = [first]
    while True:
        try:
            path = events.get(timeout=DEBOUNCE)
        except queue.Empty:
            return paths
        if path not in paths:
            paths.append(path)


def watch(exercises: Iterable[Exercise], verbose: bool, success_hints: bool) -> WatchStatus:
    """Verify exercises, then re-verify on every change until done or quit."""
    exercises = list(exercises)
    events: queue.Queue = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeHandler(events), WATCH_DIR, recursive=True)
    observer.start()
    try:
        _clear_screen()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
        except VerificationError as exc:
            shell = WatchShell(exc.exercise.hint)
        else:
            return WatchStatus.FINISHED
        shell.start()

        while True:
            try:
                first = events.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                pass
            else:
                for changed in _settled_paths(events, first):
                    path = Path(changed)
                    if path.suffix != ".rs" or not path.exists():
                        continue
                    filepath = path.resolve()
                    num_done = sum(1 for e in exercises if e.looks_done())
                    _clear_screen()
                    try:
                        verify(
                            pending_order(exercises, filepath),
                            (num_done, len(exercises)),
                            verbose,
                            success_hints,
                        )
                    except VerificationError as exc:
                        shell.hint = exc.exercise.hint
                    else:
                        return WatchStatus.FINISHED
            if shell.should_quit.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()