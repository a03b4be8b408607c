import os
from pathlib import Path

import pytest

from rustdrill.exercise import (
    CompileError,
    ContextLine,
    Exercise,
    Mode,
    RunError,
    State,
    clean,
    load_exercises,
    parse_exercises,
    temp_file,
)

PENDING_SOURCE = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED_SOURCE = "// fake_exercise\n\nfn main() {\n\n}\n"

FAKE_RUSTC = r'''
out=""
prev=""
for a in "$@"; do
  if [ "$prev" = "-o" ]; then out="$a"; fi
  prev="$a"
done
printf '#!/bin/sh\necho "THIS TEST TOO SHALL PASS $1"\n' > "$out"
chmod +x "$out"
'''

FAILING_RUSTC = 'echo "error: expected pattern" >&2\nexit 1\n'

RUSTC_WITH_FAILING_BINARY = r'''
out=""
prev=""
for a in "$@"; do
  if [ "$prev" = "-o" ]; then out="$a"; fi
  prev="$a"
done
printf '#!/bin/sh\necho "test failed"\necho "panicked" >&2\nexit 3\n' > "$out"
chmod +x "$out"
'''


def _install_tool(monkeypatch, tmp_path, name, body):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)
    tool = bin_dir / name
    tool.write_text("#!/bin/sh\n" + body)
    tool.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ['PATH']}")


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _exercise(path, mode=Mode.COMPILE, name="example"):
    return Exercise(name=name, path=Path(path), mode=mode, hint="")


def test_pending_state(workdir):
    (workdir / "pending_exercise.rs").write_text(PENDING_SOURCE)
    exercise = _exercise("pending_exercise.rs", name="pending_exercise")
    expected = [
        ContextLine(line="// fake_exercise", number=1, important=False),
        ContextLine(line="", number=2, important=False),
        ContextLine(line="// I AM NOT DONE", number=3, important=True),
        ContextLine(line="", number=4, important=False),
        ContextLine(line="fn main() {", number=5, important=False),
    ]
    assert exercise.state() == State.pending(expected)
    assert exercise.looks_done() is False


def test_finished_exercise(workdir):
    (workdir / "finished_exercise.rs").write_text(FINISHED_SOURCE)
    exercise = _exercise("finished_exercise.rs", name="finished_exercise")
    assert exercise.state() == State.done()
    assert exercise.looks_done() is True


def test_pending_marker_at_top_clamps_context(workdir):
    (workdir / "top.rs").write_text("// I AM NOT DONE\n\n#[test]\nfn it_works() {}\n")
    state = _exercise("top.rs").state()
    assert [c.number for c in state.context] == [1, 2, 3]
    assert [c.important for c in state.context] == [True, False, False]


def test_doc_comment_marker_counts(workdir):
    (workdir / "doc.rs").write_text("/// I  AM NOT   DONE\nfn main() {}\n")
    assert _exercise("doc.rs").looks_done() is False


def test_missing_file_raises(workdir):
    with pytest.raises(OSError):
        _exercise("nowhere.rs").state()


def test_str_is_path():
    assert str(_exercise("exercises/intro/intro1.rs")) == "exercises/intro/intro1.rs"


def test_clean(workdir, monkeypatch):
    _install_tool(monkeypatch, workdir, "rustc", FAKE_RUSTC)
    Path(temp_file()).touch()
    (workdir / "pending_exercise.rs").write_text(PENDING_SOURCE)
    compiled = _exercise("pending_exercise.rs").compile()
    assert Path(temp_file()).exists()
    compiled.close()
    assert not Path(temp_file()).exists()


def test_exercise_with_output(workdir, monkeypatch):
    _install_tool(monkeypatch, workdir, "rustc", FAKE_RUSTC)
    (workdir / "testSuccess.rs").write_text("#[test]\nfn passing() {}\n")
    exercise = _exercise("testSuccess.rs", mode=Mode.TEST, name="exercise_with_output")
    with exercise.compile() as compiled:
        out = compiled.run()
    assert "THIS TEST TOO SHALL PASS" in out.stdout
    assert "--show-output" in out.stdout
    assert not Path(temp_file()).exists()


def test_compile_failure_raises_with_output(workdir, monkeypatch):
    _install_tool(monkeypatch, workdir, "rustc", FAILING_RUSTC)
    (workdir / "compFailure.rs").write_text("fn main() {\n    let\n}\n")
    with pytest.raises(CompileError) as info:
        _exercise("compFailure.rs").compile()
    assert "expected pattern" in info.value.output.stderr
    assert not Path(temp_file()).exists()


def test_run_failure_raises_with_output(workdir, monkeypatch):
    _install_tool(monkeypatch, workdir, "rustc", RUSTC_WITH_FAILING_BINARY)
    (workdir / "testNotPassed.rs").write_text("fn main() {}\n")
    with _exercise("testNotPassed.rs", mode=Mode.TEST).compile() as compiled:
        with pytest.raises(RunError) as info:
            compiled.run()
    assert "test failed" in info.value.output.stdout
    assert "panicked" in info.value.output.stderr


def test_build_script_writes_manifest_and_skips_run(workdir, monkeypatch):
    _install_tool(monkeypatch, workdir, "cargo", "exit 0\n")
    (workdir / "exercises" / "tests").mkdir(parents=True)
    exercise = _exercise("exercises/tests/build1.rs", mode=Mode.BUILDSCRIPT, name="build1")
    compiled = exercise.compile()
    manifest = (workdir / "exercises" / "tests" / "Cargo.toml").read_text()
    assert 'name = "build1"' in manifest
    assert 'path = "build1.rs"' in manifest
    out = compiled.run()
    assert (out.stdout, out.stderr) == ("", "")


def test_clippy_failure_reports_cargo_output(workdir, monkeypatch):
    _install_tool(monkeypatch, workdir, "rustc", FAKE_RUSTC)
    _install_tool(
        monkeypatch,
        workdir,
        "cargo",
        'if [ "$1" = "clippy" ]; then echo "lint denied" >&2; exit 1; fi\nexit 0\n',
    )
    (workdir / "exercises" / "clippy").mkdir(parents=True)
    exercise = _exercise("exercises/clippy/clippy1.rs", mode=Mode.CLIPPY, name="clippy1")
    with pytest.raises(CompileError) as info:
        exercise.compile()
    assert "lint denied" in info.value.output.stderr
    assert 'name = "clippy1"' in (workdir / "exercises" / "clippy" / "Cargo.toml").read_text()


def test_clean_ignores_missing_file(workdir):
    clean()
    assert not Path(temp_file()).exists()


INFO = '''
[[exercises]]
name = "intro1"
path = "exercises/intro/intro1.rs"
mode = "compile"
hint = "Remove the marker."

[[exercises]]
name = "build1"
path = "exercises/tests/build1.rs"
mode = "buildscript"
hint = ""
'''


def test_parse_exercises():
    exercises = parse_exercises(INFO)
    assert [e.name for e in exercises] == ["intro1", "build1"]
    assert exercises[0].mode is Mode.COMPILE
    assert exercises[1].mode is Mode.BUILDSCRIPT
    assert exercises[0].path == Path("exercises/intro/intro1.rs")
    assert exercises[0].hint == "Remove the marker."


def test_load_exercises_reads_file(tmp_path):
    info = tmp_path / "info.toml"
    info.write_text(INFO)
    assert [e.name for e in load_exercises(info)] == ["intro1", "build1"]


def test_parse_rejects_unknown_mode():
    with pytest.raises(ValueError):
        parse_exercises('[[exercises]]\nname="a"\npath="a.rs"\nmode="run"\nhint=""\n')


def test_parse_rejects_missing_field():
    with pytest.raises(ValueError):
        parse_exercises('[[exercises]]\nname="a"\npath="a.rs"\nmode="test"\n')


def test_parse_rejects_missing_list():
    with pytest.raises(ValueError):
        parse_exercises('title = "nothing"\n')