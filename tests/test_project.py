import json
import os
from pathlib import Path

from rustdrill.project import Crate, RustAnalyzerProject


def _install_tool(monkeypatch, tmp_path, name, body):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)
    tool = bin_dir / name
    tool.write_text("#!/bin/sh\n" + body)
    tool.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ['PATH']}")


def test_crate_defaults():
    crate = Crate(root_module="exercises/a.rs")
    assert crate.to_dict() == {
        "root_module": "exercises/a.rs",
        "edition": "2021",
        "deps": [],
        "cfg": ["test"],
    }


def test_add_path_only_accepts_rust_files():
    project = RustAnalyzerProject()
    assert project.add_path("exercises/x.rs") is True
    assert project.add_path("exercises/README.md") is False
    assert project.add_path("exercises/dir") is False
    assert [c.root_module for c in project.crates] == [str(Path("exercises/x.rs"))]


def test_exercises_to_json_collects_rust_files(tmp_path):
    root = tmp_path / "exercises"
    (root / "intro").mkdir(parents=True)
    (root / "intro" / "intro1.rs").write_text("fn main() {}")
    (root / "quiz1.rs").write_text("fn main() {}")
    (root / "README.md").write_text("notes")
    project = RustAnalyzerProject()
    project.exercises_to_json(root)
    modules = [c.root_module for c in project.crates]
    assert sorted(modules) == sorted(
        [str(root / "intro" / "intro1.rs"), str(root / "quiz1.rs")]
    )
    assert modules == sorted(modules)


def test_exercises_to_json_empty_dir(tmp_path):
    project = RustAnalyzerProject()
    project.exercises_to_json(tmp_path / "missing")
    assert project.crates == []


def test_write_to_disk_round_trip(tmp_path):
    project = RustAnalyzerProject(sysroot_src="/sysroot")
    project.add_path("exercises/a.rs")
    target = tmp_path / "rust-project.json"
    project.write_to_disk(target)
    text = target.read_text()
    assert json.loads(text) == project.to_dict()
    assert " " not in text


def test_sysroot_from_environment(monkeypatch):
    monkeypatch.setenv("RUST_SRC_PATH", "/custom/src")
    project = RustAnalyzerProject()
    assert project.get_sysroot_src() == "/custom/src"
    assert project.sysroot_src == "/custom/src"


def test_sysroot_from_rustc(monkeypatch, tmp_path, capsys):
    monkeypatch.delenv("RUST_SRC_PATH", raising=False)
    _install_tool(monkeypatch, tmp_path, "rustc", 'echo "/opt/toolchain"\n')
    project = RustAnalyzerProject()
    result = project.get_sysroot_src()
    assert result == os.path.join("/opt/toolchain", "lib", "rustlib", "src", "rust", "library")
    assert project.sysroot_src == result
    assert "Determined toolchain: /opt/toolchain" in capsys.readouterr().out