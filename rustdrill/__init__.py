"""Compile, run, verify and track small Rust exercises from the command line."""

__version__ = "5.5.1"