# rustdrill

A command-line companion for working through a collection of small Rust
exercises. Each exercise is a `.rs` file that fails to compile, fails its
tests or still carries an `I AM NOT DONE` marker; your job is to fix it.
`rustdrill` compiles and runs the exercises with `rustc` (and `cargo` for
Clippy and build-script exercises), reports what went wrong and tracks your
progress.

## Requirements

- Python 3.11 or later
- A Rust toolchain with `rustc` on your `PATH` (`cargo` for Clippy and
  build-script exercises; `git` for `reset`)

## Installation

```
pip install .
```

## Getting started

Run every command from the exercise directory, the one that holds
`info.toml`. Outside it, `rustdrill` prints a message and exits with status 1;
it does the same when `rustc --version` cannot be run. The file lists the
exercises in their recommended order:

```toml
[[exercises]]
name = "intro1"
path = "exercises/intro/intro1.rs"
mode = "compile"
hint = "Remove the I AM NOT DONE comment to move on."
```

Every entry needs all four fields. `mode` is one of:

- `compile` – build with `rustc` and run the binary
- `test` – build with `rustc --test` and run the test harness
- `clippy` – write `exercises/clippy/Cargo.toml` and run `cargo clippy`
  with warnings denied
- `buildscript` – write `exercises/tests/Cargo.toml` and run `cargo test`

An exercise counts as done once no line of it holds a `// I AM NOT DONE`
(or `/// I AM NOT DONE`) comment.

Run without a subcommand to see the introduction:

```
rustdrill
```

## Commands

```
rustdrill watch               # re-verify whenever an exercise file changes
rustdrill verify              # verify all exercises in order
rustdrill run <name>          # compile and run (or test) one exercise
rustdrill run next            # run the first exercise not yet done
rustdrill hint <name>         # print the hint for an exercise
rustdrill reset <name>        # stash your changes to an exercise with git
rustdrill list                # table of exercises and their status
rustdrill lsp                 # write rust-project.json for rust-analyzer
rustdrill cicvverify          # run everything and write a JSON report
rustdrill --version
```

Pass `--nocapture` before the subcommand to show the output of test
exercises, for example `rustdrill --nocapture run intro1`.

`verify` and `run` exit with status 1 when an exercise fails; `run`, `hint`
and `reset` exit with status 1 when no exercise has the given name (or, for
`next`, when every exercise is done). A missing exercise name is a usage
error, also with status 1.

### Watch mode

`rustdrill watch` verifies the exercises in order and stops at the first one
that fails or is still marked `I AM NOT DONE`, showing the lines around the
marker. It then waits for changes to `.rs` files under `exercises/` and
verifies again, starting with the changed exercise and going on with every
other pending one. While it waits you can type:

- `hint` – show the hint for the current exercise
- `clear` – clear the screen
- `quit` – leave watch mode
- `!<cmd>` – run a command, such as `!rustc --explain E0381`
- `help` – list these commands

Add `--success-hints` to show the hint once an exercise passes.

### Listing exercises

```
rustdrill list --paths        # only paths
rustdrill list --names        # only names
rustdrill list --filter if,var
rustdrill list --solved
rustdrill list --unsolved
```

The filter is a comma-separated list of lower-case patterns matched against
exercise names and paths. The listing ends with a progress line such as
`Progress: You completed 3 / 20 exercises (15.0 %).`

### rust-analyzer

`rustdrill lsp` adds a crate (edition 2021, `cfg` `test`) for every `.rs`
file below `exercises/` and writes `rust-project.json`. The standard library
source path comes from `RUST_SRC_PATH`, or else from `rustc --print sysroot`.

### Batch report

`rustdrill cicvverify` runs every exercise concurrently (test output shown)
and writes `.github/result/check_result.json` with each exercise's result,
the success and failure counts and the total time in seconds.

## Environment

- `NO_EMOJI` – when set, messages use plain ASCII markers instead of emoji.
- `RUST_SRC_PATH` – when set, `rustdrill lsp` uses it as the standard library
  source path instead of asking `rustc`.
- `CLICOLOR_FORCE`, `CLICOLOR`, `TERM` – colours are used on a terminal
  unless `CLICOLOR=0` or `TERM=dumb`; a non-zero `CLICOLOR_FORCE` forces them.

## Running the tests

```
pip install ".[test]"
pytest
```