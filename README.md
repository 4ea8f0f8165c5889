# kindkit

Building blocks for tools that manage local Kubernetes clusters. It is a
library: import the modules you need.

## Modules

- `kindkit.errors`: errors that record the stack where they were made
  (`new`, `errorf`, `StackError`), wrapping with context (`wrap`, `wrapf`,
  `with_stack`, `WrappedError`), following a cause chain (`cause`,
  `stack_trace`), collecting several errors into one (`new_aggregate`,
  `AggregateError`, `errors`), and running callables in threads
  (`until_error_concurrent` raises the first error raised;
  `aggregate_concurrent` waits for all and raises the single error or an
  aggregate).
- `kindkit.exec`: running external commands. `command(name, *args)` returns a
  `LocalCmd` whose `set_env`, `set_stdin`, `set_stdout` and `set_stderr`
  return the command itself; `run()` raises an error wrapping a `RunError`
  (with the command, its combined output and the cause) when the command
  fails. `command_context(timeout, name, *args)` kills the command after
  `timeout` seconds. Helpers: `output`, `output_lines`,
  `combined_output_lines`, `inherit_output`, `run_with_stdout_reader`,
  `run_with_stdin_writer`, `pretty_command` and `run_error_for_error`.
- `kindkit.fs`: `copy` copies files and directory trees recursively, keeping
  modes and following symlinks; `copy_file` copies one file; `temp_dir`
  creates a temporary directory (on macOS under `/private/var` so it can be
  mounted into containers); `is_abs` treats POSIX absolute paths as absolute
  on every platform.
- `kindkit.term`: `is_terminal` and `is_smart_terminal`. The latter returns
  false when `NO_COLOR` is set, `TERM` is `dumb` or `st-256color`, on Windows
  without `WT_SESSION`, and on Travis CI.
- `kindkit.spinner`: `Spinner`, a one-line loading spinner drawn in a
  background thread. Text written through `Spinner.write` starts at the
  beginning of the line.
- `kindkit.config`: the cluster configuration dataclasses (`Cluster`, `Node`,
  `Networking`, `Mount`, `PortMapping`, `PatchJSON6902`), their enums, and
  `set_defaults_cluster` / `set_defaults_node`.
- `kindkit.validate`: `validate_cluster`, `validate_node` and
  `validate_port`, which raise an error listing every problem found.
- `kindkit.assertions`: `expect_error`, `bool_equal`, `string_equal` and
  `deep_equal`, which report mismatches through an object's `errorf` method.
- `kindkit.version`: `version()`, `display_version()` and `truncate()`.

## Installing

```
pip install .
```

## Example

```python
from kindkit import config, validate, exec as kexec

cluster = config.Cluster()
config.set_defaults_cluster(cluster)
validate.validate_cluster(cluster)  # raises if the configuration is invalid

lines = kexec.output_lines(kexec.command("echo", "hello"))
print(lines)  # ['hello']
```

## What it does not do

The package has no command-line program, no levelled logger and no status
line; it does not create, list or delete clusters, and it does not read
configuration files. It provides the configuration model, its defaults and
validation, and the helpers such a tool is built from.

## Tests

```
pip install .[test]
pytest
```