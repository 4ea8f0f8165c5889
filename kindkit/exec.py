"""Running external commands with captured output and helpful errors."""

from __future__ import annotations

import io
import os
import shlex
import subprocess
import sys
import threading
from typing import IO, Any, BinaryIO, Callable, Iterable, Optional, Protocol

from kindkit import errors

_CHUNK = 64 * 1024


class _Cmd(Protocol):
    def run(self) -> None: ...

    def set_env(self, *args: str) -> "_Cmd": ...

    def set_stdin(self, reader: Any) -> "_Cmd": ...

    def set_stdout(self, writer: Any) -> "_Cmd": ...

    def set_stderr(self, writer: Any) -> "_Cmd": ...


class RunError(Exception):
    """A command failed to run; carries the command, its output and the cause."""

    def __init__(
        self,
        command: Iterable[str],
        output: bytes = b"",
        inner: Optional[BaseException] = None,
    ) -> None:
        self.command = list(command)
        self.output = bytes(output)
        self.inner = inner
        super().__init__(str(self))

    def __str__(self) -> str:
        inner = self.inner if self.inner is not None else "<nil>"
        return f'command "{self.pretty_command()}" failed with error: {inner}'

    def pretty_command(self) -> str:
        """Return the command quoted so it could be pasted into a shell."""
        return pretty_command(self.command[0], *self.command[1:])

    def cause(self) -> BaseException:
        """Return the underlying error, or this error if there is none."""
        if self.inner is not None:
            return self.inner
        return self


def _write(writer: Any, data: bytes) -> None:
    if isinstance(writer, io.TextIOBase):
        writer.write(data.decode("utf-8", "replace"))
    else:
        writer.write(data)
    flush = getattr(writer, "flush", None)
    if callable(flush):
        flush()


def _pump(stream: BinaryIO, emit: Callable[[bytes], None], failures: list) -> None:
    failed = False
    with stream:
        while True:
            chunk = stream.read1(_CHUNK)
            if not chunk:
                break
            if failed:
                continue
            try:
                emit(chunk)
            except Exception as exc:  # noqa: BLE001 - reported by run()
                failures.append(exc)
                failed = True


def _feed(reader: Any, sink: IO[bytes]) -> None:
    try:
        while True:
            chunk = reader.read(_CHUNK)
            if not chunk:
                break
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            sink.write(chunk)
            sink.flush()
    except (BrokenPipeError, ValueError, OSError):
        pass
    finally:
        try:
            sink.close()
        except OSError:
            pass


def _parse_env(entries: Iterable[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for entry in entries:
        key, _, value = entry.partition("=")
        env[key] = value
    return env


class LocalCmd:
    """A command run as a local subprocess."""

    def __init__(self, name: str, *args: str, timeout: Optional[float] = None) -> None:
        self.args = [name, *args]
        self.timeout = timeout
        self.env: Optional[dict[str, str]] = None
        self.stdin: Any = None
        self.stdout: Any = None
        self.stderr: Any = None

    def set_env(self, *args: str) -> "LocalCmd":
        """Set the environment from "key=value" entries; none inherits ours."""
        self.env = _parse_env(args) if args else None
        return self

    def set_stdin(self, reader: Any) -> "LocalCmd":
        """Set the reader the command's stdin is fed from."""
        self.stdin = reader
        return self

    def set_stdout(self, writer: Any) -> "LocalCmd":
        """Set the writer the command's stdout goes to."""
        self.stdout = writer
        return self

    def set_stderr(self, writer: Any) -> "LocalCmd":
        """Set the writer the command's stderr goes to."""
        self.stderr = writer
        return self

    def _stdin_source(self) -> tuple[Any, bool]:
        if self.stdin is None:
            return subprocess.DEVNULL, False
        try:
            self.stdin.fileno()
        except (AttributeError, OSError, ValueError):
            return subprocess.PIPE, True
        return self.stdin, False

    def run(self) -> None:
        """Run the command; raise an error wrapping a RunError on failure."""
        combined = bytearray()
        lock = threading.Lock()
        shared = self.stdout is self.stderr

        def sink(writer: Any) -> Callable[[bytes], None]:
            def emit(chunk: bytes) -> None:
                with lock:
                    combined.extend(chunk)
                if writer is not None:
                    _write(writer, chunk)

            return emit

        stdin_arg, feed = self._stdin_source()
        try:
            proc = subprocess.Popen(
                self.args,
                stdin=stdin_arg,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if shared else subprocess.PIPE,
                env=self.env,
            )
        except (OSError, ValueError) as exc:
            raise errors.with_stack(RunError(self.args, b"", exc)) from exc

        failures: list[BaseException] = []
        pumps = [
            threading.Thread(
                target=_pump, args=(proc.stdout, sink(self.stdout), failures), daemon=True
            )
        ]
        if not shared:
            pumps.append(
                threading.Thread(
                    target=_pump,
                    args=(proc.stderr, sink(self.stderr), failures),
                    daemon=True,
                )
            )
        for pump in pumps:
            pump.start()
        if feed:
            threading.Thread(
                target=_feed, args=(self.stdin, proc.stdin), daemon=True
            ).start()

        inner: Optional[BaseException] = None
        try:
            proc.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.wait()
            inner = exc
        for pump in pumps:
            pump.join()

        if inner is None and proc.returncode != 0:
            inner = subprocess.CalledProcessError(proc.returncode, self.args)
        if inner is None and failures:
            inner = failures[0]
        if inner is not None:
            raise errors.with_stack(RunError(self.args, bytes(combined), inner))


class LocalCmder:
    """Creates LocalCmd instances."""

    def command(self, name: str, *args: str) -> LocalCmd:
        """Return a command for name with args."""
        return LocalCmd(name, *args)

    def command_context(self, timeout: Optional[float], name: str, *args: str) -> LocalCmd:
        """Return a command that is killed if it runs longer than timeout seconds."""
        return LocalCmd(name, *args, timeout=timeout)


DEFAULT_CMDER = LocalCmder()


def command(name: str, *args: str) -> LocalCmd:
    """Return a command from the default cmder."""
    return DEFAULT_CMDER.command(name, *args)


def command_context(timeout: Optional[float], name: str, *args: str) -> LocalCmd:
    """Return a command with a timeout from the default cmder."""
    return DEFAULT_CMDER.command_context(timeout, name, *args)


def pretty_command(name: str, *args: str) -> str:
    """Return the command quoted so that it could be pasted into a shell."""
    return " ".join(shlex.quote(part) for part in (name, *args))


def run_error_for_error(err: Optional[BaseException]) -> Optional[RunError]:
    """Return the deepest RunError in err's cause chain, or None."""
    found: Optional[RunError] = None
    while err is not None:
        if isinstance(err, RunError):
            found = err
        causer = getattr(err, "cause", None)
        if not callable(causer):
            break
        nxt = causer()
        if nxt is None or nxt is err:
            break
        err = nxt
    return found


def _scan_lines(data: bytes) -> list[str]:
    lines = data.decode("utf-8", "replace").split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def combined_output_lines(cmd: _Cmd) -> list[str]:
    """Run cmd and return the lines of its stdout and stderr together."""
    buff = io.BytesIO()
    cmd.set_stdout(buff)
    cmd.set_stderr(buff)
    cmd.run()
    return _scan_lines(buff.getvalue())


def output_lines(cmd: _Cmd) -> list[str]:
    """Run cmd and return the lines of its stdout."""
    buff = io.BytesIO()
    cmd.set_stdout(buff)
    cmd.run()
    return _scan_lines(buff.getvalue())


def output(cmd: _Cmd) -> bytes:
    """Run cmd and return its stdout."""
    buff = io.BytesIO()
    cmd.set_stdout(buff)
    cmd.run()
    return buff.getvalue()


def inherit_output(cmd: _Cmd) -> _Cmd:
    """Send cmd's output to this process's stdout and stderr."""
    cmd.set_stderr(getattr(sys.stderr, "buffer", sys.stderr))
    cmd.set_stdout(getattr(sys.stdout, "buffer", sys.stdout))
    return cmd


def run_with_stdout_reader(cmd: _Cmd, reader_func: Callable[[BinaryIO], object]) -> None:
    """Run cmd with its stdout piped to reader_func."""
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb")
    writer = os.fdopen(write_fd, "wb", buffering=0)
    cmd.set_stdout(writer)

    def consume() -> None:
        with reader:
            reader_func(reader)

    def produce() -> None:
        with writer:
            cmd.run()

    errors.aggregate_concurrent([consume, produce])


def run_with_stdin_writer(cmd: _Cmd, writer_func: Callable[[BinaryIO], object]) -> None:
    """Run cmd with writer_func's output piped to its stdin."""
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb")
    writer = os.fdopen(write_fd, "wb", buffering=0)
    cmd.set_stdin(reader)

    def produce() -> None:
        with writer:
            writer_func(writer)

    def consume() -> None:
        with reader:
            cmd.run()

    errors.aggregate_concurrent([produce, consume])