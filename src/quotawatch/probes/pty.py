"""Run interactive CLIs inside a pseudo-terminal and capture their output.

Provider CLIs only render their usage panels when attached to a terminal,
so the probe spawns them on a PTY, types a scripted command, and reads
until a timeout, an idle gap, or a known marker shows up.
"""

from __future__ import annotations

import fcntl
import logging
import os
import pty
import select
import shutil
import signal
import struct
import subprocess
import termios
import threading
import time
from collections.abc import Callable
from collections.abc import Mapping
from pathlib import Path

import msgspec

logger = logging.getLogger(__name__)

DEFAULT_TERM = "xterm-256color"
EXTRA_PATH_DIRS = ("~/.local/bin", "~/.bun/bin", "/opt/homebrew/bin", "/usr/local/bin")


class PTYLaunchError(OSError):
    """The binary could not be started."""


class PTYOptions(msgspec.Struct, frozen=True):
    """How to run a CLI probe."""

    rows: int = 50
    cols: int = 160
    timeout: float = 20.0
    idle_timeout: float | None = None
    read_timeout: float = 0.1
    max_output_bytes: int = 512 * 1024
    extra_args: tuple[str, ...] = ()
    send_delay: float = 0.4
    stop_on_substrings: tuple[str, ...] = ()
    settle_after_stop: float = 0.25
    send_on_substrings: dict[str, str] = {}
    send_enter_every: float | None = None
    cwd: str | None = None


class PTYResult(msgspec.Struct, frozen=True):
    """Captured output of one probe run."""

    text: str
    timed_out: bool = False
    truncated: bool = False
    stopped_on: str | None = None
    exit_code: int | None = None
    duration: float = 0.0


def enriched_environment(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment for probe processes: a terminal type, HOME, and common bin dirs."""
    env = dict(os.environ if base is None else base)
    env["TERM"] = env.get("TERM") or DEFAULT_TERM
    if env.get("TERM") == "dumb":
        env["TERM"] = DEFAULT_TERM
    if not env.get("HOME"):
        env["HOME"] = str(Path.home())

    path_parts = [p for p in env.get("PATH", "").split(os.pathsep) if p]
    for extra in EXTRA_PATH_DIRS:
        expanded = os.path.expanduser(extra)
        if expanded not in path_parts:
            path_parts.append(expanded)
    env["PATH"] = os.pathsep.join(path_parts)
    return env


class PTYProcess:
    """A child process on a PTY, terminated on every exit path.

    Use as a context manager; leaving the block sends SIGTERM to the child's
    process group, waits up to ``grace_period`` seconds for the group to
    empty, then escalates to SIGKILL. The group is signalled even when the
    leader has already exited, so anything it left running is reaped too.
    """

    def __init__(
        self,
        argv: list[str],
        rows: int,
        cols: int,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        grace_period: float = 1.0,
    ) -> None:
        self.argv = argv
        self.rows = rows
        self.cols = cols
        self.env = dict(env) if env is not None else None
        self.cwd = cwd
        self.grace_period = grace_period
        self.process: subprocess.Popen | None = None
        self.master_fd: int | None = None
        self.pgid: int | None = None

    def __enter__(self) -> PTYProcess:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.terminate()

    def start(self) -> None:
        master_fd, slave_fd = pty.openpty()
        try:
            fcntl.ioctl(
                slave_fd,
                termios.TIOCSWINSZ,
                struct.pack("HHHH", self.rows, self.cols, 0, 0),
            )
            self.process = subprocess.Popen(
                self.argv,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=self.cwd,
                env=self.env,
                close_fds=True,
                start_new_session=True,
            )
        except OSError as e:
            os.close(master_fd)
            raise PTYLaunchError(f"Failed to launch {self.argv[0]}: {e}") from e
        finally:
            os.close(slave_fd)
        self.master_fd = master_fd
        # start_new_session makes the child its own group leader.
        self.pgid = self.process.pid
        logger.debug("Started %s (pid %s)", self.argv[0], self.process.pid)

    def write(self, text: str) -> None:
        if self.master_fd is None:
            return
        try:
            os.write(self.master_fd, text.encode())
        except OSError as e:
            logger.debug("PTY write failed: %s", e)

    def read(self, timeout: float) -> bytes | None:
        """Read what is available within ``timeout``; None means EOF."""
        if self.master_fd is None:
            return None
        ready, _, _ = select.select([self.master_fd], [], [], timeout)
        if not ready:
            return b""
        try:
            chunk = os.read(self.master_fd, 4096)
        except OSError:
            # Linux reports EIO once the child side of the PTY is closed.
            return None
        return chunk or None

    def terminate(self) -> int | None:
        """Stop the process group and close the PTY. Safe to call twice."""
        exit_code = None
        process = self.process
        if process is not None:
            if self._signal_group(signal.SIGTERM):
                deadline = time.monotonic() + self.grace_period
                try:
                    process.wait(timeout=self.grace_period)
                except subprocess.TimeoutExpired:
                    pass
                while self._signal_group(0) and time.monotonic() < deadline:
                    time.sleep(0.05)
                if self._signal_group(0):
                    logger.debug("%s ignored SIGTERM, killing", self.argv[0])
                    self._signal_group(signal.SIGKILL)
            process.wait()
            exit_code = process.returncode
            self.process = None

        if self.master_fd is not None:
            try:
                os.close(self.master_fd)
            except OSError:
                pass
            self.master_fd = None
        return exit_code

    def _signal_group(self, sig: int) -> bool:
        """Signal the child's process group; False once the group is gone.

        Signal 0 only checks whether any member is left.
        """
        if self.pgid is None:
            return False
        try:
            os.killpg(self.pgid, sig)
        except ProcessLookupError:
            return False
        except PermissionError:
            # macOS refuses to signal a group holding only zombies.
            if self.process is None or self.process.poll() is not None:
                return False
            if sig:
                self.process.send_signal(sig)
        return True


class PTYCommandRunner:
    """Runs a binary on a PTY with scripted input and bounded output."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        grace_period: float = 1.0,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.clock = clock
        self.grace_period = grace_period
        self.env = env

    @staticmethod
    def which(binary: str) -> str | None:
        if os.path.isabs(binary) and os.access(binary, os.X_OK):
            return binary
        return shutil.which(binary, path=enriched_environment().get("PATH"))

    def run(
        self,
        binary: str,
        send: str = "",
        options: PTYOptions | None = None,
        cancel: threading.Event | None = None,
    ) -> PTYResult:
        """Run ``binary`` and capture its output.

        Setting ``cancel`` from another thread ends the run at the next read
        and tears the process down as on any other exit.

        Raises:
            PTYLaunchError: When the binary cannot be started.
        """
        options = options or PTYOptions()
        resolved = self.which(binary)
        if resolved is None:
            raise PTYLaunchError(f"{binary} not found on PATH")

        if options.cwd:
            Path(options.cwd).mkdir(parents=True, exist_ok=True)

        argv = [resolved, *options.extra_args]
        process = PTYProcess(
            argv,
            rows=options.rows,
            cols=options.cols,
            env=enriched_environment(self.env),
            cwd=options.cwd,
            grace_period=self.grace_period,
        )

        start = self.clock()
        buffer = bytearray()
        timed_out = False
        truncated = False
        stopped_on = None
        stop_deadline = None
        sent = not send
        answered: set[str] = set()
        last_output = start
        last_enter = start

        with process:
            while True:
                if cancel is not None and cancel.is_set():
                    logger.debug("%s probe cancelled", binary)
                    break
                now = self.clock()
                if stop_deadline is not None and now >= stop_deadline:
                    break
                if now - start >= options.timeout:
                    timed_out = stop_deadline is None
                    break
                if (
                    options.idle_timeout is not None
                    and buffer
                    and now - last_output >= options.idle_timeout
                ):
                    break

                if not sent and now - start >= options.send_delay:
                    process.write(send)
                    sent = True
                    last_enter = now
                elif (
                    sent
                    and options.send_enter_every is not None
                    and now - last_enter >= options.send_enter_every
                ):
                    process.write("\r")
                    last_enter = now

                chunk = process.read(options.read_timeout)
                if chunk is None:
                    break
                if not chunk:
                    continue

                last_output = self.clock()
                room = options.max_output_bytes - len(buffer)
                if len(chunk) > room:
                    buffer.extend(chunk[:room])
                    truncated = True
                    break
                buffer.extend(chunk)

                text = buffer.decode("utf-8", errors="replace")
                for trigger, reply in options.send_on_substrings.items():
                    if trigger not in answered and trigger in text:
                        answered.add(trigger)
                        process.write(reply)
                if stop_deadline is None:
                    for marker in options.stop_on_substrings:
                        if marker in text:
                            stopped_on = marker
                            stop_deadline = last_output + options.settle_after_stop
                            break

            exit_code = process.terminate()

        duration = self.clock() - start
        logger.debug(
            "%s finished in %.2fs (%d bytes, timed_out=%s, stopped_on=%r)",
            binary,
            duration,
            len(buffer),
            timed_out,
            stopped_on,
        )
        return PTYResult(
            text=buffer.decode("utf-8", errors="replace"),
            timed_out=timed_out,
            truncated=truncated,
            stopped_on=stopped_on,
            exit_code=exit_code,
            duration=duration,
        )
