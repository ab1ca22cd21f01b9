"""Starts and stops a rep binary with a generated configuration file."""

from __future__ import annotations

import json
import os
import signal
import subprocess
import tempfile
from typing import IO, Any

from .config import RepConfig

_WAIT_SECONDS = 5


class RunnerAlreadyStartedError(RuntimeError):
    """Raised when starting a runner whose process is still running."""


class Runner:
    """Runs a rep binary as a child process."""

    def __init__(
        self,
        bin_path: str,
        rep_config: RepConfig,
        stdout: int | IO[Any] | None = None,
        stderr: int | IO[Any] | None = None,
    ) -> None:
        self.bin_path = bin_path
        self.rep_config = rep_config
        self.stdout = stdout
        self.stderr = stderr
        self.session: subprocess.Popen | None = None
        self.config_file_path = ""

    def start(self) -> None:
        """Write the configuration to a temporary file and start the binary."""
        if self.session is not None and self.session.poll() is None:
            raise RunnerAlreadyStartedError("starting more than one rep")
        fd, path = tempfile.mkstemp(prefix="rep")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(self.rep_config.to_dict(), handle)
            handle.write("\n")
        self.config_file_path = path
        self.session = subprocess.Popen(
            [self.bin_path, "--config", path],
            stdout=self.stdout,
            stderr=self.stderr,
        )

    def _remove_config(self) -> None:
        if self.config_file_path and os.path.exists(self.config_file_path):
            os.remove(self.config_file_path)

    def stop(self) -> None:
        """Remove the config file, interrupt the process and wait for it."""
        self._remove_config()
        if self.session is not None and self.session.poll() is None:
            self.session.send_signal(signal.SIGINT)
            self.session.wait(timeout=_WAIT_SECONDS)

    def kill_with_fire(self) -> None:
        """Remove the config file, kill the process and wait for it."""
        self._remove_config()
        if self.session is not None and self.session.poll() is None:
            self.session.kill()
            self.session.wait(timeout=_WAIT_SECONDS)