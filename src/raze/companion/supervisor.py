"""Keep the companion service reachable, starting it when needed."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)

DEFAULT_LAUNCHER = Path(__file__).resolve().with_name("launcher.py")


class HealthProbe(Protocol):
    port: int

    def health(self) -> bool: ...


SpawnProcess = Callable[..., subprocess.Popen]


class AvailabilitySupervisor:
    """Probe the companion service and best-effort launch it when it is down.

    The supervisor owns the handle of any process it spawns, so liveness of that
    process is answered from the handle rather than from a PID file.
    """

    def __init__(
        self,
        client: HealthProbe,
        *,
        launcher_path: str | Path | None = DEFAULT_LAUNCHER,
        poll_interval: float = 0.25,
        startup_timeout: float = 5.0,
        spawn: SpawnProcess = subprocess.Popen,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.launcher_path = Path(launcher_path) if launcher_path is not None else None
        self.poll_interval = poll_interval
        self.startup_timeout = startup_timeout
        self.spawn = spawn
        self.sleep = sleep
        self.clock = clock
        self.process: subprocess.Popen | None = None

    def ensure_available(self) -> bool:
        if self.client.health():
            return True

        if self.launcher_path is None or not self.launcher_path.is_file():
            LOGGER.warning(
                "companion_launcher_missing",
                extra={"launcher_path": str(self.launcher_path)},
            )
            return False

        try:
            self.process = self._launch()
        except OSError as exc:
            LOGGER.error("companion_spawn_failed", extra={"error": str(exc)})
            return False

        deadline = self.clock() + self.startup_timeout
        while self.clock() < deadline:
            self.sleep(self.poll_interval)
            if self.client.health():
                LOGGER.info("companion_ready", extra={"port": self.client.port})
                return True

        LOGGER.warning(
            "companion_start_timeout",
            extra={"port": self.client.port, "timeout_seconds": self.startup_timeout},
        )
        return False

    def is_process_alive(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def _launch(self) -> subprocess.Popen:
        command = [sys.executable, str(self.launcher_path), "--port", str(self.client.port)]
        options: dict[str, object] = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
            "cwd": os.getcwd(),
            "close_fds": True,
        }
        if os.name == "nt":
            options["creationflags"] = (
                subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
            )
        else:
            options["start_new_session"] = True

        process = self.spawn(command, **options)
        LOGGER.info(
            "companion_spawned",
            extra={"pid": getattr(process, "pid", None), "command": command},
        )
        return process
