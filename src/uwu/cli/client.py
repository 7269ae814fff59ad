"""Editor commands built on top of the command channel."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from uwu.channel.channel import CommandChannel
from uwu.channel.retry import RetryPolicy
from uwu.config import resolve_assets_dir
from uwu.errors import (
    ProbablyRestarted,
    ReceiveFailed,
    RecoverableError,
    ResponseTimeout,
    SendFailed,
)
from uwu.models.config import WatchConfig
from uwu.models.correlation import CorrelationId
from uwu.models.protocol import Command
from uwu.watcher.file_watcher import FileWatcher
from uwu.watcher.main import AssetWatcher


class RemoteClient:
    """Runs editor commands, handling the reconnects each one needs.

    Entering play mode and refreshing assets can reload scripts, which tears
    down the editor listener before it can answer. Those commands therefore
    poll with ``CheckAlive`` afterwards instead of trusting the first reply.
    """

    def __init__(
        self,
        channel: CommandChannel,
        send_retries: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.channel = channel
        self.send_retries = send_retries
        self.sleep = sleep
        self.liveness_policy = RetryPolicy(channel.connect_policy.interval, sleep=sleep)
        self.logger = logging.getLogger("uwu.client")

    def play(self) -> None:
        """Enter play mode and wait until the editor is back."""
        self._run(Command.PLAY, restarts=True)

    def stop(self) -> None:
        """Leave play mode."""
        self._run(Command.STOP)

    def refresh(self) -> None:
        """Refresh all assets and wait until the editor is back."""
        self._run(Command.REFRESH, restarts=True)

    def build(self) -> None:
        """Recompile scripts."""
        self._run(Command.BUILD)

    def status(self) -> bool:
        """Return whether the editor answers a liveness check right now."""
        try:
            if not self.channel.try_connect():
                return False
            self.channel.send_and_await(Command.CHECK_ALIVE)
            return True
        except RecoverableError as e:
            self.logger.debug(f"Liveness check failed: {e}")
            return False
        finally:
            self.channel.close()

    def watch(self, project_dir: Path, config: WatchConfig | None = None) -> None:
        """Refresh in the background whenever the project's assets change."""
        config = config or WatchConfig()
        assets_dir = resolve_assets_dir(project_dir, config.assets_dir)

        self.logger.info(f"Watching project at {project_dir}")
        source = FileWatcher(assets_dir, tick=config.tick, force_polling=config.force_polling)
        AssetWatcher(self.channel, source, config, sleep=self.sleep).run()

    def _run(self, command: Command, restarts: bool = False) -> None:
        try:
            acknowledged = self._send(command, restarts)
            if restarts or not acknowledged:
                self._confirm_alive()
        finally:
            self.channel.close()

    def _send(self, command: Command, restarts: bool) -> bool:
        """Send one logical command; return False if the outcome is unknown."""
        request_id = CorrelationId.random()

        for attempt in range(1, self.send_retries + 1):
            self.channel.connect_with_retry()
            try:
                self.channel.send_and_await(command, request_id)
                return True
            except SendFailed as e:
                if attempt == self.send_retries:
                    raise
                self.logger.warning(f"{e}; reconnecting and resending")
            except ProbablyRestarted as e:
                self.logger.info(f"{e} after {command.value}")
                return False
            except (ReceiveFailed, ResponseTimeout) as e:
                # a reload can outlast the timeout; the liveness poll waits it out
                if not restarts:
                    raise
                self.logger.info(f"{e} after {command.value}")
                return False

        return False

    def _confirm_alive(self) -> None:
        self.logger.info("Waiting for the editor to come back...")

        for _ in self.liveness_policy.attempts():
            self.channel.connect_with_retry()
            try:
                self.channel.send_and_await(Command.CHECK_ALIVE)
                return
            except RecoverableError as e:
                self.logger.debug(f"Editor not ready yet: {e}")
