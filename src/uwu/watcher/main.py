"""Watch mode: refresh the editor whenever assets change."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from uwu.channel.channel import CommandChannel
from uwu.errors import ChannelError, ProbablyRestarted, RecoverableError
from uwu.models.config import WatchConfig
from uwu.models.protocol import Command
from uwu.watcher.debounce import Debouncer, FileEvent


class AssetWatcher:
    """Drives background refreshes through a channel it owns.

    ``source`` yields batches of events (empty batches on idle ticks). The
    loop runs until the source ends; errors from the source propagate.
    """

    def __init__(
        self,
        channel: CommandChannel,
        source: Iterable[list[FileEvent]],
        config: WatchConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.channel = channel
        self.source = source
        self.config = config or WatchConfig()
        self.sleep = sleep
        self.debouncer = Debouncer(self.config.delay, self.config.max_delay, clock=clock)
        self.logger = logging.getLogger("uwu.watcher")

    def run(self) -> None:
        """Consume events until the source is exhausted or fails."""
        if self.channel.keeps_connection:
            self.channel.connect_with_retry()

        for batch in self.source:
            for event in batch:
                self.debouncer.observe(event)

            if self.debouncer.poll():
                self.refresh()

        self.channel.close()

    def refresh(self) -> None:
        """Send one background refresh, absorbing a peer restart."""
        self.logger.info("Refreshing")

        # stream connections serve one exchange and are opened right before it
        if not self.channel.keeps_connection or not self.channel.is_connected():
            self.channel.connect_with_retry()

        try:
            self.channel.send_and_await(Command.BACKGROUND_REFRESH)
        except ProbablyRestarted as e:
            # reloading scripts restarts the listener; the refresh went through
            self.logger.info(f"{e}, reconnecting")
            self._reconnect()
        except RecoverableError as e:
            # the refresh may never have arrived: go again once reconnected
            self.logger.warning(f"Refresh failed ({e}), reconnecting")
            self._reconnect()
            self.debouncer.rearm()
        except ChannelError as e:
            self.logger.error(f"An error occurred: {e}")

    def _reconnect(self) -> None:
        self.sleep(self.channel.connect_policy.interval)
        if self.channel.keeps_connection:
            self.channel.connect_with_retry()
