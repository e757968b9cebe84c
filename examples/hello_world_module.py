#!/usr/bin/env python3
"""
hello_world_module.py - Minimal Example Module

A simple "Hello World" example showing the minimal wiring of a host: one
module binds one runnable, and the host drives it until Ctrl+C.
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import asyncio
from datetime import datetime
from typing import Optional

from python_module_host import (
    BaseModule, ConfigParam, Host, LogManager, Runnable, Validator, run_host,
)

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Runnable Implementation
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class Greeter(Runnable):
    """Runnable that displays greeting messages until it is stopped."""

    name = "Greeter"

    def __init__(self, log_manager: LogManager, message: str, interval: float, count: int):
        self.log = log_manager.create_log(self.name)
        self.message = message
        self.interval = interval
        self.count = count
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        self._task = asyncio.ensure_future(self._run())

    async def all_started(self):
        await self.log.info("Every runnable is up, greeting.")

    async def stop(self):
        if self._task is not None:
            self._task.cancel()

    async def all_stopped(self):
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                await self.log.info("Greeter stopped")
            self._task = None

    async def _run(self):
        i = 0
        while self.count == 0 or i < self.count:
            i += 1
            suffix = f" ({i}/{self.count})" if self.count else ""
            await self._display_message(f"{self.message}{suffix}")
            await asyncio.sleep(self.interval)
        await self.log.info("Completed all messages")

    async def _display_message(self, message: str):
        """Display a message with timestamp."""
        timestamp = datetime.now().strftime("%H:%M:%S")
        full_message = f"[{timestamp}] {message}"

        await self.log.debug(full_message)

        # Print to console (this is what makes it a "Hello World")
        print(full_message)

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Module Implementation
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class HelloWorldModule(BaseModule):
    """
    A minimal 'Hello World' module implementation.

    Binds a Greeter runnable configured from its options.
    """

    CONFIG_PARAMS = [
        ConfigParam(
            name="message",
            default="Hello, World!",
            description="Message to display"
        ),
        ConfigParam(
            name="interval",
            default=1.0,
            description="Interval between messages in seconds",
            validators=[Validator.positive]
        ),
        ConfigParam(
            name="count",
            default=5,
            description="Number of messages to display (0 for infinite)",
            validators=[Validator.non_negative]
        )
    ]

    async def initialize(self, graph, host, options=None):
        await super().initialize(graph, host, options)
        graph.bind(Runnable, Greeter(
            graph.get(LogManager),
            self.options["message"],
            self.options["interval"],
            self.options["count"],
        ))

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Entry Point
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

async def main():
    """Run the Hello World module until interrupted."""
    host = Host().add_module(HelloWorldModule(), {
        "message": "Hello from Python Module Host!",
        "interval": 1.0,
        "count": 5
    })

    await run_host(host, {'log': {'level': 'verbose'}})

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nHello World module stopped")
