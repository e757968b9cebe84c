#!/usr/bin/env python3
"""
system_info_module.py - System Information Monitor

An example module that demonstrates the host by collecting and reporting
system information (CPU, memory, disk usage). It binds one collector
runnable per metric family plus a report writer, all sharing a snapshot
object resolved from the object graph.

Requires the ``system`` extra (psutil).
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import asyncio
import json
import os
import platform
import socket
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import psutil

from python_module_host import (
    BaseModule, ConfigParam, Host, LogManager, ModuleError, Runnable, Validator,
    run_host,
)

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Exceptions
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class SystemInfoError(ModuleError):
    """Base exception for system info errors."""
    pass

class CollectionError(SystemInfoError):
    """Error during system information collection."""
    pass

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Shared State
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class SystemSnapshot:
    """Latest collected metrics, keyed by metric family."""

    def __init__(self):
        self.started_at = datetime.now()
        self.info: Dict[str, Any] = {
            "system": {
                "hostname": socket.gethostname(),
                "platform": platform.platform(),
                "python_version": platform.python_version(),
                "cpu_count": os.cpu_count(),
            }
        }

    def update(self, family: str, data: Dict[str, Any]) -> None:
        self.info[family] = data

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.info)
        result["timestamp"] = datetime.now().isoformat()
        result["uptime"] = (datetime.now() - self.started_at).total_seconds()
        return result

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Runnables
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class PeriodicRunnable(Runnable):
    """
    Runs ``tick`` every ``interval`` seconds between start and stop.

    A failing tick is logged and the loop carries on.
    """

    def __init__(self, name: str, log_manager: LogManager, interval: float):
        self.name = name
        self.interval = interval
        self.log = log_manager.create_log(name)
        self._task: Optional[asyncio.Task] = None

    async def tick(self):
        raise NotImplementedError

    async def start(self):
        await self.log.info(f"Starting, interval {self.interval}s")
        self._task = asyncio.ensure_future(self._loop())

    async def stop(self):
        if self._task is not None:
            self._task.cancel()

    async def all_stopped(self):
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            await self.log.info("Stopped")
        self._task = None

    async def _loop(self):
        while True:
            try:
                await self.tick()
            except Exception as e:
                await self.log.error(f"Error in {self.name}: {e}", e)
            await asyncio.sleep(self.interval)


class CpuCollector(PeriodicRunnable):
    """Collects CPU usage."""

    def __init__(self, snapshot: SystemSnapshot, log_manager: LogManager, interval: float):
        super().__init__("CpuCollector", log_manager, interval)
        self.snapshot = snapshot

    async def start(self):
        # Prime the counters so the first reading is meaningful
        psutil.cpu_percent(interval=None)
        await super().start()

    async def tick(self):
        cpu_info: Dict[str, Any] = {
            "percent": psutil.cpu_percent(interval=None),
            "per_cpu": psutil.cpu_percent(interval=None, percpu=True),
            "count": {
                "physical": psutil.cpu_count(logical=False),
                "logical": psutil.cpu_count(logical=True)
            },
        }
        freq = psutil.cpu_freq()
        if freq:
            cpu_info["frequency"] = {"current": freq.current, "min": freq.min, "max": freq.max}
        if hasattr(psutil, "getloadavg"):
            cpu_info["load_avg"] = list(psutil.getloadavg())

        self.snapshot.update("cpu", cpu_info)
        await self.log.verbose(f"Collected CPU info: {len(cpu_info)} metrics")


class MemoryCollector(PeriodicRunnable):
    """Collects virtual and swap memory usage."""

    def __init__(self, snapshot: SystemSnapshot, log_manager: LogManager, interval: float):
        super().__init__("MemoryCollector", log_manager, interval)
        self.snapshot = snapshot

    async def tick(self):
        virtual = psutil.virtual_memory()
        swap = psutil.swap_memory()
        self.snapshot.update("memory", {
            "virtual": {
                "total": virtual.total,
                "available": virtual.available,
                "percent": virtual.percent,
                "used": virtual.used,
            },
            "swap": {
                "total": swap.total,
                "used": swap.used,
                "percent": swap.percent
            }
        })
        await self.log.verbose("Collected memory information")


class DiskCollector(PeriodicRunnable):
    """Collects usage of every mounted partition."""

    def __init__(self, snapshot: SystemSnapshot, log_manager: LogManager, interval: float):
        super().__init__("DiskCollector", log_manager, interval)
        self.snapshot = snapshot

    async def tick(self):
        partitions = []
        for partition in psutil.disk_partitions():
            part_info: Dict[str, Any] = {
                "device": partition.device,
                "mountpoint": partition.mountpoint,
                "fstype": partition.fstype
            }
            try:
                usage = psutil.disk_usage(partition.mountpoint)
                part_info["usage"] = {
                    "total": usage.total,
                    "used": usage.used,
                    "free": usage.free,
                    "percent": usage.percent
                }
            except OSError:
                part_info["usage"] = None
            partitions.append(part_info)

        self.snapshot.update("disk", {"partitions": partitions})
        await self.log.verbose(f"Collected {len(partitions)} partitions")


class ReportWriter(PeriodicRunnable):
    """Writes the snapshot to a JSON file."""

    def __init__(self, snapshot: SystemSnapshot, log_manager: LogManager,
                 interval: float, output_file: str):
        super().__init__("ReportWriter", log_manager, interval)
        self.snapshot = snapshot
        self.output_file = Path(output_file)

    async def all_started(self):
        await self.log.info(f"Will write reports to {self.output_file}")

    async def tick(self):
        try:
            self.output_file.parent.mkdir(parents=True, exist_ok=True)
            temp_file = self.output_file.with_suffix('.tmp')
            async with aiofiles.open(temp_file, 'w') as f:
                await f.write(json.dumps(self.snapshot.to_dict(), indent=2, default=str))
            temp_file.replace(self.output_file)
        except OSError as e:
            raise CollectionError(f"Failed to write report: {e}")

        await self.log.verbose(f"Wrote report to {self.output_file}")

    async def all_stopped(self):
        await super().all_stopped()
        # Final report so the file reflects the last readings
        await self.tick()

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Module Implementation
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class SystemInfoModule(BaseModule):
    """
    System information monitoring module.

    Binds a SystemSnapshot plus the enabled collectors and the report
    writer as runnables.
    """

    CONFIG_PARAMS = [
        ConfigParam(
            name="collection_interval",
            default=5.0,
            description="Interval between data collections in seconds",
            validators=[Validator.positive]
        ),
        ConfigParam(
            name="output_file",
            default="system_info.json",
            description="File to write system information to",
            validators=[Validator.matches(r".+")]
        ),
        ConfigParam(
            name="report_cpu",
            default=True,
            description="Whether to report CPU information"
        ),
        ConfigParam(
            name="report_memory",
            default=True,
            description="Whether to report memory information"
        ),
        ConfigParam(
            name="report_disk",
            default=True,
            description="Whether to report disk information"
        )
    ]

    async def initialize(self, graph, host, options=None):
        await super().initialize(graph, host, options)
        log_manager = graph.get(LogManager)
        interval = self.options["collection_interval"]

        snapshot = SystemSnapshot()
        graph.bind(SystemSnapshot, snapshot)

        collectors = [
            ("report_cpu", CpuCollector),
            ("report_memory", MemoryCollector),
            ("report_disk", DiskCollector),
        ]
        for option, collector in collectors:
            if self.options[option]:
                graph.bind(Runnable, collector(snapshot, log_manager, interval))

        graph.bind(Runnable, ReportWriter(
            snapshot, log_manager, interval, self.options["output_file"]
        ))

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Entry Point
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

async def main():
    """Run the system info module until interrupted."""
    host = Host().add_module(SystemInfoModule(), {
        "collection_interval": 5,
        "output_file": "system_info.json",
    })

    await run_host(host, {'log': {'level': 'verbose'}})

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nSystem info module stopped")
