"""Synthetic readings for driving the builder and renderer."""

from __future__ import annotations

from typing import Any

from sysdash.metrics import (
    CpuReading,
    DiskCounters,
    DiskUsage,
    GpuReading,
    MemoryReading,
    NetCounters,
    ProcessInfo,
    ProcessTable,
    RawMetrics,
    SystemInfo,
)

GIB = 1024**3


def make_raw(t: float = 0.0, gpu: bool = True, **overrides: Any) -> RawMetrics:
    """A fully populated reading at monotonic time *t*."""
    fields: dict[str, Any] = {
        "timestamp": t,
        "wall_time": 1_700_000_000.0 + t,
        "cpu": CpuReading(
            per_core=(20.0, 40.0, 60.0, 80.0),
            model="Test CPU 9000",
            frequency_mhz=3200.0,
            physical_cores=2,
            logical_cores=4,
            load_avg=(1.5, 1.2, 0.8),
            temperature=55.0,
        ),
        "memory": MemoryReading(
            total=16 * GIB, used=8 * GIB, available=8 * GIB, swap_total=4 * GIB, swap_used=GIB
        ),
        "gpu": GpuReading(
            name="RTX Test",
            utilization=35.0,
            memory_used=2 * GIB,
            memory_total=8 * GIB,
            temperature=60.0,
            power_draw=120.0,
            power_limit=250.0,
            fan_speed=40.0,
            clock_mhz=1800.0,
        )
        if gpu
        else None,
        "network": NetCounters(
            interface="eth0", bytes_recv=int(t * 1000), bytes_sent=int(t * 500)
        ),
        "disk": DiskUsage(mount_point="/", total=500 * GIB, used=200 * GIB, free=300 * GIB),
        "disk_io": DiskCounters(read_bytes=int(t * 2000), write_bytes=int(t * 100)),
        "processes": ProcessTable(
            top_cpu=(
                ProcessInfo(1234, "python3", 42.0, 300 * 1024**2, 1.8),
                ProcessInfo(99, "Xorg", 7.5, 150 * 1024**2, 0.9),
            ),
            top_mem=(ProcessInfo(555, "firefox", 3.0, 2 * GIB, 12.5),),
            total=312,
            threads=1024,
            running=3,
            sleeping=300,
            zombies=0,
        ),
        "system": SystemInfo(
            hostname="testbox", os_name="Test Linux", kernel="6.1.0", uptime_secs=93784
        ),
    }
    fields.update(overrides)
    return RawMetrics(**fields)

