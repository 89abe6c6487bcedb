"""Host metric collection.

``PsutilSource.sample()`` returns one ``RawMetrics`` reading. Each field is
read independently: a field that cannot be read (permissions, missing
hardware, OS error, timeout) comes back as ``None`` for that tick instead of
failing the whole reading. Only when nothing at all could be read does
``sample()`` raise ``SampleError``.
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import psutil

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOP_N = 5
GPU_QUERY_TIMEOUT = 2.0

_GPU_FIELDS = (
    "name",
    "utilization.gpu",
    "memory.used",
    "memory.total",
    "temperature.gpu",
    "power.draw",
    "power.limit",
    "fan.speed",
    "clocks.gr",
)


class SampleError(Exception):
    """Raised when no metric at all could be read for a tick."""


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CpuReading:
    per_core: tuple[float, ...]
    model: str = ""
    frequency_mhz: float | None = None
    physical_cores: int | None = None
    logical_cores: int | None = None
    load_avg: tuple[float, float, float] | None = None
    temperature: float | None = None


@dataclass(frozen=True)
class MemoryReading:
    total: int
    used: int
    available: int
    swap_total: int = 0
    swap_used: int = 0


@dataclass(frozen=True)
class GpuReading:
    """One NVIDIA device. VRAM figures are in bytes."""

    name: str
    utilization: float | None = None
    memory_used: int | None = None
    memory_total: int | None = None
    temperature: float | None = None
    power_draw: float | None = None
    power_limit: float | None = None
    fan_speed: float | None = None
    clock_mhz: float | None = None


@dataclass(frozen=True)
class NetCounters:
    interface: str
    bytes_recv: int
    bytes_sent: int
    packets_recv: int = 0
    packets_sent: int = 0
    errors: int = 0


@dataclass(frozen=True)
class DiskUsage:
    mount_point: str
    total: int
    used: int
    free: int


@dataclass(frozen=True)
class DiskCounters:
    read_bytes: int
    write_bytes: int


@dataclass(frozen=True)
class ProcessInfo:
    pid: int
    name: str
    cpu_percent: float
    memory_bytes: int
    memory_percent: float


@dataclass(frozen=True)
class ProcessTable:
    top_cpu: tuple[ProcessInfo, ...]
    top_mem: tuple[ProcessInfo, ...]
    total: int
    threads: int
    running: int
    sleeping: int
    zombies: int


@dataclass(frozen=True)
class SystemInfo:
    hostname: str
    os_name: str
    kernel: str
    uptime_secs: float


@dataclass(frozen=True)
class RawMetrics:
    """A point-in-time reading. ``None`` means the field is absent."""

    timestamp: float
    wall_time: float
    cpu: CpuReading | None = None
    memory: MemoryReading | None = None
    gpu: GpuReading | None = None
    network: NetCounters | None = None
    disk: DiskUsage | None = None
    disk_io: DiskCounters | None = None
    processes: ProcessTable | None = None
    system: SystemInfo | None = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.cpu,
                self.memory,
                self.gpu,
                self.network,
                self.disk,
                self.disk_io,
                self.processes,
                self.system,
            )
        )


# ── GPU ────────────────────────────────────────────────────────────────────


def _parse_gpu_value(raw: str) -> float | None:
    raw = raw.strip()
    if not raw or raw.startswith("[") or raw.upper() == "N/A":
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def parse_nvidia_smi(output: str) -> GpuReading | None:
    """Parse the first line of ``nvidia-smi --format=csv,noheader,nounits``."""
    line = output.strip().splitlines()[0] if output.strip() else ""
    parts = [p.strip() for p in line.split(",")]
    if len(parts) < len(_GPU_FIELDS):
        return None
    values = [_parse_gpu_value(p) for p in parts[1:]]
    util, mem_used, mem_total, temp, power, power_limit, fan, clock = values
    mib = 1024 * 1024
    return GpuReading(
        name=parts[0],
        utilization=util,
        memory_used=int(mem_used * mib) if mem_used is not None else None,
        memory_total=int(mem_total * mib) if mem_total is not None else None,
        temperature=temp,
        power_draw=power,
        power_limit=power_limit,
        fan_speed=fan,
        clock_mhz=clock,
    )


class NvidiaSmi:
    """GPU reader backed by ``nvidia-smi``.

    A missing binary or a failed first probe marks the GPU absent for the
    rest of the session. Once a GPU has been seen, a slow or garbled query
    only drops the reading for that tick.
    """

    def __init__(self, timeout: float = GPU_QUERY_TIMEOUT) -> None:
        self.timeout = timeout
        self.available: bool | None = None  # None = not probed yet

    def read(self) -> GpuReading | None:
        if self.available is False:
            return None
        try:
            result = subprocess.run(
                [
                    "nvidia-smi",
                    f"--query-gpu={','.join(_GPU_FIELDS)}",
                    "--format=csv,noheader,nounits",
                ],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (FileNotFoundError, PermissionError):
            self.available = False
            return None
        except (subprocess.TimeoutExpired, OSError) as exc:
            logger.debug("nvidia-smi query failed: %s", exc)
            if self.available is None:
                self.available = False
            return None

        reading = parse_nvidia_smi(result.stdout) if result.returncode == 0 else None
        if reading is None:
            if self.available is None:
                self.available = False
            return None
        self.available = True
        return reading


# ── Field readers ──────────────────────────────────────────────────────────


def _read_temp() -> float | None:
    try:
        temps = psutil.sensors_temperatures()
    except AttributeError:
        return None
    if not temps:
        return None
    for chip in ("coretemp", "k10temp", "cpu_thermal", "acpitz"):
        if chip in temps and temps[chip]:
            return float(temps[chip][0].current)
    for entries in temps.values():
        if entries:
            return float(entries[0].current)
    return None


def _cpu_model() -> str:
    try:
        with open("/proc/cpuinfo") as f:
            for line in f:
                if line.startswith("model name"):
                    return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return platform.processor() or "CPU"


def _os_name() -> str:
    try:
        release = platform.freedesktop_os_release()
    except OSError:
        return platform.system()
    return release.get("PRETTY_NAME") or release.get("NAME") or platform.system()


def _primary_interface() -> str | None:
    """The non-loopback interface with the most traffic so far."""
    counters = psutil.net_io_counters(pernic=True)
    candidates = {
        name: c for name, c in counters.items() if not name.startswith("lo")
    }
    if not candidates:
        candidates = counters
    if not candidates:
        return None
    return max(candidates, key=lambda n: candidates[n].bytes_recv + candidates[n].bytes_sent)


class PsutilSource:
    """Metric source built on psutil, with an optional ``nvidia-smi`` GPU."""

    def __init__(
        self,
        gpu_enabled: bool = True,
        gpu_reader: NvidiaSmi | None = None,
        top_n: int = TOP_N,
        mount_point: str = "/",
    ) -> None:
        self.gpu_enabled = gpu_enabled
        self._gpu = gpu_reader if gpu_reader is not None else NvidiaSmi()
        self._top_n = top_n
        self._mount_point = mount_point
        self._interface: str | None = None
        self._cpu_model: str | None = None
        self._os_name: str | None = None
        # Warm-up psutil internal deltas
        try:
            psutil.cpu_percent(interval=None, percpu=True)
        except (OSError, psutil.Error):
            pass

    def sample(self) -> RawMetrics:
        raw = RawMetrics(
            timestamp=time.monotonic(),
            wall_time=time.time(),
            cpu=self._guard("cpu", self._read_cpu),
            memory=self._guard("memory", self._read_memory),
            gpu=self._guard("gpu", self._read_gpu),
            network=self._guard("network", self._read_network),
            disk=self._guard("disk", self._read_disk),
            disk_io=self._guard("disk_io", self._read_disk_io),
            processes=self._guard("processes", self._read_processes),
            system=self._guard("system", self._read_system),
        )
        if raw.is_empty():
            raise SampleError("no metrics could be read")
        return raw

    @staticmethod
    def _guard(name: str, reader: Callable[[], T | None]) -> T | None:
        try:
            return reader()
        except (OSError, psutil.Error, ValueError, AttributeError, RuntimeError) as exc:
            logger.debug("%s unavailable this tick: %s", name, exc)
            return None

    def _read_cpu(self) -> CpuReading:
        per_core = psutil.cpu_percent(interval=None, percpu=True)
        if self._cpu_model is None:
            self._cpu_model = _cpu_model()
        freq = psutil.cpu_freq()
        try:
            load = os.getloadavg()
            load_avg: tuple[float, float, float] | None = (load[0], load[1], load[2])
        except (OSError, AttributeError):
            load_avg = None
        return CpuReading(
            per_core=tuple(float(p) for p in per_core),
            model=self._cpu_model,
            frequency_mhz=float(freq.current) if freq else None,
            physical_cores=psutil.cpu_count(logical=False),
            logical_cores=psutil.cpu_count(logical=True),
            load_avg=load_avg,
            temperature=_read_temp(),
        )

    def _read_memory(self) -> MemoryReading:
        ram = psutil.virtual_memory()
        swap = psutil.swap_memory()
        return MemoryReading(
            total=ram.total,
            used=ram.used,
            available=ram.available,
            swap_total=swap.total,
            swap_used=swap.used,
        )

    def _read_gpu(self) -> GpuReading | None:
        if not self.gpu_enabled:
            return None
        return self._gpu.read()

    def _read_network(self) -> NetCounters | None:
        if self._interface is None:
            self._interface = _primary_interface()
        if self._interface is None:
            return None
        counters = psutil.net_io_counters(pernic=True).get(self._interface)
        if counters is None:
            # Interface went away; pick again next tick
            self._interface = None
            return None
        return NetCounters(
            interface=self._interface,
            bytes_recv=counters.bytes_recv,
            bytes_sent=counters.bytes_sent,
            packets_recv=counters.packets_recv,
            packets_sent=counters.packets_sent,
            errors=counters.errin + counters.errout,
        )

    def _read_disk(self) -> DiskUsage:
        usage = psutil.disk_usage(self._mount_point)
        return DiskUsage(
            mount_point=self._mount_point,
            total=usage.total,
            used=usage.used,
            free=usage.free,
        )

    def _read_disk_io(self) -> DiskCounters | None:
        io = psutil.disk_io_counters()
        if io is None:
            return None
        return DiskCounters(read_bytes=io.read_bytes, write_bytes=io.write_bytes)

    def _read_processes(self) -> ProcessTable:
        procs: list[ProcessInfo] = []
        threads = running = sleeping = zombies = 0
        for proc in psutil.process_iter(
            ["pid", "name", "cpu_percent", "memory_percent", "memory_info", "num_threads", "status"],
        ):
            try:
                info: dict[str, Any] = proc.info
                status = info.get("status")
                if status == psutil.STATUS_RUNNING:
                    running += 1
                elif status == psutil.STATUS_ZOMBIE:
                    zombies += 1
                elif status in (psutil.STATUS_SLEEPING, psutil.STATUS_IDLE):
                    sleeping += 1
                threads += info.get("num_threads") or 0
                mem_info = info.get("memory_info")
                procs.append(
                    ProcessInfo(
                        pid=info.get("pid", 0),
                        name=info.get("name") or "?",
                        cpu_percent=info.get("cpu_percent") or 0.0,
                        memory_bytes=mem_info.rss if mem_info else 0,
                        memory_percent=info.get("memory_percent") or 0.0,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, AttributeError):
                continue
        top_cpu = sorted(procs, key=lambda p: p.cpu_percent, reverse=True)[: self._top_n]
        top_mem = sorted(procs, key=lambda p: p.memory_bytes, reverse=True)[: self._top_n]
        return ProcessTable(
            top_cpu=tuple(top_cpu),
            top_mem=tuple(top_mem),
            total=len(procs),
            threads=threads,
            running=running,
            sleeping=sleeping,
            zombies=zombies,
        )

    def _read_system(self) -> SystemInfo:
        if self._os_name is None:
            self._os_name = _os_name()
        return SystemInfo(
            hostname=platform.node() or "localhost",
            os_name=self._os_name,
            kernel=platform.release(),
            uptime_secs=max(0.0, time.time() - psutil.boot_time()),
        )
