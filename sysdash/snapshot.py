"""Turns raw readings into immutable per-tick snapshots."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from sysdash.history import Channel, HistoryStore
from sysdash.metrics import RawMetrics


class RateCounter:
    """Derives bytes-per-second from a cumulative byte counter.

    The first reading yields 0.0. A counter that goes backwards (reset,
    wrap, interface swap) yields 0.0 rather than a negative rate. A
    non-positive elapsed time reports the previous rate unchanged.
    """

    def __init__(self) -> None:
        self._prev_bytes: int | None = None
        self._prev_time = 0.0
        self._rate = 0.0

    @property
    def rate(self) -> float:
        return self._rate

    def update(self, total_bytes: int, now: float) -> float:
        if self._prev_bytes is None:
            self._prev_bytes = total_bytes
            self._prev_time = now
            return self._rate
        elapsed = now - self._prev_time
        if elapsed <= 0:
            return self._rate
        self._rate = max(0.0, (total_bytes - self._prev_bytes) / elapsed)
        self._prev_bytes = total_bytes
        self._prev_time = now
        return self._rate


def _percent(part: float, whole: float) -> float | None:
    if whole <= 0:
        return None
    return part / whole * 100.0


@dataclass(frozen=True)
class Snapshot:
    """Latest reading plus history views for one render pass."""

    raw: RawMetrics
    cpu_total: float | None = None
    memory_percent: float | None = None
    swap_percent: float | None = None
    gpu_util: float | None = None
    gpu_mem_percent: float | None = None
    net_rx_rate: float | None = None
    net_tx_rate: float | None = None
    disk_read_rate: float | None = None
    disk_write_rate: float | None = None
    history: Mapping[Channel, tuple[float, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    unavailable: frozenset[Channel] = frozenset()

    def available(self, channel: Channel) -> bool:
        return channel not in self.unavailable

    def series(self, channel: Channel) -> tuple[float, ...]:
        """History of *channel*, oldest first.

        Raises ``KeyError`` for channels marked unavailable this tick.
        """
        if channel in self.unavailable:
            raise KeyError(f"channel {channel.value} is unavailable")
        return self.history.get(channel, ())


class SnapshotBuilder:
    """Merges readings into the history and produces ``Snapshot`` values.

    Holds the previous byte counters needed for rate channels, so one
    builder must be fed consecutive readings from the same source.
    A change of network interface restarts the network rates at 0.0.
    """

    def __init__(self) -> None:
        self._rates: dict[Channel, RateCounter] = {
            Channel.NET_RX: RateCounter(),
            Channel.NET_TX: RateCounter(),
            Channel.DISK_READ: RateCounter(),
            Channel.DISK_WRITE: RateCounter(),
        }
        self._interface: str | None = None

    def channel_values(self, raw: RawMetrics) -> dict[Channel, float | None]:
        """Scalar per channel for *raw*; ``None`` where the field is absent."""
        values: dict[Channel, float | None] = {channel: None for channel in Channel}

        if raw.cpu is not None and raw.cpu.per_core:
            values[Channel.CPU] = sum(raw.cpu.per_core) / len(raw.cpu.per_core)

        if raw.memory is not None:
            values[Channel.MEMORY] = _percent(raw.memory.used, raw.memory.total)
            values[Channel.SWAP] = _percent(raw.memory.swap_used, raw.memory.swap_total)

        gpu = raw.gpu
        if gpu is not None:
            values[Channel.GPU_UTIL] = gpu.utilization
            if gpu.memory_used is not None and gpu.memory_total:
                values[Channel.GPU_MEM] = _percent(gpu.memory_used, gpu.memory_total)

        if raw.network is not None:
            if raw.network.interface != self._interface:
                self._interface = raw.network.interface
                self._rates[Channel.NET_RX] = RateCounter()
                self._rates[Channel.NET_TX] = RateCounter()
            values[Channel.NET_RX] = self._rates[Channel.NET_RX].update(
                raw.network.bytes_recv, raw.timestamp
            )
            values[Channel.NET_TX] = self._rates[Channel.NET_TX].update(
                raw.network.bytes_sent, raw.timestamp
            )

        if raw.disk_io is not None:
            values[Channel.DISK_READ] = self._rates[Channel.DISK_READ].update(
                raw.disk_io.read_bytes, raw.timestamp
            )
            values[Channel.DISK_WRITE] = self._rates[Channel.DISK_WRITE].update(
                raw.disk_io.write_bytes, raw.timestamp
            )
        return values

    def build(self, raw: RawMetrics, history: HistoryStore | None) -> Snapshot:
        """Record *raw* into *history* and return the resulting snapshot.

        With ``history=None`` nothing is recorded and every history view is
        empty; this is the read-only probe used by ``--check``.
        """
        values = self.channel_values(raw)
        unavailable = frozenset(ch for ch, value in values.items() if value is None)

        views: dict[Channel, tuple[float, ...]] = {}
        for channel, value in values.items():
            if value is None:
                continue
            if history is not None:
                history.push(channel, value)
                views[channel] = history.series(channel)
            else:
                views[channel] = ()

        return Snapshot(
            raw=raw,
            cpu_total=values[Channel.CPU],
            memory_percent=values[Channel.MEMORY],
            swap_percent=values[Channel.SWAP],
            gpu_util=values[Channel.GPU_UTIL],
            gpu_mem_percent=values[Channel.GPU_MEM],
            net_rx_rate=values[Channel.NET_RX],
            net_tx_rate=values[Channel.NET_TX],
            disk_read_rate=values[Channel.DISK_READ],
            disk_write_rate=values[Channel.DISK_WRITE],
            history=MappingProxyType(views),
            unavailable=unavailable,
        )
