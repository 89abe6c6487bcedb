"""Dashboard rendering.

``render()`` is a pure function from a snapshot, a theme and the UI state to
a ``Frame``: a list of positioned text segments tagged with a color role.
It performs no I/O; ``sysdash.terminal`` paints the frame. Layout depends
only on the terminal size and the UI state, never on the theme.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sysdash import __version__
from sysdash.history import Channel
from sysdash.metrics import ProcessInfo
from sysdash.snapshot import Snapshot
from sysdash.state import UiState
from sysdash.themes import THEME_NAMES, Theme

MIN_WIDTH = 40
MIN_HEIGHT = 10
TWO_COLUMN_WIDTH = 82

BOX_GLYPHS = "┌┐└┘─│"


# ── Frame description ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Segment:
    y: int
    x: int
    text: str
    role: str = "foreground"
    bold: bool = False
    reverse: bool = False


@dataclass(frozen=True)
class Frame:
    """One full screen. Later segments are drawn over earlier ones."""

    width: int
    height: int
    segments: tuple[Segment, ...]

    def lines(self) -> list[str]:
        """Rasterize to plain text, one string per row."""
        grid = [[" "] * self.width for _ in range(self.height)]
        for seg in self.segments:
            for i, ch in enumerate(seg.text):
                grid[seg.y][seg.x + i] = ch
        return ["".join(row).rstrip() for row in grid]

    def text(self) -> str:
        return "\n".join(self.lines())


@dataclass(frozen=True)
class Rect:
    y: int
    x: int
    h: int
    w: int

    def inner(self) -> Rect:
        return Rect(self.y + 1, self.x + 1, self.h - 2, self.w - 2)


class _Canvas:
    """Collects clipped segments for a frame of fixed size."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._segments: list[Segment] = []

    def put(
        self,
        y: int,
        x: int,
        text: str,
        role: str = "foreground",
        bold: bool = False,
        reverse: bool = False,
    ) -> None:
        if y < 0 or y >= self.height or x < 0 or x >= self.width:
            return
        text = text[: self.width - x]
        if text:
            self._segments.append(Segment(y, x, text, role, bold, reverse))

    def clear(self, rect: Rect) -> None:
        for row in range(rect.y, rect.y + rect.h):
            self.put(row, rect.x, " " * rect.w)

    def frame(self) -> Frame:
        return Frame(self.width, self.height, tuple(self._segments))


# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def fmt_rate(bps: float) -> str:
    """Human-readable transfer rate."""
    if bps < 1024:
        return f"{bps:.0f} B/s"
    if bps < 1024 * 1024:
        return f"{bps / 1024:.1f} KB/s"
    if bps < 1024**3:
        return f"{bps / 1024 ** 2:.1f} MB/s"
    return f"{bps / 1024 ** 3:.1f} GB/s"


def fmt_uptime(secs: float) -> str:
    secs = int(secs)
    days, hours, mins = secs // 86400, (secs % 86400) // 3600, (secs % 3600) // 60
    if days > 0:
        return f"{days}d {hours}h {mins}m"
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def truncate(s: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(s) <= width:
        return s
    return s[: width - 1] + "…"


# ── Bars and sparklines ────────────────────────────────────────────────────


def clamp_percent(pct: float) -> float:
    return min(100.0, max(0.0, pct))


def bar_cells(pct: float, width: int) -> tuple[int, int]:
    """(filled, empty) cell counts for a *width*-cell gauge."""
    filled = int(width * clamp_percent(pct) / 100.0)
    return filled, width - filled


def sparkline(values: Sequence[float], width: int, glyphs: str) -> str:
    """Map the most recent *width* values onto *glyphs*, lowest first.

    The series is scaled to its own min/max within the window, so a flat
    series renders at the lowest level. An empty series renders as "".
    """
    if width <= 0 or not values:
        return ""
    window = list(values)[-width:]
    lo, hi = min(window), max(window)
    if hi <= lo:
        return glyphs[0] * len(window)
    top = len(glyphs) - 1
    return "".join(glyphs[round((v - lo) / (hi - lo) * top)] for v in window)


# ── Drawing primitives ─────────────────────────────────────────────────────


def _draw_box(canvas: _Canvas, rect: Rect, title: str = "") -> Rect | None:
    """Draw a bordered box and return the inner area."""
    if rect.h < 3 or rect.w < 4:
        return None
    tl, tr, bl, br, hz, vt = BOX_GLYPHS
    right = rect.x + rect.w - 1
    canvas.put(rect.y, rect.x, tl + hz * (rect.w - 2) + tr, "border")
    for row in range(rect.y + 1, rect.y + rect.h - 1):
        canvas.put(row, rect.x, vt, "border")
        canvas.put(row, right, vt, "border")
    canvas.put(rect.y + rect.h - 1, rect.x, bl + hz * (rect.w - 2) + br, "border")
    if title and len(title) + 4 < rect.w:
        canvas.put(rect.y, rect.x + 2, f" {title} ", "primary", bold=True)
    return rect.inner()


def _draw_bar(
    canvas: _Canvas,
    y: int,
    x: int,
    width: int,
    pct: float,
    theme: Theme,
    label: str = "",
    suffix: str | None = None,
) -> None:
    """Render ``label ████░░░░ suffix`` on one line.

    Cells in the normal range use the theme's bar color. Warning and danger
    levels override it.
    """
    pct = clamp_percent(pct)
    role = theme.usage_role(pct)
    cx = x
    if label:
        canvas.put(y, cx, f"{label:>6s} "[:width], "muted")
        cx += 7

    if suffix is None:
        suffix = f" {pct:5.1f}%"

    bar_w = width - (cx - x) - len(suffix)
    if bar_w < 3:
        canvas.put(y, cx, suffix.strip()[: max(0, width - (cx - x))], role, bold=True)
        return

    filled, empty = bar_cells(pct, bar_w)
    fill_role = "bar_filled" if role == "success" else role
    canvas.put(y, cx, theme.bar_fill_glyph * filled, fill_role, bold=True)
    canvas.put(y, cx + filled, theme.bar_empty_glyph * empty, "bar_empty")
    canvas.put(y, cx + bar_w, suffix, role, bold=True)


def _draw_sparkline(
    canvas: _Canvas,
    y: int,
    x: int,
    width: int,
    snap: Snapshot,
    channel: Channel,
    theme: Theme,
) -> None:
    if not snap.available(channel):
        return
    canvas.put(y, x, sparkline(snap.series(channel), width, theme.spark_glyphs), "graph_line")


def _na(canvas: _Canvas, area: Rect, message: str = "n/a") -> None:
    canvas.put(area.y, area.x + 1, truncate(message, area.w - 1), "muted")


# ── Panel renderers ────────────────────────────────────────────────────────


def draw_cpu_panel(
    canvas: _Canvas, rect: Rect, snap: Snapshot, theme: Theme, ui: UiState
) -> None:
    box = _draw_box(canvas, rect, "CPU")
    if not box:
        return
    cpu = snap.raw.cpu
    if cpu is None or snap.cpu_total is None:
        _na(canvas, box, "CPU: n/a")
        return
    bottom = box.y + box.h
    row = box.y
    _draw_bar(canvas, row, box.x, box.w, snap.cpu_total, theme, "Total")
    row += 1

    info = [truncate(cpu.model, 30)] if cpu.model else []
    if cpu.physical_cores and cpu.logical_cores:
        info.append(f"{cpu.physical_cores}C/{cpu.logical_cores}T")
    if cpu.frequency_mhz is not None:
        info.append(f"{cpu.frequency_mhz:.0f} MHz")
    if cpu.temperature is not None:
        info.append(f"{cpu.temperature:.0f}°C")
    if row < bottom and info:
        canvas.put(row, box.x + 1, truncate(" │ ".join(info), box.w - 1), "muted")
        row += 1
    if row < bottom and cpu.load_avg is not None and not ui.compact:
        la = cpu.load_avg
        canvas.put(row, box.x + 1, f"Load {la[0]:.2f} {la[1]:.2f} {la[2]:.2f}", "muted")
        row += 1

    graph_rows = 1 if ui.show_graphs else 0
    core_rows = bottom - row - graph_rows
    per_row = max(1, (box.w - 1) // 5)
    cores = cpu.per_core
    shown = min(len(cores), max(0, core_rows) * per_row)
    if shown < len(cores) and shown > 0:
        shown -= 1  # room for the overflow marker
    for i in range(shown):
        pct = clamp_percent(cores[i])
        canvas.put(
            row + i // per_row,
            box.x + 1 + (i % per_row) * 5,
            f"[{pct:2.0f}]",
            theme.usage_role(pct),
        )
    if shown < len(cores) and core_rows > 0:
        i = shown
        canvas.put(
            row + i // per_row,
            box.x + 1 + (i % per_row) * 5,
            f"+{len(cores) - shown}",
            "muted",
        )

    if ui.show_graphs and bottom - 1 >= row:
        _draw_sparkline(canvas, bottom - 1, box.x + 1, box.w - 2, snap, Channel.CPU, theme)


def draw_mem_panel(
    canvas: _Canvas, rect: Rect, snap: Snapshot, theme: Theme, ui: UiState
) -> None:
    box = _draw_box(canvas, rect, "Memory")
    if not box:
        return
    mem = snap.raw.memory
    if mem is None or snap.memory_percent is None:
        _na(canvas, box, "Memory: n/a")
        return
    bottom = box.y + box.h
    row = box.y
    _draw_bar(canvas, row, box.x, box.w, snap.memory_percent, theme, "RAM")
    row += 1
    if row < bottom:
        detail = f"{fmt_bytes(mem.used)} / {fmt_bytes(mem.total)} │ Avail {fmt_bytes(mem.available)}"
        canvas.put(row, box.x + 1, truncate(detail, box.w - 1), "muted")
        row += 1
    if row < bottom:
        if snap.swap_percent is not None:
            swap = (
                f"Swap {snap.swap_percent:.0f}% "
                f"({fmt_bytes(mem.swap_used)} / {fmt_bytes(mem.swap_total)})"
            )
        else:
            swap = "Swap: none"
        canvas.put(row, box.x + 1, truncate(swap, box.w - 1), "muted")
        row += 1
    if ui.show_graphs and row < bottom:
        _draw_sparkline(canvas, bottom - 1, box.x + 1, box.w - 2, snap, Channel.MEMORY, theme)


def draw_gpu_panel(
    canvas: _Canvas, rect: Rect, snap: Snapshot, theme: Theme, ui: UiState
) -> None:
    gpu = snap.raw.gpu
    title = f"GPU ─ {truncate(gpu.name, 25)}" if gpu is not None else "GPU"
    box = _draw_box(canvas, rect, title)
    if not box:
        return
    if not ui.gpu_enabled:
        _na(canvas, box, "GPU monitoring disabled")
        return
    if gpu is None:
        _na(canvas, box, "No NVIDIA GPU detected")
        return
    bottom = box.y + box.h
    row = box.y
    if snap.gpu_util is not None:
        _draw_bar(canvas, row, box.x, box.w, snap.gpu_util, theme, "Load")
        row += 1
    if row < bottom and snap.gpu_mem_percent is not None:
        used = fmt_bytes(gpu.memory_used or 0)
        total = fmt_bytes(gpu.memory_total or 0)
        _draw_bar(
            canvas, row, box.x, box.w, snap.gpu_mem_percent, theme, "VRAM",
            f" {clamp_percent(snap.gpu_mem_percent):3.0f}% {used}/{total}",
        )
        row += 1
    details = []
    if gpu.temperature is not None:
        details.append(f"{gpu.temperature:.0f}°C")
    if gpu.fan_speed is not None:
        details.append(f"Fan {gpu.fan_speed:.0f}%")
    if gpu.power_draw is not None:
        limit = f"/{gpu.power_limit:.0f}W" if gpu.power_limit is not None else ""
        details.append(f"{gpu.power_draw:.0f}W{limit}")
    if gpu.clock_mhz is not None:
        details.append(f"{gpu.clock_mhz:.0f} MHz")
    if row < bottom and details:
        canvas.put(row, box.x + 1, truncate(" │ ".join(details), box.w - 1), "muted")
        row += 1
    if ui.show_graphs and row < bottom:
        _draw_sparkline(canvas, bottom - 1, box.x + 1, box.w - 2, snap, Channel.GPU_UTIL, theme)


def draw_net_panel(
    canvas: _Canvas, rect: Rect, snap: Snapshot, theme: Theme, ui: UiState
) -> None:
    net = snap.raw.network
    box = _draw_box(canvas, rect, f"Network ─ {net.interface}" if net else "Network")
    if not box:
        return
    if net is None:
        _na(canvas, box)
        return
    bottom = box.y + box.h
    row = box.y
    speeds = f"↓ {fmt_rate(snap.net_rx_rate or 0.0)}  ↑ {fmt_rate(snap.net_tx_rate or 0.0)}"
    canvas.put(row, box.x + 1, truncate(speeds, box.w - 1), "primary", bold=True)
    row += 1
    if row < bottom:
        totals = f"Total ↓ {fmt_bytes(net.bytes_recv)} │ ↑ {fmt_bytes(net.bytes_sent)}"
        canvas.put(row, box.x + 1, truncate(totals, box.w - 1), "muted")
        row += 1
    if row < bottom and not ui.compact:
        pkts = (
            f"Pkts ↓{net.packets_recv // 1000}K ↑{net.packets_sent // 1000}K"
            f" │ Err {net.errors}"
        )
        canvas.put(row, box.x + 1, truncate(pkts, box.w - 1), "muted")
        row += 1
    if ui.show_graphs and row < bottom:
        _draw_sparkline(canvas, bottom - 1, box.x + 1, box.w - 2, snap, Channel.NET_RX, theme)


def draw_disk_panel(
    canvas: _Canvas, rect: Rect, snap: Snapshot, theme: Theme, ui: UiState
) -> None:
    disk = snap.raw.disk
    box = _draw_box(canvas, rect, f"Disk ─ {disk.mount_point}" if disk else "Disk")
    if not box:
        return
    if disk is None and snap.raw.disk_io is None:
        _na(canvas, box)
        return
    bottom = box.y + box.h
    row = box.y
    if disk is not None and disk.total > 0:
        _draw_bar(canvas, row, box.x, box.w, disk.used / disk.total * 100.0, theme, "Used")
        row += 1
        if row < bottom:
            free = f"Free {fmt_bytes(disk.free)} of {fmt_bytes(disk.total)}"
            canvas.put(row, box.x + 1, truncate(free, box.w - 1), "muted")
            row += 1
    if row < bottom and snap.disk_read_rate is not None:
        io = f"I/O R {fmt_rate(snap.disk_read_rate)} │ W {fmt_rate(snap.disk_write_rate or 0.0)}"
        canvas.put(row, box.x + 1, truncate(io, box.w - 1), "primary")
        row += 1
    if ui.show_graphs and row < bottom:
        _draw_sparkline(canvas, bottom - 1, box.x + 1, box.w - 2, snap, Channel.DISK_READ, theme)


def _proc_table(
    canvas: _Canvas,
    area: Rect,
    heading: str,
    unit: str,
    procs: Sequence[ProcessInfo],
    value: Callable[[ProcessInfo], str],
    color: Callable[[ProcessInfo], str],
) -> None:
    name_w = max(4, area.w - 10)
    canvas.put(area.y, area.x + 1, f"{heading:<{name_w}s}{unit:>8s}"[: area.w - 1], "accent", bold=True)
    for i, p in enumerate(procs[: max(0, area.h - 1)]):
        line = f"{truncate(p.name, name_w - 1):<{name_w}s}{value(p):>8s}"
        canvas.put(area.y + 1 + i, area.x + 1, line[: area.w - 1], color(p))


def draw_proc_panel(
    canvas: _Canvas, rect: Rect, snap: Snapshot, theme: Theme, ui: UiState
) -> None:
    table = snap.raw.processes
    title = "Processes"
    if table is not None:
        title = (
            f"Processes ─ {table.total} │ Thr {table.threads}"
            f" │ Run {table.running} │ Zomb {table.zombies}"
        )
    box = _draw_box(canvas, rect, truncate(title, rect.w - 6))
    if not box:
        return
    if table is None:
        _na(canvas, box)
        return
    half = box.w // 2
    _proc_table(
        canvas, Rect(box.y, box.x, box.h, half), "TOP CPU", "CPU%", table.top_cpu,
        lambda p: f"{p.cpu_percent:5.1f}",
        lambda p: theme.usage_role(clamp_percent(p.cpu_percent)),
    )
    _proc_table(
        canvas, Rect(box.y, box.x + half, box.h, box.w - half), "TOP MEM", "SIZE", table.top_mem,
        lambda p: fmt_bytes(p.memory_bytes).replace(" ", ""),
        lambda p: "muted",
    )


def draw_sys_panel(
    canvas: _Canvas, rect: Rect, snap: Snapshot, theme: Theme, ui: UiState
) -> None:
    box = _draw_box(canvas, rect, "System")
    if not box:
        return
    table = snap.raw.processes
    system = snap.raw.system
    lines: list[tuple[str, str]] = []
    if table is not None:
        lines.append((f"Processes: {table.total} │ Threads: {table.threads}", "primary"))
        lines.append((f"Running: {table.running} │ Sleeping: {table.sleeping}", "muted"))
        lines.append((f"Zombies: {table.zombies}", "danger" if table.zombies else "success"))
    if system is not None:
        lines.append((f"Uptime: {fmt_uptime(system.uptime_secs)}", "muted"))
    if not lines:
        _na(canvas, box)
        return
    for i, (text, role) in enumerate(lines[: box.h]):
        canvas.put(box.y + i, box.x + 1, truncate(text, box.w - 1), role)


PanelFn = Callable[[_Canvas, Rect, Snapshot, Theme, UiState], None]

PANELS: dict[str, PanelFn] = {
    "cpu": draw_cpu_panel,
    "memory": draw_mem_panel,
    "gpu": draw_gpu_panel,
    "network": draw_net_panel,
    "disk": draw_disk_panel,
    "processes": draw_proc_panel,
    "system": draw_sys_panel,
}


# ── Layout ─────────────────────────────────────────────────────────────────


def _stack(area: Rect, panels: Sequence[tuple[str, int]]) -> list[tuple[str, Rect]]:
    """Place panels top to bottom; height 0 takes the remaining rows."""
    placed: list[tuple[str, Rect]] = []
    y = area.y
    bottom = area.y + area.h
    for name, h in panels:
        h = bottom - y if h <= 0 else min(h, bottom - y)
        if h < 3:
            break
        placed.append((name, Rect(y, area.x, h, area.w)))
        y += h
    return placed


def layout(body: Rect, ui: UiState) -> list[tuple[str, Rect]]:
    """Panel placement for the body area. Depends on size and UI mode only."""
    if body.w >= TWO_COLUMN_WIDTH:
        left_w = body.w * 3 // 5
        left = Rect(body.y, body.x, body.h, left_w)
        right = Rect(body.y, body.x + left_w, body.h, body.w - left_w)
        if ui.compact:
            return _stack(left, [("cpu", 7), ("memory", 5), ("gpu", 5)]) + _stack(
                right, [("network", 6), ("disk", 6)]
            )
        return _stack(
            left, [("cpu", 10), ("memory", 6), ("gpu", 6), ("processes", 0)]
        ) + _stack(right, [("network", 7), ("disk", 7), ("system", 0)])

    if ui.compact:
        return _stack(body, [("cpu", 5), ("memory", 4), ("gpu", 4), ("network", 5), ("disk", 5)])
    return _stack(
        body,
        [("cpu", 8), ("memory", 5), ("gpu", 5), ("network", 5), ("disk", 5), ("processes", 0)],
    )


# ── Header, footer, help ───────────────────────────────────────────────────


def _draw_header(canvas: _Canvas, snap: Snapshot | None) -> None:
    w = canvas.width
    canvas.put(0, 0, " " * w, "primary", reverse=True)
    parts = ["sysdash"]
    clock = ""
    if snap is not None:
        system = snap.raw.system
        if system is not None:
            parts += [system.hostname, system.os_name, system.kernel]
            parts.append(f"up {fmt_uptime(system.uptime_secs)}")
        clock = time.strftime("%H:%M:%S", time.localtime(snap.raw.wall_time))
    title = " │ ".join(p for p in parts if p)
    canvas.put(0, 1, truncate(title, w - len(clock) - 3), "primary", bold=True, reverse=True)
    if clock:
        canvas.put(0, w - len(clock) - 1, clock, "primary", reverse=True)


def _draw_footer(canvas: _Canvas, ui: UiState) -> None:
    y = canvas.height - 1
    x = 0
    for key, rest in (("[Q]", "uit "), ("[T]", "heme "), ("[S]", "ave "), ("[H/?]", "elp "), ("[+/-]", "Rate ")):
        canvas.put(y, x, key, "accent", bold=True)
        x += len(key)
        canvas.put(y, x, rest, "muted")
        x += len(rest)
    if ui.status:
        canvas.put(y, x, f"│ {ui.status}", "success")
    else:
        canvas.put(y, x, f"│ {ui.theme} │ {ui.refresh_rate:.2f}s │ v{__version__}", "secondary")


HELP_KEYS = (
    ("Q / Esc", "Quit"),
    ("T", "Cycle theme"),
    ("R", "Refresh now"),
    ("H / F1 / ?", "Toggle this help"),
    ("+ / =", "Faster refresh"),
    ("- / _", "Slower refresh"),
    ("S", "Save settings"),
)


def _draw_help(canvas: _Canvas, ui: UiState) -> None:
    w = min(50, canvas.width - 4)
    h = min(18, canvas.height - 2)
    rect = Rect((canvas.height - h) // 2, (canvas.width - w) // 2, h, w)
    canvas.clear(rect)
    box = _draw_box(canvas, rect, "Help")
    if not box:
        return
    lines: list[tuple[str, str]] = [(f"sysdash v{__version__}", "primary"), ("", "muted")]
    lines += [(f"{key:<12s}{desc}", "foreground") for key, desc in HELP_KEYS]
    lines += [("", "muted"), (f"Themes ({len(THEME_NAMES)}, current: {ui.theme})", "accent")]
    names = ""
    for name in THEME_NAMES:
        if names and len(names) + len(name) + 1 > box.w - 2:
            lines.append((names, "muted"))
            names = ""
        names = f"{names} {name}".strip()
    if names:
        lines.append((names, "muted"))
    lines += [("", "muted"), ("Press H to close", "muted")]
    for i, (text, role) in enumerate(lines[: box.h]):
        canvas.put(box.y + i, box.x + 1, truncate(text, box.w - 2), role)


# ── Entry point ────────────────────────────────────────────────────────────


def render(
    snap: Snapshot | None,
    theme: Theme,
    ui: UiState,
    width: int,
    height: int,
) -> Frame:
    """Build the frame for one redraw. *snap* is None before the first sample."""
    canvas = _Canvas(max(0, width), max(0, height))
    if width < MIN_WIDTH or height < MIN_HEIGHT:
        canvas.put(0, 0, f"Terminal too small (need {MIN_WIDTH}x{MIN_HEIGHT}+)", "warning")
        return canvas.frame()

    _draw_header(canvas, snap)
    body = Rect(1, 0, height - 2, width)
    if snap is None:
        msg = "Collecting metrics…"
        canvas.put(body.y + body.h // 2, (width - len(msg)) // 2, msg, "muted")
    else:
        for name, rect in layout(body, ui):
            PANELS[name](canvas, rect, snap, theme, ui)
    _draw_footer(canvas, ui)
    if ui.show_help:
        _draw_help(canvas, ui)
    return canvas.frame()
