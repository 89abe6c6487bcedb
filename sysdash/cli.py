"""Command-line entry point for sysdash.

Usage:
    sysdash
    sysdash --refresh 0.5 --theme nord --compact
    sysdash --check
    sysdash --init-config
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from types import FrameType

from sysdash import __version__
from sysdash.app import MetricSource, run_dashboard
from sysdash.config import ConfigStore
from sysdash.metrics import PsutilSource, SampleError
from sysdash.render import fmt_bytes, fmt_rate, fmt_uptime
from sysdash.snapshot import Snapshot, SnapshotBuilder
from sysdash.terminal import TerminalError
from sysdash.themes import THEME_NAMES

CHECK_INTERVAL = 0.5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysdash",
        description="Live terminal dashboard for CPU, memory, GPU, network and disk.",
    )
    parser.add_argument(
        "-r",
        "--refresh",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Seconds between samples (default: from config, 1.0)",
    )
    parser.add_argument(
        "-t",
        "--theme",
        default=None,
        metavar="NAME",
        help=f"Color theme: {', '.join(THEME_NAMES)}",
    )
    parser.add_argument("--no-gpu", action="store_true", help="Disable GPU monitoring")
    parser.add_argument(
        "-c", "--compact", action="store_true", help="Compact layout without process list"
    )
    parser.add_argument(
        "-C",
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a default config file if none exists, then exit",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Print detected metrics and exit",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write diagnostic log records to PATH",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(log_file: Path | None, level: int = logging.INFO) -> None:
    """Send log records to *log_file*; with no file, curses owns the screen
    and records are dropped."""
    if log_file is None:
        logging.getLogger("sysdash").addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        filename=log_file,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _raise_exit(signum: int, frame: FrameType | None) -> None:
    raise SystemExit(128 + signum)


def format_check_report(snap: Snapshot, gpu_enabled: bool = True) -> str:
    """Plain-text summary of one probe snapshot."""
    raw = snap.raw
    lines = [f"── sysdash {__version__} [{time.strftime('%H:%M:%S', time.localtime(raw.wall_time))}] ──"]

    def row(label: str, value: str | None) -> None:
        lines.append(f"  {label:12s}  {value if value is not None else 'n/a'}")

    if raw.system is not None:
        row("Host", raw.system.hostname)
        row("OS", f"{raw.system.os_name} ({raw.system.kernel})")
        row("Uptime", fmt_uptime(raw.system.uptime_secs))
    else:
        row("System", None)

    cpu = raw.cpu
    if cpu is not None and snap.cpu_total is not None:
        row("CPU", f"{snap.cpu_total:.1f}%  {len(cpu.per_core)} cores  {cpu.model}".rstrip())
        if cpu.load_avg is not None:
            row("Load avg", " / ".join(f"{v:.2f}" for v in cpu.load_avg))
        row("CPU Temp", f"{cpu.temperature:.1f}°C" if cpu.temperature is not None else None)
    else:
        row("CPU", None)

    mem = raw.memory
    if mem is not None and snap.memory_percent is not None:
        row("RAM", f"{snap.memory_percent:.1f}%  {fmt_bytes(mem.used)} / {fmt_bytes(mem.total)}")
        row("Swap", f"{snap.swap_percent:.1f}%" if snap.swap_percent is not None else None)
    else:
        row("RAM", None)

    gpu = raw.gpu
    if not gpu_enabled:
        row("GPU", "disabled")
    elif gpu is None:
        row("GPU", None)
    else:
        util = f"{snap.gpu_util:.0f}%" if snap.gpu_util is not None else "n/a"
        vram = f"{snap.gpu_mem_percent:.0f}%" if snap.gpu_mem_percent is not None else "n/a"
        row("GPU", f"{gpu.name}  load {util}  vram {vram}")

    if raw.network is not None:
        row(
            "Network",
            f"{raw.network.interface}  ↓ {fmt_rate(snap.net_rx_rate or 0.0)}"
            f"  ↑ {fmt_rate(snap.net_tx_rate or 0.0)}",
        )
    else:
        row("Network", None)

    if raw.disk is not None:
        row("Disk", f"{raw.disk.mount_point}  {fmt_bytes(raw.disk.used)} / {fmt_bytes(raw.disk.total)}")
    else:
        row("Disk", None)
    if snap.disk_read_rate is not None:
        row("Disk I/O", f"R {fmt_rate(snap.disk_read_rate)}  W {fmt_rate(snap.disk_write_rate or 0.0)}")

    if raw.processes is not None:
        row("Processes", f"{raw.processes.total} ({raw.processes.threads} threads)")
    else:
        row("Processes", None)
    return "\n".join(lines)


def run_check(source: MetricSource, gpu_enabled: bool, interval: float = CHECK_INTERVAL) -> int:
    """Take two readings *interval* apart and print what was detected.

    The probe uses its own builder and no history.
    """
    builder = SnapshotBuilder()
    try:
        builder.build(source.sample(), None)
        time.sleep(interval)
        snap = builder.build(source.sample(), None)
    except SampleError as e:
        print(f"sysdash: {e}", file=sys.stderr)
        return 1
    print(format_check_report(snap, gpu_enabled))
    return 0


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file)

    store = ConfigStore(args.config)
    if args.init_config:
        try:
            created = store.init()
        except OSError as e:
            print(f"sysdash: cannot write {store.path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        if created:
            print(f"sysdash: wrote default config to {store.path}")
        else:
            print(f"sysdash: config already exists at {store.path}")
        raise SystemExit(0)

    config = store.load().with_overrides(
        refresh=args.refresh,
        theme=args.theme,
        no_gpu=args.no_gpu,
        compact=args.compact,
    )
    source = PsutilSource(gpu_enabled=config.gpu_enabled)

    if args.check:
        raise SystemExit(run_check(source, config.gpu_enabled))

    signal.signal(signal.SIGTERM, _raise_exit)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, _raise_exit)

    try:
        code = run_dashboard(config, source, store)
    except TerminalError as e:
        print(f"sysdash: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
