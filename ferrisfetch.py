#!/usr/bin/env python3
# ferris-fetch v0.1.0

import argparse
import base64
import getpass
import io
import logging
import math
import os
import platform
import re
import shutil
import socket
import subprocess
import sys
import time
from collections import namedtuple
from dataclasses import dataclass

import psutil
from PIL import Image

from ferris_art import FERRIS_SVG, art_width, get_ascii, pad_block

VERSION = "0.1.0"

log = logging.getLogger("ferrisfetch")

UNKNOWN = "Unknown"

# -----------------------------------------------------------------------------
# Colors + themes
# -----------------------------------------------------------------------------

RESET = "\x1b[0m"

BLACK, RED, GREEN, YELLOW, BLUE, MAGENTA, CYAN, WHITE = (str(c) for c in range(30, 38))
(BRIGHT_BLACK, BRIGHT_RED, BRIGHT_GREEN, BRIGHT_YELLOW,
 BRIGHT_BLUE, BRIGHT_MAGENTA, BRIGHT_CYAN, BRIGHT_WHITE) = (str(c) for c in range(90, 98))

NORMAL_PALETTE = (BLACK, RED, GREEN, YELLOW, BLUE, MAGENTA, CYAN, WHITE)
BRIGHT_PALETTE = (BRIGHT_BLACK, BRIGHT_RED, BRIGHT_GREEN, BRIGHT_YELLOW,
                  BRIGHT_BLUE, BRIGHT_MAGENTA, BRIGHT_CYAN, BRIGHT_WHITE)


def truecolor(r: int, g: int, b: int) -> str:
    return f"38;2;{r};{g};{b}"


Theme = namedtuple("Theme", "primary secondary accent info")

THEMES = {
    "ocean":  Theme(CYAN, BLUE, BRIGHT_CYAN, WHITE),
    "forest": Theme(GREEN, BRIGHT_GREEN, YELLOW, WHITE),
    "sunset": Theme(RED, YELLOW, MAGENTA, WHITE),
    "mono":   Theme(WHITE, WHITE, WHITE, WHITE),
}
DEFAULT_THEME = Theme(truecolor(255, 128, 0), truecolor(183, 65, 14), truecolor(255, 200, 100), WHITE)
THEME_NAMES = ("rust",) + tuple(THEMES)


def resolve_theme(name) -> Theme:
    """Look a theme up by name; unknown names (including "rust") get the default palette."""
    return THEMES.get(str(name or "").strip().lower(), DEFAULT_THEME)


@dataclass(frozen=True)
class ColorMode:
    """Whether escape codes are emitted. Passed to every call that paints text."""
    enabled: bool = True

    @classmethod
    def detect(cls, no_color=False, stream=None):
        if no_color:
            return cls(False)
        force = os.environ.get("CLICOLOR_FORCE")
        if force and force != "0":
            return cls(True)
        if os.environ.get("NO_COLOR"):
            return cls(False)
        if os.environ.get("CLICOLOR") == "0":
            return cls(False)
        stream = sys.stdout if stream is None else stream
        try:
            return cls(bool(stream.isatty()))
        except (AttributeError, ValueError):
            return cls(False)

    def paint(self, text: str, color: str, bold: bool = False) -> str:
        if not self.enabled or not color:
            return text
        codes = f"1;{color}" if bold else color
        return f"\x1b[{codes}m{text}{RESET}"


_ANSI_RE = re.compile(r'\x1b\[[0-9;?]*[ -/]*[@-~]')


def strip_ansi(s: str) -> str:
    return _ANSI_RE.sub('', s)


def visible_len(s: str) -> int:
    return len(strip_ansi(s))

# -----------------------------------------------------------------------------
# Formatting
# -----------------------------------------------------------------------------

GB = 1024 ** 3
MB = 1024 ** 2

BAR_FILLED = "█"
BAR_EMPTY = "░"


def format_uptime(seconds) -> str:
    seconds = int(seconds)
    d = seconds // 86400
    h = (seconds % 86400) // 3600
    m = (seconds % 3600) // 60
    parts = []
    if d > 0:
        parts.append(f"{d}d")
    if h > 0:
        parts.append(f"{h}h")
    if m > 0 or not parts:
        parts.append(f"{m}m")
    return " ".join(parts)


def format_bytes(size) -> str:
    if size >= GB:
        return f"{size / GB:.1f} GB"
    return f"{size / MB:.1f} MB"


def usage_percent(used, total) -> int:
    if not total:
        return 0
    return max(0, min(100, int(used / total * 100)))


def progress_bar(used, total, width, theme, color_mode) -> str:
    pct = usage_percent(used, total)
    filled = pct * width // 100
    bar = f"[{BAR_FILLED * filled}{BAR_EMPTY * (width - filled)}] {pct}%"
    if pct > 80:
        color = RED
    elif pct > 60:
        color = YELLOW
    else:
        color = theme.accent
    return color_mode.paint(bar, color)

# -----------------------------------------------------------------------------
# System facts
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class SystemFacts:
    hostname: str = UNKNOWN
    username: str = UNKNOWN
    os_name_version: str = UNKNOWN
    kernel_version: str = UNKNOWN
    uptime_seconds: int = 0
    shell_name: str = UNKNOWN
    cpu_model: str = UNKNOWN
    cpu_core_count: int = 1
    memory_used_bytes: int = 0
    memory_total_bytes: int = 0
    disk_used_bytes: int = 0
    disk_total_bytes: int = 0


def _cmd_out(args, timeout=0.5):
    """Safe command execution with a short timeout"""
    try:
        res = subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True, timeout=timeout)
        return res.stdout or ""
    except (OSError, subprocess.SubprocessError):
        return ""


def _best_effort(what, fn, default):
    try:
        value = fn()
    except Exception as exc:
        log.debug("could not read %s: %s", what, exc)
        return default
    if value is None or value == "":
        log.debug("no value for %s, using %r", what, default)
        return default
    return value


def _read_os_release(path="/etc/os-release"):
    osr = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if "=" in line:
                k, v = line.strip().split("=", 1)
                osr[k] = v.strip().strip('"')
    return osr


def _os_name_version():
    sysname = platform.system()
    if sysname == "Linux":
        try:
            osr = _read_os_release()
        except OSError:
            osr = {}
        name = osr.get("NAME") or "Linux"
        version = osr.get("VERSION_ID") or osr.get("BUILD_ID") or ""
        return f"{name} {version}".strip()
    if sysname == "Darwin":
        version = _cmd_out(["sw_vers", "-productVersion"]).strip()
        return f"Mac OS {version}".strip()
    if sysname == "Windows":
        return f"Windows {platform.version()}".strip()
    return f"{sysname} {platform.release()}".strip()


def _uptime_seconds():
    return max(0, int(time.time() - psutil.boot_time()))


def _shell_name():
    shell_path = os.environ.get("SHELL") or os.environ.get("COMSPEC") or ""
    name = re.split(r"[/\\]", shell_path)[-1] if shell_path else ""
    if not name:
        # no env hint, ask who launched us
        name = psutil.Process(os.getppid()).name()
    return name


def _cpu_model():
    sysname = platform.system()
    if sysname == "Darwin":
        brand = _cmd_out(["sysctl", "-n", "machdep.cpu.brand_string"], timeout=1.0).strip()
        if brand:
            return brand
    elif sysname == "Linux":
        try:
            with open("/proc/cpuinfo", "r", encoding="utf-8", errors="ignore") as f:
                for line in f:
                    if line.startswith("model name"):
                        return re.sub(r'\s+', ' ', line.split(":", 1)[1]).strip()
        except OSError:
            pass
        for line in _cmd_out(["lscpu"], timeout=2.0).splitlines():
            if line.startswith("Model name:"):
                return line.split(":", 1)[1].strip()
    return platform.processor()


def _cpu_core_count():
    return psutil.cpu_count(logical=True) or os.cpu_count() or 1


def _memory_used_total():
    vm = psutil.virtual_memory()
    return (max(0, vm.total - vm.available), vm.total)


def _disk_used_total():
    used = total = 0
    seen = set()
    for part in psutil.disk_partitions(all=False):
        if part.device in seen:
            continue
        seen.add(part.device)
        try:
            du = psutil.disk_usage(part.mountpoint)
        except OSError:
            continue
        total += du.total
        used += du.total - du.free
    return (used, total)


def collect_facts() -> SystemFacts:
    """Gather every host fact once; each one falls back on its own."""
    mem_used, mem_total = _best_effort("memory", _memory_used_total, (0, 0))
    disk_used, disk_total = _best_effort("disks", _disk_used_total, (0, 0))
    return SystemFacts(
        hostname=_best_effort("hostname", socket.gethostname, UNKNOWN),
        username=_best_effort("username", getpass.getuser, UNKNOWN),
        os_name_version=_best_effort("os", _os_name_version, UNKNOWN),
        kernel_version=_best_effort("kernel", platform.release, UNKNOWN),
        uptime_seconds=_best_effort("uptime", _uptime_seconds, 0),
        shell_name=_best_effort("shell", _shell_name, UNKNOWN),
        cpu_model=_best_effort("cpu", _cpu_model, UNKNOWN),
        cpu_core_count=_best_effort("cpu cores", _cpu_core_count, 1),
        memory_used_bytes=min(mem_used, mem_total),
        memory_total_bytes=mem_total,
        disk_used_bytes=min(disk_used, disk_total),
        disk_total_bytes=disk_total,
    )

# -----------------------------------------------------------------------------
# Info lines
# -----------------------------------------------------------------------------

DisplayLine = namedtuple("DisplayLine", "label value")

BAR_WIDTH = 10
CPU_PREFIX = "CPU: "
CPU_MIN_COLUMNS = 4


def compose(line: DisplayLine) -> str:
    return f"{line.label}: {line.value}" if line.label else line.value


def truncate_cpu(model: str, cores: int, info_columns: int) -> str:
    """Shorten the CPU model so "CPU: <model> (N cores)" fits in info_columns."""
    suffix = f" ({cores} cores)"
    limit = max(CPU_MIN_COLUMNS, info_columns - len(CPU_PREFIX) - len(suffix))
    if len(model) > limit:
        return model[:limit - 3] + "..."
    return model


def build_display_lines(facts, theme, color_mode, minimal=False, columns=80, art_cols=0):
    label = lambda s: color_mode.paint(s, theme.primary, bold=True)
    value = lambda s: color_mode.paint(s, theme.info)

    title = f"{facts.username}@{facts.hostname}"
    lines = [
        DisplayLine("", color_mode.paint(title, theme.primary, bold=True)),
        DisplayLine("", color_mode.paint("─" * len(title), theme.secondary)),
        DisplayLine(label("OS"), value(facts.os_name_version)),
        DisplayLine(label("Kernel"), value(facts.kernel_version)),
        DisplayLine(label("Uptime"), value(format_uptime(facts.uptime_seconds))),
        DisplayLine(label("Shell"), value(facts.shell_name)),
    ]

    if not minimal:
        info_columns = max(0, columns - (art_cols + 2)) if art_cols else columns
        cpu = truncate_cpu(facts.cpu_model, facts.cpu_core_count, info_columns)
        lines.append(DisplayLine(label("CPU"), value(f"{cpu} ({facts.cpu_core_count} cores)")))

        mem = (f"{format_bytes(facts.memory_used_bytes)} / {format_bytes(facts.memory_total_bytes)} "
               f"{progress_bar(facts.memory_used_bytes, facts.memory_total_bytes, BAR_WIDTH, theme, color_mode)}")
        lines.append(DisplayLine(label("Memory"), mem))

        disk = (f"{format_bytes(facts.disk_used_bytes)} / {format_bytes(facts.disk_total_bytes)} "
                f"{progress_bar(facts.disk_used_bytes, facts.disk_total_bytes, BAR_WIDTH, theme, color_mode)}")
        lines.append(DisplayLine(label("Disk"), disk))

    lines.append(DisplayLine("", ""))

    if not minimal and color_mode.enabled:
        for palette in (NORMAL_PALETTE, BRIGHT_PALETTE):
            lines.append(DisplayLine("", "".join(color_mode.paint("███", c) for c in palette)))
    return lines

# -----------------------------------------------------------------------------
# Vector mascot -> pixels
# -----------------------------------------------------------------------------


def rasterize_svg(svg_text: str, width_px: int) -> Image.Image:
    """Render an SVG to an RGBA image width_px wide, keeping its aspect ratio.

    cairosvg is imported here because it loads the cairo shared library, and a
    host without it should still get the ASCII mascot. Raises SyntaxError
    (XML parse errors), ValueError, OSError or ImportError on failure.
    """
    import cairosvg

    png = cairosvg.svg2png(bytestring=svg_text.encode("utf-8"), output_width=max(1, int(width_px)))
    return Image.open(io.BytesIO(png)).convert("RGBA")

# -----------------------------------------------------------------------------
# Terminal
# -----------------------------------------------------------------------------

CELL_PIXELS = 10   # horizontal pixels drawn per terminal column
CELL_ASPECT = 2.0  # cell height / cell width
KITTY_CHUNK = 4096
IMAGE_PROTOCOLS = ("kitty", "iterm")

ImagePayload = namedtuple("ImagePayload", "data width_cells height_cells")


class ImageUnsupported(Exception):
    """The terminal cannot show the image inline."""


def detect_image_protocol(stream=None, environ=None):
    """Pick the inline image protocol the terminal advertises, or None."""
    env = os.environ if environ is None else environ
    force = (env.get("FERRISFETCH_IMAGE_PROTOCOL") or "").strip().lower()
    if force in IMAGE_PROTOCOLS:
        return force
    if force in ("none", "off", "0"):
        return None

    stream = sys.stdout if stream is None else stream
    try:
        if not stream.isatty():
            return None
    except (AttributeError, ValueError):
        return None

    # tmux swallows graphics escapes unless passthrough is configured
    if env.get("TMUX"):
        return None
    term = (env.get("TERM") or "").lower()
    prog = (env.get("TERM_PROGRAM") or "").lower()
    if env.get("KITTY_WINDOW_ID") or "kitty" in term or "ghostty" in term or prog == "ghostty":
        return "kitty"
    if prog in ("iterm.app", "wezterm") or env.get("LC_TERMINAL") == "iTerm2":
        return "iterm"
    return None


def image_cells(image, columns):
    """Terminal cells (columns, rows) an image covers when drawn `columns` wide."""
    columns = max(1, int(columns))
    cell_h = image.width / columns * CELL_ASPECT
    return columns, max(1, math.ceil(image.height / cell_h))


def _png_bytes(image):
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def _kitty_payload(png, cols, rows):
    # C=1 keeps the cursor where the image starts
    data = base64.b64encode(png).decode("ascii")
    out = []
    for i in range(0, max(1, len(data)), KITTY_CHUNK):
        more = 1 if i + KITTY_CHUNK < len(data) else 0
        ctrl = f"a=T,f=100,q=2,C=1,c={cols},r={rows},m={more}" if i == 0 else f"m={more}"
        out.append(f"\x1b_G{ctrl};{data[i:i + KITTY_CHUNK]}\x1b\\")
    return "".join(out)


def _iterm_payload(png, cols, rows):
    data = base64.b64encode(png).decode("ascii")
    return (f"\x1b]1337;File=inline=1;size={len(png)};width={cols};height={rows};"
            f"preserveAspectRatio=0:{data}\x07")


class Terminal:
    """The only writer of ferris-fetch output.

    Each command is recorded in ``commands`` as an (op, arg) tuple in the order
    it was written, so tests can pass a StringIO and check the exact sequence.
    """

    def __init__(self, stream=None, size=None, image_protocol="auto"):
        self.stream = sys.stdout if stream is None else stream
        self._size = size
        if image_protocol == "auto":
            image_protocol = detect_image_protocol(self.stream)
        self.image_protocol = image_protocol
        self.commands = []

    def size(self):
        """(columns, rows), asked once and then reused for this render."""
        if not self._size:
            ts = shutil.get_terminal_size((80, 24))
            self._size = (ts.columns or 80, ts.lines or 24)
        return self._size

    def _emit(self, op, arg, seq):
        self.commands.append((op, arg))
        self.stream.write(seq)

    def write(self, text):
        self._emit("write", text, text)

    def newline(self, count=1):
        if count > 0:
            self._emit("newline", count, "\n" * count)

    def cursor_up(self, n):
        if n > 0:
            self._emit("up", n, f"\x1b[{n}A")

    def cursor_down(self, n):
        if n > 0:
            self._emit("down", n, f"\x1b[{n}B")

    def cursor_to_column(self, col):
        col = max(1, col)
        self._emit("column", col, f"\x1b[{col}G")

    def save_cursor(self):
        self._emit("save", None, "\x1b7")

    def restore_cursor(self):
        self._emit("restore", None, "\x1b8")

    def prepare_image(self, image, columns) -> ImagePayload:
        """Encode an image for this terminal without writing anything."""
        if self.image_protocol is None:
            raise ImageUnsupported("terminal advertises no inline image protocol")
        cols, rows = image_cells(image, columns)
        png = _png_bytes(image)
        if self.image_protocol == "kitty":
            return ImagePayload(_kitty_payload(png, cols, rows), cols, rows)
        if self.image_protocol == "iterm":
            return ImagePayload(_iterm_payload(png, cols, rows), cols, rows)
        raise ImageUnsupported(f"unknown image protocol {self.image_protocol!r}")

    def print_image(self, payload: ImagePayload):
        self._emit("image", (payload.width_cells, payload.height_cells), payload.data)
        return payload.width_cells, payload.height_cells

    def flush(self):
        self.stream.flush()

# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------

MIN_IMAGE_WIDTH = 10
MAX_IMAGE_WIDTH = 40
GUTTER = "  "


@dataclass(frozen=True)
class RenderOutcome:
    path: str       # "raster" or "ascii"
    rows: int = 0
    reason: str = ""

    @property
    def rendered(self):
        return self.path == "raster"

    @classmethod
    def fallback(cls, reason):
        return cls("ascii", reason=reason)


def render_raster(lines, terminal) -> RenderOutcome:
    """Draw the vector mascot inline with the info block to its right.

    Everything that can fail happens before the first write, so a fallback
    result means nothing reached the terminal.
    """
    columns, _ = terminal.size()
    max_info_width = max((visible_len(compose(ln)) for ln in lines), default=0)
    available = columns - (max_info_width + 2)
    if available < MIN_IMAGE_WIDTH:
        return RenderOutcome.fallback(f"{available} columns left for the image, need {MIN_IMAGE_WIDTH}")
    target = max(MIN_IMAGE_WIDTH, min(available, MAX_IMAGE_WIDTH))

    try:
        image = rasterize_svg(FERRIS_SVG, target * CELL_PIXELS)
        payload = terminal.prepare_image(image, target)
    except ImageUnsupported as exc:
        return RenderOutcome.fallback(str(exc))
    except (SyntaxError, ValueError, OSError, ImportError) as exc:
        return RenderOutcome.fallback(f"could not rasterize mascot: {exc}")

    # make room first so the block never scrolls under the saved anchor
    block = max(payload.height_cells, len(lines))
    terminal.newline(block)
    terminal.cursor_up(block)
    terminal.save_cursor()

    width_cells, height_cells = terminal.print_image(payload)
    block = max(height_cells, len(lines))
    terminal.restore_cursor()

    offset = min(width_cells + 2, columns)
    for i, line in enumerate(lines):
        terminal.restore_cursor()
        terminal.cursor_down(i)
        terminal.cursor_to_column(offset)
        terminal.write(compose(line))

    terminal.restore_cursor()
    terminal.cursor_down(block)
    terminal.newline()
    return RenderOutcome("raster", rows=block)


def render_ascii(lines, terminal, color_mode, theme, minimal=False, no_art=False, reason="") -> RenderOutcome:
    art = [] if no_art else get_ascii("minimal" if minimal else "full")
    width = art_width(art)
    art = pad_block(art, width)
    blank = " " * width

    total = max(len(art), len(lines))
    for i in range(total):
        row = ""
        if not no_art:
            row = color_mode.paint(art[i] if i < len(art) else blank, theme.primary) + GUTTER
        if i < len(lines):
            row += compose(lines[i])
        terminal.write(row + "\n")
    return RenderOutcome("ascii", rows=total, reason=reason)


def render(lines, terminal, color_mode, theme, minimal=False, no_art=False) -> RenderOutcome:
    if no_art:
        reason = "art disabled"
    elif minimal:
        reason = "minimal mode"
    else:
        outcome = render_raster(lines, terminal)
        if outcome.rendered:
            return outcome
        reason = outcome.reason
        log.debug("using ASCII mascot: %s", reason)
    return render_ascii(lines, terminal, color_mode, theme, minimal=minimal, no_art=no_art, reason=reason)

# -----------------------------------------------------------------------------
# CLI
# -----------------------------------------------------------------------------

def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="ferris-fetch", description=f"ferris-fetch {VERSION} - a cute system information tool")
    parser.add_argument("-t", "--theme", default=os.environ.get("FERRISFETCH_THEME") or "rust",
                        help=f"Color theme to use ({', '.join(THEME_NAMES)})")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("-m", "--minimal", action="store_true", help="Show minimal info only")
    parser.add_argument("--no-art", action="store_true", help="Hide the mascot")
    parser.add_argument("--debug", action="store_true", help="Log diagnostics to stderr")
    parser.add_argument("-V", "--version", action="version", version=f"ferris-fetch {VERSION}")
    return parser.parse_args(argv)


def setup_logging(debug=False):
    level = logging.DEBUG if debug or os.environ.get("FERRISFETCH_DEBUG") == "1" else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def run(args, terminal=None, facts=None) -> RenderOutcome:
    terminal = Terminal() if terminal is None else terminal
    color_mode = ColorMode.detect(args.no_color, terminal.stream)
    theme = resolve_theme(args.theme)
    facts = collect_facts() if facts is None else facts

    columns, _ = terminal.size()
    art_cols = 0 if args.no_art else art_width(get_ascii("minimal" if args.minimal else "full"))
    lines = build_display_lines(facts, theme, color_mode, minimal=args.minimal, columns=columns, art_cols=art_cols)

    outcome = render(lines, terminal, color_mode, theme, minimal=args.minimal, no_art=args.no_art)
    terminal.flush()
    log.debug("rendered %d rows via %s", outcome.rows, outcome.path)
    return outcome


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.debug)
    try:
        run(args)
    except BrokenPipeError:
        # stdout is gone; point it at devnull so the exit flush stays quiet
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)
    return 0


if __name__ == "__main__":
    sys.exit(main())
