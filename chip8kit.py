#!/usr/bin/env python3
"""
chip8kit — CHIP-8 VM Toolkit
============================

One CLI for everything:
    chip8kit run     — Run a ROM headless, then show the screen and registers
    chip8kit disasm  — Disassemble a ROM
    chip8kit info    — ROM summary (size, fit, first instructions)

Usage:
    python chip8kit.py <command> [options]
    python chip8kit.py <command> --help

Examples:
    python chip8kit.py run pong.ch8 --max-steps 2000 --hz 0
    python chip8kit.py run tetris.ch8 --press 5@120 --press 4@300:10 --seed 1
    python chip8kit.py run maze.ch8 --trace --log-file logs/
    python chip8kit.py disasm pong.ch8 -o pong.lst --describe
    python chip8kit.py info pong.ch8
"""

import argparse
import logging
import sys
from collections import defaultdict
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chip8_vm import __version__
from chip8_vm.config import EmulatorConfig, MAX_PROGRAM_SIZE, PROGRAM_START
from chip8_vm.driver import CycleDriver, StopReason
from chip8_vm.emu import Chip8Emulator
from chip8_vm.errors import LoadError
from chip8_vm.log_setup import setup_logging
from chip8_vm.periph.keypad import Keypad

console = Console()


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="chip8kit",
        description="CHIP-8 VM Toolkit — run, disassemble and inspect ROMs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  run        Run a ROM headless and print the final screen
  disasm     Disassemble a ROM to CHIP-8 mnemonics
  info       Summarize a ROM file
""",
    )
    parser.add_argument("--version", action="version", version=f"chip8kit {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run a ROM headless")
    p_run.add_argument("rom", help="Input .ch8 ROM file")
    p_run.add_argument("--max-steps", type=int, default=10_000,
                       help="Stop after N steps (default: 10000, 0 = unlimited)")
    p_run.add_argument("--hz", type=float, default=0.0,
                       help="Pace steps to this rate (default: 0 = as fast as possible)")
    p_run.add_argument("--seed", type=int, default=None,
                       help="RNG seed for CXKK (default: random)")
    p_run.add_argument("--press", action="append", default=[], metavar="KEY@STEP[:HOLD]",
                       help="Press logical key (hex) after STEP steps, held HOLD steps "
                            "(default 5); repeatable")
    p_run.add_argument("--break", dest="breakpoints", action="append", default=[],
                       metavar="ADDR", help="Stop when PC reaches ADDR (hex); repeatable")
    p_run.add_argument("--trace", action="store_true", help="Print instruction trace")
    p_run.add_argument("-v", "--verbose", action="count", default=0,
                       help="Console log level: -v INFO, -vv DEBUG")
    p_run.add_argument("--log-file", default=None, metavar="DIR",
                       help="Also write a full DEBUG log under DIR")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble a ROM")
    p_dis.add_argument("rom", help="Input .ch8 ROM file")
    p_dis.add_argument("--base", default="0x200", help="Load address (hex, default 0x200)")
    p_dis.add_argument("--describe", action="store_true", help="Append opcode descriptions")
    p_dis.add_argument("-o", "--output", help="Output file (default: stdout)")

    # ── info ─────────────────────────────────────────────────────────────
    p_info = sub.add_parser("info", help="Summarize a ROM file")
    p_info.add_argument("rom", help="Input .ch8 ROM file")
    p_info.add_argument("--count", type=int, default=8,
                        help="Number of leading instructions to show (default: 8)")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    handler = COMMANDS[args.command]
    try:
        return handler(args)
    except (OSError, LoadError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def _parse_hex(s):
    """Parse hex string with optional 0x or $ prefix."""
    s = s.strip()
    if s.startswith("0x") or s.startswith("0X"):
        return int(s, 16)
    if s.startswith("$"):
        return int(s[1:], 16)
    return int(s, 16)


def _parse_press(text):
    """'A@120' or 'A@120:10' → (key, step, hold)."""
    try:
        key_s, rest = text.split("@", 1)
        if ":" in rest:
            step_s, hold_s = rest.split(":", 1)
            hold = int(hold_s)
        else:
            step_s, hold = rest, 5
        key, step = int(key_s, 16), int(step_s)
    except ValueError:
        raise ValueError(f"Bad --press value {text!r} (expected KEY@STEP[:HOLD])")
    if not 0 <= key <= 0xF or step < 0 or hold < 1:
        raise ValueError(f"Bad --press value {text!r}")
    return key, step, hold


def _console_level(verbose):
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args):
    config = EmulatorConfig(
        rom_path=args.rom,
        seed=args.seed,
        frame_hz=args.hz,
        max_steps=args.max_steps or None,
        trace=args.trace,
    )
    setup_logging(console_level=_console_level(args.verbose), log_dir=args.log_file)

    keypad = Keypad()
    emu = Chip8Emulator(input_source=keypad, seed=config.seed)
    emu.load_rom(config.rom_path)
    emu.enable_trace(config.trace)
    for addr in args.breakpoints:
        emu.add_breakpoint(_parse_hex(addr))

    presses = defaultdict(list)
    releases = defaultdict(list)
    for text in args.press:
        key, step, hold = _parse_press(text)
        presses[step].append(key)
        releases[step + hold].append(key)

    def on_frame(e):
        for key in releases.pop(e.steps, ()):
            keypad.release(key)
        for key in presses.pop(e.steps, ()):
            keypad.press(key)

    # scripted input due before the first step
    for key in presses.pop(0, ()):
        keypad.press(key)

    driver = CycleDriver(emu, frame_hz=config.frame_hz, on_frame=on_frame)
    try:
        result = driver.run(max_steps=config.max_steps)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        return 130

    if config.trace:
        console.print(emu.get_trace(), markup=False, highlight=False)

    _print_screen(emu)
    _print_registers(emu)

    style = "red" if result.reason is StopReason.FAULT else "green"
    console.print(f"[{style}]{result.reason.value}[/{style}] after {result.steps} steps: "
                  f"{result.outcome}")
    return 1 if result.reason is StopReason.FAULT else 0


def _print_screen(emu):
    console.print(Panel(emu.display.render_text(), title="CHIP-8 64×32",
                        expand=False, highlight=False))


def _print_registers(emu):
    regs = emu.regs
    table = Table(title="Registers", show_header=True)
    for i in range(16):
        table.add_column(f"V{i:X}", justify="right")
    table.add_row(*(f"{v:02X}" for v in regs.V))
    console.print(table)
    stack = ' '.join(f"{a:03X}" for a in regs.stack.peek()) or "-"
    console.print(f"PC=${regs.PC:03X}  I=${regs.I:03X}  SP={regs.SP}  "
                  f"DT={emu.delay_timer}  ST={emu.sound_timer}  stack: {stack}")
    if emu.is_waiting_for_key:
        console.print(f"Waiting for key press into V{emu.waiting_for_key:X}")


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args):
    from chip8_vm.disassembler import disassemble_bytes

    data = Path(args.rom).read_bytes()
    listing = disassemble_bytes(data, base_addr=_parse_hex(args.base),
                                show_description=args.describe)
    if args.output:
        Path(args.output).write_text(listing + "\n", encoding="utf-8")
        console.print(f"Wrote {args.output} ({len(data) // 2} instructions)")
    else:
        console.print(listing, markup=False, highlight=False)
    return 0


# ── info ─────────────────────────────────────────────────────────────────
def cmd_info(args):
    from chip8_vm.disassembler import Chip8Disassembler

    path = Path(args.rom)
    data = path.read_bytes()
    fits = len(data) <= MAX_PROGRAM_SIZE

    table = Table(title=path.name, show_header=False)
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Size", f"{len(data)} bytes")
    table.add_row("Capacity", f"{MAX_PROGRAM_SIZE} bytes at ${PROGRAM_START:03X}")
    table.add_row("Fits", "yes" if fits else "[red]NO[/red]")
    if fits and data:
        table.add_row("Ends at", f"${PROGRAM_START + len(data) - 1:03X}")
    console.print(table)

    dis = Chip8Disassembler()
    results = dis.disassemble(data[:args.count * 2])
    for r in results:
        console.print(r.format(show_description=True), markup=False, highlight=False)
    return 0 if fits else 1


COMMANDS = {
    "run": cmd_run,
    "disasm": cmd_disasm,
    "info": cmd_info,
}


if __name__ == "__main__":
    sys.exit(main())
