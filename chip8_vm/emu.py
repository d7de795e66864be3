"""
CHIP-8 VM — Fetch-Decode-Execute Engine

This is the top-level class that integrates:
  - CPU registers + call stack (cpu/regs.py)
  - 4K memory + font + loader (mem/memory.py)
  - Opcode decoder (cpu/decoder.py)
  - ALU helpers (cpu/alu.py)
  - Peripherals: framebuffer, delay/sound timers, keypad (periph/)

Execution model, one instruction per step(elapsed_ms):
  1. Advance the 60 Hz timers by elapsed_ms
  2. If parked on FX0A, poll for a key press and return
  3. Fetch the big-endian opcode at PC ($0000 → HALTED)
  4. Decode to an Instruction and dispatch on its Op
  5. Advance PC by 2 unless the handler transferred control

Outcomes:
  CONTINUE                 normal progress (including waiting for a key)
  HALTED                   the $0000 end-of-program sentinel was fetched
  Fault(STACK_OVERFLOW)    call nested deeper than 16
  Fault(STACK_UNDERFLOW)   return with an empty stack
  Fault(MEMORY_BOUNDS)     access outside $000–$FFF

Faults are raised as exceptions inside handlers and converted to return
values here; step() itself never raises for a misbehaving program. Once
faulted, the engine stays faulted until reset().
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from .config import FONT_BASE, FONT_GLYPH_SIZE, FLAG_REGISTER
from .cpu.regs import Registers
from .cpu.decoder import Instruction, Op, decode
from .cpu import alu
from .errors import MemoryBoundsError, StackOverflowError, StackUnderflowError
from .mem.memory import Memory
from .periph.display import Framebuffer
from .periph.keypad import InputSource, Keypad
from .periph.timer import TimerPeripheral

log = logging.getLogger(__name__)


class OutcomeKind(Enum):
    CONTINUE = 'CONTINUE'
    HALTED = 'HALTED'
    FAULT = 'FAULT'


class FaultReason(Enum):
    STACK_OVERFLOW = 'STACK_OVERFLOW'
    STACK_UNDERFLOW = 'STACK_UNDERFLOW'
    MEMORY_BOUNDS = 'MEMORY_BOUNDS'


@dataclass(frozen=True)
class CycleOutcome:
    """Result of one step(). Compare against CONTINUE / HALTED / Fault(...)."""
    kind: OutcomeKind
    reason: Optional[FaultReason] = None
    detail: str = field(default='', compare=False)

    @property
    def is_fault(self) -> bool:
        return self.kind is OutcomeKind.FAULT

    def __str__(self) -> str:
        if self.kind is OutcomeKind.FAULT:
            text = f"Fault({self.reason.value})"
            return f"{text}: {self.detail}" if self.detail else text
        return self.kind.value


CONTINUE = CycleOutcome(OutcomeKind.CONTINUE)
HALTED = CycleOutcome(OutcomeKind.HALTED)


def Fault(reason: FaultReason, detail: str = '') -> CycleOutcome:
    """Build a FAULT outcome."""
    return CycleOutcome(OutcomeKind.FAULT, reason, detail)


class Chip8Emulator:
    """CHIP-8 interpreter.

    Usage:
        emu = Chip8Emulator()
        emu.load_rom('pong.ch8')
        while True:
            outcome = emu.step(elapsed_ms)
            if outcome is not CONTINUE:
                break
            render(emu.framebuffer())

    The input capability defaults to an in-memory Keypad; pass any object
    with is_key_down()/poll_key_press_event()/clear_events() to drive it
    from a host.
    """

    def __init__(self, input_source: Optional[InputSource] = None,
                 rng: Optional[random.Random] = None,
                 seed: Optional[int] = None):
        # Core components
        self.regs = Registers()
        self.mem = Memory()

        # Peripherals
        self.display = Framebuffer()
        self.timer = TimerPeripheral()
        self.input = input_source if input_source is not None else Keypad()

        # CXKK randomness; seedable for reproducible runs
        self.rng = rng if rng is not None else random.Random(seed)

        # FX0A sub-state: target register while waiting, else None
        self.waiting_for_key: Optional[int] = None

        self.steps = 0
        self._fault: Optional[CycleOutcome] = None
        self._program = b''

        # Breakpoints: set of PC addresses checked by the cycle driver
        self._breakpoints: Set[int] = set()

        # Trace output
        self._trace = False
        self._trace_output: List[str] = []

        # Instruction dispatch table (built in _build_dispatch)
        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_program(self, data: bytes):
        """Load a program image at $200. Raises ImageTooLarge if > 3584 bytes."""
        data = bytes(data)
        self.mem.load_program(data)
        self._program = data

    def load_rom(self, path: Union[str, Path]):
        """Read a ROM file and load it at $200."""
        data = Path(path).read_bytes()
        log.info("Read ROM %s (%d bytes)", path, len(data))
        self.load_program(data)

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self, elapsed_ms: float = 0.0) -> CycleOutcome:
        """Advance the timers by elapsed_ms and execute one instruction."""
        self.timer.update(elapsed_ms)

        if self._fault is not None:
            return self._fault

        self.steps += 1

        if self.waiting_for_key is not None:
            self._service_key_wait()
            return CONTINUE

        pc = self.regs.PC
        try:
            opcode = self.mem.read16(pc)
            if opcode == 0x0000:
                log.info("Program hit end at $%03X", pc)
                return HALTED

            ins = decode(opcode)
            if self._trace:
                self._trace_output.append(f"${pc:03X}: {opcode:04X}  {ins}")
            if log.isEnabledFor(logging.DEBUG):
                log.debug("%03X | %04X | %s", pc, opcode, ins.description)

            handler = self._dispatch[ins.op]
            if not handler(ins):
                self.regs.advance()

        except StackOverflowError as e:
            return self._set_fault(FaultReason.STACK_OVERFLOW, pc, e)
        except StackUnderflowError as e:
            return self._set_fault(FaultReason.STACK_UNDERFLOW, pc, e)
        except MemoryBoundsError as e:
            return self._set_fault(FaultReason.MEMORY_BOUNDS, pc, e)

        return CONTINUE

    def _set_fault(self, reason: FaultReason, pc: int, exc: Exception) -> CycleOutcome:
        detail = f"${pc:03X}: {exc}"
        log.error("Error on instruction at %s", detail)
        if self._trace:
            self._trace_output.append(f"  ERROR: {exc}")
        self._fault = Fault(reason, detail)
        return self._fault

    def _service_key_wait(self):
        key = self.input.poll_key_press_event()
        if key is None:
            return
        self.regs.set_V(self.waiting_for_key, key & 0xF)
        log.debug("Key %X pressed, stored in V%X", key, self.waiting_for_key)
        self.waiting_for_key = None
        self.regs.advance()

    # ══════════════════════════════════════════════
    # Host-facing state
    # ══════════════════════════════════════════════

    def framebuffer(self) -> Tuple[bytes, ...]:
        """Read-only snapshot of the 64×32 screen for the renderer."""
        return self.display.snapshot()

    @property
    def delay_timer(self) -> int:
        return self.timer.delay

    @property
    def sound_timer(self) -> int:
        return self.timer.sound

    @property
    def sound_active(self) -> bool:
        return self.timer.sound_active

    @property
    def fault(self) -> Optional[CycleOutcome]:
        return self._fault

    @property
    def is_waiting_for_key(self) -> bool:
        return self.waiting_for_key is not None

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(ins) -> bool
    # Return True when the handler set PC itself (no automatic +2).

    def _build_dispatch(self) -> Dict[Op, Callable[[Instruction], Optional[bool]]]:
        """Build Op → handler dispatch table. Every Op but HALT must be covered."""
        table = {
            # ── Control flow ──
            Op.CLS:       self._op_cls,
            Op.RET:       self._op_ret,
            Op.JP:        self._op_jp,
            Op.CALL:      self._op_call,
            Op.JP_V0:     self._op_jp_v0,

            # ── Conditional skips ──
            Op.SE_IMM:    self._op_se_imm,
            Op.SNE_IMM:   self._op_sne_imm,
            Op.SE_REG:    self._op_se_reg,
            Op.SNE_REG:   self._op_sne_reg,

            # ── Register ops ──
            Op.LD_IMM:    self._op_ld_imm,
            Op.ADD_IMM:   self._op_add_imm,
            Op.LD_REG:    self._op_ld_reg,
            Op.OR:        self._op_or,
            Op.AND:       self._op_and,
            Op.XOR:       self._op_xor,
            Op.ADD_REG:   self._op_add_reg,
            Op.SUB:       self._op_sub,
            Op.SHR:       self._op_shr,
            Op.SUBN:      self._op_subn,
            Op.SHL:       self._op_shl,
            Op.RND:       self._op_rnd,

            # ── Index register ──
            Op.LD_I:      self._op_ld_i,
            Op.ADD_I_VX:  self._op_add_i_vx,
            Op.LD_F_VX:   self._op_ld_f_vx,

            # ── Display ──
            Op.DRW:       self._op_drw,

            # ── Keypad ──
            Op.SKP:       self._op_skp,
            Op.SKNP:      self._op_sknp,
            Op.LD_VX_K:   self._op_ld_vx_k,

            # ── Timers ──
            Op.LD_VX_DT:  self._op_ld_vx_dt,
            Op.LD_DT_VX:  self._op_ld_dt_vx,
            Op.LD_ST_VX:  self._op_ld_st_vx,

            # ── Memory ──
            Op.LD_B_VX:   self._op_ld_b_vx,
            Op.LD_MEM_VX: self._op_ld_mem_vx,
            Op.LD_VX_MEM: self._op_ld_vx_mem,

            Op.UNKNOWN:   self._op_unknown,
        }
        missing = set(Op) - set(table) - {Op.HALT}
        if missing:
            raise RuntimeError(f"No handler for {sorted(m.name for m in missing)}")
        return table

    def _set_flag(self, value: int):
        self.regs.V[FLAG_REGISTER] = value

    # ── Control flow ──

    def _op_cls(self, ins):
        self.display.clear()

    def _op_ret(self, ins):
        self.regs.PC = self.regs.stack.pop()
        return True

    def _op_jp(self, ins):
        self.regs.PC = ins.nnn
        return True

    def _op_call(self, ins):
        self.regs.stack.push(self.regs.PC + 2)
        self.regs.PC = ins.nnn
        return True

    def _op_jp_v0(self, ins):
        self.regs.PC = (ins.nnn + self.regs.V[0]) & 0xFFFF
        return True

    # ── Conditional skips ──

    def _op_se_imm(self, ins):
        if self.regs.V[ins.x] == ins.kk:
            self.regs.advance()

    def _op_sne_imm(self, ins):
        if self.regs.V[ins.x] != ins.kk:
            self.regs.advance()

    def _op_se_reg(self, ins):
        if self.regs.V[ins.x] == self.regs.V[ins.y]:
            self.regs.advance()

    def _op_sne_reg(self, ins):
        if self.regs.V[ins.x] != self.regs.V[ins.y]:
            self.regs.advance()

    # ── Register ops ──

    def _op_ld_imm(self, ins):
        self.regs.set_V(ins.x, ins.kk)

    def _op_add_imm(self, ins):
        self.regs.set_V(ins.x, self.regs.V[ins.x] + ins.kk)

    def _op_ld_reg(self, ins):
        self.regs.set_V(ins.x, self.regs.V[ins.y])

    def _op_or(self, ins):
        self.regs.set_V(ins.x, alu.or8(self.regs.V[ins.x], self.regs.V[ins.y]))

    def _op_and(self, ins):
        self.regs.set_V(ins.x, alu.and8(self.regs.V[ins.x], self.regs.V[ins.y]))

    def _op_xor(self, ins):
        self.regs.set_V(ins.x, alu.xor8(self.regs.V[ins.x], self.regs.V[ins.y]))

    def _op_add_reg(self, ins):
        result, flag = alu.add8(self.regs.V[ins.x], self.regs.V[ins.y])
        self.regs.set_V(ins.x, result)
        self._set_flag(flag)

    def _op_sub(self, ins):
        result, flag = alu.sub8(self.regs.V[ins.x], self.regs.V[ins.y])
        self.regs.set_V(ins.x, result)
        self._set_flag(flag)

    def _op_subn(self, ins):
        result, flag = alu.sub8(self.regs.V[ins.y], self.regs.V[ins.x])
        self.regs.set_V(ins.x, result)
        self._set_flag(flag)

    def _op_shr(self, ins):
        result, flag = alu.shr8(self.regs.V[ins.x])
        self.regs.set_V(ins.x, result)
        self._set_flag(flag)

    def _op_shl(self, ins):
        result, flag = alu.shl8(self.regs.V[ins.x])
        self.regs.set_V(ins.x, result)
        self._set_flag(flag)

    def _op_rnd(self, ins):
        self.regs.set_V(ins.x, self.rng.randrange(256) & ins.kk)

    # ── Index register ──

    def _op_ld_i(self, ins):
        self.regs.set_I(ins.nnn)

    def _op_add_i_vx(self, ins):
        self.regs.set_I(self.regs.I + self.regs.V[ins.x])

    def _op_ld_f_vx(self, ins):
        digit = self.regs.V[ins.x] & 0xF
        self.regs.set_I(FONT_BASE + digit * FONT_GLYPH_SIZE)

    # ── Display ──

    def _op_drw(self, ins):
        """DXYN — XOR an N-row sprite from [I] at (VX, VY), VF = collision."""
        rows = self.mem.read_block(self.regs.I, ins.n)
        collision = self.display.draw_sprite(
            self.regs.V[ins.x], self.regs.V[ins.y], rows)
        self._set_flag(1 if collision else 0)

    # ── Keypad ──

    def _op_skp(self, ins):
        if self.input.is_key_down(self.regs.V[ins.x] & 0xF):
            self.regs.advance()

    def _op_sknp(self, ins):
        if not self.input.is_key_down(self.regs.V[ins.x] & 0xF):
            self.regs.advance()

    def _op_ld_vx_k(self, ins):
        """FX0A — park in the wait sub-state until a new key press arrives.

        Presses queued before the wait began are discarded; only a press
        made while waiting ends the wait.
        """
        self.input.clear_events()
        self.waiting_for_key = ins.x
        log.debug("Waiting for key press into V%X", ins.x)
        return True

    # ── Timers ──

    def _op_ld_vx_dt(self, ins):
        self.regs.set_V(ins.x, self.timer.delay)

    def _op_ld_dt_vx(self, ins):
        self.timer.delay = self.regs.V[ins.x]

    def _op_ld_st_vx(self, ins):
        self.timer.sound = self.regs.V[ins.x]

    # ── Memory ──

    def _op_ld_b_vx(self, ins):
        self.mem.write_block(self.regs.I, alu.bcd(self.regs.V[ins.x]))

    def _op_ld_mem_vx(self, ins):
        self.mem.write_block(self.regs.I, self.regs.V[:ins.x + 1])

    def _op_ld_vx_mem(self, ins):
        self.regs.V[:ins.x + 1] = self.mem.read_block(self.regs.I, ins.x + 1)

    # ── Unknown ──

    def _op_unknown(self, ins):
        log.warning("Unknown opcode $%04X at $%03X (skipped)", ins.opcode, self.regs.PC)

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Add a breakpoint at PC address. The cycle driver stops when PC hits it."""
        self._breakpoints.add(addr & 0xFFFF)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr & 0xFFFF)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    def at_breakpoint(self) -> bool:
        return self.regs.PC in self._breakpoints

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Enable instruction trace recording."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """Re-initialize all state and reload the font and last program."""
        self.regs.reset()
        self.mem.clear()
        self.display.clear()
        self.timer.reset()
        if isinstance(self.input, Keypad):
            self.input.reset()
        self.waiting_for_key = None
        self.steps = 0
        self._fault = None
        self._trace_output.clear()
        if self._program:
            self.mem.load_program(self._program)
        log.info("Emulator reset")
