# chip8vm, a Chip-8 interpreter.

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

"""The Chip-8 virtual CPU.

Chip8 owns all of the machine state and runs one instruction per call to
cycle(). Everything it needs from the outside world goes through three
collaborators handed to it at construction: a renderer for the pixel
grid, an input source for the hex keypad and a beeper for the sound
timer. Any object with the right methods will do; see the Protocol
classes below.
"""

import functools
import logging
import random
import time
from typing import Optional, Protocol, Sequence

from opcodes import Op, decode

## CONSTANTS ##

TOTAL_RAM = 4096
LOAD_POS = 0x200
MAX_PROGRAM = TOTAL_RAM - LOAD_POS

# Chip-8 Video display constants
VIDEO_X = 64
VIDEO_Y = 32

# equiv to the 48 byte stack of the COSMAC VIP, 24 subroutine calls deep
STACK_DEPTH = 24

# Carry / borrow / collision flag register
VF = 0xF

# Timers count down once per TICK_INTERVAL seconds of wall time. The
# beeper is switched off again TONE_PULSE seconds after a tick.
TICK_INTERVAL = 1.0
TONE_PULSE = 0.25

# Chip-8 ROM Font map
FONT_LOAD = 0x000
FONT_HEIGHT = 5
FONT_MAP = [
    0xF0, 0x90, 0x90, 0x90, 0xF0, # 0
    0x20, 0x60, 0x20, 0x20, 0x70, # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0, # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0, # 3
    0x90, 0x90, 0xF0, 0x10, 0x10, # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0, # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0, # 6
    0xF0, 0x10, 0x20, 0x40, 0x40, # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0, # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0, # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90, # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0, # B
    0xF0, 0x80, 0x80, 0x80, 0xF0, # C
    0xE0, 0x90, 0x90, 0x90, 0xE0, # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0, # E
    0xF0, 0x80, 0xF0, 0x80, 0x80  # F
]


## ERRORS ##

class Chip8Error(Exception):
    """Base class for every fatal interpreter fault"""


class InvalidInstruction(Chip8Error):
    def __init__(self, word, pc):
        self.word = word
        self.pc = pc
        super().__init__(
            f"Invalid instruction '0x{word >> 8:02X} 0x{word & 0xFF:02X}' at PC '0x{pc:X}'")


class StackUnderflow(Chip8Error):
    def __init__(self, pc):
        self.pc = pc
        super().__init__(f"Return with an empty call stack at PC '0x{pc:X}'")


class StackOverflow(Chip8Error):
    def __init__(self, pc):
        self.pc = pc
        super().__init__(
            f"Call with a full call stack ({STACK_DEPTH} deep) at PC '0x{pc:X}'")


class MemoryAccessError(Chip8Error):
    """An address fell outside main memory or the pixel grid"""

    def __init__(self, address, pc, region="memory"):
        self.address = address
        self.pc = pc
        self.region = region
        super().__init__(
            f"Out of bounds {region} access at 0x{address:04X} from PC '0x{pc:X}'")


class ProgramTooLarge(Chip8Error):
    def __init__(self, size):
        self.size = size
        super().__init__(
            f"Program is too large: {size} bytes, at most {MAX_PROGRAM} fit.")


class RenderError(Chip8Error):
    """Raised by a renderer that failed to draw a frame"""


## COLLABORATORS ##

class Renderer(Protocol):
    def clear(self) -> None: ...
    def draw(self, grid: Sequence[bool]) -> None: ...


class Input(Protocol):
    def block_for_key(self) -> Optional[int]: ...
    def is_key_down(self, key: int) -> bool: ...


class Beeper(Protocol):
    def start_tone(self) -> None: ...
    def stop_tone(self) -> None: ...


class NullRenderer:
    """Renderer that draws nothing"""

    def clear(self):
        pass

    def draw(self, grid):
        pass


class NullInput:
    """Input with no keyboard attached. Waiting for a key halts the machine."""

    def block_for_key(self):
        return None

    def is_key_down(self, key):
        return False


class NullBeeper:
    def start_tone(self):
        pass

    def stop_tone(self):
        pass


## MACHINE ##

class Chip8:
    """Chip-8 machine state plus the fetch/decode/execute loop body."""

    def __init__(self, renderer: Renderer, keypad: Input, beeper: Beeper,
                 clock=time.monotonic, rng=None):
        self.renderer = renderer
        self.keypad = keypad
        self.beeper = beeper
        self.clock = clock
        self.rng = rng or random.Random()

        self.main_mem = bytearray(TOTAL_RAM)
        self.main_mem[FONT_LOAD:FONT_LOAD + len(FONT_MAP)] = bytes(FONT_MAP)

        self.reg_V = bytearray(16)
        self.reg_I = 0
        self.reg_PC = LOAD_POS
        # Address of the instruction currently executing
        self.op_pc = LOAD_POS
        self.stack = []

        self.d_timer = 0
        self.s_timer = 0
        self.last_tick = clock()

        self.v_mem = [False] * (VIDEO_X * VIDEO_Y)
        self.halted = False

        self._dispatch = {
            Op.INVALID: self.ins_invalid,
            Op.SYS: self.ins_sys,
            Op.CLS: self.ins_cls,
            Op.RET: self.ins_ret,
            Op.JP: self.ins_jmp,
            Op.CALL: self.ins_call,
            Op.SE_IMM: functools.partial(self.ins_skipim, eq=True),
            Op.SNE_IMM: functools.partial(self.ins_skipim, eq=False),
            Op.SE_REG: functools.partial(self.ins_skipreg, eq=True),
            Op.SNE_REG: functools.partial(self.ins_skipreg, eq=False),
            Op.LD_IMM: self.ins_load,
            Op.ADD_IMM: self.ins_add,
            Op.LD_I: self.ins_loadi,
            Op.JP_V0: self.ins_jmp_v0,
            Op.RND: self.ins_rnd,
            Op.DRW: self.ins_draw,
            Op.SKP: functools.partial(self.ins_skipkey, pressed=True),
            Op.SKNP: functools.partial(self.ins_skipkey, pressed=False),
        }
        for op in (Op.LD_REG, Op.OR, Op.AND, Op.XOR, Op.ADD_REG,
                   Op.SUB, Op.SHR, Op.SUBN, Op.SHL):
            self._dispatch[op] = functools.partial(self.ins_alu, op)
        for op in (Op.LD_VX_DT, Op.LD_VX_K, Op.LD_DT_VX, Op.LD_ST_VX, Op.ADD_I,
                   Op.LD_F, Op.LD_B, Op.LD_MEM_VX, Op.LD_VX_MEM):
            self._dispatch[op] = functools.partial(self.ins_io, op)

    def load(self, program):
        """Copy a program image into memory at LOAD_POS"""
        program = bytes(program)
        if len(program) > MAX_PROGRAM:
            raise ProgramTooLarge(len(program))
        self.main_mem[LOAD_POS:LOAD_POS + len(program)] = program
        logging.info(f"Loaded {len(program)} bytes at 0x{LOAD_POS:04x}")

    def cycle(self):
        """Run one machine cycle: timers, fetch, decode, execute.

        Returns False once the machine has halted, True otherwise.
        """
        if self.halted:
            return False
        self.tick_timers()
        word = self.fetch()
        self.execute(decode(word))
        return not self.halted

    def tick_timers(self):
        now = self.clock()
        elapsed = now - self.last_tick
        if elapsed >= TICK_INTERVAL:
            if self.d_timer > 0:
                self.d_timer -= 1
            if self.s_timer > 0:
                self.beeper.start_tone()
                self.s_timer -= 1
            self.last_tick = now
        elif elapsed >= TONE_PULSE:
            self.beeper.stop_tone()

    def fetch(self):
        """Read the big-endian word at PC and advance PC past it"""
        self.op_pc = self.reg_PC
        instruction = self.read(self.reg_PC) << 8 | self.read(self.reg_PC + 1)
        self.reg_PC += 2
        return instruction

    def execute(self, instruction):
        logging.debug(f"{self.op_pc:04x} | OP 0x{instruction.word:04x} - {instruction}")
        self._dispatch[instruction.op](*instruction.operands)

    def read(self, address):
        if address >= TOTAL_RAM:
            raise MemoryAccessError(address, self.op_pc)
        return self.main_mem[address]

    def write(self, address, value):
        if address >= TOTAL_RAM:
            raise MemoryAccessError(address, self.op_pc)
        self.main_mem[address] = value

    def snapshot(self):
        """Register file, timers and stack as a plain dict"""
        return {
            "V": list(self.reg_V),
            "I": self.reg_I,
            "PC": self.reg_PC,
            "DT": self.d_timer,
            "ST": self.s_timer,
            "stack": list(self.stack),
            "halted": self.halted,
        }

    ## INSTRUCTIONS ##

    def ins_invalid(self, word):
        raise InvalidInstruction(word, self.op_pc)

    def ins_sys(self, nnn):
        """0nnn SYS - machine code routine. Valid, but ignored."""

    def ins_cls(self):
        """00E0 CLS - clear the screen"""
        self.v_mem = [False] * (VIDEO_X * VIDEO_Y)
        self.renderer.clear()

    def ins_ret(self):
        """00EE RET - return from subroutine"""
        if not self.stack:
            raise StackUnderflow(self.op_pc)
        self.reg_PC = self.stack.pop()

    def ins_jmp(self, nnn):
        self.reg_PC = nnn

    def ins_call(self, nnn):
        if len(self.stack) >= STACK_DEPTH:
            raise StackOverflow(self.op_pc)
        self.stack.append(self.reg_PC)
        self.reg_PC = nnn

    def ins_skipim(self, x, kk, eq=True):
        if (self.reg_V[x] == kk) == eq:
            self.reg_PC += 2

    def ins_skipreg(self, x, y, eq=True):
        if (self.reg_V[x] == self.reg_V[y]) == eq:
            self.reg_PC += 2

    def ins_load(self, x, kk):
        self.reg_V[x] = kk

    def ins_add(self, x, kk):
        """7xkk ADD Vx, kk - wraps, VF untouched"""
        self.reg_V[x] = (self.reg_V[x] + kk) & 0xFF

    def ins_alu(self, op, x, y):
        """8xyn register-register ops.

        With x = F the arithmetic ops leave their result in VF, while the
        shifts leave their flag there.
        """
        V = self.reg_V
        if op == Op.LD_REG:
            V[x] = V[y]
        elif op == Op.OR:
            V[x] = V[x] | V[y]
        elif op == Op.AND:
            V[x] = V[x] & V[y]
        elif op == Op.XOR:
            V[x] = V[x] ^ V[y]
        elif op == Op.ADD_REG:
            # ADD Vx, Vy, set carry flag if > 255. Truncate to 8 bits.
            result = V[x] + V[y]
            V[VF] = 1 if result > 0xFF else 0
            V[x] = result & 0xFF
        elif op == Op.SUB:
            # VF is NOT borrow
            rx, ry = V[x], V[y]
            V[VF] = 1 if rx >= ry else 0
            V[x] = (rx - ry) & 0xFF
        elif op == Op.SUBN:
            rx, ry = V[x], V[y]
            V[VF] = 1 if ry >= rx else 0
            V[x] = (ry - rx) & 0xFF
        elif op == Op.SHR:
            # Shifts read Vy and store the result in both Vx and Vy
            flag = V[y] & 0x1
            V[y] = V[x] = V[y] >> 1
            V[VF] = flag
        elif op == Op.SHL:
            flag = V[y] >> 7 & 0x1
            V[y] = V[x] = (V[y] << 1) & 0xFF
            V[VF] = flag

    def ins_loadi(self, nnn):
        self.reg_I = nnn

    def ins_jmp_v0(self, nnn):
        self.reg_PC = nnn + self.reg_V[0]

    def ins_rnd(self, x, kk):
        self.reg_V[x] = self.rng.randint(0, 255) & kk

    def ins_draw(self, x, y, n):
        """Draw n-row sprite at location (Vx, Vy) into v_mem using reg_I as pointer"""
        # Each byte in memory at [I] represents one row of the sprite.
        # Pixels are xor'd onto the grid, and turning one off is a collision.
        # Nothing wraps at the screen edges.
        vx = self.reg_V[x]
        vy = self.reg_V[y]
        collision = 0
        for row in range(n):
            sprite = self.read(self.reg_I + row)
            for col in range(8):
                if not sprite >> (7 - col) & 0x1:
                    continue
                cell = (vy + row) * VIDEO_X + vx + col
                if cell >= len(self.v_mem):
                    raise MemoryAccessError(cell, self.op_pc, "display")
                if self.v_mem[cell]:
                    collision = 1
                self.v_mem[cell] = not self.v_mem[cell]
        self.reg_V[VF] = collision
        self.renderer.draw(self.v_mem)

    def ins_skipkey(self, x, pressed=True):
        if self.keypad.is_key_down(self.reg_V[x]) == pressed:
            self.reg_PC += 2

    def ins_io(self, op, x):
        """Fxkk timer, keypad and memory ops"""
        if op == Op.LD_VX_DT:
            self.reg_V[x] = self.d_timer
        elif op == Op.LD_VX_K:
            # Block until a key comes in. No key means the environment is
            # shutting down, so stop here.
            key = self.keypad.block_for_key()
            if key is None:
                logging.info(f"{self.op_pc:04x} | No key available, halting")
                self.halted = True
            else:
                self.reg_V[x] = key
        elif op == Op.LD_DT_VX:
            self.d_timer = self.reg_V[x]
        elif op == Op.LD_ST_VX:
            self.s_timer = self.reg_V[x]
        elif op == Op.ADD_I:
            result = self.reg_I + self.reg_V[x]
            self.reg_I = result & 0xFFFF
            self.reg_V[VF] = 1 if result > 0xFFFF else 0
        elif op == Op.LD_F:
            self.reg_I = FONT_LOAD + FONT_HEIGHT * self.reg_V[x]
        elif op == Op.LD_B:
            value = self.reg_V[x]
            self.write(self.reg_I, value // 100)
            self.write(self.reg_I + 1, value // 10 % 10)
            self.write(self.reg_I + 2, value % 10)
        elif op == Op.LD_MEM_VX:
            for n in range(x + 1):
                self.write(self.reg_I + n, self.reg_V[n])
            self.reg_I = (self.reg_I + x + 1) & 0xFFFF
        elif op == Op.LD_VX_MEM:
            for n in range(x + 1):
                self.reg_V[n] = self.read(self.reg_I + n)
            self.reg_I = (self.reg_I + x + 1) & 0xFFFF
