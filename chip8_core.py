"""
Cat's Chip-8 Emulator - CPU core
The original 35 CHIP-8 opcodes, memory, registers, timers, display and keypad.

No GUI here: the host (see chip8_runner / chip8_emulator) feeds key edges in,
calls cycle() and reads the framebuffer back out.
"""

import logging
import random
from dataclasses import dataclass
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)

# ============================================================================
# CONSTANTS
# ============================================================================

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
FONT_START = 0x050
FONT_GLYPH_SIZE = 5
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START

DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
PIXEL_ON = 0xFFFFFFFF
PIXEL_OFF = 0

STACK_SIZE = 16
NUM_REGISTERS = 16
NUM_KEYS = 16

# ============================================================================
# CHIP-8 FONT
# ============================================================================

# Standard 4x5 font (0-F) - 80 bytes at 0x050
# Only the high nibble of each row is used:
# 0xF0 11110000 ****
# 0x90 10010000 *  *
FONT_4X5 = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])

# ============================================================================
# ERRORS
# ============================================================================

class Chip8Error(Exception):
    """Base class for everything the CPU core raises"""


class UnknownInstruction(Chip8Error):
    """Opcode matched none of the 35 CHIP-8 instructions"""

    def __init__(self, opcode: int, address: int):
        self.opcode = opcode
        self.address = address
        super().__init__(f"Unknown instruction {opcode:04X} at {address:03X}")


class OutOfBounds(Chip8Error):
    """Memory, stack, keypad or display access outside its valid range"""

    def __init__(self, message: str, address: Optional[int] = None):
        self.address = address
        super().__init__(message)


class LoadTooLarge(OutOfBounds, ValueError):
    """ROM does not fit in program space"""

    def __init__(self, size: int, limit: int = MAX_ROM_SIZE):
        self.size = size
        self.limit = limit
        super().__init__(f"ROM too large: {size} bytes (max {limit})", PROGRAM_START)

# ============================================================================
# INSTRUCTION DECODING
# ============================================================================

@dataclass(frozen=True)
class Instruction:
    """
    One 16-bit instruction word split into its nibble fields.

        op   = bits 12-15   instruction class
        x    = bits 8-11    register X index
        y    = bits 4-7     register Y index
        n    = bits 0-3     4-bit constant
        nn   = bits 0-7     8-bit constant
        nnn  = bits 0-11    12-bit address
    """
    word: int
    op: int
    x: int
    y: int
    n: int
    nn: int
    nnn: int

    @classmethod
    def decode(cls, word: int) -> "Instruction":
        return cls(
            word=word,
            op=(word >> 12) & 0x0F,
            x=(word >> 8) & 0x0F,
            y=(word >> 4) & 0x0F,
            n=word & 0x000F,
            nn=word & 0x00FF,
            nnn=word & 0x0FFF,
        )


_ALU_MNEMONICS = {
    0x0: "LD", 0x1: "OR", 0x2: "AND", 0x3: "XOR", 0x4: "ADD",
    0x5: "SUB", 0x6: "SHR", 0x7: "SUBN", 0xE: "SHL",
}

_FX_MNEMONICS = {
    0x07: "LD V{x:X}, DT",
    0x0A: "LD V{x:X}, K",
    0x15: "LD DT, V{x:X}",
    0x18: "LD ST, V{x:X}",
    0x1E: "ADD I, V{x:X}",
    0x29: "LD F, V{x:X}",
    0x33: "LD B, V{x:X}",
    0x55: "LD [I], V{x:X}",
    0x65: "LD V{x:X}, [I]",
}


def disassemble(word: int) -> str:
    """Render an opcode as a mnemonic, e.g. 0xD015 -> 'DRW V0, V1, 5'"""
    ins = Instruction.decode(word)
    op, x, y, n, nn, nnn = ins.op, ins.x, ins.y, ins.n, ins.nn, ins.nnn

    if word == 0x00E0:
        return "CLS"
    if word == 0x00EE:
        return "RET"
    if op == 0x1:
        return f"JP 0x{nnn:03X}"
    if op == 0x2:
        return f"CALL 0x{nnn:03X}"
    if op == 0x3:
        return f"SE V{x:X}, 0x{nn:02X}"
    if op == 0x4:
        return f"SNE V{x:X}, 0x{nn:02X}"
    if op == 0x5 and n == 0:
        return f"SE V{x:X}, V{y:X}"
    if op == 0x6:
        return f"LD V{x:X}, 0x{nn:02X}"
    if op == 0x7:
        return f"ADD V{x:X}, 0x{nn:02X}"
    if op == 0x8 and n in _ALU_MNEMONICS:
        return f"{_ALU_MNEMONICS[n]} V{x:X}, V{y:X}"
    if op == 0x9 and n == 0:
        return f"SNE V{x:X}, V{y:X}"
    if op == 0xA:
        return f"LD I, 0x{nnn:03X}"
    if op == 0xB:
        return f"JP V0, 0x{nnn:03X}"
    if op == 0xC:
        return f"RND V{x:X}, 0x{nn:02X}"
    if op == 0xD:
        return f"DRW V{x:X}, V{y:X}, {n}"
    if op == 0xE and nn == 0x9E:
        return f"SKP V{x:X}"
    if op == 0xE and nn == 0xA1:
        return f"SKNP V{x:X}"
    if op == 0xF and nn in _FX_MNEMONICS:
        return _FX_MNEMONICS[nn].format(x=x)
    return f"DW 0x{word:04X}"

# ============================================================================
# EMULATOR STATE
# ============================================================================

@dataclass
class EmulatorState:
    """Complete serializable CPU state for save/load"""
    memory: bytes
    v: List[int]
    i: int
    pc: int
    stack: List[int]
    sp: int
    delay_timer: int
    sound_timer: int
    display: List[int]
    keys: List[bool]
    waiting_for_key: bool = False
    key_register: int = 0
    rom_name: str = ""
    rom_size: int = 0

# ============================================================================
# CHIP-8 CPU
# ============================================================================

class Chip8CPU:
    """
    CHIP-8 CPU core with all 35 original opcodes.

    Every operation either applies completely or raises a Chip8Error and
    leaves the machine exactly as it was.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.reset()

    def reset(self):
        """Reset CPU to initial power-on state"""
        # Main memory (4KB) with the font at 0x050
        self.memory = bytearray(MEMORY_SIZE)
        self.memory[FONT_START:FONT_START + len(FONT_4X5)] = FONT_4X5

        # V0-VF, index register, program counter
        self.v = [0] * NUM_REGISTERS
        self.i = 0
        self.pc = PROGRAM_START

        # Return address stack
        self.stack = [0] * STACK_SIZE
        self.sp = 0

        # Timers
        self.delay_timer = 0
        self.sound_timer = 0

        # 64x32 framebuffer, row-major
        self.display = [PIXEL_OFF] * (DISPLAY_WIDTH * DISPLAY_HEIGHT)

        # Input state (16 keys)
        self.keys = [False] * NUM_KEYS

        # CPU state flags
        self.draw_flag = False           # Screen needs redraw
        self.waiting_for_key = False     # FX0A blocking
        self.key_register = 0            # Register to store key for FX0A

        # ROM info
        self.rom_loaded = False
        self.rom_name = ""
        self.rom_size = 0

        self.cycles = 0

    # ==================== LOADING ====================

    def load(self, data: bytes):
        """Copy program bytes into memory starting at 0x200"""
        if len(data) > MAX_ROM_SIZE:
            raise LoadTooLarge(len(data))
        self.memory[PROGRAM_START:PROGRAM_START + len(data)] = data

    def load_rom(self, data: bytes, name: str = ""):
        """Reset, then load ROM into memory starting at 0x200"""
        if len(data) > MAX_ROM_SIZE:
            raise LoadTooLarge(len(data))

        self.reset()
        self.load(data)

        self.rom_loaded = True
        self.rom_name = name or "Unknown"
        self.rom_size = len(data)
        logger.debug("Loaded ROM %s (%d bytes)", self.rom_name, self.rom_size)

    # ==================== CYCLE ====================

    def fetch(self) -> int:
        """Read the big-endian opcode at PC without advancing"""
        if self.pc < 0 or self.pc + 1 >= MEMORY_SIZE:
            raise OutOfBounds(f"Fetch outside memory at {self.pc:04X}", self.pc)
        return (self.memory[self.pc] << 8) | self.memory[self.pc + 1]

    def cycle(self, tick_timers: bool = True) -> bool:
        """
        Execute one CPU cycle: fetch, advance PC, execute, tick timers.

        Returns True if an instruction executed, False while blocked on FX0A.
        Hosts running faster than the 60Hz timer rate pass tick_timers=False
        and call update_timers() themselves.
        """
        if self.waiting_for_key:
            key = self.first_pressed_key()
            if key is not None:
                self.v[self.key_register] = key
                self.waiting_for_key = False
                logger.debug("Key %X released FX0A wait", key)
            if tick_timers:
                self.update_timers()
            return False

        address = self.pc
        opcode = self.fetch()
        self.pc += 2

        try:
            self._execute(Instruction.decode(opcode), address)
        except Chip8Error:
            self.pc = address
            raise

        self.cycles += 1
        if tick_timers:
            self.update_timers()
        return True

    def _execute(self, ins: Instruction, address: int):
        """Decode and execute a single opcode"""
        op, x, y, n, nn, nnn = ins.op, ins.x, ins.y, ins.n, ins.nn, ins.nnn

        # ==================== 0x0___ ====================
        if op == 0x0:
            if ins.word == 0x00E0:
                # 00E0: CLS - Clear the display
                self._cls()
            elif ins.word == 0x00EE:
                # 00EE: RET - Return from subroutine
                self._ret()
            else:
                # 0NNN: SYS addr - machine code routines are not supported
                raise UnknownInstruction(ins.word, address)

        # ==================== 0x1___ ====================
        elif op == 0x1:
            # 1NNN: JP addr - Jump to address NNN
            self.pc = nnn

        # ==================== 0x2___ ====================
        elif op == 0x2:
            # 2NNN: CALL addr - Call subroutine at NNN
            if self.sp >= STACK_SIZE:
                raise OutOfBounds(f"Stack overflow calling {nnn:03X}", address)
            self.stack[self.sp] = self.pc
            self.sp += 1
            self.pc = nnn

        # ==================== 0x3___ ====================
        elif op == 0x3:
            # 3XNN: SE Vx, byte - Skip if Vx == NN
            if self.v[x] == nn:
                self.pc += 2

        # ==================== 0x4___ ====================
        elif op == 0x4:
            # 4XNN: SNE Vx, byte - Skip if Vx != NN
            if self.v[x] != nn:
                self.pc += 2

        # ==================== 0x5___ ====================
        elif op == 0x5:
            if n != 0x0:
                raise UnknownInstruction(ins.word, address)
            # 5XY0: SE Vx, Vy - Skip if Vx == Vy
            if self.v[x] == self.v[y]:
                self.pc += 2

        # ==================== 0x6___ ====================
        elif op == 0x6:
            # 6XNN: LD Vx, byte - Set Vx = NN
            self.v[x] = nn

        # ==================== 0x7___ ====================
        elif op == 0x7:
            # 7XNN: ADD Vx, byte - Set Vx = Vx + NN (no carry flag)
            self.v[x] = (self.v[x] + nn) & 0xFF

        # ==================== 0x8___ ====================
        elif op == 0x8:
            self._execute_8xxx(ins, address)

        # ==================== 0x9___ ====================
        elif op == 0x9:
            if n != 0x0:
                raise UnknownInstruction(ins.word, address)
            # 9XY0: SNE Vx, Vy - Skip if Vx != Vy
            if self.v[x] != self.v[y]:
                self.pc += 2

        # ==================== 0xA___ ====================
        elif op == 0xA:
            # ANNN: LD I, addr - Set I = NNN
            self.i = nnn

        # ==================== 0xB___ ====================
        elif op == 0xB:
            # BNNN: JP V0, addr - Jump to NNN + V0
            self.pc = nnn + self.v[0]

        # ==================== 0xC___ ====================
        elif op == 0xC:
            # CXNN: RND Vx, byte - Set Vx = random & NN
            self.v[x] = self.rng.randint(0, 255) & nn

        # ==================== 0xD___ ====================
        elif op == 0xD:
            # DXYN: DRW Vx, Vy, nibble - Draw sprite
            self._draw(x, y, n)

        # ==================== 0xE___ ====================
        elif op == 0xE:
            if nn == 0x9E:
                # EX9E: SKP Vx - Skip if key Vx is pressed
                if self.keys[self._key_index(self.v[x], address)]:
                    self.pc += 2
            elif nn == 0xA1:
                # EXA1: SKNP Vx - Skip if key Vx is NOT pressed
                if not self.keys[self._key_index(self.v[x], address)]:
                    self.pc += 2
            else:
                raise UnknownInstruction(ins.word, address)

        # ==================== 0xF___ ====================
        else:
            self._execute_fxxx(ins, address)

    def _execute_8xxx(self, ins: Instruction, address: int):
        """Execute 8XYN arithmetic/logic opcodes"""
        x, y, n = ins.x, ins.y, ins.n
        vx, vy = self.v[x], self.v[y]

        if n == 0x0:
            # 8XY0: LD Vx, Vy
            self.v[x] = vy

        elif n == 0x1:
            # 8XY1: OR Vx, Vy
            self.v[x] = vx | vy

        elif n == 0x2:
            # 8XY2: AND Vx, Vy
            self.v[x] = vx & vy

        elif n == 0x3:
            # 8XY3: XOR Vx, Vy
            self.v[x] = vx ^ vy

        elif n == 0x4:
            # 8XY4: ADD Vx, Vy - VF = carry
            result = vx + vy
            self.v[x] = result & 0xFF
            self.v[0xF] = 1 if result > 0xFF else 0

        elif n == 0x5:
            # 8XY5: SUB Vx, Vy - VF = NOT borrow
            self.v[x] = (vx - vy) & 0xFF
            self.v[0xF] = 1 if vx >= vy else 0

        elif n == 0x6:
            # 8XY6: SHR Vx - VF = LSB before the shift
            self.v[x] = vx >> 1
            self.v[0xF] = vx & 0x01

        elif n == 0x7:
            # 8XY7: SUBN Vx, Vy - Vx = Vy - Vx, VF = NOT borrow
            self.v[x] = (vy - vx) & 0xFF
            self.v[0xF] = 1 if vy >= vx else 0

        elif n == 0xE:
            # 8XYE: SHL Vx - VF = MSB before the shift
            self.v[x] = (vx << 1) & 0xFF
            self.v[0xF] = (vx >> 7) & 0x01

        else:
            raise UnknownInstruction(ins.word, address)

    def _execute_fxxx(self, ins: Instruction, address: int):
        """Execute FXNN opcodes"""
        x, nn = ins.x, ins.nn

        if nn == 0x07:
            # FX07: LD Vx, DT - Set Vx = delay timer
            self.v[x] = self.delay_timer

        elif nn == 0x0A:
            # FX0A: LD Vx, K - Wait for key press, store in Vx
            key = self.first_pressed_key()
            if key is not None:
                self.v[x] = key
            else:
                self.waiting_for_key = True
                self.key_register = x
                logger.debug("FX0A waiting for key into V%X", x)

        elif nn == 0x15:
            # FX15: LD DT, Vx - Set delay timer = Vx
            self.delay_timer = self.v[x]

        elif nn == 0x18:
            # FX18: LD ST, Vx - Set sound timer = Vx
            self.sound_timer = self.v[x]

        elif nn == 0x1E:
            # FX1E: ADD I, Vx - wraps inside the 12-bit address space, VF untouched
            self.i = (self.i + self.v[x]) & 0x0FFF

        elif nn == 0x29:
            # FX29: LD F, Vx - Set I = location of sprite for digit Vx
            digit = self.v[x] & 0x0F
            self.i = FONT_START + digit * FONT_GLYPH_SIZE

        elif nn == 0x33:
            # FX33: LD B, Vx - Store BCD of Vx at I, I+1, I+2
            self._check_write(self.i, 3)
            value = self.v[x]
            self.memory[self.i] = value // 100
            self.memory[self.i + 1] = (value // 10) % 10
            self.memory[self.i + 2] = value % 10

        elif nn == 0x55:
            # FX55: LD [I], Vx - Store V0 through Vx at I
            self._check_write(self.i, x + 1)
            self.memory[self.i:self.i + x + 1] = bytes(self.v[:x + 1])

        elif nn == 0x65:
            # FX65: LD Vx, [I] - Load V0 through Vx from I
            self._check_read(self.i, x + 1)
            self.v[:x + 1] = list(self.memory[self.i:self.i + x + 1])

        else:
            raise UnknownInstruction(ins.word, address)

    # ==================== BOUNDS CHECKS ====================

    def _check_read(self, start: int, length: int):
        if start < 0 or start + length > MEMORY_SIZE:
            raise OutOfBounds(
                f"Read of {length} bytes at {start:04X} leaves memory", start)

    def _check_write(self, start: int, length: int):
        # Everything below 0x200 (including the font) is interpreter memory
        if start < PROGRAM_START or start + length > MEMORY_SIZE:
            raise OutOfBounds(
                f"Write of {length} bytes at {start:04X} outside program space", start)

    def _key_index(self, key: int, address: Optional[int] = None) -> int:
        if not 0 <= key < NUM_KEYS:
            raise OutOfBounds(f"Key index {key:X} outside keypad", address)
        return key

    # ==================== DISPLAY OPERATIONS ====================

    def _cls(self):
        """00E0: Clear display"""
        self.display = [PIXEL_OFF] * (DISPLAY_WIDTH * DISPLAY_HEIGHT)
        self.draw_flag = True

    def _draw(self, x: int, y: int, n: int):
        """
        DXYN: Draw sprite at (Vx, Vy) with height N

        Sprites are XORed onto the display.
        VF is set to 1 if any pixel is erased (collision).

        The starting position wraps around the screen; pixels that run
        past the right or bottom edge are clipped.
        """
        self._check_read(self.i, n)

        vx = self.v[x] % DISPLAY_WIDTH
        vy = self.v[y] % DISPLAY_HEIGHT
        self.v[0xF] = 0

        for row in range(n):
            py = vy + row
            if py >= DISPLAY_HEIGHT:
                break

            sprite_byte = self.memory[self.i + row]

            for col in range(8):
                px = vx + col
                if px >= DISPLAY_WIDTH:
                    break

                if sprite_byte & (0x80 >> col):
                    idx = py * DISPLAY_WIDTH + px
                    if self.display[idx] == PIXEL_ON:
                        self.v[0xF] = 1  # Collision
                    self.display[idx] ^= PIXEL_ON

        self.draw_flag = True

    def pixel(self, x: int, y: int) -> bool:
        """Return True if the framebuffer cell at (x, y) is set"""
        if not (0 <= x < DISPLAY_WIDTH and 0 <= y < DISPLAY_HEIGHT):
            raise OutOfBounds(f"Pixel ({x}, {y}) outside {DISPLAY_WIDTH}x{DISPLAY_HEIGHT}")
        return self.display[y * DISPLAY_WIDTH + x] == PIXEL_ON

    def rows(self) -> Iterator[List[bool]]:
        """Yield the framebuffer one row of booleans at a time"""
        for y in range(DISPLAY_HEIGHT):
            start = y * DISPLAY_WIDTH
            yield [cell == PIXEL_ON for cell in self.display[start:start + DISPLAY_WIDTH]]

    # ==================== STACK OPERATIONS ====================

    def _ret(self):
        """00EE: Return from subroutine"""
        if self.sp == 0:
            raise OutOfBounds("Stack underflow on RET", self.pc - 2)
        self.sp -= 1
        self.pc = self.stack[self.sp]

    # ==================== INPUT HANDLING ====================

    def set_key(self, key: int, pressed: bool):
        self.keys[self._key_index(key)] = pressed

    def press_key(self, key: int):
        self.set_key(key, True)

    def release_key(self, key: int):
        self.set_key(key, False)

    def first_pressed_key(self) -> Optional[int]:
        """Lowest-numbered key currently held, or None"""
        for key, pressed in enumerate(self.keys):
            if pressed:
                return key
        return None

    # ==================== TIMER OPERATIONS ====================

    def update_timers(self):
        """Decrement delay and sound timers, floor 0"""
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    # ==================== STATE SAVE/LOAD ====================

    def get_state(self) -> EmulatorState:
        """Get complete CPU state for saving"""
        return EmulatorState(
            memory=bytes(self.memory),
            v=list(self.v),
            i=self.i,
            pc=self.pc,
            stack=list(self.stack),
            sp=self.sp,
            delay_timer=self.delay_timer,
            sound_timer=self.sound_timer,
            display=list(self.display),
            keys=list(self.keys),
            waiting_for_key=self.waiting_for_key,
            key_register=self.key_register,
            rom_name=self.rom_name,
            rom_size=self.rom_size,
        )

    def load_state(self, state: EmulatorState):
        """Restore CPU state from a save"""
        # Validate everything before touching any field
        for name, values, size, limit in (
            ("memory", state.memory, MEMORY_SIZE, 0xFF),
            ("registers", state.v, NUM_REGISTERS, 0xFF),
            ("stack", state.stack, STACK_SIZE, 0xFFFF),
        ):
            if len(values) != size:
                raise OutOfBounds(f"Saved {name} has {len(values)} entries, expected {size}")
            if any(not 0 <= value <= limit for value in values):
                raise OutOfBounds(f"Saved {name} holds a value above {limit:X}")
        if len(state.display) != DISPLAY_WIDTH * DISPLAY_HEIGHT:
            raise OutOfBounds(f"Saved display has {len(state.display)} cells, expected {DISPLAY_WIDTH * DISPLAY_HEIGHT}")
        if any(cell not in (PIXEL_OFF, PIXEL_ON) for cell in state.display):
            raise OutOfBounds("Saved display holds a cell that is neither on nor off")
        if len(state.keys) != NUM_KEYS:
            raise OutOfBounds(f"Saved keypad has {len(state.keys)} keys, expected {NUM_KEYS}")
        if not 0 <= state.sp <= STACK_SIZE:
            raise OutOfBounds(f"Saved stack pointer {state.sp} outside 0..{STACK_SIZE}")
        if not 0 <= state.i <= 0xFFF:
            raise OutOfBounds(f"Saved index register {state.i:X} outside 12 bits")
        if not 0 <= state.pc <= 0xFFFF:
            raise OutOfBounds(f"Saved program counter {state.pc:X} outside 16 bits")
        if not 0 <= state.key_register < NUM_REGISTERS:
            raise OutOfBounds(f"Saved key register {state.key_register} is not V0-VF")
        if not (0 <= state.delay_timer <= 0xFF and 0 <= state.sound_timer <= 0xFF):
            raise OutOfBounds("Saved timers outside 0..255")

        self.memory = bytearray(state.memory)
        self.v = list(state.v)
        self.i = state.i
        self.pc = state.pc
        self.stack = list(state.stack)
        self.sp = state.sp
        self.delay_timer = state.delay_timer
        self.sound_timer = state.sound_timer
        self.display = list(state.display)
        self.keys = list(state.keys)
        self.waiting_for_key = state.waiting_for_key
        self.key_register = state.key_register
        self.rom_name = state.rom_name
        self.rom_size = state.rom_size
        self.rom_loaded = True

        self.draw_flag = True
