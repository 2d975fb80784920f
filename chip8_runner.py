"""
Cat's Chip-8 Emulator - host loop
Frame stepping, key edges, ROM files and save states around a Chip8CPU.

The GUI in chip8_emulator drives this from its emulation thread; keep it free
of tkinter/pygame so it can run headless.
"""

import logging
import os
import pickle
import threading
from dataclasses import dataclass
from typing import List, Optional

from chip8_core import (
    Chip8CPU,
    Chip8Error,
    EmulatorState,
    NUM_REGISTERS,
    PROGRAM_START,
    disassemble,
)

logger = logging.getLogger(__name__)

MAX_SPEED_MULTIPLIER = 16

# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class EmulatorConfig:
    """Emulator configuration settings"""
    # Timing
    cpu_frequency: int = 500      # Instructions per second
    timer_frequency: int = 60     # Timer decrement rate (Hz), one tick per frame
    speed_multiplier: int = 1

    # Error policy: halt, or log and skip the offending instruction
    halt_on_error: bool = True

    # Where .sav files go (None = current directory)
    save_dir: Optional[str] = None

    # Log every executed instruction at DEBUG
    trace: bool = False

    @property
    def cycles_per_frame(self) -> int:
        return max(1, (self.cpu_frequency * self.speed_multiplier) // self.timer_frequency)

# ============================================================================
# RUNNER
# ============================================================================

class Chip8Runner:
    """Owns a CPU and steps it one 60Hz frame at a time"""

    def __init__(self, config: Optional[EmulatorConfig] = None, cpu: Optional[Chip8CPU] = None):
        self.config = config or EmulatorConfig()
        self.cpu = cpu or Chip8CPU()

        # Key edges from the GUI/controller threads land between cycles
        self._lock = threading.Lock()

        self.paused = False
        self.halted = False
        self.last_error: Optional[Chip8Error] = None
        self._rom_data = b""

    # ==================== ROM LOADING ====================

    def load_rom(self, data: bytes, name: str = ""):
        with self._lock:
            self.cpu.load_rom(data, name)
            self._rom_data = bytes(data)
            self.halted = False
            self.last_error = None
        logger.info("Loaded %s (%d bytes)", self.cpu.rom_name, len(data))

    def load_rom_file(self, path: str) -> int:
        """Load ROM from file, returns its size"""
        with open(path, 'rb') as f:
            data = f.read()
        self.load_rom(data, os.path.basename(path))
        return len(data)

    def reload(self):
        """Reset emulator with current ROM"""
        if self.cpu.rom_loaded:
            self.load_rom(self._rom_data, self.cpu.rom_name)

    # ==================== INPUT ====================

    def set_key(self, key: int, pressed: bool):
        with self._lock:
            self.cpu.set_key(key, pressed)

    # ==================== EXECUTION ====================

    @property
    def running(self) -> bool:
        return self.cpu.rom_loaded and not self.paused and not self.halted

    def run_frame(self) -> int:
        """
        Run one frame worth of cycles and tick the timers once.
        Returns the number of instructions executed.
        """
        if not self.running:
            return 0

        executed = 0
        with self._lock:
            for _ in range(self.config.cycles_per_frame):
                if self.config.trace and not self.cpu.waiting_for_key:
                    self._trace()
                try:
                    ran = self.cpu.cycle(tick_timers=False)
                except Chip8Error as e:
                    self._handle_error(e)
                    if self.halted:
                        break
                    continue
                if not ran:
                    if self.cpu.waiting_for_key:
                        # Blocked on FX0A until the next key edge
                        break
                    continue
                executed += 1
            self.cpu.update_timers()
        return executed

    def step(self) -> bool:
        """Single-step one instruction, ticking timers like a lone frame"""
        with self._lock:
            try:
                return self.cpu.cycle()
            except Chip8Error as e:
                self._handle_error(e)
                return False

    def _handle_error(self, error: Chip8Error):
        self.last_error = error
        if self.config.halt_on_error:
            self.halted = True
            logger.error("CPU halted: %s", error)
        else:
            # PC was restored to the faulting instruction; step over it
            self.cpu.pc += 2
            logger.warning("Skipped instruction: %s", error)

    def _trace(self):
        try:
            opcode = self.cpu.fetch()
        except Chip8Error:
            return
        logger.debug("%03X  %04X  %s", self.cpu.pc, opcode, disassemble(opcode))

    # ==================== CONTROLS ====================

    def toggle_pause(self):
        self.paused = not self.paused

    def increase_speed(self):
        """Increase emulation speed"""
        if self.config.speed_multiplier < MAX_SPEED_MULTIPLIER:
            self.config.speed_multiplier *= 2

    def decrease_speed(self):
        """Decrease emulation speed"""
        if self.config.speed_multiplier > 1:
            self.config.speed_multiplier //= 2

    # ==================== STATE SAVE/LOAD ====================

    def save_path(self) -> str:
        name = f"{self.cpu.rom_name}.sav"
        if self.config.save_dir:
            return os.path.join(self.config.save_dir, name)
        return name

    def save_state(self, path: Optional[str] = None) -> Optional[str]:
        """Pickle the CPU state, returns the file written"""
        if not self.cpu.rom_loaded:
            return None

        path = path or self.save_path()
        with self._lock:
            state = self.cpu.get_state()
        with open(path, 'wb') as f:
            pickle.dump(state, f)
        logger.info("Saved state to %s", path)
        return path

    def load_state(self, path: Optional[str] = None) -> bool:
        """Restore a pickled CPU state, False if there is no save file"""
        if not self.cpu.rom_loaded:
            return False

        path = path or self.save_path()
        try:
            with open(path, 'rb') as f:
                state = pickle.load(f)
        except FileNotFoundError:
            logger.info("No save state at %s", path)
            return False
        except (EOFError, pickle.UnpicklingError) as e:
            raise TypeError(f"{path} is not a readable CHIP-8 save state") from e

        if not isinstance(state, EmulatorState):
            raise TypeError(f"{path} does not contain a CHIP-8 save state")

        with self._lock:
            self.cpu.load_state(state)
            self.halted = False
            self.last_error = None
        logger.info("Loaded state from %s", path)
        return True

    # ==================== DEBUG ====================

    def debug_dump(self) -> str:
        cpu = self.cpu
        lines: List[str] = ["=== DEBUG INFO ==="]
        try:
            current = disassemble(cpu.fetch())
        except Chip8Error:
            current = "<outside memory>"
        lines.append(f"PC: ${cpu.pc:04X}  I: ${cpu.i:04X}  SP: {cpu.sp}  [{current}]")
        lines.append(f"DT: {cpu.delay_timer:3d}  ST: {cpu.sound_timer:3d}")
        lines.append("Registers:")
        for i in range(0, NUM_REGISTERS, 4):
            regs = " ".join(f"V{j:X}=${cpu.v[j]:02X}" for j in range(i, i + 4))
            lines.append(f"  {regs}")
        if cpu.sp:
            lines.append("Stack: " + " ".join(f"${a:03X}" for a in cpu.stack[:cpu.sp]))
        lines.append(f"ROM: {cpu.rom_name or '-'} ({cpu.rom_size}b at ${PROGRAM_START:03X})")
        lines.append(f"Halted: {self.halted}")
        if self.last_error:
            lines.append(f"Error: {self.last_error}")
        lines.append(f"Waiting: {cpu.waiting_for_key}")
        lines.append("==================")
        return "\n".join(lines)
