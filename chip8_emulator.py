#!/usr/bin/env python3
"""
Cat's Chip-8 Emulator
CHIP-8 emulator with Tkinter GUI and Bluetooth controller support.
Author: Team Flames / Samsoft
"""

import argparse
import logging
import os
import sys
import threading
import time
import tkinter as tk
from tkinter import filedialog, messagebox
from typing import Callable, Dict, Optional

import pygame

from chip8_core import DISPLAY_HEIGHT, DISPLAY_WIDTH, Chip8Error
from chip8_runner import Chip8Runner, EmulatorConfig

logger = logging.getLogger(__name__)

# Window constants
WINDOW_WIDTH = 640
WINDOW_HEIGHT = 400
DISPLAY_AREA_HEIGHT = 352
STATUS_BAR_HEIGHT = 48

# Colors
COLORS = {
    'bg': '#0C0C0C',
    'pixel_on': '#C0C0C0',
    'pixel_off': '#1A1A1A',
    'status_bg': '#1E1E1E',
    'status_fg': '#707070',
    'accent': '#4A9EFF',
}

TARGET_FPS = 60

# ============================================================================
# KEYBOARD MAPPING
# ============================================================================

# CHIP-8 Hex Keypad    PC Keyboard
#  1 2 3 C             1 2 3 4
#  4 5 6 D      →      Q W E R
#  7 8 9 E             A S D F
#  A 0 B F             Z X C V

KEYBOARD_MAP = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}

# ============================================================================
# CONTROLLER INPUT
# ============================================================================

class Chip8Controller:
    """Controller input handler with Bluetooth support"""

    # Controller button mappings for PS5/Atari style
    BUTTON_SQUARE = 0
    BUTTON_CIRCLE = 1
    BUTTON_CROSS = 2
    BUTTON_TRIANGLE = 3
    BUTTON_L1 = 4
    BUTTON_R1 = 5
    BUTTON_L2 = 6
    BUTTON_R2 = 7
    BUTTON_SHARE = 8
    BUTTON_OPTIONS = 9
    BUTTON_PS = 12
    BUTTON_TOUCHPAD = 13

    BUTTON_TO_KEY = {
        BUTTON_CIRCLE: 0x1,
        BUTTON_SQUARE: 0x2,
        BUTTON_TRIANGLE: 0x3,
        BUTTON_CROSS: 0xC,
        BUTTON_L1: 0x4,
        BUTTON_R1: 0x5,
        BUTTON_L2: 0xD,
        BUTTON_R2: 0xE,
        BUTTON_SHARE: 0x7,
        BUTTON_OPTIONS: 0x8,
        BUTTON_PS: 0x9,
        BUTTON_TOUCHPAD: 0xA,
    }

    # D-pad to CHIP-8 keys (2=down, 4=left, 6=right, 8=up)
    HAT_TO_KEY = {
        (0, 1): 0x8,
        (0, -1): 0x2,
        (-1, 0): 0x4,
        (1, 0): 0x6,
    }

    def __init__(self, on_key_change: Callable[[int, bool], None]):
        self.on_key_change = on_key_change
        self.joystick: Optional[pygame.joystick.JoystickType] = None
        self.connected = False
        self.connection_type = "None"
        self.running = False
        self._thread: Optional[threading.Thread] = None

        # Special actions, keyed by button
        self.actions: Dict[int, Callable[[], None]] = {}

    def start(self):
        """Start controller polling thread"""
        pygame.init()
        pygame.joystick.init()
        self.running = True
        self._thread = threading.Thread(target=self._poll_loop, daemon=True)
        self._thread.start()

    def stop(self):
        """Stop controller polling"""
        self.running = False
        if self._thread:
            self._thread.join(timeout=1.0)
        pygame.quit()

    def _poll_loop(self):
        while self.running:
            self._check_connection()
            if self.connected:
                self._process_input()
            time.sleep(1 / 120)  # 120Hz polling

    def _check_connection(self):
        """Check for controller connection/disconnection"""
        pygame.event.pump()

        joystick_count = pygame.joystick.get_count()

        if joystick_count > 0 and not self.connected:
            self.joystick = pygame.joystick.Joystick(0)
            self.joystick.init()
            self.connected = True

            # Connection type is a guess from the device name
            name = self.joystick.get_name().lower()
            if "wireless" in name or "bluetooth" in name or "dualsense" in name:
                self.connection_type = "Bluetooth"
            else:
                self.connection_type = "USB"
            logger.info("Controller connected: %s (%s)",
                        self.joystick.get_name(), self.connection_type)

        elif joystick_count == 0 and self.connected:
            self.connected = False
            self.connection_type = "None"
            self.joystick = None
            logger.info("Controller disconnected")

    def _process_input(self):
        for event in pygame.event.get():
            if event.type == pygame.JOYBUTTONDOWN:
                self._handle_button(event.button, True)
            elif event.type == pygame.JOYBUTTONUP:
                self._handle_button(event.button, False)
            elif event.type == pygame.JOYHATMOTION:
                self._handle_hat(event.value)

    def _handle_button(self, button: int, pressed: bool):
        if pressed and button in self.actions:
            self.actions[button]()
        if button in self.BUTTON_TO_KEY:
            self.on_key_change(self.BUTTON_TO_KEY[button], pressed)

    def _handle_hat(self, value: tuple):
        if value in self.HAT_TO_KEY:
            self.on_key_change(self.HAT_TO_KEY[value], True)
        elif value == (0, 0):
            # Released
            for key in self.HAT_TO_KEY.values():
                self.on_key_change(key, False)

# ============================================================================
# DISPLAY RENDERER
# ============================================================================

class Chip8Display:
    """Tkinter canvas-based display renderer"""

    def __init__(self, canvas: tk.Canvas):
        self.canvas = canvas
        self.scale_x = WINDOW_WIDTH / DISPLAY_WIDTH
        self.scale_y = DISPLAY_AREA_HEIGHT / DISPLAY_HEIGHT
        self.scanlines_enabled = False
        self.pixel_rects = {}
        self.scanline_rects = []

        # Pre-create pixel rectangles
        self._create_pixels()

    def _create_pixels(self):
        self.canvas.delete("all")
        self.pixel_rects.clear()

        for y in range(DISPLAY_HEIGHT):
            for x in range(DISPLAY_WIDTH):
                x1 = x * self.scale_x
                y1 = y * self.scale_y
                rect = self.canvas.create_rectangle(
                    x1, y1, x1 + self.scale_x, y1 + self.scale_y,
                    fill=COLORS['pixel_off'],
                    outline=""
                )
                self.pixel_rects[(x, y)] = rect

        self._create_scanlines()

    def _create_scanlines(self):
        """Create scanline overlay effect"""
        for rect in self.scanline_rects:
            self.canvas.delete(rect)
        self.scanline_rects.clear()

        if self.scanlines_enabled:
            for y in range(0, DISPLAY_AREA_HEIGHT, int(self.scale_y * 2)):
                rect = self.canvas.create_rectangle(
                    0, y + self.scale_y,
                    WINDOW_WIDTH, y + self.scale_y * 2,
                    fill="#000000",
                    stipple="gray50",
                    outline=""
                )
                self.scanline_rects.append(rect)

    def toggle_scanlines(self):
        self.scanlines_enabled = not self.scanlines_enabled
        self._create_scanlines()

    def render(self, rows):
        """Render CHIP-8 framebuffer rows to canvas"""
        for y, row in enumerate(rows):
            for x, pixel in enumerate(row):
                color = COLORS['pixel_on'] if pixel else COLORS['pixel_off']
                self.canvas.itemconfig(self.pixel_rects[(x, y)], fill=color)

# ============================================================================
# MAIN GUI APPLICATION
# ============================================================================

class Chip8GUI:
    """Main emulator application with Tkinter GUI"""

    def __init__(self, config: Optional[EmulatorConfig] = None, use_controller: bool = True):
        self.root = tk.Tk()
        self.root.title("Cat's Chip-8 Emulator")
        self.root.geometry(f"{WINDOW_WIDTH}x{WINDOW_HEIGHT}")
        self.root.resizable(False, False)
        self.root.configure(bg=COLORS['bg'])

        self.runner = Chip8Runner(config)

        # FPS counter
        self.fps = 0
        self.frame_count = 0
        self.last_fps_time = time.time()

        self._create_ui()
        self.display_renderer = Chip8Display(self.canvas)
        self._bind_keys()

        self.controller: Optional[Chip8Controller] = None
        if use_controller:
            self.controller = Chip8Controller(self.runner.set_key)
            self._setup_controller_actions()
            self.controller.start()

        self._emu_thread: Optional[threading.Thread] = None
        self._emu_running = False

    def _create_ui(self):
        # Main display canvas
        self.canvas = tk.Canvas(
            self.root,
            width=WINDOW_WIDTH,
            height=DISPLAY_AREA_HEIGHT,
            bg=COLORS['bg'],
            highlightthickness=0
        )
        self.canvas.pack(side=tk.TOP)

        # Status bar
        self.status_frame = tk.Frame(
            self.root,
            height=STATUS_BAR_HEIGHT,
            bg=COLORS['status_bg']
        )
        self.status_frame.pack(side=tk.BOTTOM, fill=tk.X)
        self.status_frame.pack_propagate(False)

        self.rom_label = self._status_label("No ROM - Click to load", tk.LEFT)
        self.fps_label = self._status_label("FPS: --", tk.LEFT)
        self.controller_label = self._status_label("Controller: None", tk.LEFT)
        self.state_label = self._status_label("⏹ Stopped", tk.RIGHT)
        self.speed_label = self._status_label("1×", tk.RIGHT, fg=COLORS['accent'])

    def _status_label(self, text: str, side: str, fg: Optional[str] = None) -> tk.Label:
        label = tk.Label(
            self.status_frame,
            text=text,
            fg=fg or COLORS['status_fg'],
            bg=COLORS['status_bg'],
            font=("Consolas", 9)
        )
        label.pack(side=side, padx=10)
        return label

    def _bind_keys(self):
        """Bind keyboard events"""
        self.root.bind("<KeyPress>", self._on_key_down)
        self.root.bind("<KeyRelease>", self._on_key_up)

        # Emulator controls
        self.root.bind("<F9>", lambda e: self._reset())
        self.root.bind("<Control-r>", lambda e: self._reset())
        self.root.bind("<space>", lambda e: self._toggle_pause())
        self.root.bind("<F5>", lambda e: self._save_state())
        self.root.bind("<F7>", lambda e: self._load_state())
        self.root.bind("<F1>", lambda e: self._decrease_speed())
        self.root.bind("<F2>", lambda e: self._increase_speed())
        self.root.bind("<F3>", lambda e: self.display_renderer.toggle_scanlines())
        self.root.bind("<F4>", lambda e: self._dump_debug())
        self.root.bind("<Control-o>", lambda e: self._open_file_dialog())

        # Click canvas to load ROM
        self.canvas.bind("<Button-1>", self._on_click)

    def _on_key_down(self, event):
        key = event.keysym.lower()
        if key in KEYBOARD_MAP:
            self.runner.set_key(KEYBOARD_MAP[key], True)

    def _on_key_up(self, event):
        key = event.keysym.lower()
        if key in KEYBOARD_MAP:
            self.runner.set_key(KEYBOARD_MAP[key], False)

    def _setup_controller_actions(self):
        """Route controller special buttons onto the Tk thread"""
        actions = {
            Chip8Controller.BUTTON_CIRCLE: self._reset,
            Chip8Controller.BUTTON_CROSS: self._toggle_pause,
            Chip8Controller.BUTTON_SQUARE: self._save_state,
            Chip8Controller.BUTTON_TRIANGLE: self._load_state,
            Chip8Controller.BUTTON_L1: self._increase_speed,
            Chip8Controller.BUTTON_L2: self._decrease_speed,
            Chip8Controller.BUTTON_TOUCHPAD: self.display_renderer.toggle_scanlines,
        }
        for button, action in actions.items():
            self.controller.actions[button] = lambda action=action: self.root.after(0, action)

    def _on_click(self, event):
        if not self.runner.cpu.rom_loaded:
            self._open_file_dialog()

    def _open_file_dialog(self):
        filepath = filedialog.askopenfilename(
            title="Select CHIP-8 ROM",
            filetypes=[
                ("CHIP-8 ROM", "*.ch8"),
                ("CHIP-8 ROM", "*.c8"),
                ("All files", "*.*")
            ]
        )
        if filepath:
            self.load_rom(filepath)

    def load_rom(self, filepath: str):
        """Load ROM from file and start running it"""
        try:
            size = self.runner.load_rom_file(filepath)
        except (OSError, Chip8Error) as e:
            logger.error("Failed to load ROM %s: %s", filepath, e)
            messagebox.showerror("Error", f"Failed to load ROM:\n{e}")
            return

        self.rom_label.config(text=f"ROM: {os.path.basename(filepath)} ({size}b)")
        self._start_emulation()

    def _start_emulation(self):
        """Start emulation thread and render loop"""
        self._update_status()
        if self._emu_running:
            return

        self._emu_running = True
        self._emu_thread = threading.Thread(target=self._emulation_loop, daemon=True)
        self._emu_thread.start()
        self._render_loop()

    def _emulation_loop(self):
        """Main CPU emulation loop, one frame per timer tick"""
        frame_time = 1.0 / self.runner.config.timer_frequency

        while self._emu_running:
            start_time = time.perf_counter()
            was_halted = self.runner.halted
            self.runner.run_frame()
            if self.runner.halted and not was_halted:
                self.root.after(0, self._update_status)

            # Maintain timing
            elapsed = time.perf_counter() - start_time
            if elapsed < frame_time:
                time.sleep(frame_time - elapsed)

    def _render_loop(self):
        if not self._emu_running:
            return

        cpu = self.runner.cpu
        if cpu.draw_flag:
            cpu.draw_flag = False
            self.display_renderer.render(cpu.rows())

        # Update FPS counter
        self.frame_count += 1
        now = time.time()
        if now - self.last_fps_time >= 1.0:
            self.fps = self.frame_count
            self.frame_count = 0
            self.last_fps_time = now
            self.fps_label.config(text=f"FPS: {self.fps}")

        self._update_controller_status()

        self.root.after(1000 // TARGET_FPS, self._render_loop)

    def _update_controller_status(self):
        if self.controller and self.controller.connected:
            self.controller_label.config(text=f"Controller: {self.controller.connection_type}")
        else:
            self.controller_label.config(text="Controller: None")

    def _update_status(self):
        runner = self.runner
        if runner.halted:
            self.state_label.config(text="⚠ Halted")
        elif runner.paused:
            self.state_label.config(text="⏸ Paused")
        elif runner.running:
            self.state_label.config(text="▶ Running")
        else:
            self.state_label.config(text="⏹ Stopped")

        self.speed_label.config(text=f"{runner.config.speed_multiplier}×")

    def _reset(self):
        """Reset emulator with current ROM"""
        self.runner.reload()
        self.display_renderer.render(self.runner.cpu.rows())
        self._update_status()

    def _toggle_pause(self):
        self.runner.toggle_pause()
        self._update_status()

    def _save_state(self):
        try:
            path = self.runner.save_state()
        except OSError as e:
            logger.error("Save failed: %s", e)
            return
        if path:
            self.state_label.config(text="💾 Saved!")
            self.root.after(1000, self._update_status)

    def _load_state(self):
        try:
            loaded = self.runner.load_state()
        except (OSError, TypeError, Chip8Error) as e:
            logger.error("Load failed: %s", e)
            return
        if loaded:
            self.display_renderer.render(self.runner.cpu.rows())
            self.state_label.config(text="📂 Loaded!")
            self.root.after(1000, self._update_status)

    def _increase_speed(self):
        self.runner.increase_speed()
        self._update_status()

    def _decrease_speed(self):
        self.runner.decrease_speed()
        self._update_status()

    def _dump_debug(self):
        logger.info("\n%s", self.runner.debug_dump())

    def run(self):
        """Start the application"""
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)
        self.root.mainloop()

    def _on_close(self):
        self._emu_running = False
        if self.controller:
            self.controller.stop()
        self.root.destroy()

# ============================================================================
# ENTRY POINT
# ============================================================================

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cat's Chip-8 Emulator")
    parser.add_argument('rom', nargs='?',
        help="CHIP-8 ROM to load at startup")
    parser.add_argument('--speed', type=int, default=1, choices=[1, 2, 4, 8, 16],
        help="Speed multiplier")
    parser.add_argument('--cpu-hz', type=int, default=500,
        help="Instructions per second at 1x speed")
    parser.add_argument('--save-dir',
        help="Directory for save states")
    parser.add_argument('--keep-going', action='store_true',
        help="Skip faulting instructions instead of halting")
    parser.add_argument('--trace', action='store_true',
        help="Log every executed instruction (implies --debug)")
    parser.add_argument('--debug', action='store_true',
        help="Enable verbose debug logging")
    parser.add_argument('--no-controller', action='store_true',
        help="Disable game controller polling")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if (args.debug or args.trace) else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    config = EmulatorConfig(
        cpu_frequency=args.cpu_hz,
        speed_multiplier=args.speed,
        halt_on_error=not args.keep_going,
        save_dir=args.save_dir,
        trace=args.trace,
    )
    if args.rom and not os.path.exists(args.rom):
        logger.error("ROM not found: %s", args.rom)
        return 1

    app = Chip8GUI(config, use_controller=not args.no_controller)
    if args.rom:
        # Schedule ROM load after GUI is ready
        app.root.after(100, lambda: app.load_rom(args.rom))

    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
