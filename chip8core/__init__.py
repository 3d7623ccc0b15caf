"""CHIP-8 interpreter package."""

from chip8core.state import EmulatorState, Quirks, create_state
from chip8core.emulator import execute, fetch, step, resolve, load_rom, load_program
from chip8core.decode import DecodedInstruction, decode, disassemble
from chip8core.errors import (
    Chip8Error, InvalidOpcode, InvalidRegister, OutOfBoundsAddress,
    EmptyStackUnderflow, StackOverflow,
)
from chip8core.frame import Chip8Machine, FrameResult, run_frame, tick_timers
from chip8core.constants import *
from chip8core.rendering import chip8_display_to_rgb, create_color_scheme, display_to_text

__all__ = [
    "EmulatorState",
    "Quirks",
    "create_state",
    "fetch",
    "step",
    "execute",
    "resolve",
    "load_rom",
    "load_program",
    "DecodedInstruction",
    "decode",
    "disassemble",
    "Chip8Error",
    "InvalidOpcode",
    "InvalidRegister",
    "OutOfBoundsAddress",
    "EmptyStackUnderflow",
    "StackOverflow",
    "Chip8Machine",
    "FrameResult",
    "run_frame",
    "tick_timers",
    "PROGRAM_START",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "chip8_display_to_rgb",
    "create_color_scheme",
    "display_to_text",
]
