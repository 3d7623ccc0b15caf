"""Console logging utilities for the CHIP-8 interpreter.

``ConsoleLogger`` is a small levelled logger that prints to stdout with optional
colors and elapsed-time stamps. ``TraceLogger`` adds helpers for instruction
traces, frame summaries, register dumps and fault reports.
"""

import sys
import time
from typing import Optional

from chip8core.decode import DecodedInstruction, disassemble
from chip8core.errors import Chip8Error


class ConsoleLogger:
    """Flexible console logger with level filtering and formatters."""

    def __init__(
        self,
        name: str = "chip8core",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
    ):
        self.name = name
        self.log_level = log_level.upper()
        self.use_colors = (
            use_colors and hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
        )
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

        self.colors = (
            {
                "DEBUG": "\033[36m",
                "INFO": "\033[32m",
                "WARNING": "\033[33m",
                "ERROR": "\033[31m",
                "CRITICAL": "\033[35m",
                "RESET": "\033[0m"
            }
            if self.use_colors
            else {
                k: ""
                for k in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "RESET"]
            }
        )

        self.level_order = {
            "DEBUG": 0,
            "INFO": 1,
            "WARNING": 2,
            "ERROR": 3,
            "CRITICAL": 4,
        }

    def set_level(self, log_level: str):
        """Change the minimum level that gets printed."""
        self.log_level = log_level.upper()

    def _should_log(self, level: str) -> bool:
        """Check if message should be logged based on current log level."""
        return self.level_order.get(level.upper(), 1) >= self.level_order.get(
            self.log_level, 1
        )

    def _format_message(self, level: str, message: str) -> str:
        """Format log message with timestamp, level, and colors."""
        timestamp = (
            f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        )
        level_str = f"[{level:>8s}]"
        name_str = f"[{self.name}]"

        if self.use_colors:
            color = self.colors.get(level.upper(), "")
            reset = self.colors["RESET"]
            level_str = f"{color}{level_str}{reset}"

        return f"{timestamp}{level_str}{name_str} {message}"

    def log(self, level: str, message: str):
        """Log a message at the specified level."""
        if self._should_log(level):
            formatted = self._format_message(level, message)
            print(formatted, flush=True)

    def debug(self, message: str):
        """Log debug message."""
        self.log("DEBUG", message)

    def info(self, message: str):
        """Log info message."""
        self.log("INFO", message)

    def warning(self, message: str):
        """Log warning message."""
        self.log("WARNING", message)

    def error(self, message: str):
        """Log error message."""
        self.log("ERROR", message)

    def critical(self, message: str):
        """Log critical message."""
        self.log("CRITICAL", message)


class TraceLogger(ConsoleLogger):
    """Logger for instruction traces and machine state dumps."""

    def __init__(self, name: str = "CHIP8", **kwargs):
        kwargs.setdefault("log_level", "DEBUG")
        super().__init__(name, **kwargs)
        self.instruction_count = 0
        self.frame_count = 0

    def log_instruction(self, pc: int, instruction: DecodedInstruction):
        """Log one executed instruction as ``PC  OPCODE  MNEMONIC``."""
        self.instruction_count += 1
        self.debug(f"0x{pc:03X}  {instruction.raw:04X}  {disassemble(instruction.raw)}")

    def log_frame(self, executed: int, drew: bool, waiting: bool):
        """Log how a frame ended."""
        self.frame_count += 1
        reason = "draw" if drew else "key wait" if waiting else "budget"
        self.debug(f"Frame {self.frame_count}: {executed} instructions, ended on {reason}")

    def log_registers(self, state):
        """Dump V0-VF, I, PC, timers and stack depth."""
        registers = " ".join(f"V{i:X}={int(state.V[i]):02X}" for i in range(16))
        self.info(registers)
        self.info(
            f"I=0x{int(state.I):03X} PC=0x{int(state.pc):03X} "
            f"DT={int(state.delay_timer)} ST={int(state.sound_timer)} "
            f"SP={int(state.stack.pointer)}"
        )

    def log_fault(self, error: Chip8Error):
        """Report a fault that halted the machine."""
        self.error(f"{type(error).__name__}: {error}")


logger = ConsoleLogger(name="chip8core", log_level="WARNING")
