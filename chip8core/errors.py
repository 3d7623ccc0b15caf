"""CHIP-8 interpreter faults.

Every fault is fatal to the running program: the instruction that raised it is
not applied, and the frame driver stops advancing the machine.
"""

from typing import Optional


class Chip8Error(Exception):
    """Base class for interpreter faults."""

    def __init__(self, message: str, pc: Optional[int] = None):
        super().__init__(message)
        self.pc = pc

    def __str__(self) -> str:
        message = super().__str__()
        if self.pc is None:
            return message
        return f"{message} (pc=0x{self.pc:03X})"


class InvalidOpcode(Chip8Error):
    """No handler matches the opcode at any dispatch level."""

    def __init__(self, opcode: int, message: Optional[str] = None, pc: Optional[int] = None):
        self.opcode = opcode
        super().__init__(message or f"Invalid opcode {opcode:04X}.", pc)


class InvalidRegister(Chip8Error):
    """Register index outside V0-VF."""

    def __init__(self, index: int, pc: Optional[int] = None):
        self.index = index
        super().__init__(f"Invalid register V{index:X}.", pc)


class OutOfBoundsAddress(Chip8Error):
    """Memory access past the end of the address space."""

    def __init__(self, address: int, pc: Optional[int] = None):
        self.address = address
        super().__init__(f"Address {address:04X} is out of bounds.", pc)


class EmptyStackUnderflow(Chip8Error):
    """Return executed with no pending call."""

    def __init__(self, pc: Optional[int] = None):
        super().__init__("Stack is empty, cannot return from subroutine.", pc)


class StackOverflow(Chip8Error):
    """Call executed with the stack already full."""

    def __init__(self, capacity: int, pc: Optional[int] = None):
        self.capacity = capacity
        super().__init__(f"Stack is full ({capacity} entries), cannot call subroutine.", pc)
