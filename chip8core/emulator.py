"""Main CHIP-8 execution engine."""

from typing import Callable

import jax.numpy as jnp
from chip8core.state import EmulatorState, validate_address
from chip8core.decode import DecodedInstruction, decode
from chip8core.errors import Chip8Error, InvalidOpcode, OutOfBoundsAddress
from chip8core.constants import PROGRAM_START, MEMORY_SIZE, MAX_PASSTHROUGH_DEPTH
from chip8core.instructions.system import execute_clear_screen, execute_return
from chip8core.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_skip_if_key_pressed, execute_skip_if_key_not_pressed
)
from chip8core.instructions.alu import (
    execute_alu_set, execute_alu_or, execute_alu_and, execute_alu_xor, execute_alu_add,
    execute_alu_sub_xy, execute_alu_shift_right, execute_alu_sub_yx, execute_alu_shift_left
)
from chip8core.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chip8core.instructions.display import execute_display
from chip8core.instructions.misc import (
    execute_get_delay_timer, execute_wait_for_key, execute_set_delay_timer,
    execute_set_sound_timer, execute_add_to_index, execute_font_character,
    execute_bcd_conversion, execute_store_registers, execute_load_registers
)

Handler = Callable[[EmulatorState, DecodedInstruction], EmulatorState]

# Bits of the opcode that select the handler, by first nibble. Families not listed
# are identified by the first nibble alone.
DISPATCH_MASKS = {
    0x0: 0xFFFF,
    0x5: 0xF00F,
    0x8: 0xF00F,
    0x9: 0xF00F,
    0xE: 0xF0FF,
    0xF: 0xF0FF,
}
DEFAULT_DISPATCH_MASK = 0xF000

INSTRUCTION_TABLE: dict[int, Handler] = {
    0x00E0: execute_clear_screen,
    0x00EE: execute_return,
    0x1000: execute_jump,
    0x2000: execute_call,
    0x3000: execute_skip_if_equal_immediate,
    0x4000: execute_skip_if_not_equal_immediate,
    0x5000: execute_skip_if_equal_register,
    0x6000: execute_set,
    0x7000: execute_add,
    0x8000: execute_alu_set,
    0x8001: execute_alu_or,
    0x8002: execute_alu_and,
    0x8003: execute_alu_xor,
    0x8004: execute_alu_add,
    0x8005: execute_alu_sub_xy,
    0x8006: execute_alu_shift_right,
    0x8007: execute_alu_sub_yx,
    0x800E: execute_alu_shift_left,
    0x9000: execute_skip_if_not_equal_register,
    0xA000: execute_set_index,
    0xB000: execute_jump_with_offset,
    0xC000: execute_random,
    0xD000: execute_display,
    0xE09E: execute_skip_if_key_pressed,
    0xE0A1: execute_skip_if_key_not_pressed,
    0xF007: execute_get_delay_timer,
    0xF00A: execute_wait_for_key,
    0xF015: execute_set_delay_timer,
    0xF018: execute_set_sound_timer,
    0xF01E: execute_add_to_index,
    0xF029: execute_font_character,
    0xF033: execute_bcd_conversion,
    0xF055: execute_store_registers,
    0xF065: execute_load_registers,
}


def follow_machine_code(state: EmulatorState, instruction: DecodedInstruction) -> tuple[Handler, DecodedInstruction]:
    """Follow a chain of 0NNN words to the instruction it finally runs.

    Chains are followed iteratively up to MAX_PASSTHROUGH_DEPTH hops.
    """
    for _ in range(MAX_PASSTHROUGH_DEPTH):
        target = decode(fetch_at(state, instruction.nnn))
        handler = resolve(target)
        if handler is not execute_machine_code:
            return handler, target
        instruction = target
    raise InvalidOpcode(
        instruction.raw,
        f"Machine code call chain through {instruction.raw:04X} exceeds {MAX_PASSTHROUGH_DEPTH} hops.",
    )


def execute_machine_code(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """0NNN - Call machine code routine at NNN.

    There is no host CPU to hand control to, so the word stored at NNN is run as a
    CHIP-8 instruction in place. PC is not moved by that fetch.
    """
    handler, target = follow_machine_code(state, instruction)
    return handler(state, target)


def resolve(instruction: DecodedInstruction) -> Handler:
    """Find the handler for a decoded instruction, raise InvalidOpcode if there is none."""
    mask = DISPATCH_MASKS.get(instruction.opcode, DEFAULT_DISPATCH_MASK)
    handler = INSTRUCTION_TABLE.get(instruction.raw & mask)
    if handler is not None:
        return handler
    if instruction.opcode == 0x0:
        return execute_machine_code
    raise InvalidOpcode(instruction.raw)


def execute(state: EmulatorState, instruction: int) -> EmulatorState:
    """Execute single CHIP-8 instruction."""
    decoded_instruction = decode(instruction)
    return resolve(decoded_instruction)(state, decoded_instruction)


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> int:
    """Pack two bytes into a 16-bit word."""
    return (int(high) << 8) | int(low)


def fetch_at(state: EmulatorState, address: int) -> int:
    """Read the instruction word stored at ``address``."""
    address = int(address)
    validate_address(address)
    validate_address(address + 1)
    return _pack_u16(state.memory[address], state.memory[address + 1])


def fetch(state: EmulatorState) -> tuple[EmulatorState, int]:
    """Fetch next instruction from memory."""
    instruction = fetch_at(state, state.pc)
    return state.replace(pc=state.pc + 2), instruction


def step(state: EmulatorState) -> tuple[EmulatorState, DecodedInstruction]:
    """Fetch, decode and execute one instruction.

    Faults are re-raised with the address of the faulting instruction attached; the
    input state is never partially updated. For a 0NNN word the instruction returned
    is the one the chain ended on.
    """
    pc = int(state.pc)
    try:
        state, instruction = fetch(state)
        decoded_instruction = decode(instruction)
        handler = resolve(decoded_instruction)
        if handler is execute_machine_code:
            handler, decoded_instruction = follow_machine_code(state, decoded_instruction)
        state = handler(state, decoded_instruction)
    except Chip8Error as error:
        if error.pc is None:
            error.pc = pc
        raise
    return state, decoded_instruction


def load_program(state: EmulatorState, program: bytes) -> EmulatorState:
    """Copy a program image into memory starting at 0x200."""
    program = bytes(program)
    end = PROGRAM_START + len(program)
    if end > MEMORY_SIZE:
        raise OutOfBoundsAddress(end - 1)
    if not program:
        return state
    rom_array = jnp.array(list(program), dtype=jnp.uint8)
    new_memory = state.memory.at[PROGRAM_START:end].set(rom_array)
    return state.replace(memory=new_memory, pc=jnp.astype(PROGRAM_START, jnp.uint16))


def load_rom(state: EmulatorState, filename: str) -> EmulatorState:
    """Load ROM data into CHIP-8 memory starting at 0x200."""
    with open(filename, 'rb') as f:
        rom_data = f.read()
    return load_program(state, rom_data)
