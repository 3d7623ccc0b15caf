"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax.numpy as jnp
from chip8core.state import EmulatorState, validate_register, validate_address
from chip8core.decode import DecodedInstruction
from chip8core.constants import FONT_START, FONT_GLYPH_SIZE, ADDRESS_MASK


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    x = validate_register(instruction.x)
    return state.replace(V=state.V.at[x].set(state.delay_timer))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    x = validate_register(instruction.x)
    return state.replace(delay_timer=state.V[x])


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    x = validate_register(instruction.x)
    return state.replace(sound_timer=state.V[x])


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I register, wrapping at 12 bits. VF is left alone."""
    x = validate_register(instruction.x)
    new_i = (jnp.astype(state.I, jnp.uint16) + jnp.astype(state.V[x], jnp.uint16)) & ADDRESS_MASK
    return state.replace(I=jnp.astype(new_i, jnp.uint16))


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for a key to be released and store it in VX.

    A key counts once it was down in the previous frame and is up in this one.
    Until then PC is stepped back so the instruction runs again next frame. Taking
    a key uses up this frame's releases, so a second FX0A waits for a new one.
    """
    x = validate_register(instruction.x)
    released = state.previous_keypad & ~state.keypad

    if not bool(jnp.any(released)):
        return state.replace(pc=state.pc - 2)

    key = jnp.argmax(released)
    return state.replace(
        V=state.V.at[x].set(jnp.astype(key, jnp.uint8)),
        previous_keypad=state.keypad,
    )


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    x = validate_register(instruction.x)
    font_address = FONT_START + (int(state.V[x]) & 0xF) * FONT_GLYPH_SIZE
    return state.replace(I=jnp.astype(font_address, jnp.uint16))


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    x = validate_register(instruction.x)
    address = int(state.I)
    validate_address(address)
    validate_address(address + 2)

    value = int(state.V[x])
    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    new_memory = state.memory.at[address:address + 3].set(digits)
    return state.replace(memory=new_memory)


def _advance_index(state: EmulatorState, instruction: DecodedInstruction) -> jnp.ndarray:
    if not state.quirks.memory_increments_index:
        return state.I
    return jnp.astype((int(state.I) + instruction.x + 1) & ADDRESS_MASK, jnp.uint16)


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I."""
    x = validate_register(instruction.x)
    address = int(state.I)
    validate_address(address)
    validate_address(address + x)

    new_memory = state.memory.at[address:address + x + 1].set(state.V[:x + 1])
    return state.replace(memory=new_memory, I=_advance_index(state, instruction))


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I."""
    x = validate_register(instruction.x)
    address = int(state.I)
    validate_address(address)
    validate_address(address + x)

    new_V = state.V.at[:x + 1].set(state.memory[address:address + x + 1])
    return state.replace(V=new_V, I=_advance_index(state, instruction))
