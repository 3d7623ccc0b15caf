"""CHIP-8 machine state structures."""

import dataclasses

import jax
import jax.numpy as jnp
from flax.struct import dataclass, PyTreeNode, field

from chip8core.constants import (
    PROGRAM_START, FONT_START, FONT_DATA, SCREEN_WIDTH, SCREEN_HEIGHT, STACK_SIZE,
    MEMORY_SIZE, NUM_REGISTERS, NUM_KEYS,
)
from chip8core.errors import InvalidRegister, OutOfBoundsAddress


@dataclasses.dataclass(frozen=True)
class Quirks:
    """Switches for the points where CHIP-8 interpreters historically disagree.

    Attributes:
        shift_uses_vy: 8XY6/8XYE copy VY into VX before shifting (original COSMAC VIP).
        logic_resets_vf: 8XY1/8XY2/8XY3 zero VF after the operation.
        memory_increments_index: FX55/FX65 leave I pointing past the last register touched.
        jump_uses_vx: BNNN is read as BXNN and offsets by VX instead of V0 (CHIP-48/SUPER-CHIP).
    """
    shift_uses_vy: bool = True
    logic_resets_vf: bool = True
    memory_increments_index: bool = True
    jump_uses_vx: bool = False

    @classmethod
    def chip8(cls) -> "Quirks":
        """Original interpreter behavior."""
        return cls()

    @classmethod
    def modern(cls) -> "Quirks":
        """Behavior most post-CHIP-48 interpreters settled on."""
        return cls(
            shift_uses_vy=False,
            logic_resets_vf=False,
            memory_increments_index=False,
            jump_uses_vx=True,
        )


@dataclass(frozen=True)
class StackState:
    """Stack state for subroutine calls."""
    data: jnp.ndarray = field(default_factory=lambda: jnp.zeros(STACK_SIZE, dtype=jnp.uint16))
    pointer: int = 0


class EmulatorState(PyTreeNode):
    """Main CHIP-8 machine state.

    ``display`` is indexed ``[x, y]``. ``previous_keypad`` holds the key vector of the
    frame before ``keypad`` and is only read by FX0A to find key releases.
    """
    rng: jax.random.PRNGKey
    memory: jnp.ndarray = field(default_factory=lambda: jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8))
    pc: jnp.ndarray = field(default_factory=lambda: jnp.astype(PROGRAM_START, jnp.uint16))
    display: jnp.ndarray = field(default_factory=lambda: jnp.zeros((SCREEN_WIDTH, SCREEN_HEIGHT), dtype=jnp.bool_))
    stack: StackState = field(default_factory=StackState)
    delay_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    sound_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    keypad: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_KEYS, dtype=jnp.bool_))
    previous_keypad: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_KEYS, dtype=jnp.bool_))
    V: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8))
    I: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    quirks: Quirks = field(pytree_node=False, default=Quirks())


def create_state(rng: jax.random.PRNGKey = jax.random.PRNGKey(0), quirks: Quirks = None) -> EmulatorState:
    """Create initial machine state with font data loaded."""
    state = EmulatorState(rng, quirks=quirks or Quirks())
    font = jnp.array(FONT_DATA, dtype=jnp.uint8)
    return state.replace(memory=state.memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(font))


def validate_register(index: int) -> int:
    """Return ``index`` if it names one of V0-VF, raise InvalidRegister otherwise."""
    if not 0 <= index < NUM_REGISTERS:
        raise InvalidRegister(index)
    return index


def validate_address(address: int) -> int:
    """Return ``address`` if it lies inside memory, raise OutOfBoundsAddress otherwise."""
    if not 0 <= address < MEMORY_SIZE:
        raise OutOfBoundsAddress(address)
    return address


def sound_active(state: EmulatorState) -> bool:
    """Whether the tone should be audible this frame."""
    return bool(state.sound_timer > 0)
