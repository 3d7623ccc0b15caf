"""Frame driver: timer cadence, instruction budget and early frame exits."""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import jax
import jax.numpy as jnp

from chip8core.constants import NUM_KEYS, INSTRUCTION_FREQUENCY, INSTRUCTIONS_PER_FRAME, FPS
from chip8core.decode import DecodedInstruction
from chip8core.emulator import step, load_program
from chip8core.errors import Chip8Error
from chip8core.logging import TraceLogger, logger
from chip8core.state import EmulatorState, Quirks, create_state, sound_active

KeypadLike = Union[Sequence[bool], jnp.ndarray]


@dataclass(frozen=True)
class FrameResult:
    """Outcome of one frame.

    Attributes:
        state: State after the last instruction that completed
        executed: Number of instructions that completed this frame
        drew: Frame ended early on a sprite draw
        waiting: Frame ended early on FX0A with no key released
        error: Fault that stopped the frame, if any
    """
    state: EmulatorState
    executed: int = 0
    drew: bool = False
    waiting: bool = False
    error: Optional[Chip8Error] = None

    @property
    def halted(self) -> bool:
        return self.error is not None


def tick_timers(state: EmulatorState) -> EmulatorState:
    """Decrement delay and sound timers by one, stopping at zero."""
    return state.replace(
        delay_timer=jnp.astype(jnp.where(state.delay_timer > 0, state.delay_timer - 1, 0), jnp.uint8),
        sound_timer=jnp.astype(jnp.where(state.sound_timer > 0, state.sound_timer - 1, 0), jnp.uint8),
    )


def update_keypad(state: EmulatorState, keypad: KeypadLike) -> EmulatorState:
    """Accept this frame's key vector, keeping the last one for release detection."""
    keypad = jnp.asarray(keypad, dtype=jnp.bool_)
    if keypad.shape != (NUM_KEYS,):
        raise ValueError(f"Expected a key vector of shape ({NUM_KEYS},), got {keypad.shape}")
    return state.replace(previous_keypad=state.keypad, keypad=keypad)


def _is_key_wait(instruction: DecodedInstruction) -> bool:
    return instruction.opcode == 0xF and instruction.nn == 0x0A


def run_frame(
    state: EmulatorState,
    keypad: Optional[KeypadLike] = None,
    instructions_per_frame: int = INSTRUCTIONS_PER_FRAME,
    trace: Optional[TraceLogger] = None,
) -> FrameResult:
    """Run one ~1/60 s frame.

    Snapshots the key vector, ticks the timers once, then executes up to
    ``instructions_per_frame`` instructions. A sprite draw ends the frame, as does
    FX0A while it is still waiting. A fault ends the frame with the state as it was
    before the faulting instruction.

    Args:
        state: Current machine state
        keypad: 16 booleans, index = key nibble. ``None`` keeps the previous vector
        instructions_per_frame: Instruction budget for this frame
        trace: Optional logger receiving every executed instruction

    Returns:
        FrameResult describing the new state and how the frame ended
    """
    if keypad is None:
        keypad = state.keypad
    state = tick_timers(update_keypad(state, keypad))

    executed = 0
    for _ in range(instructions_per_frame):
        pc = int(state.pc)
        try:
            state, instruction = step(state)
        except Chip8Error as error:
            if trace is not None:
                trace.log_fault(error)
            else:
                logger.error(f"{type(error).__name__}: {error}")
            return FrameResult(state=state, executed=executed, error=error)

        executed += 1
        if trace is not None:
            trace.log_instruction(pc, instruction)

        if instruction.opcode == 0xD:
            return FrameResult(state=state, executed=executed, drew=True)
        if _is_key_wait(instruction) and int(state.pc) == pc:
            return FrameResult(state=state, executed=executed, waiting=True)

    return FrameResult(state=state, executed=executed)


class Chip8Machine:
    """Host-facing wrapper that owns a machine state and drives it frame by frame.

    Once a fault occurs the machine halts: ``run_frame`` stops advancing the state
    and keeps returning the fault until ``reset`` is called.
    """

    def __init__(
        self,
        program: bytes,
        instruction_frequency: int = INSTRUCTION_FREQUENCY,
        fps: int = FPS,
        quirks: Optional[Quirks] = None,
        seed: int = 0,
        trace: Optional[TraceLogger] = None,
    ):
        """Initialize the machine.

        Args:
            program: Raw program image, loaded at 0x200
            instruction_frequency: Target instructions per second
            fps: Frames per second the host will call ``run_frame`` at
            quirks: Quirk configuration, defaults to original CHIP-8 behavior
            seed: Seed for the CXNN random generator
            trace: Optional logger for instruction and frame traces
        """
        if fps <= 0 or instruction_frequency < fps:
            raise ValueError(
                f"instruction_frequency ({instruction_frequency}) must be at least fps ({fps}) and fps positive"
            )
        self.program = bytes(program)
        self.instruction_frequency = instruction_frequency
        self.fps = fps
        self.quirks = quirks or Quirks()
        self.seed = seed
        self.trace = trace
        self.reset()

    @classmethod
    def from_file(cls, filename: str, **kwargs) -> "Chip8Machine":
        """Create a machine from a ROM file."""
        with open(filename, 'rb') as f:
            return cls(f.read(), **kwargs)

    @property
    def instructions_per_frame(self) -> int:
        """Number of instructions executed per frame."""
        return self.instruction_frequency // self.fps

    def reset(self):
        """Reload the program into a fresh state and clear any fault."""
        state = create_state(jax.random.PRNGKey(self.seed), quirks=self.quirks)
        self.state = load_program(state, self.program)
        self.error: Optional[Chip8Error] = None
        self.frame_count = 0

    @property
    def halted(self) -> bool:
        return self.error is not None

    @property
    def display(self) -> jnp.ndarray:
        """Current 64x32 boolean frame buffer, indexed ``[x, y]``."""
        return self.state.display

    @property
    def sound_active(self) -> bool:
        """Whether the tone should be audible."""
        return sound_active(self.state)

    def run_frame(self, keypad: Optional[KeypadLike] = None) -> FrameResult:
        """Advance one frame, unless the machine has halted."""
        if self.halted:
            return FrameResult(state=self.state, error=self.error)

        result = run_frame(self.state, keypad, self.instructions_per_frame, self.trace)
        self.state = result.state
        self.error = result.error
        self.frame_count += 1
        if self.trace is not None and not result.halted:
            self.trace.log_frame(result.executed, result.drew, result.waiting)
        return result
