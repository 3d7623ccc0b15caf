"""CHIP-8 display operations."""

import jax.numpy as jnp
from chip8core.state import EmulatorState, validate_register, validate_address
from chip8core.decode import DecodedInstruction
from chip8core.constants import SCREEN_WIDTH, SCREEN_HEIGHT, MEMORY_SIZE, FLAG_REGISTER

SPRITE_WIDTH = 8

# Pre-computed coordinate grids for display operations
xx, yy = jnp.meshgrid(jnp.arange(SCREEN_WIDTH), jnp.arange(SCREEN_HEIGHT), indexing='ij')


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N.

    The origin wraps onto the screen, the sprite itself is clipped at the right and
    bottom edges. VF ends as 1 if any lit pixel was switched off.
    """
    x = validate_register(instruction.x)
    y = validate_register(instruction.y)
    sprite_x = int(state.V[x]) % SCREEN_WIDTH
    sprite_y = int(state.V[y]) % SCREEN_HEIGHT

    # Only rows that land on screen are read from memory.
    visible_rows = min(instruction.n, SCREEN_HEIGHT - sprite_y)
    if visible_rows > 0:
        validate_address(int(state.I) + visible_rows - 1)

    in_sprite = (
        (xx >= sprite_x) & (xx < sprite_x + SPRITE_WIDTH)
        & (yy >= sprite_y) & (yy < sprite_y + instruction.n)
    )

    row_offset = jnp.clip(yy - sprite_y, 0, 15)
    col_offset = jnp.clip(xx - sprite_x, 0, SPRITE_WIDTH - 1)
    addresses = jnp.minimum(jnp.astype(state.I, jnp.int32) + row_offset, MEMORY_SIZE - 1)
    sprite_bytes = jnp.astype(state.memory[addresses], jnp.int32)
    sprite = (((sprite_bytes >> (7 - col_offset)) & 1) == 1) & in_sprite

    collision = jnp.any(state.display & sprite)
    return state.replace(
        display=state.display ^ sprite,
        V=state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8)),
    )
