"""Test configuration and fixtures for CHIP-8 interpreter tests."""

import pytest
import jax.numpy as jnp
from chip8core import create_state, Quirks


@pytest.fixture
def fresh_state():
    """Provide a fresh machine state for each test."""
    return create_state()


@pytest.fixture
def modern_state():
    """Provide a fresh state with CHIP-48/SUPER-CHIP quirks."""
    return create_state().replace(quirks=Quirks.modern())


@pytest.fixture
def legacy_state():
    """Provide a fresh state with original interpreter quirks."""
    return create_state().replace(quirks=Quirks.chip8())


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def keys(*pressed):
    """Build a 16-entry key vector with the given keys held down."""
    vector = [False] * 16
    for key in pressed:
        vector[key] = True
    return vector
