"""CHIP-8 stack operations."""

import jax.numpy as jnp
from chip8core.constants import ADDRESS_MASK
from chip8core.errors import EmptyStackUnderflow, StackOverflow
from chip8core.state import StackState


def push(stack: StackState, address: jnp.ndarray) -> StackState:
    """Push address onto stack."""
    capacity = stack.data.shape[0]
    if stack.pointer >= capacity:
        raise StackOverflow(capacity)
    masked_address = address & ADDRESS_MASK
    new_data = stack.data.at[stack.pointer].set(masked_address)
    return stack.replace(data=new_data, pointer=stack.pointer + 1)


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray]:
    """Pop address from stack."""
    if stack.pointer <= 0:
        raise EmptyStackUnderflow()
    new_pointer = stack.pointer - 1
    popped_address = stack.data[new_pointer]
    new_data = stack.data.at[new_pointer].set(0)
    return stack.replace(data=new_data, pointer=new_pointer), popped_address


def depth(stack: StackState) -> int:
    """Number of pending return addresses."""
    return int(stack.pointer)
