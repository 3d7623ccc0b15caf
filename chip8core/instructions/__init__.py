"""CHIP-8 instruction handlers, grouped by opcode family.

Every handler takes ``(state, instruction)`` and returns the next state. Validation
runs before the new state is built, so a handler that raises leaves its input intact.
"""
