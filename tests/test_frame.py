"""Tests for the frame driver and the machine wrapper."""

import jax.numpy as jnp
import pytest
from chip8core import (
    Chip8Machine, run_frame, tick_timers, step, load_program, create_state,
    InvalidOpcode, OutOfBoundsAddress, PROGRAM_START,
)
from chip8core.constants import MEMORY_SIZE, INSTRUCTIONS_PER_FRAME
from chip8core.frame import update_keypad
from conftest import keys, setup_sprite_in_memory


def program_state(*words):
    program = b"".join(word.to_bytes(2, "big") for word in words)
    return load_program(create_state(), program)


class TestTimers:
    """Test the once-per-frame timer tick."""

    def test_tick_stops_at_zero(self, fresh_state):
        state = fresh_state.replace(delay_timer=jnp.uint8(2), sound_timer=jnp.uint8(1))

        state = tick_timers(state)
        assert state.delay_timer == 1
        assert state.sound_timer == 0

        state = tick_timers(state)
        state = tick_timers(state)
        assert state.delay_timer == 0
        assert state.sound_timer == 0

    def test_frames_without_instructions(self, fresh_state):
        state = fresh_state.replace(delay_timer=jnp.uint8(2))
        for expected in (1, 0, 0):
            state = run_frame(state, instructions_per_frame=0).state
            assert state.delay_timer == expected

    def test_tick_happens_before_instructions(self):
        state = program_state(0x6005, 0xF015, 0x1204)  # DT = 5, then spin

        state = run_frame(state).state
        assert state.delay_timer == 5

        state = run_frame(state).state
        assert state.delay_timer == 4


class TestFrameBudget:
    """Test how a frame ends."""

    def test_budget_exhausted(self):
        result = run_frame(program_state(0x1200))  # jump to self

        assert result.executed == INSTRUCTIONS_PER_FRAME
        assert not result.drew
        assert not result.waiting
        assert not result.halted

    def test_custom_budget(self):
        result = run_frame(program_state(0x1200), instructions_per_frame=3)
        assert result.executed == 3

    def test_draw_ends_frame(self):
        state = program_state(0x6005, 0xA000, 0xD005, 0x1206)

        result = run_frame(state)

        assert result.drew
        assert result.executed == 3
        assert result.state.pc == 0x206
        assert result.state.display[5, 5]

    def test_key_wait_across_frames(self):
        state = program_state(0xF30A, 0x1202)

        result = run_frame(state, keys(7))
        assert result.waiting
        assert result.executed == 1
        assert result.state.pc == PROGRAM_START

        result = run_frame(result.state, keys(7))
        assert result.waiting

        result = run_frame(result.state, keys())
        assert not result.waiting
        assert result.state.V[3] == 7
        assert result.executed == INSTRUCTIONS_PER_FRAME

    def test_one_release_satisfies_one_wait(self):
        state = program_state(0xF30A, 0xF40A, 0x1204)

        result = run_frame(state, keys(7))
        result = run_frame(result.state, keys())

        assert result.state.V[3] == 7
        assert result.waiting
        assert result.executed == 2
        assert result.state.pc == 0x202

        result = run_frame(result.state, keys(2))
        assert result.waiting
        result = run_frame(result.state, keys())
        assert result.state.V[4] == 2
        assert result.state.pc == 0x204

    def test_frame_of_skips(self):
        result = run_frame(program_state(*([0x3001] * 12)))
        assert result.executed == INSTRUCTIONS_PER_FRAME
        assert result.state.pc == PROGRAM_START + 2 * INSTRUCTIONS_PER_FRAME

    def test_draw_through_machine_code_call(self):
        state = setup_sprite_in_memory(program_state(0x0300, 0x1202), 0x300, [0xD0, 0x05])

        result = run_frame(state)

        assert result.drew
        assert result.executed == 1
        assert result.state.pc == 0x202
        assert result.state.display[0, 0]

    def test_wait_through_machine_code_call(self):
        state = setup_sprite_in_memory(program_state(0x0300, 0x1202), 0x300, [0xF1, 0x0A])

        result = run_frame(state)
        assert result.waiting
        assert result.executed == 1
        assert result.state.pc == PROGRAM_START

    def test_keypad_carried_over(self):
        result = run_frame(program_state(0x1200), keys(1))
        result = run_frame(result.state)

        assert result.state.keypad[1]
        assert result.state.previous_keypad[1]

    def test_bad_key_vector(self, fresh_state):
        with pytest.raises(ValueError):
            update_keypad(fresh_state, [False] * 15)


class TestFaults:
    """Test fault handling during a frame."""

    def test_fault_stops_frame(self):
        state = program_state(0x6001, 0xFFFF)

        result = run_frame(state)

        assert result.halted
        assert isinstance(result.error, InvalidOpcode)
        assert result.error.pc == 0x202
        assert result.executed == 1
        assert result.state.pc == 0x202
        assert result.state.V[0] == 1

    def test_step_attaches_pc(self):
        state = program_state(0xFFFF)

        with pytest.raises(InvalidOpcode) as excinfo:
            step(state)
        assert excinfo.value.pc == PROGRAM_START
        assert "pc=0x200" in str(excinfo.value)

    def test_step_returns_instruction_that_ran(self):
        state = setup_sprite_in_memory(program_state(0x0300), 0x300, [0x61, 0x42])

        state, instruction = step(state)

        assert instruction.raw == 0x6142
        assert state.V[1] == 0x42
        assert state.pc == 0x202

    def test_step_returns_decoded(self):
        state, instruction = step(program_state(0x6142))
        assert instruction.raw == 0x6142
        assert state.pc == 0x202
        assert state.V[1] == 0x42

    def test_fetch_past_end(self, fresh_state):
        state = fresh_state.replace(pc=jnp.astype(0xFFF, jnp.uint16))

        with pytest.raises(OutOfBoundsAddress) as excinfo:
            step(state)
        assert excinfo.value.address == 0x1000

    def test_return_without_call(self):
        result = run_frame(program_state(0x00EE))
        assert result.halted
        assert result.executed == 0
        assert result.state.pc == PROGRAM_START


class TestLoadProgram:
    """Test program image loading."""

    def test_program_fills_memory(self, fresh_state):
        program = bytes([0xAB]) * (MEMORY_SIZE - PROGRAM_START)
        state = load_program(fresh_state, program)
        assert state.memory[PROGRAM_START] == 0xAB
        assert state.memory[MEMORY_SIZE - 1] == 0xAB

    def test_program_too_large(self, fresh_state):
        program = bytes(MEMORY_SIZE - PROGRAM_START + 1)
        with pytest.raises(OutOfBoundsAddress):
            load_program(fresh_state, program)

    def test_font_survives_load(self, fresh_state):
        state = load_program(fresh_state, b"\x12\x00")
        assert state.memory[0] == 0xF0


class TestMachine:
    """Test the host-facing wrapper."""

    def test_instructions_per_frame(self):
        assert Chip8Machine(b"\x12\x00").instructions_per_frame == 11
        assert Chip8Machine(b"\x12\x00", instruction_frequency=600).instructions_per_frame == 10

    @pytest.mark.parametrize("frequency,fps", [(660, 0), (30, 60)])
    def test_bad_rates(self, frequency, fps):
        with pytest.raises(ValueError):
            Chip8Machine(b"\x12\x00", instruction_frequency=frequency, fps=fps)

    def test_halts_on_fault(self):
        machine = Chip8Machine(b"\xff\xff")

        result = machine.run_frame()
        assert result.halted
        assert machine.halted
        assert machine.frame_count == 1

        again = machine.run_frame()
        assert again.error is result.error
        assert again.executed == 0
        assert machine.frame_count == 1

    def test_reset_clears_fault(self):
        machine = Chip8Machine(b"\xff\xff")
        machine.run_frame()

        machine.reset()
        assert not machine.halted
        assert machine.state.pc == PROGRAM_START

    def test_sound_active(self):
        machine = Chip8Machine(bytes([0x60, 0x03, 0xF0, 0x18, 0x12, 0x04]))
        assert not machine.sound_active

        machine.run_frame()
        assert machine.sound_active
        assert machine.state.sound_timer == 3

    def test_from_file(self, tmp_path):
        rom = tmp_path / "spin.ch8"
        rom.write_bytes(b"\x60\x07\x12\x02")

        machine = Chip8Machine.from_file(str(rom))
        machine.run_frame()
        assert machine.state.V[0] == 7
        assert machine.display.shape == (64, 32)
