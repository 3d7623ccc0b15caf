"""
CHIP-8 interpreter host: pygame window, keyboard, beeper and a headless runner
"""

import argparse
import sys

import numpy as np
import pygame
from tqdm import tqdm

from chip8core import Chip8Error, Chip8Machine, Quirks, chip8_display_to_rgb, create_color_scheme, display_to_text
from chip8core.constants import INSTRUCTION_FREQUENCY, FPS, SCREEN_WIDTH, SCREEN_HEIGHT
from chip8core.logging import ConsoleLogger, TraceLogger

# COSMAC VIP hex keypad laid over the left side of a QWERTY keyboard:
#   1 2 3 C        1 2 3 4
#   4 5 6 D   <-   Q W E R
#   7 8 9 E        A S D F
#   A 0 B F        Z X C V
KEY_MAP = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}

BEEP_FREQUENCY = 440
BEEP_VOLUME = 0.2

log = ConsoleLogger(name="host")


def build_beep() -> pygame.mixer.Sound:
    """One period of a square wave, meant to be looped while the sound timer runs."""
    sample_rate, sample_size, channels = pygame.mixer.get_init()
    period = max(2, int(round(sample_rate / BEEP_FREQUENCY)))
    amplitude = int((2 ** (abs(sample_size) - 1) - 1) * BEEP_VOLUME)
    wave = np.where(np.arange(period) < period // 2, amplitude, -amplitude).astype(np.int16)
    if channels > 1:
        wave = np.repeat(wave[:, None], channels, axis=1)
    return pygame.sndarray.make_sound(np.ascontiguousarray(wave))


def run_emulator(machine: Chip8Machine, scale: int = 10, audio: bool = True, color_scheme: str = "classic"):
    """Interactive loop paced at the machine's frame rate."""
    pygame.init()
    screen = pygame.display.set_mode((SCREEN_WIDTH * scale, SCREEN_HEIGHT * scale))
    pygame.display.set_caption("CHIP-8")
    clock = pygame.time.Clock()
    on_color, off_color = create_color_scheme(color_scheme)

    beep = None
    if audio:
        try:
            pygame.mixer.init(frequency=44100, size=-16, channels=1)
            beep = build_beep()
        except pygame.error as e:
            log.warning(f"Audio disabled: {e}")

    keypad = np.zeros(16, dtype=np.bool_)
    beeping = False
    paused = False
    running = True

    log.info("Controls: ESC=Quit, P=Pause, F5=Reset")

    try:
        while running:
            clock.tick(machine.fps)

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_p:
                        paused = not paused
                    elif event.key == pygame.K_F5:
                        machine.reset()
                        keypad[:] = False
                        log.info("Reset")
                    elif event.key in KEY_MAP:
                        keypad[KEY_MAP[event.key]] = True
                elif event.type == pygame.KEYUP:
                    if event.key in KEY_MAP:
                        keypad[KEY_MAP[event.key]] = False

            if not paused and not machine.halted:
                machine.run_frame(keypad.copy())

            if beep is not None:
                if machine.sound_active and not beeping:
                    beep.play(loops=-1)
                    beeping = True
                elif not machine.sound_active and beeping:
                    beep.stop()
                    beeping = False

            frame = chip8_display_to_rgb(machine.display, scale, on_color, off_color)
            pygame.surfarray.blit_array(screen, frame.swapaxes(0, 1))
            pygame.display.flip()
    finally:
        pygame.quit()

    return 1 if machine.halted else 0


def run_headless(machine: Chip8Machine, frames: int, show_screen: bool = False) -> int:
    """Run a fixed number of frames without a window, then print the final state."""
    for _ in tqdm(range(frames), desc="Running", unit="frame"):
        result = machine.run_frame()
        if result.halted:
            break

    if show_screen:
        print(display_to_text(machine.display))

    if machine.halted:
        log.error(f"Machine halted: {machine.error}")
        return 1
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="CHIP-8 interpreter")
    parser.add_argument("rom", help="Path to a .ch8 program image")
    parser.add_argument("-d", "--debug", action="store_true", help="Trace every executed instruction")
    parser.add_argument("-s", "--scale", type=int, default=10, help="Window scale factor (default: 10)")
    parser.add_argument("-a", "--no-audio", action="store_true", help="Disable the beeper")
    parser.add_argument("--ipf", type=int, default=None,
                        help=f"Instructions per frame (default: {INSTRUCTION_FREQUENCY // FPS})")
    parser.add_argument("--modern", action="store_true",
                        help="Use CHIP-48/SUPER-CHIP quirks instead of the original interpreter's")
    parser.add_argument("--colors", default="classic", choices=["classic", "amber", "white", "blue", "retro"],
                        help="Color scheme (default: classic)")
    parser.add_argument("--headless", type=int, metavar="FRAMES", default=None,
                        help="Run this many frames without a window and print the screen")
    parser.add_argument("--seed", type=int, default=0, help="Seed for the random number instruction")

    args = parser.parse_args(argv)
    if args.scale <= 0:
        parser.error("--scale must be greater than 0")
    if args.ipf is not None and args.ipf <= 0:
        parser.error("--ipf must be greater than 0")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)

    instruction_frequency = args.ipf * FPS if args.ipf else INSTRUCTION_FREQUENCY
    trace = TraceLogger() if args.debug else None
    quirks = Quirks.modern() if args.modern else Quirks.chip8()

    try:
        machine = Chip8Machine.from_file(
            args.rom,
            instruction_frequency=instruction_frequency,
            fps=FPS,
            quirks=quirks,
            seed=args.seed,
            trace=trace,
        )
    except (OSError, Chip8Error) as e:
        log.error(f"Cannot load {args.rom}: {e}")
        return 1

    log.info(f"Loaded: {args.rom} ({len(machine.program)} bytes, {machine.instructions_per_frame} IPF)")

    if args.headless is not None:
        status = run_headless(machine, args.headless, show_screen=True)
    else:
        status = run_emulator(machine, scale=args.scale, audio=not args.no_audio, color_scheme=args.colors)

    if trace is not None:
        trace.log_registers(machine.state)
    return status


if __name__ == "__main__":
    sys.exit(main())
