# chip8vm, a Chip-8 interpreter.

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

import sys
import logging
import argparse

import pygame

from chip8 import Chip8, Chip8Error, LOAD_POS, VIDEO_X, VIDEO_Y
from devices import VIDEO_RES, PygameBeeper, PygameInput, PygameRenderer
from opcodes import disassemble

# Instruction cycles per second. Timers run off the wall clock, so this
# only sets how fast programs go.
CYCLE_HZ = 500

aparser = argparse.ArgumentParser(description="A Chip-8 interpreter")
aparser.add_argument('program',
    help="A compiled Chip-8 program to load")
aparser.add_argument('--scale',
    help="Screen pixels per Chip-8 pixel",
    metavar="N",
    default=VIDEO_RES,
    type=int)
aparser.add_argument('--hz',
    help="Instruction cycles per second",
    metavar="N",
    default=CYCLE_HZ,
    type=int)
aparser.add_argument('--breakpoint',
    help="A hexadecimal program address at which to pause execution",
    metavar="X",
    nargs="+",
    default=[],
    type=lambda x: int(x, 0))
aparser.add_argument('--disassemble',
    help="Print a listing of the program and exit",
    action="store_true")
aparser.add_argument('--debug',
    help="Enable verbose debug logging",
    action="store_true")


def load_rom(path):
    """Read a compiled program from disk"""
    with open(path, 'rb') as p:
        program = p.read()
    logging.info(f"Program length {len(program)} bytes.")
    return program


def print_listing(program, out=None):
    out = out or sys.stdout
    for addr, word, instruction in disassemble(program, LOAD_POS):
        print(f"{addr:04x}  {word:04x}  {instruction}", file=out)


def main(argv):
    """Run a program until it halts or the window is closed. Returns an exit status."""
    args = aparser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        program = load_rom(args.program)
    except OSError as e:
        logging.error(f"Could not read {args.program}: {e}")
        return 1

    if args.disassemble:
        print_listing(program)
        return 0

    logging.info("Initialise display engine")
    pygame.init()
    screen_x = VIDEO_X * args.scale
    screen_y = VIDEO_Y * args.scale
    pygame.display.set_caption("CHIP-8 DISPLAY")
    logging.info(f"Display mode {screen_x} x {screen_y}")
    screen = pygame.display.set_mode([screen_x, screen_y])

    renderer = PygameRenderer(screen, args.scale)
    renderer.clear()
    machine = Chip8(renderer, PygameInput(), PygameBeeper())

    try:
        machine.load(program)
        run(machine, args.hz, set(args.breakpoint))
    except Chip8Error as e:
        logging.error(str(e))
        logging.debug(f"Machine state: {machine.snapshot()}")
        return 1
    finally:
        pygame.quit()
    return 0


def run(machine, hz, breakpoints=()):
    """Drive the machine at hz cycles per second.

    Escape or closing the window stops, space single-steps and p resumes
    after a breakpoint.
    """
    logging.info("Emulation starting")
    clock = pygame.time.Clock()
    running = True
    step = machine.reg_PC in breakpoints
    do_cycle = not step
    while running:
        if do_cycle:
            running = machine.cycle()
            if machine.reg_PC in breakpoints:
                logging.info(f"Breakpoint at 0x{machine.reg_PC:04x}")
                step = True
            if step:
                do_cycle = False
                logging.info(f"PC 0x{machine.reg_PC:04x}: {machine.snapshot()}")
        for event in pygame.event.get():
            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                if event.key == pygame.K_SPACE:
                    do_cycle = True
                if event.key == pygame.K_p:
                    do_cycle = True
                    step = False
            if event.type == pygame.QUIT:
                running = False
        clock.tick(hz)
    logging.info("Emulation halted.")


def run_cli():
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    run_cli()
