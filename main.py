"""Runs a CHIP-8 program image and shows the resulting screen."""

import argparse
import sys

import cpu
import emulator
import keypad
import machine


def hex_key(s: str) -> int:
    try:
        key = int(s, 16)
    except ValueError:
        key = -1
    if key < 0 or key > 0xf:
        raise argparse.ArgumentTypeError("invalid key: %r (expected 0-F)" % s)
    return key


parser = argparse.ArgumentParser(
    description='Run a CHIP-8 program.')
parser.add_argument(
    'input', help='Path to program image.')
parser.add_argument(
    '--max_instructions', type=int, default=10000,
    help='Number of instructions to execute before stopping.')
parser.add_argument(
    '--instructions_per_second', type=int, default=500,
    help='Emulated CPU speed, used to pace the 60Hz timers.')
parser.add_argument(
    '--seed', type=int, default=None,
    help='Seed for the random number generator (default: unseeded).')
parser.add_argument(
    '--press', type=hex_key, action='append', default=[],
    help='Hex key to hold down for the whole run; may be repeated.')
parser.add_argument(
    '--trace', action='store_true',
    help='Print every instruction and the resulting machine state.')
parser.add_argument(
    '--screenshot', default=None,
    help='Path to save the final screen as an image.')
parser.add_argument(
    '--scale', type=int, default=8,
    help='Screenshot pixel scale factor.')


def main(args) -> int:
    with open(args.input, "rb") as f:
        rom = f.read()

    if args.seed is None:
        random_byte = cpu.random_byte
    else:
        random_byte = cpu.seeded_random_source(args.seed)

    keys = keypad.Keypad()
    for key in args.press:
        keys.press(key)

    # Nothing can press a key during a batch run, so give up rather than
    # blocking forever in a key wait.
    e = emulator.Emulator(
        rom, random_byte=random_byte, keypad=keys,
        instructions_per_second=args.instructions_per_second,
        key_wait_timeout=1.0)

    status = 0
    try:
        e.run(args.max_instructions, trace=args.trace)
    except machine.TrapException as exc:
        print("Emulation stopped at $%04X: %s" % (exc.pc, exc.msg))
        status = 1
    except keypad.KeyWaitTimeout as exc:
        print("Emulation stopped: %s" % exc)
        status = 1

    print("Executed %d instructions" % e.instructions)
    print(e.display.to_text())

    if args.screenshot:
        e.display.to_image(args.scale).save(args.screenshot)

    return status


if __name__ == "__main__":
    sys.exit(main(parser.parse_args()))
