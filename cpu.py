"""Instruction execution engine."""

import random
from typing import Callable, Iterable, Iterator

import keypad as keypad_module
import machine
import opcodes
from directive import Directive


def random_byte() -> int:
    return random.randint(0, 255)


def seeded_random_source(seed: int) -> Callable[[], int]:
    rng = random.Random(seed)

    def _random_byte():
        return rng.randint(0, 255)

    return _random_byte


def sequence_random_source(values: Iterable[int]) -> Callable[[], int]:
    """Random source replaying a fixed sequence of bytes, cycling forever."""
    values = list(values)
    if not values:
        raise ValueError("Empty random sequence")

    def _cycle() -> Iterator[int]:
        while True:
            yield from values

    it = _cycle()

    def _random_byte():
        return next(it)

    return _random_byte


class CPU:
    """Executes instruction words against a MachineState.

    The CPU holds no state of its own between instructions; it only carries
    the collaborators opcodes need: the random byte source and the keypad.
    """

    def __init__(
            self, state: machine.MachineState = None,
            random_byte: Callable[[], int] = random_byte,
            keypad: keypad_module.Keypad = None,
            key_wait_timeout: float = None):
        self.state = state or machine.MachineState()
        self.random_byte = random_byte  # type: Callable[[], int]
        self.keypad = keypad or keypad_module.Keypad()

        # None blocks forever in Fx0A
        self.key_wait_timeout = key_wait_timeout  # type: float

    def decode(self, word: int) -> opcodes.Opcode:
        return opcodes.Decoder.decode(word, address=self.state.pc)

    def execute(self, word: int) -> Directive:
        """Apply one instruction word; returns how the PC must move."""
        return self.decode(word).apply(self)
