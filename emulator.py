"""Fetch-decode-execute loop tying the CPU to its collaborators."""

from typing import Callable

import cpu as cpu_module
import keypad as keypad_module
import machine
import timers as timers_module


class Emulator:
    """A CHIP-8 machine running a loaded program."""

    def __init__(
            self, rom: bytes,
            random_byte: Callable[[], int] = cpu_module.random_byte,
            keypad: keypad_module.Keypad = None,
            instructions_per_second: int = 500,
            key_wait_timeout: float = None):
        self.state = machine.MachineState()
        self.state.memory.load_program(rom)
        self.state.pc = self.state.memory.PROGRAM_START

        self.keypad = keypad or keypad_module.Keypad()
        self.cpu = cpu_module.CPU(
            self.state, random_byte=random_byte, keypad=self.keypad,
            key_wait_timeout=key_wait_timeout)
        self.timers = timers_module.Timers(
            self.state, instructions_per_second=instructions_per_second)

        self.instructions = 0  # type: int

    @property
    def display(self):
        return self.state.display

    def step(self, trace: bool = False) -> None:
        pc = self.state.pc
        try:
            word = self.state.memory.read_word(pc)
            opcode = self.cpu.decode(word)
            if trace:
                print("  $%04X: %04X %s" % (pc, word, opcode))
            self.state.pc = opcode.apply(self.cpu).next_pc(pc)
        except machine.TrapException as e:
            e.pc = pc
            machine.Log("CPU", "Fault at $%04X: %s" % (pc, e))
            raise

        if trace:
            print(self.state)

        self.instructions += 1
        self.timers.advance()

    def run(self, max_instructions: int, trace: bool = False) -> int:
        """Execute up to max_instructions; returns number executed."""
        start = self.instructions
        while self.instructions - start < max_instructions:
            self.step(trace=trace)
        return self.instructions - start
