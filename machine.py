"""CHIP-8 virtual machine state: registers, timers, call stack, memory and
display."""

from typing import List

import memory
import screen


def Log(region: str, message: str):
    print("%s event: %s" % (region, message))


class TrapException(Exception):
    """Fatal fault raised by the emulated program."""

    def __init__(self, address: int, msg: str):
        super(TrapException, self).__init__(address, msg)
        self.address = address
        self.msg = msg

        # PC of the faulting instruction, filled in by the fetch loop
        self.pc = None  # type: int

    def __str__(self) -> str:
        if self.address is None:
            return self.msg
        return "$%04X: %s" % (self.address, self.msg)


class UnknownOpcodeError(TrapException):
    def __init__(self, word: int, address: int = None):
        super(UnknownOpcodeError, self).__init__(
            address, "Unknown opcode %04X" % word)
        self.word = word


class StackOverflowError(TrapException):
    def __init__(self, address: int):
        super(StackOverflowError, self).__init__(
            address, "Call stack overflow (%d entries)" % CallStack.CAPACITY)


class StackUnderflowError(TrapException):
    def __init__(self):
        super(StackUnderflowError, self).__init__(
            None, "Return with empty call stack")


class MemoryAccessError(TrapException):
    def __init__(self, address: int, msg: str = "Memory access out of range"):
        super(MemoryAccessError, self).__init__(address, msg)


class CallStack:
    """Fixed-capacity stack of subroutine return addresses."""

    CAPACITY = 16  # type: int

    def __init__(self):
        self.entries = [0] * self.CAPACITY  # type: List[int]

        # Number of occupied entries, 0..CAPACITY
        self.sp = 0  # type: int

    def __len__(self) -> int:
        return self.sp

    def push(self, return_address: int, target: int = None) -> None:
        if self.sp >= self.CAPACITY:
            raise StackOverflowError(target)
        self.entries[self.sp] = return_address
        self.sp += 1

    def pop(self) -> int:
        if self.sp == 0:
            raise StackUnderflowError()
        self.sp -= 1
        return self.entries[self.sp]

    def peek(self) -> int:
        if self.sp == 0:
            raise StackUnderflowError()
        return self.entries[self.sp - 1]


class MachineState:
    """Complete mutable state of the CHIP-8 CPU.

    Registers V0..VF are a bytearray, so storing a value outside 0..255 raises
    ValueError rather than silently truncating; opcodes mask their results
    explicitly.
    """

    FLAG = 0xF

    def __init__(self):
        self.v = bytearray(16)  # type: bytearray
        self.i = 0  # type: int

        self.delay_timer = 0  # type: int
        self.sound_timer = 0  # type: int

        self.pc = memory.Memory.PROGRAM_START  # type: int
        self.stack = CallStack()  # type: CallStack

        self.memory = memory.Memory()  # type: memory.Memory
        self.display = screen.Display()  # type: screen.Display

    @property
    def sp(self) -> int:
        return self.stack.sp

    @property
    def flag(self) -> int:
        return self.v[self.FLAG]

    @flag.setter
    def flag(self, value: int) -> None:
        self.v[self.FLAG] = value

    def __str__(self) -> str:
        regs = " ".join("V%X=%02X" % (idx, val) for idx, val in enumerate(
            self.v))
        return "PC=%04X I=%04X SP=%d DT=%02X ST=%02X %s" % (
            self.pc, self.i, self.sp, self.delay_timer, self.sound_timer,
            regs)
