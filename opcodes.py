"""CHIP-8 opcodes: decoding of instruction words and their state transitions.

An instruction is a big-endian 16-bit word laid out as:

    **** nnnn nnnn nnnn   nnn: 12-bit address
    **** **** **** nnnn   n:   4-bit nibble
    **** xxxx **** ****   x:   first register index
    **** **** yyyy ****   y:   second register index
    **** **** kkkk kkkk   kk:  8-bit immediate byte
"""

import enum
from typing import Dict, List, Tuple, Type

import directive
import machine
from directive import Directive


class OpcodeCommand(enum.Enum):
    """Fixed bits of each opcode's instruction word."""
    SYS = 0x0000
    CLS = 0x00E0
    RET = 0x00EE
    JP = 0x1000
    CALL = 0x2000
    SE_BYTE = 0x3000
    SNE_BYTE = 0x4000
    SE_REG = 0x5000
    LD_BYTE = 0x6000
    ADD_BYTE = 0x7000
    LD_REG = 0x8000
    OR = 0x8001
    AND = 0x8002
    XOR = 0x8003
    ADD_REG = 0x8004
    SUB = 0x8005
    SHR = 0x8006
    SUBN = 0x8007
    SHL = 0x800E
    SNE_REG = 0x9000
    LD_I = 0xA000
    JP_V0 = 0xB000
    RND = 0xC000
    DRW = 0xD000
    SKP = 0xE09E
    SKNP = 0xE0A1
    LD_VX_DT = 0xF007
    LD_VX_K = 0xF00A
    LD_DT_VX = 0xF015
    LD_ST_VX = 0xF018
    ADD_I_VX = 0xF01E
    LD_F_VX = 0xF029
    LD_B_VX = 0xF033
    LD_MEM_VX = 0xF055
    LD_VX_MEM = 0xF065


def nnn(word: int) -> int:
    return word & 0x0fff


def n(word: int) -> int:
    return word & 0x000f


def x(word: int) -> int:
    return (word >> 8) & 0xf


def y(word: int) -> int:
    return (word >> 4) & 0xf


def kk(word: int) -> int:
    return word & 0x00ff


class Opcode:
    COMMAND = None  # type: OpcodeCommand

    # Bits of the word fixed by COMMAND; the rest are operands
    _MASK = 0xffff  # type: int

    def __repr__(self):
        return "Opcode(%s)" % self.COMMAND.name

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False

        return self.__data_eq__(other)

    def __data_eq__(self, other):
        return True

    @classmethod
    def from_word(cls, word: int) -> "Opcode":
        return cls()

    @property
    def word(self) -> int:
        return self.COMMAND.value

    def apply(self, cpu) -> Directive:
        raise NotImplementedError


class AddressOpcode(Opcode):
    _MASK = 0xf000

    def __init__(self, address: int):
        if address < 0 or address > 0xfff:
            raise ValueError("Invalid address: %d" % address)
        self.address = address

    def __repr__(self):
        return "Opcode(%s, %03x)" % (self.COMMAND.name, self.address)

    def __data_eq__(self, other):
        return self.address == other.address

    @classmethod
    def from_word(cls, word):
        return cls(nnn(word))

    @property
    def word(self):
        return self.COMMAND.value | self.address


class RegisterByteOpcode(Opcode):
    _MASK = 0xf000

    def __init__(self, vx: int, byte: int):
        if vx < 0 or vx > 0xf:
            raise ValueError("Invalid register: %d" % vx)
        if byte < 0 or byte > 0xff:
            raise ValueError("Invalid byte: %d" % byte)
        self.vx = vx
        self.byte = byte

    def __repr__(self):
        return "Opcode(%s, V%X, %02x)" % (
            self.COMMAND.name, self.vx, self.byte)

    def __data_eq__(self, other):
        return self.vx == other.vx and self.byte == other.byte

    @classmethod
    def from_word(cls, word):
        return cls(x(word), kk(word))

    @property
    def word(self):
        return self.COMMAND.value | (self.vx << 8) | self.byte


class RegisterPairOpcode(Opcode):
    _MASK = 0xf00f

    def __init__(self, vx: int, vy: int):
        if vx < 0 or vx > 0xf or vy < 0 or vy > 0xf:
            raise ValueError("Invalid registers: %d, %d" % (vx, vy))
        self.vx = vx
        self.vy = vy

    def __repr__(self):
        return "Opcode(%s, V%X, V%X)" % (self.COMMAND.name, self.vx, self.vy)

    def __data_eq__(self, other):
        return self.vx == other.vx and self.vy == other.vy

    @classmethod
    def from_word(cls, word):
        return cls(x(word), y(word))

    @property
    def word(self):
        return self.COMMAND.value | (self.vx << 8) | (self.vy << 4)


class RegisterOpcode(Opcode):
    _MASK = 0xf0ff

    def __init__(self, vx: int):
        if vx < 0 or vx > 0xf:
            raise ValueError("Invalid register: %d" % vx)
        self.vx = vx

    def __repr__(self):
        return "Opcode(%s, V%X)" % (self.COMMAND.name, self.vx)

    def __data_eq__(self, other):
        return self.vx == other.vx

    @classmethod
    def from_word(cls, word):
        return cls(x(word))

    @property
    def word(self):
        return self.COMMAND.value | (self.vx << 8)


# Control flow

class ClearScreen(Opcode):
    COMMAND = OpcodeCommand.CLS

    def apply(self, cpu):
        cpu.state.display.clear()
        return directive.ADVANCE


class Return(Opcode):
    COMMAND = OpcodeCommand.RET

    def apply(self, cpu):
        return directive.jump(cpu.state.stack.pop())


class System(AddressOpcode):
    """Machine code routine call; ignored by interpreters."""
    COMMAND = OpcodeCommand.SYS

    def apply(self, cpu):
        return directive.ADVANCE


class Jump(AddressOpcode):
    COMMAND = OpcodeCommand.JP

    def apply(self, cpu):
        return directive.jump(self.address)


class Call(AddressOpcode):
    COMMAND = OpcodeCommand.CALL

    def apply(self, cpu):
        state = cpu.state
        state.stack.push(
            state.pc + Directive.INSTRUCTION_WIDTH, target=self.address)
        return directive.jump(self.address)


class JumpOffset(AddressOpcode):
    COMMAND = OpcodeCommand.JP_V0

    def apply(self, cpu):
        # No bounds check; a bad target faults on the next fetch
        return directive.jump(self.address + cpu.state.v[0])


class SkipEqualByte(RegisterByteOpcode):
    COMMAND = OpcodeCommand.SE_BYTE

    def apply(self, cpu):
        return directive.skip_if(cpu.state.v[self.vx] == self.byte)


class SkipNotEqualByte(RegisterByteOpcode):
    COMMAND = OpcodeCommand.SNE_BYTE

    def apply(self, cpu):
        return directive.skip_if(cpu.state.v[self.vx] != self.byte)


class SkipEqualRegister(RegisterPairOpcode):
    COMMAND = OpcodeCommand.SE_REG

    def apply(self, cpu):
        v = cpu.state.v
        return directive.skip_if(v[self.vx] == v[self.vy])


class SkipNotEqualRegister(RegisterPairOpcode):
    COMMAND = OpcodeCommand.SNE_REG

    def apply(self, cpu):
        v = cpu.state.v
        return directive.skip_if(v[self.vx] != v[self.vy])


# Loads and arithmetic.  Where an opcode sets VF and VF is also the
# destination, the flag is written first so the result wins.

class LoadByte(RegisterByteOpcode):
    COMMAND = OpcodeCommand.LD_BYTE

    def apply(self, cpu):
        cpu.state.v[self.vx] = self.byte
        return directive.ADVANCE


class AddByte(RegisterByteOpcode):
    COMMAND = OpcodeCommand.ADD_BYTE

    def apply(self, cpu):
        v = cpu.state.v
        v[self.vx] = (v[self.vx] + self.byte) & 0xff
        return directive.ADVANCE


class Random(RegisterByteOpcode):
    COMMAND = OpcodeCommand.RND

    def apply(self, cpu):
        cpu.state.v[self.vx] = cpu.random_byte() & 0xff & self.byte
        return directive.ADVANCE


class LoadRegister(RegisterPairOpcode):
    COMMAND = OpcodeCommand.LD_REG

    def apply(self, cpu):
        v = cpu.state.v
        v[self.vx] = v[self.vy]
        return directive.ADVANCE


class Or(RegisterPairOpcode):
    COMMAND = OpcodeCommand.OR

    def apply(self, cpu):
        v = cpu.state.v
        v[self.vx] |= v[self.vy]
        return directive.ADVANCE


class And(RegisterPairOpcode):
    COMMAND = OpcodeCommand.AND

    def apply(self, cpu):
        v = cpu.state.v
        v[self.vx] &= v[self.vy]
        return directive.ADVANCE


class Xor(RegisterPairOpcode):
    COMMAND = OpcodeCommand.XOR

    def apply(self, cpu):
        v = cpu.state.v
        v[self.vx] ^= v[self.vy]
        return directive.ADVANCE


class AddRegister(RegisterPairOpcode):
    COMMAND = OpcodeCommand.ADD_REG

    def apply(self, cpu):
        state = cpu.state
        total = state.v[self.vx] + state.v[self.vy]
        state.flag = int(total > 0xff)
        state.v[self.vx] = total & 0xff
        return directive.ADVANCE


class Subtract(RegisterPairOpcode):
    """Vx = Vx - Vy; VF is set when there is no borrow."""
    COMMAND = OpcodeCommand.SUB

    def apply(self, cpu):
        state = cpu.state
        vx = state.v[self.vx]
        vy = state.v[self.vy]
        state.flag = int(vx > vy)
        state.v[self.vx] = (vx - vy) & 0xff
        return directive.ADVANCE


class SubtractReverse(RegisterPairOpcode):
    """Vx = Vy - Vx; VF is set when there is no borrow."""
    COMMAND = OpcodeCommand.SUBN

    def apply(self, cpu):
        state = cpu.state
        vx = state.v[self.vx]
        vy = state.v[self.vy]
        state.flag = int(vy > vx)
        state.v[self.vx] = (vy - vx) & 0xff
        return directive.ADVANCE


class ShiftRight(RegisterPairOpcode):
    """Vx >>= 1; VF gets the bit shifted out.  Vy is ignored."""
    COMMAND = OpcodeCommand.SHR

    def apply(self, cpu):
        state = cpu.state
        value = state.v[self.vx]
        state.flag = value & 0x01
        state.v[self.vx] = value >> 1
        return directive.ADVANCE


class ShiftLeft(RegisterPairOpcode):
    """Vx <<= 1; VF gets the bit shifted out.  Vy is ignored."""
    COMMAND = OpcodeCommand.SHL

    def apply(self, cpu):
        state = cpu.state
        value = state.v[self.vx]
        state.flag = (value >> 7) & 0x01
        state.v[self.vx] = (value << 1) & 0xff
        return directive.ADVANCE


class LoadIndex(AddressOpcode):
    COMMAND = OpcodeCommand.LD_I

    def apply(self, cpu):
        cpu.state.i = self.address
        return directive.ADVANCE


# Display

class Draw(Opcode):
    """Draw an n-byte sprite from memory at I to (Vx, Vy).

    VF is set if any lit pixel was erased.
    """
    COMMAND = OpcodeCommand.DRW
    _MASK = 0xf000

    def __init__(self, vx: int, vy: int, height: int):
        if vx < 0 or vx > 0xf or vy < 0 or vy > 0xf:
            raise ValueError("Invalid registers: %d, %d" % (vx, vy))
        if height < 0 or height > 0xf:
            raise ValueError("Invalid sprite height: %d" % height)
        self.vx = vx
        self.vy = vy
        self.height = height

    def __repr__(self):
        return "Opcode(%s, V%X, V%X, %x)" % (
            self.COMMAND.name, self.vx, self.vy, self.height)

    def __data_eq__(self, other):
        return (
                self.vx == other.vx and
                self.vy == other.vy and
                self.height == other.height)

    @classmethod
    def from_word(cls, word):
        return cls(x(word), y(word), n(word))

    @property
    def word(self):
        return (self.COMMAND.value | (self.vx << 8) | (self.vy << 4) |
                self.height)

    def apply(self, cpu):
        state = cpu.state
        # Read the origin before VF is cleared, in case Vx or Vy is VF
        origin_x = state.v[self.vx]
        origin_y = state.v[self.vy]
        rows = state.memory.read(state.i, self.height)

        state.flag = 0
        if state.display.draw_sprite(origin_x, origin_y, rows):
            state.flag = 1
        return directive.ADVANCE


# Keypad

class SkipKeyPressed(RegisterOpcode):
    COMMAND = OpcodeCommand.SKP

    def apply(self, cpu):
        return directive.skip_if(
            cpu.keypad.is_pressed(cpu.state.v[self.vx] & 0xf))


class SkipKeyNotPressed(RegisterOpcode):
    COMMAND = OpcodeCommand.SKNP

    def apply(self, cpu):
        return directive.skip_if(
            not cpu.keypad.is_pressed(cpu.state.v[self.vx] & 0xf))


class WaitKey(RegisterOpcode):
    COMMAND = OpcodeCommand.LD_VX_K

    def apply(self, cpu):
        cpu.state.v[self.vx] = cpu.keypad.wait_for_key(cpu.key_wait_timeout)
        return directive.ADVANCE


# Timers

class LoadDelayTimer(RegisterOpcode):
    """Vx = DT"""
    COMMAND = OpcodeCommand.LD_VX_DT

    def apply(self, cpu):
        cpu.state.v[self.vx] = cpu.state.delay_timer
        return directive.ADVANCE


class SetDelayTimer(RegisterOpcode):
    """DT = Vx"""
    COMMAND = OpcodeCommand.LD_DT_VX

    def apply(self, cpu):
        cpu.state.delay_timer = cpu.state.v[self.vx]
        return directive.ADVANCE


class SetSoundTimer(RegisterOpcode):
    """ST = Vx"""
    COMMAND = OpcodeCommand.LD_ST_VX

    def apply(self, cpu):
        cpu.state.sound_timer = cpu.state.v[self.vx]
        return directive.ADVANCE


# Index register and memory

class AddIndex(RegisterOpcode):
    COMMAND = OpcodeCommand.ADD_I_VX

    def apply(self, cpu):
        state = cpu.state
        state.i = (state.i + state.v[self.vx]) & 0xffff
        return directive.ADVANCE


class LoadGlyph(RegisterOpcode):
    """Point I at the font sprite for the low nibble of Vx."""
    COMMAND = OpcodeCommand.LD_F_VX

    def apply(self, cpu):
        state = cpu.state
        state.i = state.memory.glyph_address(state.v[self.vx])
        return directive.ADVANCE


class StoreDecimal(RegisterOpcode):
    """Store hundreds, tens and ones digits of Vx at I, I+1, I+2."""
    COMMAND = OpcodeCommand.LD_B_VX

    def apply(self, cpu):
        state = cpu.state
        value = state.v[self.vx]
        state.memory.write(
            state.i, (value // 100, (value // 10) % 10, value % 10))
        return directive.ADVANCE


class StoreRegisters(RegisterOpcode):
    """Store V0..Vx at I; I is left unchanged."""
    COMMAND = OpcodeCommand.LD_MEM_VX

    def apply(self, cpu):
        state = cpu.state
        state.memory.write(state.i, state.v[:self.vx + 1])
        return directive.ADVANCE


class LoadRegisters(RegisterOpcode):
    """Load V0..Vx from I; I is left unchanged."""
    COMMAND = OpcodeCommand.LD_VX_MEM

    def apply(self, cpu):
        state = cpu.state
        state.v[:self.vx + 1] = state.memory.read(state.i, self.vx + 1)
        return directive.ADVANCE


def _all_opcode_classes(cls=Opcode) -> List[Type[Opcode]]:
    classes = []
    for sub in cls.__subclasses__():
        if sub.COMMAND is not None:
            classes.append(sub)
        classes.extend(_all_opcode_classes(sub))
    return classes


def _BuildDecodeTable() -> Dict[int, List[Tuple[int, Type[Opcode]]]]:
    """Map top nibble to (mask, class) candidates, most specific first."""
    table = {}
    for cls in _all_opcode_classes():
        table.setdefault(cls.COMMAND.value >> 12, []).append((cls._MASK, cls))

    for candidates in table.values():
        candidates.sort(key=lambda c: bin(c[0]).count("1"), reverse=True)
    return table


_DECODE_TABLE = _BuildDecodeTable()


class Decoder:
    """Decodes 16-bit instruction words into Opcode instances."""

    @staticmethod
    def decode(word: int, address: int = None) -> Opcode:
        if word < 0 or word > 0xffff:
            raise ValueError("Invalid instruction word: %d" % word)

        for mask, cls in _DECODE_TABLE.get(word >> 12, []):
            if word & mask == cls.COMMAND.value:
                return cls.from_word(word)

        raise machine.UnknownOpcodeError(word, address)
