"""Byte-addressable CHIP-8 RAM, program loader and built-in font."""

from typing import Iterable

import machine


# 4x5 hex digit sprites 0-F, five bytes per glyph
FONT = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


class MemoryRegion:
    def __init__(self, name: str, start: int, end: int):
        self.name = name
        self.start = start
        self.end = end

    def __contains__(self, addr: int) -> bool:
        return self.start <= addr <= self.end

    @property
    def size(self) -> int:
        return self.end - self.start + 1


class Memory:
    """4K of RAM with bounds-checked access."""

    SIZE = 0x1000  # type: int
    FONT_START = 0x000  # type: int
    GLYPH_SIZE = 5  # type: int
    PROGRAM_START = 0x200  # type: int

    REGIONS = [
        MemoryRegion("Interpreter", 0x000, PROGRAM_START - 1),
        MemoryRegion("Program", PROGRAM_START, SIZE - 1),
    ]

    def __init__(self):
        self.ram = bytearray(self.SIZE)  # type: bytearray
        self.ram[self.FONT_START:self.FONT_START + len(FONT)] = FONT

    def __len__(self) -> int:
        return self.SIZE

    def region(self, addr: int) -> MemoryRegion:
        for r in self.REGIONS:
            if addr in r:
                return r
        raise machine.MemoryAccessError(addr)

    def _check(self, addr: int, length: int = 1) -> None:
        if length == 0:
            return
        if addr < 0 or addr >= self.SIZE:
            raise machine.MemoryAccessError(addr)
        if addr + length > self.SIZE:
            raise machine.MemoryAccessError(
                self.SIZE, "Access of %d bytes from $%04X runs past end of "
                           "memory" % (length, addr))

    def read_byte(self, addr: int) -> int:
        self._check(addr)
        return self.ram[addr]

    def write_byte(self, addr: int, value: int) -> None:
        self._check(addr)
        self.ram[addr] = value & 0xff

    def read_word(self, addr: int) -> int:
        """Big-endian 16-bit instruction word at addr."""
        self._check(addr, 2)
        return (self.ram[addr] << 8) | self.ram[addr + 1]

    def read(self, addr: int, length: int) -> bytes:
        self._check(addr, length)
        return bytes(self.ram[addr:addr + length])

    def write(self, addr: int, data: Iterable[int]) -> None:
        data = bytes(data)
        self._check(addr, len(data))
        self.ram[addr:addr + len(data)] = data

    def glyph_address(self, digit: int) -> int:
        return self.FONT_START + (digit & 0xf) * self.GLYPH_SIZE

    def load_program(self, data: bytes, start: int = PROGRAM_START) -> None:
        """Copy a raw program image into memory at start."""
        if start + len(data) > self.SIZE:
            raise machine.MemoryAccessError(
                start, "Program of %d bytes does not fit in %s region" % (
                    len(data), self.region(start).name))
        self.write(start, data)
        machine.Log("Loader", "Loaded %d bytes at $%04X" % (len(data), start))
