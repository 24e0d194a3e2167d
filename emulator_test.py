import contextlib
import io
import os
import tempfile
import unittest

from PIL import Image

import cpu
import emulator
import machine
import main


def assemble(*words: int) -> bytes:
    return b"".join(bytes([w >> 8, w & 0xff]) for w in words)


# Computes V0 = 5 + 3, calls a subroutine that loads V1, then spins forever
# at $0206.
SUBROUTINE_PROGRAM = assemble(
    0x6005,  # $200: LD V0, 05
    0x7003,  # $202: ADD V0, 03
    0x2208,  # $204: CALL $208
    0x1206,  # $206: JP $206
    0x6105,  # $208: LD V1, 05
    0x00ee,  # $20A: RET
)

# Draws the glyph for digit 7 at (2, 3).
GLYPH_PROGRAM = assemble(
    0x6007,  # LD V0, 07
    0xf029,  # LD F, V0
    0x6102,  # LD V1, 02
    0x6203,  # LD V2, 03
    0xd125,  # DRW V1, V2, 5
    0x120a,  # JP $20A
)


def quiet_emulator(rom: bytes, **kwargs) -> emulator.Emulator:
    with contextlib.redirect_stdout(io.StringIO()):
        return emulator.Emulator(rom, **kwargs)


class TestEmulator(unittest.TestCase):
    def test_subroutine_program(self):
        e = quiet_emulator(SUBROUTINE_PROGRAM)
        self.assertEqual(6, e.run(6))
        self.assertEqual(0x206, e.state.pc)
        self.assertEqual(8, e.state.v[0])
        self.assertEqual(5, e.state.v[1])
        self.assertEqual(0, e.state.sp)

        e.run(10)
        self.assertEqual(0x206, e.state.pc)
        self.assertEqual(16, e.instructions)

    def test_skip_advances_two_instructions(self):
        rom = assemble(
            0x3000,  # SE V0, 00
            0x6101,  # LD V1, 01 (skipped)
            0x6202,  # LD V2, 02
        )
        e = quiet_emulator(rom)
        e.run(2)
        self.assertEqual(0, e.state.v[1])
        self.assertEqual(2, e.state.v[2])
        self.assertEqual(0x206, e.state.pc)

    def test_draw_glyph(self):
        e = quiet_emulator(GLYPH_PROGRAM)
        e.run(5)
        # 7 is F0 10 20 40 40
        self.assertEqual("####", e.display.to_text().split("\n")[3][2:6])
        self.assertEqual(1, e.display.pixel(5, 4))
        self.assertEqual(1, e.display.pixel(3, 7))
        self.assertEqual(0, e.state.v[0xf])

    def test_random_source_injected(self):
        rom = assemble(0xc0ff, 0xc1ff)
        e = quiet_emulator(
            rom, random_byte=cpu.sequence_random_source([0x12, 0x34]))
        e.run(2)
        self.assertEqual(0x12, e.state.v[0])
        self.assertEqual(0x34, e.state.v[1])

    def test_timers_advance_with_instructions(self):
        rom = assemble(
            0x603c,  # LD V0, 3C
            0xf015,  # LD DT, V0
            0x1204,  # JP $204
        )
        e = quiet_emulator(rom, instructions_per_second=60)
        e.run(2)
        # Timer was set by the second instruction, then ticked once
        self.assertEqual(0x3b, e.state.delay_timer)
        e.run(10)
        self.assertEqual(0x31, e.state.delay_timer)

    def test_unknown_opcode_halts(self):
        e = quiet_emulator(assemble(0x6001, 0xffff))
        with contextlib.redirect_stdout(io.StringIO()):
            with self.assertRaises(machine.UnknownOpcodeError) as cm:
                e.run(10)
        self.assertEqual(0x202, cm.exception.pc)
        self.assertEqual(0x202, cm.exception.address)
        self.assertEqual(0x202, e.state.pc)
        self.assertEqual(1, e.instructions)

    def test_fetch_past_end_of_memory(self):
        e = quiet_emulator(assemble(0x1fff))
        with contextlib.redirect_stdout(io.StringIO()):
            with self.assertRaises(machine.MemoryAccessError) as cm:
                e.run(2)
        self.assertEqual(0xfff, cm.exception.pc)

    def test_stack_underflow_halts(self):
        e = quiet_emulator(assemble(0x00ee))
        with contextlib.redirect_stdout(io.StringIO()):
            with self.assertRaises(machine.StackUnderflowError) as cm:
                e.step()
        self.assertEqual(0x200, cm.exception.pc)

    def test_trace(self):
        e = quiet_emulator(assemble(0x6a42))
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            e.step(trace=True)
        lines = out.getvalue().split("\n")
        self.assertEqual("  $0200: 6A42 Opcode(LD_BYTE, VA, 42)", lines[0])
        self.assertIn("VA=42", lines[1])


class TestMain(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.rom_path = os.path.join(self.tmpdir.name, "glyph.ch8")
        with open(self.rom_path, "wb") as f:
            f.write(GLYPH_PROGRAM)

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _main(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            status = main.main(main.parser.parse_args(list(argv)))
        return status, out.getvalue()

    def test_run_and_screenshot(self):
        png = os.path.join(self.tmpdir.name, "screen.png")
        status, out = self._main(
            self.rom_path, "--max_instructions", "20", "--seed", "1",
            "--screenshot", png, "--scale", "2")
        self.assertEqual(0, status)
        self.assertIn("Executed 20 instructions", out)
        self.assertIn("..####", out)

        with Image.open(png) as im:
            self.assertEqual((128, 64), im.size)

    def test_press_parses_hex_key(self):
        args = main.parser.parse_args([self.rom_path, "--press", "a"])
        self.assertEqual([0xa], args.press)

    def test_press_rejects_bad_key(self):
        for bad in ("1F", "10", "-1", "g"):
            with contextlib.redirect_stderr(io.StringIO()):
                with self.assertRaises(SystemExit):
                    main.parser.parse_args([self.rom_path, "--press", bad])

    def test_fault_exit_status(self):
        with open(self.rom_path, "wb") as f:
            f.write(assemble(0x5121))
        status, out = self._main(self.rom_path)
        self.assertEqual(1, status)
        self.assertIn(
            "Emulation stopped at $0200: Unknown opcode 5121", out)

    def test_pressed_keys(self):
        with open(self.rom_path, "wb") as f:
            f.write(assemble(
                0x6004,  # LD V0, 04
                0xe0a1,  # SKNP V0
                0x1200,  # JP $200 (taken while key 4 is held)
                0x5121,  # invalid
            ))
        status, out = self._main(
            self.rom_path, "--press", "4", "--max_instructions", "30")
        self.assertEqual(0, status)

        status, out = self._main(self.rom_path, "--max_instructions", "30")
        self.assertEqual(1, status)


if __name__ == '__main__':
    unittest.main()
