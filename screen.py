"""Screen module represents the CHIP-8 monochrome display."""

import numpy as np
from PIL import Image


class Display:
    """64x32 pixel grid, indexed [y, x], every pixel 0 or 1."""

    XMAX = 64  # type: int
    YMAX = 32  # type: int

    def __init__(self, bitmap: np.array = None):
        if bitmap is None:
            self.bitmap = np.zeros((self.YMAX, self.XMAX), dtype=np.uint8)
        else:
            if bitmap.shape != (self.YMAX, self.XMAX):
                raise ValueError("Unexpected shape: %r" % (bitmap.shape,))
            self.bitmap = np.array(bitmap, dtype=np.uint8) & 1

    def clear(self) -> None:
        self.bitmap[:, :] = 0

    def pixel(self, x: int, y: int) -> int:
        return int(self.bitmap[y % self.YMAX, x % self.XMAX])

    def draw_row(self, x: int, y: int, row: int) -> bool:
        """XOR 8-pixel sprite row (MSB leftmost) onto the screen at (x, y).

        Coordinates wrap around both screen edges.  Returns True if any
        pixel was switched from 1 to 0.
        """
        y %= self.YMAX
        collision = False
        for bit in range(8):
            if not row & (0x80 >> bit):
                continue
            px = (x + bit) % self.XMAX
            if self.bitmap[y, px]:
                collision = True
            self.bitmap[y, px] ^= 1
        return collision

    def draw_sprite(self, x: int, y: int, rows: bytes) -> bool:
        """Draw consecutive sprite rows, wrapping each row independently."""
        x %= self.XMAX
        y %= self.YMAX
        collision = False
        for offset, row in enumerate(rows):
            if self.draw_row(x, y + offset, row):
                collision = True
        return collision

    def to_text(self, on: str = "#", off: str = ".") -> str:
        return "\n".join(
            "".join(on if p else off for p in row) for row in self.bitmap)

    def to_image(self, scale: int = 1) -> Image.Image:
        """Render to a black and white PIL image, scaled up by whole pixels."""
        if scale < 1:
            raise ValueError("Invalid scale: %d" % scale)
        pixels = np.repeat(np.repeat(self.bitmap, scale, axis=0), scale, axis=1)
        return Image.fromarray(pixels * 255)
