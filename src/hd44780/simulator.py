"""
HD44780 Chip Simulator
======================

A behavioural model of the controller, driven at the bus level. It lets
the driver be exercised end to end without hardware: SimulatedTransport
presents bits and enable pulses exactly as a GPIO transport would, and the
simulator decodes them the way the chip does, including:

- power-on in 8-bit mode, with DB3-DB0 reading low when only DB7-DB4 are
  wired, so the 4-bit bootstrap nibbles arrive as 0x30 / 0x20
- nibble pairing once a 4-bit function set has been latched
- DDRAM address counter wrap rules for 1-line and 2-line mode
- CGRAM writes, entry mode direction, display shift

Display RAM is 128 bytes (7-bit address counter, 80 bytes populated) and
CGRAM is 64 bytes.

Example:
    >>> sim = HD44780Simulator.for_config(cfg)
    >>> lcd = initialize(cfg, SimulatedTransport(sim, cfg.bus_width), delay=lambda us: None)
    >>> lcd.write_str("Hi")
    >>> sim.get_text_grid()[0]
    'Hi              '

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

import io
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from hd44780.addressing import default_row_bases
from hd44780.config import BusWidth
from hd44780.transport import Transport

if TYPE_CHECKING:
    from hd44780.config import DisplayConfig

logger = logging.getLogger(__name__)

DDRAM_SPACE = 128
CGRAM_SIZE = 64
LINE_LENGTH = 40


@dataclass
class SimulatorState:
    """
    Internal registers of the simulated controller.

    Fields start in the datasheet's power-on reset state: 8-bit interface,
    1 line, display off, increment.
    """
    eight_bit: bool = True
    two_line: bool = False
    font_5x10: bool = False
    display_on: bool = False
    cursor_on: bool = False
    blink_on: bool = False
    increment: bool = True
    shift_on_write: bool = False
    address: int = 0
    to_ddram: bool = True
    display_shift: int = 0
    pending_nibble: Optional[int] = None
    function_sets: int = 0


class HD44780Simulator:
    """
    HD44780 controller model.

    Command interface follows the datasheet encoding:
    - 1AAAAAAA: Set DDRAM address
    - 01AAAAAA: Set CGRAM address
    - 001DNFxx: Function set
    - 0001SRxx: Cursor/display shift
    - 00001DCB: Display on/off control
    - 000001IS: Entry mode set
    - 0000001x: Return home
    - 00000001: Clear display
    """

    def __init__(
        self,
        lines: int = 2,
        columns: int = 16,
        row_bases: Optional[tuple[int, ...]] = None,
    ):
        if lines not in (1, 2, 4):
            raise ValueError(f"lines must be 1, 2 or 4, got {lines}")
        self.lines = lines
        self.columns = columns
        self.row_bases = row_bases or default_row_bases(lines, columns)
        self.state = SimulatorState()
        self.ddram = bytearray(b" " * DDRAM_SPACE)
        self.cgram = bytearray(CGRAM_SIZE)
        # Every complete (rs, byte) the chip executed, in order
        self.log: list[tuple[bool, int]] = []

    @classmethod
    def for_config(cls, config: "DisplayConfig") -> "HD44780Simulator":
        return cls(config.lines, config.visible_columns, config.row_base_addresses)

    # =========================================================================
    # Bus Interface
    # =========================================================================

    def latch(self, rs: bool, bus: int) -> None:
        """
        One enable pulse with DB7-DB0 = bus.

        In 4-bit mode only DB7-DB4 are sampled and two latches form a byte.
        """
        bus &= 0xFF
        if self.state.eight_bit:
            self._execute(rs, bus)
            return
        nibble = bus >> 4
        if self.state.pending_nibble is None:
            self.state.pending_nibble = nibble
            return
        value = (self.state.pending_nibble << 4) | nibble
        self.state.pending_nibble = None
        self._execute(rs, value)

    def _execute(self, rs: bool, value: int) -> None:
        self.log.append((rs, value))
        if rs:
            self.set_data(value)
        else:
            self.command(value)

    # =========================================================================
    # Instruction Register
    # =========================================================================

    def command(self, data: int) -> None:
        """Process one instruction byte."""
        s = self.state
        if data & 0x80:
            s.address = data & 0x7F
            s.to_ddram = True

        elif data & 0x40:
            s.address = data & 0x3F
            s.to_ddram = False

        elif data & 0x20:
            s.function_sets += 1
            s.eight_bit = bool(data & 0x10)
            s.two_line = bool(data & 0x08)
            s.font_5x10 = bool(data & 0x04)
            s.pending_nibble = None

        elif data & 0x10:
            right = bool(data & 0x04)
            if data & 0x08:
                s.display_shift = (s.display_shift + (1 if right else -1)) % self._span()
            elif s.to_ddram:
                s.address = self._advance(s.address, right)

        elif data & 0x08:
            s.display_on = bool(data & 0x04)
            s.cursor_on = bool(data & 0x02)
            s.blink_on = bool(data & 0x01)

        elif data & 0x04:
            s.increment = bool(data & 0x02)
            s.shift_on_write = bool(data & 0x01)

        elif data & 0x02:
            s.address = 0
            s.to_ddram = True
            s.display_shift = 0

        elif data & 0x01:
            for i in range(DDRAM_SPACE):
                self.ddram[i] = 0x20
            s.address = 0
            s.to_ddram = True
            s.display_shift = 0
            s.increment = True

    # =========================================================================
    # Data Register
    # =========================================================================

    def set_data(self, data: int) -> None:
        """Write to DDRAM or CGRAM at the address counter."""
        s = self.state
        data &= 0xFF
        if not s.to_ddram:
            self.cgram[s.address] = data
            s.address = (s.address + (1 if s.increment else -1)) % CGRAM_SIZE
            return
        self.ddram[s.address] = data
        s.address = self._advance(s.address, s.increment)
        if s.shift_on_write:
            step = -1 if s.increment else 1
            s.display_shift = (s.display_shift + step) % self._span()

    def _span(self) -> int:
        return LINE_LENGTH if self.state.two_line else 80

    def _advance(self, address: int, increment: bool) -> int:
        if not self.state.two_line:
            return (address + (1 if increment else -1)) % 80
        if increment:
            if address == 0x27:
                return 0x40
            if address >= 0x67:
                return 0x00
            return address + 1
        if address == 0x40:
            return 0x27
        if address == 0x00:
            return 0x67
        return address - 1

    # =========================================================================
    # Text Access API (for testing and debugging)
    # =========================================================================

    def visible_address(self, row: int, col: int) -> int:
        """DDRAM address shown at (row, col), accounting for display shift."""
        base = self.row_bases[row]
        if not self.state.two_line:
            return (base + col - self.state.display_shift) % 80
        line_start = 0x40 if base >= 0x40 else 0x00
        offset = (base - line_start + col - self.state.display_shift) % LINE_LENGTH
        return line_start + offset

    def get_char_at(self, row: int, col: int) -> int:
        if not (0 <= row < self.lines and 0 <= col < self.columns):
            raise ValueError(f"Invalid position ({row}, {col})")
        return self.ddram[self.visible_address(row, col)]

    def get_text_grid(self) -> List[str]:
        """
        Display contents as one string per row.

        Non-printable codes (including CGRAM glyphs) render as spaces. A
        display that is switched off shows empty rows.
        """
        if not self.state.display_on:
            return ["" for _ in range(self.lines)]
        result = []
        for row in range(self.lines):
            chars = []
            for col in range(self.columns):
                code = self.get_char_at(row, col)
                chars.append(chr(code) if 32 <= code < 127 else " ")
            result.append("".join(chars))
        return result

    def get_text(self) -> str:
        return "\n".join(self.get_text_grid())

    def glyph_layout(self) -> tuple[int, int]:
        """(CGRAM bytes per slot, dot rows per glyph) for the current font."""
        return (16, 11) if self.state.font_5x10 else (8, 8)

    def glyph_slot(self, code: int) -> int:
        """
        CGRAM slot shown by character code 0-15.

        In 5x10 mode character code bits 2-1 select the slot and bit 0 is
        ignored, so slot 1 is shown by codes 2 and 3.
        """
        if self.state.font_5x10:
            return (code & 0x07) >> 1
        return code & 0x07

    def glyph(self, slot: int) -> bytes:
        """CGRAM rows of a glyph slot in the current font."""
        size, rows = self.glyph_layout()
        return bytes(self.cgram[slot * size:slot * size + rows])

    # =========================================================================
    # Image Rendering
    # =========================================================================

    def render_image(
        self,
        scale: int = 3,
        char_gap: int = 2,
        bezel: int = 8,
        ink_color: tuple = (40, 42, 40),
        paper_color: tuple = (148, 156, 132),
        bezel_color: tuple = (180, 180, 175),
    ) -> Optional[bytes]:
        """
        Render the display as a PNG (requires Pillow).

        CGRAM glyphs are drawn dot by dot from CGRAM; ROM characters are
        drawn with Pillow's default bitmap font inside their cell.

        Returns:
            PNG image bytes, or None if Pillow is not available
        """
        try:
            from PIL import Image, ImageDraw
        except ImportError:
            return None

        glyph_rows = self.glyph_layout()[1]
        cell_w, cell_h = 5 * scale, glyph_rows * scale
        width = self.columns * cell_w + (self.columns - 1) * char_gap + 2 * bezel
        height = self.lines * cell_h + (self.lines - 1) * char_gap + 2 * bezel

        img = Image.new("RGB", (width, height), color=bezel_color)
        draw = ImageDraw.Draw(img)

        for row in range(self.lines):
            for col in range(self.columns):
                x = bezel + col * (cell_w + char_gap)
                y = bezel + row * (cell_h + char_gap)
                draw.rectangle([x, y, x + cell_w - 1, y + cell_h - 1], fill=paper_color)
                if not self.state.display_on:
                    continue
                code = self.get_char_at(row, col)
                if code < 16:
                    pattern = self.glyph(self.glyph_slot(code))
                    for py, bits in enumerate(pattern):
                        for px in range(5):
                            if bits & (0x10 >> px):
                                draw.rectangle(
                                    [x + px * scale, y + py * scale,
                                     x + (px + 1) * scale - 1, y + (py + 1) * scale - 1],
                                    fill=ink_color,
                                )
                elif 32 < code < 127:
                    draw.text((x + 1, y + 1), chr(code), fill=ink_color)

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()


@dataclass
class SimulatedTransport(Transport):
    """
    Transport wired to an HD44780Simulator.

    `wiring` is the physical bus width: with 4-bit wiring write_nibble drives
    DB7-DB4 and DB3-DB0 read low, exactly as on a real panel.
    """

    simulator: HD44780Simulator
    wiring: BusWidth = BusWidth.FOUR
    _rs: bool = field(default=False, init=False)
    _bus: int = field(default=0, init=False)

    def set_register_select(self, data: bool) -> None:
        self._rs = bool(data)

    def write_nibble(self, value: int) -> None:
        self._bus = (value & 0x0F) << 4

    def write_byte(self, value: int) -> None:
        if self.wiring is BusWidth.FOUR:
            raise ValueError("write_byte on a 4-bit wired bus")
        self._bus = value & 0xFF

    def pulse_enable(self, min_width_us: int) -> None:
        self.simulator.latch(self._rs, self._bus)
