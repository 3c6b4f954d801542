"""
DDRAM / CGRAM Address Mapping
=============================

The HD44780 does not lay rows out linearly in DDRAM. In 1-line mode the
80 bytes of display RAM form one run at 0x00-0x4F. In 2-line mode they are
split into two 40-byte runs, 0x00-0x27 and 0x40-0x67, and 4-line panels
multiplex those two runs into four visual rows:

    row 0: 0x00 ..      row 1: 0x40 ..
    row 2: 0x00 + cols  row 3: 0x40 + cols

so a 20x4 panel uses bases {0x00, 0x40, 0x14, 0x54}. Vendors differ, which
is why the base table lives in DisplayConfig and can be overridden.

CGRAM holds 64 bytes: eight 5x8 glyphs of 8 bytes, or four 5x10 glyphs
occupying 16 bytes each.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from typing import TYPE_CHECKING, Optional

from hd44780.errors import InvalidAddressError

if TYPE_CHECKING:
    from hd44780.config import DisplayConfig


DDRAM_SIZE = 80
CGRAM_SIZE = 64

# Second controller line always starts here in 2-line mode
LINE2_BASE = 0x40
LINE_LENGTH_2LINE = 40


def ddram_segments(two_line_mode: bool) -> tuple[tuple[int, int], ...]:
    """
    Valid DDRAM address ranges as (start, end) half-open pairs.

    Args:
        two_line_mode: True when the function-set N bit is set
    """
    if two_line_mode:
        return ((0x00, LINE_LENGTH_2LINE), (LINE2_BASE, LINE2_BASE + LINE_LENGTH_2LINE))
    return ((0x00, DDRAM_SIZE),)


def default_row_bases(lines: int, columns: int) -> tuple[int, ...]:
    """Standard row base table for a panel of the given geometry."""
    if lines == 1:
        return (0x00,)
    if lines == 2:
        return (0x00, LINE2_BASE)
    return (0x00, LINE2_BASE, columns, LINE2_BASE + columns)


class AddressMapper:
    """
    Converts logical positions into controller addresses.

    Every address handed out by this class has been validated against the
    configuration, so callers may issue it to the chip without further
    checks.

    Example:
        >>> mapper = AddressMapper(DisplayConfig(lines=2, visible_columns=16))
        >>> hex(mapper.ddram_address(1, 0))
        '0x40'
    """

    def __init__(self, config: "DisplayConfig"):
        self._config = config
        self._bases = config.row_base_addresses
        self._segments = ddram_segments(config.two_line_mode)

    @property
    def row_bases(self) -> tuple[int, ...]:
        """DDRAM base address of each visual row, in row order."""
        return self._bases

    @property
    def home_address(self) -> int:
        """Address the chip resets to on clear/home."""
        return 0x00

    # =========================================================================
    # DDRAM
    # =========================================================================

    def ddram_address(self, row: int, col: int) -> int:
        """
        DDRAM address for a visible (row, col) position.

        Raises:
            InvalidAddressError: Row or column outside the visible area
        """
        if not 0 <= row < self._config.lines:
            raise InvalidAddressError(
                f"row {row} out of range (display has {self._config.lines} rows)"
            )
        if not 0 <= col < self._config.visible_columns:
            raise InvalidAddressError(
                f"column {col} out of range (display has "
                f"{self._config.visible_columns} columns)"
            )
        address = self._bases[row] + col
        self.validate_ddram_address(address)
        return address

    def validate_ddram_address(self, address: int) -> int:
        """Check a raw DDRAM address against the controller's span."""
        if not any(start <= address < end for start, end in self._segments):
            raise InvalidAddressError(f"DDRAM address 0x{address:02X} is not valid")
        return address

    def advance(self, address: int, increment: bool = True) -> int:
        """
        Next value of the chip's address counter after a data write.

        Models the controller's wrap rules: in 2-line mode 0x27 is followed by
        0x40 and 0x67 by 0x00 (and the reverse when decrementing); in 1-line
        mode the counter wraps within 0x00-0x4F.
        """
        if not self._config.two_line_mode:
            step = 1 if increment else -1
            return (address + step) % DDRAM_SIZE

        last1 = LINE_LENGTH_2LINE - 1
        last2 = LINE2_BASE + LINE_LENGTH_2LINE - 1
        if increment:
            if address == last1:
                return LINE2_BASE
            if address == last2:
                return 0x00
            return address + 1
        if address == 0x00:
            return last2
        if address == LINE2_BASE:
            return last1
        return address - 1

    def position_of(self, address: int) -> Optional[tuple[int, int]]:
        """
        Visible (row, col) for a DDRAM address, or None if it is off-screen.

        When several rows could claim an address (custom base tables), the
        lowest row wins.
        """
        cols = self._config.visible_columns
        for row, base in enumerate(self._bases):
            if base <= address < base + cols:
                return row, address - base
        return None

    def next_row(self, row: int) -> int:
        """Row following `row`, wrapping back to row 0."""
        return (row + 1) % self._config.lines

    # =========================================================================
    # CGRAM
    # =========================================================================

    def cgram_address(self, slot: int) -> int:
        """
        CGRAM address of a glyph slot.

        Raises:
            InvalidAddressError: Slot outside the font's capacity
        """
        capacity = self._config.glyph_capacity
        if not 0 <= slot < capacity:
            raise InvalidAddressError(
                f"glyph slot {slot} out of range (font {self._config.font.value} "
                f"has slots 0-{capacity - 1})"
            )
        return slot * self._config.bytes_per_glyph

    @staticmethod
    def validate_cgram_address(address: int) -> int:
        """Check a raw CGRAM address (0-63)."""
        if not 0 <= address < CGRAM_SIZE:
            raise InvalidAddressError(f"CGRAM address 0x{address:02X} is not valid")
        return address
