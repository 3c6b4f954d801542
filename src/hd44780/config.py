"""
Display Configuration
=====================

Immutable description of the panel wired to the controller: interface
width, line count, font, visible geometry and the per-row DDRAM base
table. A DisplayConfig is validated once at construction; everything
downstream (address mapper, encoder, sequencer) trusts it.

Standard geometries
-------------------
- 16x1 / 8x1: one line, bases {0x00}
- 16x2 / 20x2 / 40x2: two lines, bases {0x00, 0x40}
- 16x4 / 20x4: two controller lines multiplexed into four visual rows,
  bases {0x00, 0x40, cols, 0x40 + cols}

Example:
    >>> cfg = DisplayConfig(bus_width=BusWidth.FOUR, lines=4, visible_columns=20)
    >>> [hex(b) for b in cfg.row_base_addresses]
    ['0x0', '0x40', '0x14', '0x54']

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Mapping, Optional

from hd44780.addressing import ddram_segments, default_row_bases
from hd44780.errors import InvalidConfigurationError


# =============================================================================
# Option Enums
# =============================================================================

class BusWidth(IntEnum):
    """Data bus width between host and controller."""
    FOUR = 4
    EIGHT = 8


class Font(Enum):
    """Character font selected by the function-set instruction."""
    DOTS_5X8 = "5x8"
    DOTS_5X10 = "5x10"


class WrapMode(Enum):
    """
    What write_str does when the cursor reaches the last visible column.

    WRAP: re-address to column 0 of the next row
    TRUNCATE: drop characters until the next newline
    NONE: keep writing and let the chip's address counter decide
    """
    WRAP = "wrap"
    TRUNCATE = "truncate"
    NONE = "none"


VALID_LINE_COUNTS = (1, 2, 4)

# Visible column count assumed when none is given
DEFAULT_COLUMNS = {1: 16, 2: 16, 4: 20}

DEFAULT_BUSY_POLL_LIMIT = 100
DEFAULT_BUSY_POLL_INTERVAL_US = 10


# =============================================================================
# DisplayConfig
# =============================================================================

@dataclass(frozen=True)
class DisplayConfig:
    """
    Construction-time configuration for a Controller.

    Attributes:
        bus_width: 4-bit (nibble-paired) or 8-bit interface
        lines: Visual row count (1, 2 or 4)
        font: 5x8 or 5x10 dots; 5x10 is only valid on 1-line displays
        visible_columns: Columns per visual row (default 16, or 20 for 4 lines)
        row_base_addresses: DDRAM address of column 0 for each row
        wrap_mode: write_str behaviour at the end of a row
        cursor_visible: Cursor state applied at the end of initialization
        cursor_blink: Blink state applied at the end of initialization
        entry_increment: Address counter direction after initialization
        entry_shift: Shift-display-on-write after initialization
        use_busy_flag: Poll the busy flag instead of fixed delays (needs RW)
        busy_poll_limit: Maximum busy-flag polls per instruction
        busy_poll_interval_us: Sleep between busy-flag polls
    """

    bus_width: BusWidth = BusWidth.FOUR
    lines: int = 2
    font: Font = Font.DOTS_5X8
    visible_columns: Optional[int] = None
    row_base_addresses: Optional[tuple[int, ...]] = None
    wrap_mode: WrapMode = WrapMode.WRAP
    cursor_visible: bool = False
    cursor_blink: bool = False
    entry_increment: bool = True
    entry_shift: bool = False
    use_busy_flag: bool = False
    busy_poll_limit: int = DEFAULT_BUSY_POLL_LIMIT
    busy_poll_interval_us: int = DEFAULT_BUSY_POLL_INTERVAL_US

    def __post_init__(self) -> None:
        # Frozen dataclass: normalise through object.__setattr__
        try:
            object.__setattr__(self, "bus_width", BusWidth(self.bus_width))
        except ValueError:
            raise InvalidConfigurationError(
                f"bus_width must be 4 or 8, got {self.bus_width!r}"
            )
        try:
            object.__setattr__(self, "font", Font(self.font))
        except ValueError:
            raise InvalidConfigurationError(
                f"font must be '5x8' or '5x10', got {self.font!r}"
            )
        try:
            object.__setattr__(self, "wrap_mode", WrapMode(self.wrap_mode))
        except ValueError:
            raise InvalidConfigurationError(f"unknown wrap_mode {self.wrap_mode!r}")

        if self.lines not in VALID_LINE_COUNTS:
            raise InvalidConfigurationError(
                f"lines must be one of {VALID_LINE_COUNTS}, got {self.lines!r}"
            )
        if self.font is Font.DOTS_5X10 and self.lines != 1:
            raise InvalidConfigurationError(
                f"5x10 font is only supported on 1-line displays, not {self.lines} lines"
            )

        if self.visible_columns is None:
            object.__setattr__(self, "visible_columns", DEFAULT_COLUMNS[self.lines])
        for name in ("visible_columns", "busy_poll_limit", "busy_poll_interval_us"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidConfigurationError(
                    f"{name} must be an integer, got {value!r}"
                )

        if self.visible_columns < 1:
            raise InvalidConfigurationError(
                f"visible_columns must be positive, got {self.visible_columns}"
            )

        if self.row_base_addresses is None:
            bases = default_row_bases(self.lines, self.visible_columns)
        else:
            bases = tuple(int(b) for b in self.row_base_addresses)
        object.__setattr__(self, "row_base_addresses", bases)
        self._validate_row_bases()

        if self.busy_poll_limit < 1:
            raise InvalidConfigurationError(
                f"busy_poll_limit must be at least 1, got {self.busy_poll_limit}"
            )
        if self.busy_poll_interval_us < 0:
            raise InvalidConfigurationError(
                f"busy_poll_interval_us must not be negative, got {self.busy_poll_interval_us}"
            )

    def _validate_row_bases(self) -> None:
        """Every visible cell of every row must land inside one DDRAM segment."""
        bases = self.row_base_addresses
        if len(bases) != self.lines:
            raise InvalidConfigurationError(
                f"row_base_addresses has {len(bases)} entries, expected {self.lines}"
            )
        segments = ddram_segments(self.two_line_mode)
        for row, base in enumerate(bases):
            last = base + self.visible_columns - 1
            if not any(start <= base and last < end for start, end in segments):
                raise InvalidConfigurationError(
                    f"row {row} spans DDRAM 0x{base:02X}-0x{last:02X}, "
                    f"outside the controller's address space"
                )

    # =========================================================================
    # Derived Properties
    # =========================================================================

    @property
    def two_line_mode(self) -> bool:
        """True when the function-set N bit is set (2- and 4-line panels)."""
        return self.lines >= 2

    @property
    def glyph_capacity(self) -> int:
        """Number of CGRAM slots: 8 for 5x8, 4 for 5x10."""
        return 8 if self.font is Font.DOTS_5X8 else 4

    @property
    def glyph_rows(self) -> int:
        """Pattern rows the chip displays per glyph."""
        return 8 if self.font is Font.DOTS_5X8 else 11

    @property
    def bytes_per_glyph(self) -> int:
        """CGRAM bytes occupied by one glyph (5x10 uses two 8-byte rows)."""
        return 8 if self.font is Font.DOTS_5X8 else 16

    @property
    def geometry(self) -> str:
        """Human readable 'COLSxLINES' string."""
        return f"{self.visible_columns}x{self.lines}"

    # =========================================================================
    # Construction Helpers
    # =========================================================================

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> "DisplayConfig":
        """
        Build a configuration from a plain mapping.

        Accepts the option names of the dataclass. Enum values may be given
        as their plain values (4, "5x10", "truncate"), and row bases as any
        iterable of ints or hex strings.

        Raises:
            InvalidConfigurationError: Unknown option or invalid value
        """
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(options) - known)
        if unknown:
            raise InvalidConfigurationError(f"unknown option(s): {', '.join(unknown)}")

        values = dict(options)
        try:
            if "bus_width" in values:
                values["bus_width"] = int(values["bus_width"])
            if "lines" in values:
                values["lines"] = int(values["lines"])
            for name in ("visible_columns", "busy_poll_limit", "busy_poll_interval_us"):
                if values.get(name) is not None:
                    values[name] = int(values[name])
            if "font" in values and isinstance(values["font"], str):
                values["font"] = values["font"].lower()
            if "wrap_mode" in values and isinstance(values["wrap_mode"], str):
                values["wrap_mode"] = values["wrap_mode"].lower()
            if values.get("row_base_addresses") is not None:
                values["row_base_addresses"] = tuple(
                    int(b, 0) if isinstance(b, str) else int(b)
                    for b in values["row_base_addresses"]
                )
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationError(f"invalid option value: {e}") from e
        return cls(**values)
