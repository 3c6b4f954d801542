"""
HD44780 Instruction Encoder
===========================

Maps each logical controller operation to a single Instruction: an opcode
byte with its operand bits folded in, the register it targets, and the
timing class the caller must honour after issuing it.

Instruction encoding (from the HD44780 datasheet):

    00000001  Clear display                          Long
    0000001x  Return home                            Long
    000001IS  Entry mode set (I/D, S)                Short
    00001DCB  Display on/off control (D, C, B)       Short
    0001SRxx  Cursor/display shift (S/C, R/L)        Short
    001DNFxx  Function set (DL, N, F)                Short
    01AAAAAA  Set CGRAM address                      Short
    1AAAAAAA  Set DDRAM address                      Short
    RS=1      Data write                             Short

The encoder is pure: it performs no I/O and holds no state.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass
from enum import IntFlag

from hd44780.config import BusWidth, Font
from hd44780.errors import InvalidAddressError, InvalidConfigurationError
from hd44780.timing import TimingClass

# =============================================================================
# Opcodes
# =============================================================================

CLEAR_DISPLAY = 0x01
RETURN_HOME = 0x02
ENTRY_MODE_SET = 0x04
DISPLAY_CONTROL = 0x08
CURSOR_SHIFT = 0x10
FUNCTION_SET = 0x20
SET_CGRAM_ADDR = 0x40
SET_DDRAM_ADDR = 0x80


# =============================================================================
# Operand Flags
# =============================================================================

class EntryMode(IntFlag):
    """Operand bits of the entry mode set instruction."""
    DECREMENT = 0x00
    INCREMENT = 0x02
    SHIFT_DISPLAY = 0x01


class DisplayMode(IntFlag):
    """Operand bits of the display on/off control instruction."""
    DISPLAY_OFF = 0x00
    BLINK_ON = 0x01
    CURSOR_ON = 0x02
    DISPLAY_ON = 0x04


class ShiftMode(IntFlag):
    """Operand bits of the cursor/display shift instruction."""
    CURSOR_MOVE = 0x00
    MOVE_RIGHT = 0x04
    DISPLAY_MOVE = 0x08


class FunctionMode(IntFlag):
    """Operand bits of the function set instruction."""
    BITS_4 = 0x00
    DOTS_5X10 = 0x04
    LINES_2 = 0x08
    BITS_8 = 0x10


# =============================================================================
# Instruction
# =============================================================================

@dataclass(frozen=True)
class Instruction:
    """
    One controller instruction ready to be put on the bus.

    Attributes:
        name: Short label used in logs
        opcode: Byte to write (command or character code)
        timing: Delay class to apply after the write
        is_data: True for RS=1 (data register) writes
        delay_us: Explicit delay for INIT_STEP instructions
        nibble_only: Send only the upper nibble (4-bit bootstrap steps)
    """

    name: str
    opcode: int
    timing: TimingClass = TimingClass.SHORT
    is_data: bool = False
    delay_us: int = 0
    nibble_only: bool = False

    def __post_init__(self) -> None:
        # Flag arithmetic yields IntFlag members; store the plain byte
        object.__setattr__(self, "opcode", int(self.opcode))

    def __str__(self) -> str:
        register = "DATA" if self.is_data else "CMD"
        return f"{self.name}({register} 0x{self.opcode:02X})"


# =============================================================================
# Encoders
# =============================================================================

def clear_display() -> Instruction:
    return Instruction("clear", CLEAR_DISPLAY, TimingClass.LONG)


def return_home() -> Instruction:
    return Instruction("home", RETURN_HOME, TimingClass.LONG)


def entry_mode_set(increment: bool, shift_on_write: bool) -> Instruction:
    mode = EntryMode.INCREMENT if increment else EntryMode.DECREMENT
    if shift_on_write:
        mode |= EntryMode.SHIFT_DISPLAY
    return Instruction("entry_mode", ENTRY_MODE_SET | mode)


def display_control(display_on: bool, cursor_on: bool, blink_on: bool) -> Instruction:
    mode = DisplayMode.DISPLAY_OFF
    if display_on:
        mode |= DisplayMode.DISPLAY_ON
    if cursor_on:
        mode |= DisplayMode.CURSOR_ON
    if blink_on:
        mode |= DisplayMode.BLINK_ON
    return Instruction("display_control", DISPLAY_CONTROL | mode)


def cursor_shift(display: bool, right: bool) -> Instruction:
    """Move the cursor, or shift the whole display, one position."""
    mode = ShiftMode.DISPLAY_MOVE if display else ShiftMode.CURSOR_MOVE
    if right:
        mode |= ShiftMode.MOVE_RIGHT
    return Instruction("shift", CURSOR_SHIFT | mode)


def function_set(bus_width: BusWidth, two_line: bool, font: Font) -> Instruction:
    """
    Final function set selecting interface width, line mode and font.

    Raises:
        InvalidConfigurationError: 2-line mode combined with the 5x10 font,
            which the controller does not support
    """
    if two_line and font is Font.DOTS_5X10:
        raise InvalidConfigurationError("2-line mode cannot use the 5x10 font")
    mode = FunctionMode.BITS_8 if bus_width is BusWidth.EIGHT else FunctionMode.BITS_4
    if two_line:
        mode |= FunctionMode.LINES_2
    if font is Font.DOTS_5X10:
        mode |= FunctionMode.DOTS_5X10
    return Instruction("function_set", FUNCTION_SET | mode)


def set_cgram_address(address: int) -> Instruction:
    if not 0 <= address <= 0x3F:
        raise InvalidAddressError(f"CGRAM address 0x{address:02X} is not valid")
    return Instruction("set_cgram", SET_CGRAM_ADDR | address)


def set_ddram_address(address: int) -> Instruction:
    if not 0 <= address <= 0x7F:
        raise InvalidAddressError(f"DDRAM address 0x{address:02X} is not valid")
    return Instruction("set_ddram", SET_DDRAM_ADDR | address)


def write_data(value: int) -> Instruction:
    """Data register write: a character code or a CGRAM pattern row."""
    if not 0 <= value <= 0xFF:
        raise InvalidAddressError(f"data byte {value} does not fit in 8 bits")
    return Instruction("data", value, is_data=True)


# =============================================================================
# Initialization Steps
# =============================================================================

def bootstrap_function_set(delay_us: int, nibble_only: bool) -> Instruction:
    """
    Reset-by-instruction function set (8-bit interface pattern 0x30).

    In 4-bit wiring only DB7-DB4 are connected, so the step is a single
    nibble transfer of 0x3.
    """
    return Instruction(
        "bootstrap",
        FUNCTION_SET | FunctionMode.BITS_8,
        TimingClass.INIT_STEP,
        delay_us=delay_us,
        nibble_only=nibble_only,
    )


def interface_4bit(delay_us: int) -> Instruction:
    """Single-nibble function set switching the chip into 4-bit mode."""
    return Instruction(
        "interface_4bit",
        FUNCTION_SET | FunctionMode.BITS_4,
        TimingClass.INIT_STEP,
        delay_us=delay_us,
        nibble_only=True,
    )
