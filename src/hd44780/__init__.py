"""
HD44780 - Character LCD Controller Driver
=========================================

This package drives HD44780-family character LCD controllers (16x2, 20x4
and similar panels). It turns display operations into the exact
instruction bytes and settle delays the chip requires, and stays agnostic
of how the bits physically reach it: bit-banged GPIO in 4-bit or 8-bit
mode, an I2C port-expander backpack, or the bundled simulator are all just
a Transport.

Main Components
---------------
- **controller**: Controller facade and shadow ControllerState
- **sequencer**: power-on initialization state machine
- **instructions**: instruction encoder (opcodes, flags, timing class)
- **addressing**: row/column -> DDRAM and slot -> CGRAM address mapping
- **timing**: instruction delay table
- **transport**: the Transport capability and bus writer
- **spy / simulator**: a recording transport and a chip simulator

Quick Start
-----------
    >>> from hd44780 import DisplayConfig, BusWidth, initialize
    >>> lcd = initialize(DisplayConfig(bus_width=BusWidth.FOUR, lines=2), transport)
    >>> lcd.write_str("Hello")
    >>> lcd.set_cursor(1, 0)
    >>> lcd.write_str("World")

Or try a layout without hardware:
    $ lcdsim "Hello" "World"

Reference Documentation
-----------------------
- Hitachi HD44780U datasheet, "Initializing by Instruction" (figures 23/24)
- https://en.wikipedia.org/wiki/Hitachi_HD44780_LCD_controller

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from hd44780.config import BusWidth, DisplayConfig, Font, WrapMode
from hd44780.errors import (
    HD44780Error,
    TransportError,
    InvalidAddressError,
    InvalidGlyphError,
    InvalidConfigurationError,
    NotInitializedError,
    BusyFlagTimeoutError,
)
from hd44780.timing import TimingClass, delay_for, sleep_us
from hd44780.instructions import (
    Instruction,
    EntryMode,
    DisplayMode,
    ShiftMode,
    FunctionMode,
)
from hd44780.addressing import AddressMapper
from hd44780.transport import Transport, BusWriter
from hd44780.sequencer import InitSequencer, InitState
from hd44780.controller import Controller, ControllerState, RamTarget, initialize
from hd44780.spy import RecordingTransport
from hd44780.simulator import HD44780Simulator, SimulatedTransport

__all__ = [
    "__version__",
    # Configuration
    "BusWidth",
    "DisplayConfig",
    "Font",
    "WrapMode",
    # Exception hierarchy
    "HD44780Error",
    "TransportError",
    "InvalidAddressError",
    "InvalidGlyphError",
    "InvalidConfigurationError",
    "NotInitializedError",
    "BusyFlagTimeoutError",
    # Timing
    "TimingClass",
    "delay_for",
    "sleep_us",
    # Encoder
    "Instruction",
    "EntryMode",
    "DisplayMode",
    "ShiftMode",
    "FunctionMode",
    # Addressing
    "AddressMapper",
    # Transport
    "Transport",
    "BusWriter",
    # Initialization
    "InitSequencer",
    "InitState",
    # Controller
    "Controller",
    "ControllerState",
    "RamTarget",
    "initialize",
    # Test doubles
    "RecordingTransport",
    "HD44780Simulator",
    "SimulatedTransport",
]
