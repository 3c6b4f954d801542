"""
HD44780 Controller
==================

The public face of the driver. A Controller owns one Transport, one
DisplayConfig and a shadow copy of the chip's write-only registers. Every
operation follows the same cycle:

    validate in software -> encode -> send -> wait -> update shadow state

Validation errors are raised before the transport is touched. The shadow
state is updated only after the bus write returned and the settle time
elapsed, so it always describes the last instruction that really completed.

Example:
    >>> from hd44780 import DisplayConfig, initialize
    >>> lcd = initialize(DisplayConfig(lines=2), transport)
    >>> lcd.write_str("Hello")
    >>> lcd.set_cursor(1, 0)
    >>> lcd.write_str("World")

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union

from hd44780 import instructions
from hd44780.addressing import DDRAM_SIZE, LINE_LENGTH_2LINE, AddressMapper
from hd44780.config import BusWidth, DisplayConfig, Font, WrapMode
from hd44780.errors import (
    BusyFlagTimeoutError,
    InvalidConfigurationError,
    InvalidGlyphError,
    NotInitializedError,
    TransportError,
)
from hd44780.instructions import Instruction
from hd44780.sequencer import InitSequencer, InitState
from hd44780.timing import DelayFunc, delay_for, sleep_us
from hd44780.transport import BusWriter, Transport

logger = logging.getLogger(__name__)

NEWLINE = 0x0A


class RamTarget(Enum):
    """Which RAM the chip's address counter currently points into."""
    DDRAM = "ddram"
    CGRAM = "cgram"


@dataclass
class ControllerState:
    """
    Shadow of the controller's write-only registers.

    `valid` is False until initialization succeeds; every other field is
    meaningless while it is False.
    """
    valid: bool = False
    # Function set
    bus_width: Optional[BusWidth] = None
    two_line: Optional[bool] = None
    font: Optional[Font] = None
    # Entry mode
    increment: bool = True
    shift_on_write: bool = False
    # Display control
    display_on: bool = False
    cursor_visible: bool = False
    cursor_blink: bool = False
    # Address counter
    target: RamTarget = RamTarget.DDRAM
    address: int = 0
    cursor: Optional[tuple[int, int]] = None
    display_shift: int = 0


class Controller:
    """
    HD44780 driver facade.

    Args:
        config: Panel configuration
        transport: Exclusively owned bus transport
        delay: Blocking microsecond delay (injectable for tests)

    Raises:
        InvalidConfigurationError: Busy-flag polling requested on a transport
            that cannot read the busy flag
    """

    def __init__(
        self,
        config: DisplayConfig,
        transport: Transport,
        delay: DelayFunc = sleep_us,
    ):
        if config.use_busy_flag and not transport.supports_busy_flag:
            raise InvalidConfigurationError(
                f"use_busy_flag set but {type(transport).__name__} has no RW line"
            )
        self._config = config
        self._writer = BusWriter(transport, config.bus_width)
        self._mapper = AddressMapper(config)
        self._delay = delay
        self._state = ControllerState()
        self._init_state = InitState.IDLE
        self._needs_reinitialize = False

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> DisplayConfig:
        return self._config

    @property
    def mapper(self) -> AddressMapper:
        return self._mapper

    @property
    def transport(self) -> Transport:
        return self._writer.transport

    @property
    def state(self) -> ControllerState:
        """Snapshot of the shadow state (a copy; mutating it has no effect)."""
        return dataclasses.replace(self._state)

    @property
    def init_state(self) -> InitState:
        return self._init_state

    @property
    def is_ready(self) -> bool:
        return self._init_state is InitState.READY and not self._needs_reinitialize

    @property
    def needs_reinitialize(self) -> bool:
        """
        True after a bus failure left the chip out of step with the shadow.

        While set, every operation raises NotInitializedError until
        initialize() succeeds again.
        """
        return self._needs_reinitialize

    @property
    def cursor(self) -> Optional[tuple[int, int]]:
        """Visible (row, col) of the address counter, None if off-screen."""
        return self._state.cursor

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> "Controller":
        """
        Run the initialization sequence; may be called again to recover.

        The shadow state is invalid while the sequence runs and stays invalid
        if it fails.

        Raises:
            TransportError: Bus failure; controller is left in FAILED
        """
        self._state = ControllerState()
        sequencer = InitSequencer(self._writer, self._config, self._delay)
        try:
            sequencer.run()
        finally:
            self._init_state = sequencer.state

        cfg = self._config
        self._state = ControllerState(
            valid=True,
            bus_width=cfg.bus_width,
            two_line=cfg.two_line_mode,
            font=cfg.font,
            increment=cfg.entry_increment,
            shift_on_write=cfg.entry_shift,
            display_on=True,
            cursor_visible=cfg.cursor_visible,
            cursor_blink=cfg.cursor_blink,
        )
        self._set_ddram(self._mapper.home_address)
        self._needs_reinitialize = False
        logger.info(
            "HD44780 ready: %s, %d-bit bus, %s font",
            cfg.geometry, int(cfg.bus_width), cfg.font.value,
        )
        return self

    def _require_ready(self, operation: str) -> None:
        if self._init_state is InitState.FAILED:
            raise NotInitializedError(operation, "last initialization failed")
        if self._init_state is not InitState.READY:
            raise NotInitializedError(operation)
        # A partial bus cycle may have left a 4-bit interface mid-byte
        if self._needs_reinitialize:
            raise NotInitializedError(operation, "bus failure, re-initialize")

    # =========================================================================
    # Instruction Dispatch
    # =========================================================================

    def _execute(self, instruction: Instruction) -> None:
        """Send one instruction and wait for the controller to finish it."""
        try:
            self._writer.send(instruction)
            self._wait(instruction)
        except (TransportError, BusyFlagTimeoutError) as e:
            self._needs_reinitialize = True
            logger.warning("%s failed, chip state unknown: %s", instruction, e)
            raise

    def _wait(self, instruction: Instruction) -> None:
        if not self._config.use_busy_flag:
            self._delay(delay_for(instruction.timing, instruction.delay_us))
            return
        for _ in range(self._config.busy_poll_limit):
            if not self._writer.busy():
                return
            self._delay(self._config.busy_poll_interval_us)
        raise BusyFlagTimeoutError(self._config.busy_poll_limit)

    def _set_ddram(self, address: int) -> None:
        self._state.target = RamTarget.DDRAM
        self._state.address = address
        self._state.cursor = self._mapper.position_of(address)

    def _shift_span(self) -> int:
        return LINE_LENGTH_2LINE if self._config.two_line_mode else DDRAM_SIZE

    # =========================================================================
    # Clear / Home / Addressing
    # =========================================================================

    def clear(self) -> None:
        """Blank the display and return the cursor to address 0."""
        self._require_ready("clear")
        self._execute(instructions.clear_display())
        # Clear also forces I/D to increment on the chip
        self._state.increment = True
        self._state.display_shift = 0
        self._set_ddram(self._mapper.home_address)

    def home(self) -> None:
        """Return the cursor to address 0 and undo any display shift."""
        self._require_ready("home")
        self._execute(instructions.return_home())
        self._state.display_shift = 0
        self._set_ddram(self._mapper.home_address)

    def set_cursor(self, row: int, col: int) -> None:
        """
        Move the cursor to a visible position.

        Raises:
            InvalidAddressError: Position outside the configured geometry
        """
        self._require_ready("set cursor")
        address = self._mapper.ddram_address(row, col)
        self._execute(instructions.set_ddram_address(address))
        self._set_ddram(address)

    def set_ddram_address(self, address: int) -> None:
        """Point the address counter at a raw DDRAM address."""
        self._require_ready("set DDRAM address")
        self._mapper.validate_ddram_address(address)
        self._execute(instructions.set_ddram_address(address))
        self._set_ddram(address)

    def set_cgram_address(self, address: int) -> None:
        """Point the address counter at a raw CGRAM address."""
        self._require_ready("set CGRAM address")
        self._mapper.validate_cgram_address(address)
        self._execute(instructions.set_cgram_address(address))
        self._state.target = RamTarget.CGRAM
        self._state.address = address
        self._state.cursor = None

    # =========================================================================
    # Display Control
    # =========================================================================

    def _display_control(
        self, operation: str, display_on: bool, cursor_visible: bool, cursor_blink: bool
    ) -> None:
        self._require_ready(operation)
        self._execute(instructions.display_control(display_on, cursor_visible, cursor_blink))
        self._state.display_on = display_on
        self._state.cursor_visible = cursor_visible
        self._state.cursor_blink = cursor_blink

    def set_display_enabled(self, enabled: bool) -> None:
        s = self._state
        self._display_control("set display", bool(enabled), s.cursor_visible, s.cursor_blink)

    def set_cursor_visible(self, visible: bool) -> None:
        s = self._state
        self._display_control("set cursor", s.display_on, bool(visible), s.cursor_blink)

    def set_cursor_blink(self, blink: bool) -> None:
        s = self._state
        self._display_control("set blink", s.display_on, s.cursor_visible, bool(blink))

    def set_entry_mode(self, increment: bool, shift_on_write: bool) -> None:
        """Set address counter direction and shift-display-on-write."""
        self._require_ready("set entry mode")
        self._execute(instructions.entry_mode_set(increment, shift_on_write))
        self._state.increment = bool(increment)
        self._state.shift_on_write = bool(shift_on_write)

    def shift_cursor(self, right: bool = True) -> None:
        """Move the cursor one position without writing."""
        self._require_ready("shift cursor")
        self._execute(instructions.cursor_shift(display=False, right=right))
        if self._state.target is RamTarget.DDRAM:
            self._set_ddram(self._mapper.advance(self._state.address, right))

    def shift_display(self, right: bool = True) -> None:
        """Scroll the whole display one position; DDRAM is unchanged."""
        self._require_ready("shift display")
        self._execute(instructions.cursor_shift(display=True, right=right))
        step = 1 if right else -1
        self._state.display_shift = (self._state.display_shift + step) % self._shift_span()

    # =========================================================================
    # CGRAM
    # =========================================================================

    def define_glyph(self, slot: int, pattern: Union[bytes, Iterable[int]]) -> None:
        """
        Store a custom character in CGRAM.

        Args:
            slot: Glyph index; character code `slot` displays it (`2 * slot`
                with the 5x10 font)
            pattern: One byte per dot row, top first; 5 low bits are used.
                Shorter patterns are padded with blank rows.

        Raises:
            InvalidAddressError: Slot outside the font's capacity
            InvalidGlyphError: Pattern empty or taller than the font
        """
        self._require_ready("define glyph")
        base = self._mapper.cgram_address(slot)
        rows = [int(b) for b in pattern]
        if not 0 < len(rows) <= self._config.glyph_rows:
            raise InvalidGlyphError(
                f"glyph pattern has {len(rows)} rows, expected 1-{self._config.glyph_rows}"
            )
        if any(r < 0 or r > 0xFF for r in rows):
            raise InvalidGlyphError("glyph pattern rows must be bytes")
        data = [r & 0x1F for r in rows]
        data += [0] * (self._config.bytes_per_glyph - len(data))

        # The address counter follows I/D for CGRAM writes as well
        if self._state.increment:
            start = base
        else:
            start = base + len(data) - 1
            data.reverse()

        resume = self._state.address if self._state.target is RamTarget.DDRAM else None
        self._execute(instructions.set_cgram_address(start))
        self._state.target = RamTarget.CGRAM
        self._state.address = start
        self._state.cursor = None
        for row in data:
            self._execute(instructions.write_data(row))
            step = 1 if self._state.increment else -1
            self._state.address = (self._state.address + step) % 64

        if resume is None:
            resume = self._mapper.home_address
        self._execute(instructions.set_ddram_address(resume))
        self._set_ddram(resume)
        logger.debug("defined glyph %d at CGRAM 0x%02X", slot, base)

    # =========================================================================
    # Character Output
    # =========================================================================

    def write_char(self, code: int) -> None:
        """
        Write one character code at the cursor.

        Raises:
            InvalidAddressError: code is not a byte
        """
        self._require_ready("write character")
        self._write_data(instructions.write_data(code))

    def _write_data(self, instruction: Instruction) -> None:
        self._execute(instruction)
        state = self._state
        if state.target is RamTarget.CGRAM:
            step = 1 if state.increment else -1
            state.address = (state.address + step) % 64
            return
        self._set_ddram(self._mapper.advance(state.address, state.increment))
        if state.shift_on_write:
            step = -1 if state.increment else 1
            state.display_shift = (state.display_shift + step) % self._shift_span()

    def _move_to(self, row: int, col: int) -> None:
        address = self._mapper.ddram_address(row, col)
        self._execute(instructions.set_ddram_address(address))
        self._set_ddram(address)

    def write_str(self, text: Union[str, bytes]) -> None:
        """
        Write text starting at the cursor.

        Issues one DDRAM address set for the current position, then one data
        write per character, relying on the chip's auto-increment. "\\n" moves
        to column 0 of the next row. What happens at the last visible column
        depends on DisplayConfig.wrap_mode.

        Characters outside 0-255 are written as '?'.

        Raises:
            TransportError: Bus failure; the cursor reflects the characters
                written before the failure
        """
        self._require_ready("write string")
        if isinstance(text, str):
            data = text.encode("latin-1", errors="replace")
        else:
            data = bytes(text)

        if self._state.target is not RamTarget.DDRAM:
            self._state.address = self._mapper.home_address
        self._execute(instructions.set_ddram_address(self._state.address))
        self._set_ddram(self._state.address)

        wrap = self._config.wrap_mode
        cols = self._config.visible_columns
        position = self._state.cursor
        row, col = position if position is not None else (None, None)

        for code in data:
            if code == NEWLINE:
                row = self._mapper.next_row(row) if row is not None else 0
                col = 0
                self._move_to(row, col)
                continue

            if row is not None and wrap is not WrapMode.NONE and not 0 <= col < cols:
                if wrap is WrapMode.TRUNCATE:
                    continue
                if self._state.increment:
                    row, col = self._mapper.next_row(row), 0
                else:
                    row, col = (row - 1) % self._config.lines, cols - 1
                self._move_to(row, col)

            self._write_data(instructions.write_data(code))
            if col is not None:
                col += 1 if self._state.increment else -1


def initialize(
    config: DisplayConfig,
    transport: Transport,
    delay: DelayFunc = sleep_us,
) -> Controller:
    """
    Create a Controller and run the initialization sequence.

    Raises:
        InvalidConfigurationError: Configuration unusable with this transport
        TransportError: Bus failure during initialization
    """
    return Controller(config, transport, delay).initialize()
