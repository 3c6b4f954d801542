"""
Controller Tests
================

Tests for the Controller facade: instruction traffic per operation, timing,
shadow state bookkeeping, validation before bus traffic, lifecycle and
failure handling.
"""

from unittest.mock import Mock, call

import pytest

from hd44780 import (
    BusWidth,
    BusyFlagTimeoutError,
    Controller,
    DisplayConfig,
    Font,
    InitState,
    InvalidAddressError,
    InvalidConfigurationError,
    InvalidGlyphError,
    NotInitializedError,
    RamTarget,
    RecordingTransport,
    Transport,
    TransportError,
    WrapMode,
    initialize,
)
from hd44780.timing import LONG_DELAY_US, SHORT_DELAY_US


class FlakyTransport(Transport):
    """Transport whose enable line raises OSError once armed."""

    def __init__(self):
        self.armed = False

    def set_register_select(self, data):
        pass

    def write_nibble(self, value):
        pass

    def write_byte(self, value):
        pass

    def pulse_enable(self, min_width_us):
        if self.armed:
            raise OSError("GPIO write failed")


# =============================================================================
# Lifecycle
# =============================================================================

class TestLifecycle:
    """Test initialization gating."""

    def test_uninitialized_rejects_operations(self, spy):
        lcd = Controller(DisplayConfig(), spy)
        with pytest.raises(NotInitializedError):
            lcd.clear()
        with pytest.raises(NotInitializedError):
            lcd.write_str("x")
        assert spy.events == []

    def test_state_unknown_before_init(self, spy):
        lcd = Controller(DisplayConfig(), spy)
        assert lcd.state.valid is False
        assert lcd.init_state is InitState.IDLE

    def test_initialize_populates_state(self, spy, delays):
        lcd = initialize(DisplayConfig(lines=4), spy, delay=delays)
        state = lcd.state
        assert lcd.is_ready
        assert state.valid is True
        assert state.display_on is True
        assert state.cursor_visible is False
        assert state.increment is True
        assert state.two_line is True
        assert state.cursor == (0, 0)

    def test_failed_initialization(self, delays):
        spy = RecordingTransport(fail_after=5)
        lcd = Controller(DisplayConfig(), spy, delay=delays)
        with pytest.raises(TransportError):
            lcd.initialize()
        assert lcd.init_state is InitState.FAILED
        assert lcd.state.valid is False
        with pytest.raises(NotInitializedError, match="failed"):
            lcd.write_char(0x41)

    def test_reinitialize_after_failure(self, delays):
        spy = RecordingTransport(fail_after=5)
        lcd = Controller(DisplayConfig(), spy, delay=delays)
        with pytest.raises(TransportError):
            lcd.initialize()
        spy.fail_after = None
        spy.clear()
        lcd.initialize()
        assert lcd.is_ready
        lcd.write_char(0x41)

    def test_busy_flag_needs_rw_line(self, spy):
        with pytest.raises(InvalidConfigurationError):
            Controller(DisplayConfig(use_busy_flag=True), spy)


# =============================================================================
# Clear / Home / Cursor
# =============================================================================

class TestCursorOperations:
    """Test addressing operations on the bus and in the shadow state."""

    def test_set_cursor_row1(self, make_lcd, spy):
        lcd = make_lcd(lines=2, visible_columns=16)
        lcd.set_cursor(1, 0)
        assert spy.bytes_written() == [0xC0]
        assert lcd.state.address == 0x40
        assert lcd.cursor == (1, 0)

    def test_set_cursor_row0_col5(self, make_lcd, spy):
        lcd = make_lcd(lines=2, visible_columns=16)
        lcd.set_cursor(0, 5)
        assert spy.bytes_written() == [0x85]

    def test_set_cursor_20x4(self, make_lcd, spy):
        lcd = make_lcd(lines=4, visible_columns=20)
        for row in range(4):
            lcd.set_cursor(row, 0)
        assert spy.bytes_written() == [0x80, 0xC0, 0x94, 0xD4]

    @pytest.mark.parametrize("row,col", [(0, 16), (2, 0), (5, 5)])
    def test_set_cursor_out_of_range(self, make_lcd, spy, row, col):
        """Out-of-range positions never reach the transport."""
        lcd = make_lcd(lines=2, visible_columns=16)
        before = lcd.state
        with pytest.raises(InvalidAddressError):
            lcd.set_cursor(row, col)
        assert spy.events == []
        assert lcd.state == before

    def test_clear_is_long(self, make_lcd, spy, delays):
        lcd = make_lcd()
        lcd.clear()
        assert spy.bytes_written() == [0x01]
        assert delays.calls == [LONG_DELAY_US]

    def test_clear_twice(self, make_lcd, delays):
        """clear() is idempotent."""
        lcd = make_lcd()
        lcd.set_cursor(1, 3)
        for _ in range(2):
            lcd.clear()
            assert lcd.cursor == (0, 0)
            assert lcd.state.address == lcd.mapper.row_bases[0]
        assert delays.calls[-2:] == [LONG_DELAY_US, LONG_DELAY_US]

    def test_clear_forces_increment(self, make_lcd):
        lcd = make_lcd()
        lcd.set_entry_mode(False, False)
        lcd.clear()
        assert lcd.state.increment is True

    def test_home(self, make_lcd, spy, delays):
        lcd = make_lcd()
        lcd.set_cursor(1, 4)
        lcd.shift_display(right=True)
        spy.clear()
        delays.calls.clear()
        lcd.home()
        assert spy.bytes_written() == [0x02]
        assert delays.calls == [LONG_DELAY_US]
        assert lcd.cursor == (0, 0)
        assert lcd.state.display_shift == 0

    def test_raw_ddram_address(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.set_ddram_address(0x27)
        assert spy.bytes_written() == [0xA7]
        assert lcd.cursor is None
        with pytest.raises(InvalidAddressError):
            lcd.set_ddram_address(0x30)

    def test_raw_cgram_address(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.set_cgram_address(0x10)
        assert spy.bytes_written() == [0x50]
        assert lcd.state.target is RamTarget.CGRAM


# =============================================================================
# Display Control and Modes
# =============================================================================

class TestDisplayControl:
    """Test on/off, cursor and blink flags share one instruction."""

    def test_cursor_visible(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.set_cursor_visible(True)
        assert spy.bytes_written() == [0x0E]
        assert lcd.state.cursor_visible is True

    def test_blink_keeps_cursor(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.set_cursor_visible(True)
        lcd.set_cursor_blink(True)
        assert spy.bytes_written() == [0x0E, 0x0F]

    def test_display_off_keeps_flags(self, make_lcd, spy):
        lcd = make_lcd(cursor_visible=True)
        lcd.set_display_enabled(False)
        assert spy.bytes_written() == [0x0A]
        assert lcd.state.display_on is False

    def test_short_timing(self, make_lcd, delays):
        lcd = make_lcd()
        lcd.set_cursor_blink(True)
        assert delays.calls == [SHORT_DELAY_US]

    def test_entry_mode(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.set_entry_mode(increment=False, shift_on_write=True)
        assert spy.bytes_written() == [0x05]
        assert lcd.state.increment is False
        assert lcd.state.shift_on_write is True

    def test_shift_cursor(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.shift_cursor(right=True)
        assert spy.bytes_written() == [0x14]
        assert lcd.cursor == (0, 1)

    def test_shift_display(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.shift_display(right=False)
        assert spy.bytes_written() == [0x18]
        assert lcd.state.display_shift == 39
        assert lcd.cursor == (0, 0)


# =============================================================================
# Custom Glyphs
# =============================================================================

class TestGlyphs:
    """Test CGRAM glyph definition."""

    PATTERN = [0x00, 0x0A, 0x1F, 0x1F, 0x0E, 0x04, 0x00, 0x00]

    def test_define_glyph_traffic(self, make_lcd, spy):
        """CGRAM address, eight rows, then back to the DDRAM cursor."""
        lcd = make_lcd()
        lcd.set_cursor(1, 2)
        spy.clear()
        lcd.define_glyph(1, self.PATTERN)
        assert spy.bytes_written(data=False) == [0x48, 0xC2]
        assert spy.bytes_written(data=True) == self.PATTERN
        assert lcd.cursor == (1, 2)
        assert lcd.state.target is RamTarget.DDRAM

    def test_slot_8_rejected(self, make_lcd, spy):
        lcd = make_lcd()
        with pytest.raises(InvalidAddressError):
            lcd.define_glyph(8, self.PATTERN)
        assert spy.events == []

    def test_short_pattern_padded(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.define_glyph(0, [0x1F, 0x11])
        assert spy.bytes_written(data=True) == [0x1F, 0x11, 0, 0, 0, 0, 0, 0]

    def test_rows_masked_to_5_bits(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.define_glyph(0, bytes([0xFF] * 8))
        assert spy.bytes_written(data=True) == [0x1F] * 8

    def test_oversized_pattern(self, make_lcd, spy):
        lcd = make_lcd()
        with pytest.raises(InvalidGlyphError):
            lcd.define_glyph(0, [0] * 9)
        assert spy.events == []

    def test_empty_pattern(self, make_lcd):
        lcd = make_lcd()
        with pytest.raises(InvalidGlyphError):
            lcd.define_glyph(0, [])

    def test_5x10_glyph(self, make_lcd, spy):
        lcd = make_lcd(lines=1, font=Font.DOTS_5X10)
        lcd.define_glyph(3, [0x1F] * 11)
        assert spy.bytes_written(data=False)[0] == 0x40 | 48
        assert spy.bytes_written(data=True) == [0x1F] * 11 + [0] * 5
        with pytest.raises(InvalidAddressError):
            lcd.define_glyph(4, [0x1F])

    def test_decrement_mode_writes_rows_backwards(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.set_entry_mode(False, False)
        spy.clear()
        lcd.define_glyph(0, [1, 2, 3, 4, 5, 6, 7, 8])
        assert spy.bytes_written(data=False)[0] == 0x47
        assert spy.bytes_written(data=True) == [8, 7, 6, 5, 4, 3, 2, 1]


# =============================================================================
# Character Output
# =============================================================================

class TestWriting:
    """Test write_char and write_str."""

    def test_write_char(self, make_lcd, spy, delays):
        lcd = make_lcd()
        lcd.write_char(0x41)
        assert spy.bytes_written(data=True) == [0x41]
        assert delays.calls == [SHORT_DELAY_US]
        assert lcd.cursor == (0, 1)

    def test_write_char_not_a_byte(self, make_lcd, spy):
        lcd = make_lcd()
        with pytest.raises(InvalidAddressError):
            lcd.write_char(300)
        assert spy.events == []

    def test_write_str_addresses_once(self, make_lcd, spy):
        """One DDRAM address set, then one data write per character."""
        lcd = make_lcd()
        lcd.set_cursor(1, 3)
        spy.clear()
        lcd.write_str("Hello")
        assert spy.bytes_written(data=False) == [0xC3]
        assert spy.bytes_written(data=True) == list(b"Hello")
        assert lcd.cursor == (1, 8)

    def test_write_str_bytes(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.write_str(b"\x00\x01")
        assert spy.bytes_written(data=True) == [0, 1]

    def test_unencodable_becomes_question_mark(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.write_str("€")
        assert spy.bytes_written(data=True) == [ord("?")]

    def test_newline(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.write_str("ab\ncd")
        assert spy.bytes_written(data=False) == [0x80, 0xC0]
        assert lcd.cursor == (1, 2)

    def test_wrap(self, make_lcd, spy):
        lcd = make_lcd(wrap_mode=WrapMode.WRAP)
        lcd.write_str("A" * 17)
        assert spy.bytes_written(data=False) == [0x80, 0xC0]
        assert len(spy.bytes_written(data=True)) == 17
        assert lcd.cursor == (1, 1)

    def test_wrap_last_row_returns_to_top(self, make_lcd, spy):
        lcd = make_lcd()
        lcd.set_cursor(1, 15)
        spy.clear()
        lcd.write_str("xy")
        assert spy.bytes_written(data=False) == [0xCF, 0x80]
        assert lcd.cursor == (0, 1)

    def test_truncate(self, make_lcd, spy):
        lcd = make_lcd(wrap_mode=WrapMode.TRUNCATE)
        lcd.write_str("A" * 20 + "\nB")
        assert spy.bytes_written(data=True) == [0x41] * 16 + [0x42]
        assert spy.bytes_written(data=False) == [0x80, 0xC0]

    def test_no_wrap_follows_chip(self, make_lcd, spy):
        lcd = make_lcd(wrap_mode=WrapMode.NONE)
        lcd.write_str("A" * 17)
        assert spy.bytes_written(data=False) == [0x80]
        assert lcd.state.address == 0x11
        assert lcd.cursor is None

    def test_decrement_moves_left(self, make_lcd):
        lcd = make_lcd()
        lcd.set_cursor(0, 5)
        lcd.set_entry_mode(False, False)
        lcd.write_str("ab")
        assert lcd.cursor == (0, 3)

    def test_shift_on_write_tracks_display(self, make_lcd):
        lcd = make_lcd()
        lcd.set_entry_mode(True, True)
        lcd.write_str("abc")
        assert lcd.state.display_shift == 37


# =============================================================================
# Transport Failures
# =============================================================================

class TestTransportFailure:
    """Test state after a failed bus cycle."""

    def test_write_str_partial(self, make_lcd, spy):
        """Cursor reflects the one character that made it to the chip."""
        lcd = make_lcd()
        # set_ddram + 'h' are 5 primitives each on a 4-bit bus
        spy.fail_after = 10
        with pytest.raises(TransportError):
            lcd.write_str("hi")
        assert lcd.cursor == (0, 1)
        assert lcd.needs_reinitialize is True

    def test_failed_instruction_leaves_state(self, make_lcd, spy):
        lcd = make_lcd()
        spy.fail_after = 0
        with pytest.raises(TransportError):
            lcd.set_cursor_visible(True)
        assert lcd.state.cursor_visible is False

    def test_foreign_exception_wrapped(self, delays):
        transport = FlakyTransport()
        lcd = initialize(DisplayConfig(), transport, delay=delays)
        transport.armed = True
        with pytest.raises(TransportError) as exc_info:
            lcd.clear()
        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.primitive == "pulse_enable"

    def test_reinitialize_clears_flag(self, make_lcd, spy):
        lcd = make_lcd()
        spy.fail_after = 0
        with pytest.raises(TransportError):
            lcd.clear()
        spy.fail_after = None
        lcd.initialize()
        assert lcd.needs_reinitialize is False

    def test_operations_refused_until_reinitialized(self, make_lcd, spy):
        """No traffic reaches the bus while the chip state is unknown."""
        lcd = make_lcd()
        spy.fail_after = 0
        with pytest.raises(TransportError):
            lcd.write_char(0x41)
        spy.fail_after = None
        spy.clear()
        with pytest.raises(NotInitializedError, match="re-initialize"):
            lcd.write_str("OK")
        assert spy.events == []
        assert lcd.is_ready is False

        lcd.initialize()
        assert lcd.is_ready
        lcd.write_char(0x41)

    def test_mock_transport_call_order(self, delays):
        """RS is set before the byte is presented and latched."""
        transport = Mock(spec=Transport)
        lcd = initialize(DisplayConfig(bus_width=BusWidth.EIGHT), transport, delay=delays)
        transport.reset_mock()
        lcd.write_char(0x41)
        assert transport.mock_calls == [
            call.set_register_select(True),
            call.write_byte(0x41),
            call.pulse_enable(1),
        ]


# =============================================================================
# Busy Flag Polling
# =============================================================================

class TestBusyFlag:
    """Test the optional busy-flag wait path."""

    @pytest.fixture
    def rw_spy(self):
        return RecordingTransport(rw_wired=True)

    def test_polls_until_clear(self, rw_spy, delays):
        cfg = DisplayConfig(bus_width=BusWidth.EIGHT, use_busy_flag=True, busy_poll_interval_us=10)
        lcd = initialize(cfg, rw_spy, delay=delays)
        delays.calls.clear()
        rw_spy.extend_busy([True, True, False])
        lcd.write_char(0x41)
        assert delays.calls == [10, 10]
        assert rw_spy.primitives().count("busy") == 3

    def test_timeout(self, rw_spy, delays):
        cfg = DisplayConfig(use_busy_flag=True, busy_poll_limit=3)
        lcd = initialize(cfg, rw_spy, delay=delays)
        rw_spy.extend_busy([True] * 5)
        with pytest.raises(BusyFlagTimeoutError):
            lcd.write_char(0x41)
        assert lcd.needs_reinitialize is True
        assert lcd.cursor == (0, 0)
        with pytest.raises(NotInitializedError):
            lcd.write_char(0x42)

    def test_initialization_ignores_busy_flag(self, rw_spy, delays):
        """The busy flag is not valid during reset; fixed delays are used."""
        cfg = DisplayConfig(use_busy_flag=True)
        initialize(cfg, rw_spy, delay=delays)
        assert "busy" not in rw_spy.primitives()
