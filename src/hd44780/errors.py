"""
HD44780 Driver Error Hierarchy
==============================

This module defines the exception hierarchy for the whole driver.
All exceptions inherit from HD44780Error, allowing callers to catch
every driver-related error with a single except clause if desired.

Exception Hierarchy
-------------------
HD44780Error (base)
├── TransportError - a bus primitive failed (never retried)
├── InvalidAddressError - row/column/slot/address outside configured bounds
│   └── InvalidGlyphError - malformed CGRAM glyph pattern
├── InvalidConfigurationError - contradictory construction-time options
├── NotInitializedError - operation issued before Ready or after Failed
└── BusyFlagTimeoutError - busy-flag polling exceeded its poll limit

Propagation Policy
------------------
Address and configuration errors are detected purely in software and are
raised before any bus traffic happens. Transport and timeout errors are
surfaced immediately; the driver never retries them because the chip's
internal state after a partial bus cycle is unknown. Recovery is always an
explicit re-initialization by the caller.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class HD44780Error(Exception):
    """
    Base exception for all driver errors.

        try:
            lcd.write_str("Hello")
        except HD44780Error as e:
            print(f"LCD error: {e}")
    """
    pass


# =============================================================================
# Bus Errors
# =============================================================================

class TransportError(HD44780Error):
    """
    A transport primitive (register select, data write, enable pulse) failed.

    The instruction in progress is aborted. Controller state is left as it
    was after the last instruction that completed.

    Attributes:
        primitive: Name of the primitive that failed (when known)
    """

    def __init__(self, message: str, primitive: Optional[str] = None):
        self.primitive = primitive
        if primitive:
            message = f"{primitive}: {message}"
        super().__init__(message)


class BusyFlagTimeoutError(HD44780Error):
    """
    The busy flag stayed set for longer than the poll limit allows.

    Usually means the RW line is miswired or not wired at all.
    """

    def __init__(self, polls: int):
        self.polls = polls
        super().__init__(f"busy flag still set after {polls} polls")


# =============================================================================
# Validation Errors
# =============================================================================

class InvalidAddressError(HD44780Error, ValueError):
    """
    Requested row, column, CGRAM slot or raw address is out of range.

    Raised before any transport primitive is invoked, so the controller
    state is unchanged.
    """
    pass


class InvalidGlyphError(InvalidAddressError):
    """Glyph pattern has the wrong number of rows for the configured font."""
    pass


class InvalidConfigurationError(HD44780Error, ValueError):
    """
    Construction-time contradiction in the display configuration.

    Examples:
        - 5x10 font combined with a 2-line or 4-line display
        - row base table length not matching the line count
        - visible columns running past the DDRAM span of a row
    """
    pass


# =============================================================================
# Lifecycle Errors
# =============================================================================

class NotInitializedError(HD44780Error):
    """
    Operation attempted on a controller that is not in the Ready state.

    Either initialize() was never called, or the last initialization
    attempt failed part-way through.
    """

    def __init__(self, operation: str, reason: str = "controller is not initialized"):
        self.operation = operation
        super().__init__(f"cannot {operation}: {reason}")
