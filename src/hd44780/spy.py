"""
Recording Transport
===================

A Transport that talks to no hardware. It records every primitive call in
order, so tests (and dry runs) can check exactly what would have reached
the bus, and it can be told to fail at a chosen point to exercise error
paths.

Example:
    >>> spy = RecordingTransport()
    >>> lcd = initialize(DisplayConfig(bus_width=8), spy, delay=lambda us: None)
    >>> lcd.write_char(0x41)
    >>> spy.latched()[-1]
    Latch(data=True, width=8, value=65)

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Optional

from hd44780.errors import TransportError
from hd44780.transport import Transport


class BusEvent(NamedTuple):
    """One recorded primitive call."""
    primitive: str
    value: Optional[int]


class Latch(NamedTuple):
    """Bits latched by one enable pulse: register, transfer width, value."""
    data: bool
    width: int
    value: int


@dataclass
class RecordingTransport(Transport):
    """
    Transport double that records primitive calls.

    Attributes:
        events: Every primitive call, in order
        fail_after: Raise TransportError on the primitive call with this
            zero-based index (counted over all primitives); None never fails
        busy_responses: Values returned by successive probe_busy_flag() calls;
            once exhausted the flag reads as clear
        rw_wired: Report busy-flag support
    """

    events: list[BusEvent] = field(default_factory=list)
    fail_after: Optional[int] = None
    busy_responses: list[bool] = field(default_factory=list)
    rw_wired: bool = False

    def _record(self, primitive: str, value: Optional[int] = None) -> None:
        if self.fail_after is not None and len(self.events) >= self.fail_after:
            raise TransportError("injected failure", primitive=primitive)
        self.events.append(BusEvent(primitive, value))

    def set_register_select(self, data: bool) -> None:
        self._record("rs", int(bool(data)))

    def write_nibble(self, value: int) -> None:
        self._record("nibble", value & 0x0F)

    def write_byte(self, value: int) -> None:
        self._record("byte", value & 0xFF)

    def pulse_enable(self, min_width_us: int) -> None:
        self._record("enable", min_width_us)

    @property
    def supports_busy_flag(self) -> bool:
        return self.rw_wired

    def probe_busy_flag(self) -> bool:
        if not self.rw_wired:
            return super().probe_busy_flag()
        self._record("busy")
        return self.busy_responses.pop(0) if self.busy_responses else False

    # =========================================================================
    # Inspection Helpers
    # =========================================================================

    def latched(self) -> list[Latch]:
        """Values presented at each enable pulse, in order."""
        latches = []
        rs = False
        pending: Optional[tuple[int, int]] = None
        for event in self.events:
            if event.primitive == "rs":
                rs = bool(event.value)
            elif event.primitive == "nibble":
                pending = (4, event.value)
            elif event.primitive == "byte":
                pending = (8, event.value)
            elif event.primitive == "enable" and pending is not None:
                latches.append(Latch(rs, pending[0], pending[1]))
        return latches

    def bytes_written(self, data: Optional[bool] = None) -> list[int]:
        """
        Reassemble full bytes from the latched transfers.

        Nibble transfers are paired high-then-low. Call this only on a trace
        that contains no single-nibble bootstrap steps (use clear() first).

        Args:
            data: Keep only data (True) or command (False) bytes; None keeps all
        """
        result = []
        high: Optional[Latch] = None
        for latch in self.latched():
            if latch.width == 8:
                value, rs = latch.value, latch.data
            elif high is None:
                high = latch
                continue
            else:
                value, rs = (high.value << 4) | latch.value, latch.data
                high = None
            if data is None or rs == data:
                result.append(value)
        return result

    def primitives(self) -> list[str]:
        return [e.primitive for e in self.events]

    def clear(self) -> None:
        """Forget everything recorded so far."""
        self.events.clear()

    def extend_busy(self, responses: Iterable[bool]) -> None:
        self.busy_responses.extend(responses)
