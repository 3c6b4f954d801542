"""
Transport Capability
====================

The driver core never touches pins or buses directly. It talks to a
Transport: a small set of primitives that present bits to the controller
and strobe the enable line. Bit-banged GPIO (4-bit or 8-bit) and I2C
port-expander backpacks are all implementations of the same interface.

Required primitives
-------------------
- set_register_select(data): RS low for commands, high for data
- write_nibble(value): present 4 bits on DB7-DB4
- write_byte(value): present 8 bits on DB7-DB0
- pulse_enable(min_width_us): strobe E, holding it high at least min_width_us

Optional primitives (RW wired)
------------------------------
- read_byte()
- probe_busy_flag()

A primitive that fails should raise TransportError. BusWriter wraps any
other exception raised by a primitive into TransportError, chaining the
original as its cause.

A Transport instance is owned by exactly one Controller. Sharing it would
interleave bus cycles and corrupt the chip state.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

import logging
from abc import ABC, abstractmethod

from hd44780.config import BusWidth
from hd44780.errors import HD44780Error, TransportError
from hd44780.instructions import Instruction
from hd44780.timing import ENABLE_PULSE_US

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract bus capability consumed by the controller."""

    @abstractmethod
    def set_register_select(self, data: bool) -> None:
        """Select the data register (True) or instruction register (False)."""

    @abstractmethod
    def write_nibble(self, value: int) -> None:
        """Present the low 4 bits of value on DB7-DB4."""

    @abstractmethod
    def write_byte(self, value: int) -> None:
        """Present value on DB7-DB0."""

    @abstractmethod
    def pulse_enable(self, min_width_us: int) -> None:
        """Strobe E; return only after it has been high for min_width_us."""

    @property
    def supports_busy_flag(self) -> bool:
        """True if the RW line is wired and probe_busy_flag() works."""
        return False

    def read_byte(self) -> int:
        raise NotImplementedError(f"{type(self).__name__} cannot read from the controller")

    def probe_busy_flag(self) -> bool:
        raise NotImplementedError(f"{type(self).__name__} cannot read the busy flag")


class BusWriter:
    """
    Puts Instructions on the bus through a Transport.

    In 8-bit mode each instruction is one byte transfer. In 4-bit mode it is
    two nibble transfers, high nibble first, each latched by its own enable
    pulse. Bootstrap steps flagged nibble_only send just the high nibble.

    BusWriter performs no delays; settle time is the caller's job.
    """

    def __init__(self, transport: Transport, bus_width: BusWidth):
        self._transport = transport
        self._bus_width = bus_width

    @property
    def transport(self) -> Transport:
        return self._transport

    def send(self, instruction: Instruction) -> None:
        """
        Issue one instruction.

        Raises:
            TransportError: A primitive failed; the bus cycle is incomplete
        """
        logger.debug("bus: %s", instruction)
        opcode = instruction.opcode
        self._call("set_register_select", instruction.is_data)
        if self._bus_width is BusWidth.EIGHT and not instruction.nibble_only:
            self._call("write_byte", opcode)
            self._call("pulse_enable", ENABLE_PULSE_US)
        elif self._bus_width is BusWidth.EIGHT:
            # DB3-DB0 are don't-care for the bootstrap function sets
            self._call("write_byte", opcode & 0xF0)
            self._call("pulse_enable", ENABLE_PULSE_US)
        else:
            self._call("write_nibble", (opcode >> 4) & 0x0F)
            self._call("pulse_enable", ENABLE_PULSE_US)
            if not instruction.nibble_only:
                self._call("write_nibble", opcode & 0x0F)
                self._call("pulse_enable", ENABLE_PULSE_US)

    def busy(self) -> bool:
        """Read the busy flag through the transport."""
        return bool(self._call("probe_busy_flag"))

    def _call(self, primitive: str, *args):
        try:
            return getattr(self._transport, primitive)(*args)
        except HD44780Error:
            raise
        except Exception as e:
            raise TransportError(str(e) or type(e).__name__, primitive=primitive) from e
