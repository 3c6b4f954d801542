"""
Instruction Timing Policy
=========================

Static table of settle delays the controller needs after each instruction.
The common wiring ties RW to ground, so the busy flag cannot be read and
the driver must wait a fixed, slightly conservative time instead.

Datasheet values at the nominal 270 kHz oscillator, with ~10% margin:

    Short (most instructions, data writes)   37 us  -> 41 us
    Long  (clear display, return home)     1.52 ms  -> 42 x Short = 1722 us

Initialization uses its own explicit delays (see INIT_DELAYS_US).

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

import time
from enum import Enum
from typing import Callable, Final

# Sleep function signature used throughout the driver: microseconds in
DelayFunc = Callable[[int], None]


class TimingClass(Enum):
    """Delay category attached to every Instruction."""
    SHORT = "short"
    LONG = "long"
    INIT_STEP = "init_step"


SHORT_DELAY_US: Final[int] = 41
LONG_DELAY_US: Final[int] = SHORT_DELAY_US * 42

# Minimum enable pulse width requested from the transport (PW_EH is 450 ns)
ENABLE_PULSE_US: Final[int] = 1

# Explicit delays for the reset-by-instruction sequence
INIT_DELAYS_US: Final[dict[str, int]] = {
    "power_on": 50_000,         # >= 40 ms after Vcc rises to 2.7 V
    "bootstrap_1": 4_500,       # >= 4.1 ms after the first function set
    "bootstrap_2": 150,         # >= 100 us after the second
    "bootstrap_3": SHORT_DELAY_US,
    "interface_4bit": SHORT_DELAY_US,
}

_DELAYS_US: Final[dict[TimingClass, int]] = {
    TimingClass.SHORT: SHORT_DELAY_US,
    TimingClass.LONG: LONG_DELAY_US,
}


def delay_for(timing: TimingClass, explicit_us: int = 0) -> int:
    """
    Microseconds to wait after an instruction of the given class.

    INIT_STEP instructions carry their own delay, passed as explicit_us.
    """
    if timing is TimingClass.INIT_STEP:
        return explicit_us
    return _DELAYS_US[timing]


def sleep_us(microseconds: int) -> None:
    """Blocking delay. time.sleep only guarantees *at least* the duration."""
    if microseconds > 0:
        time.sleep(microseconds / 1_000_000)
