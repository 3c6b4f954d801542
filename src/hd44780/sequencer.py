"""
Initialization Sequencer
========================

Brings the controller from an unknown power-on state to a known
configuration using the datasheet's "initialization by instruction"
procedure. The chip may be in 8-bit mode, 4-bit mode, or half-way through
a 4-bit transfer when the host starts, so the sequence has to work from
all three:

    1. wait >= 40 ms after power-on
    2. function set 0x3x, wait >= 4.1 ms
    3. function set 0x3x, wait >= 100 us
    4. function set 0x3x                      (chip is now in 8-bit mode)
    5. function set 0x2x, single nibble      (4-bit targets only)
    6. function set with DL/N/F
    7. display off
    8. clear display
    9. entry mode set
   10. display on

The three identical bootstrap writes look redundant but are the mandated
recovery path; they are always sent as 8-bit-pattern writes regardless of
the target width.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

import logging
from enum import Enum
from typing import NamedTuple, Optional

from hd44780 import instructions
from hd44780.config import BusWidth, DisplayConfig
from hd44780.instructions import Instruction
from hd44780.timing import INIT_DELAYS_US, DelayFunc, delay_for
from hd44780.transport import BusWriter

logger = logging.getLogger(__name__)


class InitState(Enum):
    """States of the initialization state machine."""
    IDLE = "idle"
    POWER_ON_DELAY = "power_on_delay"
    BOOTSTRAP = "bootstrap"
    INTERFACE_4BIT = "interface_4bit"
    FUNCTION_SET = "function_set"
    DISPLAY_OFF = "display_off"
    DISPLAY_CLEAR = "display_clear"
    ENTRY_MODE_SET = "entry_mode_set"
    DISPLAY_ON = "display_on"
    READY = "ready"
    FAILED = "failed"


class InitStep(NamedTuple):
    """One step of the sequence: state entered, instruction, delay afterwards."""
    state: InitState
    instruction: Optional[Instruction]
    delay_us: int


class InitSequencer:
    """
    One-shot runner for the initialization sequence.

    The sequencer owns no chip state of its own; on success the caller
    populates its shadow state from the configuration. Any exception moves
    the sequencer to FAILED and propagates unchanged.

    Example:
        >>> seq = InitSequencer(writer, config, sleep_us)
        >>> seq.run()
        >>> seq.state
        <InitState.READY: 'ready'>
    """

    def __init__(self, writer: BusWriter, config: DisplayConfig, delay: DelayFunc):
        self._writer = writer
        self._config = config
        self._delay = delay
        self.state = InitState.IDLE

    def steps(self) -> list[InitStep]:
        """Full ordered step list for the configured bus width."""
        cfg = self._config
        four_bit = cfg.bus_width is BusWidth.FOUR

        steps = [InitStep(InitState.POWER_ON_DELAY, None, INIT_DELAYS_US["power_on"])]
        for key in ("bootstrap_1", "bootstrap_2", "bootstrap_3"):
            delay_us = INIT_DELAYS_US[key]
            steps.append(InitStep(
                InitState.BOOTSTRAP,
                instructions.bootstrap_function_set(delay_us, nibble_only=four_bit),
                delay_us,
            ))
        if four_bit:
            delay_us = INIT_DELAYS_US["interface_4bit"]
            steps.append(InitStep(
                InitState.INTERFACE_4BIT, instructions.interface_4bit(delay_us), delay_us,
            ))

        tail = [
            (InitState.FUNCTION_SET,
             instructions.function_set(cfg.bus_width, cfg.two_line_mode, cfg.font)),
            (InitState.DISPLAY_OFF, instructions.display_control(False, False, False)),
            (InitState.DISPLAY_CLEAR, instructions.clear_display()),
            (InitState.ENTRY_MODE_SET,
             instructions.entry_mode_set(cfg.entry_increment, cfg.entry_shift)),
            (InitState.DISPLAY_ON,
             instructions.display_control(True, cfg.cursor_visible, cfg.cursor_blink)),
        ]
        for state, instruction in tail:
            steps.append(InitStep(state, instruction, delay_for(instruction.timing)))
        return steps

    def run(self) -> None:
        """
        Execute every step in order, ending in READY.

        Raises:
            TransportError: A bus primitive failed; state becomes FAILED
        """
        logger.debug(
            "initializing %s display, %d-bit bus", self._config.geometry,
            int(self._config.bus_width),
        )
        try:
            for step in self.steps():
                self.state = step.state
                if step.instruction is not None:
                    self._writer.send(step.instruction)
                self._delay(step.delay_us)
        except Exception:
            logger.debug("initialization failed in state %s", self.state.value)
            self.state = InitState.FAILED
            raise
        self.state = InitState.READY
