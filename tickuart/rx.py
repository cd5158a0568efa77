import logging
from typing import NamedTuple, Optional

from .params import *


__all__ = ["Frame", "ReceiveEngine"]


logger = logging.getLogger(__name__)


class Frame(NamedTuple):
    data: int
    error: bool


class ReceiveEngine:
    """
    Deserializes RX without oversampling.

    Reception has no external enable, so the receiver drives its own
    BaudTickGenerator. While idle, the generator runs with a half-period
    divisor from the first low sample so that the start bit is sampled at
    its centre; every later bit is sampled one full period after that.
    A low level must also persist for ``config.sync_window`` ticks before
    the receiver commits to a start bit, which rejects short glitches.

    Framing and parity faults are ORed into a single sticky error latch
    which is published alongside the data when the frame completes.
    """
    def __init__(self, config, baud):
        self.config = config
        self.baud = baud

        self.phase = Phase.IDLE
        self.bit_index = 0
        self.stop_count = 0
        self.received_register = 0
        self.running_parity = False
        self.sync_guard = 0
        self.error_latch = False

        self.data_received = 0
        self.error = False

    def tick(self, rx_in) -> Optional[Frame]:
        if self.phase is Phase.IDLE:
            if rx_in:
                self.sync_guard = 0
            else:
                self.sync_guard += 1
                if self.sync_guard >= self.config.sync_window:
                    self.phase = Phase.START

        if self.phase in (Phase.IDLE, Phase.START):
            divisor = self.config.half_period
        else:
            divisor = None

        active = self.phase is not Phase.IDLE or not rx_in
        if not self.baud.advance(active, divisor):
            return None

        if self.phase is Phase.START:
            # A start bit that is gone by its centre is a framing fault,
            # but the frame is still clocked through to the end.
            if rx_in:
                self.error_latch = True
            self.phase = Phase.DATA

        elif self.phase is Phase.DATA:
            if rx_in:
                self.received_register |= 1 << self.bit_index
            self.running_parity ^= bool(rx_in)
            self.bit_index += 1
            if self.bit_index == self.config.data_bits:
                if self.config.parity_enabled:
                    self.phase = Phase.PARITY
                else:
                    self.phase = Phase.STOP

        elif self.phase is Phase.PARITY:
            if self.config.parity_even:
                mismatch = bool(rx_in) == self.running_parity
            else:
                mismatch = bool(rx_in) != self.running_parity
            self.error_latch |= mismatch
            self.phase = Phase.STOP

        elif self.phase is Phase.STOP:
            if not rx_in:
                self.error_latch = True
            self.stop_count += 1
            if self.stop_count == self.config.stop_bits:
                return self._publish()

        return None

    def _publish(self):
        self.data_received = self.received_register
        self.error = self.error_latch
        logger.debug("received frame data=0x%02x error=%s",
                     self.data_received, self.error)

        self._clear()
        return Frame(self.data_received, self.error)

    def _clear(self):
        self.phase = Phase.IDLE
        self.bit_index = 0
        self.stop_count = 0
        self.received_register = 0
        self.running_parity = False
        self.sync_guard = 0
        self.error_latch = False

    def reset(self):
        if self.phase is not Phase.IDLE:
            logger.debug("reset abandoned receive in %s", self.phase.name)

        self._clear()
        self.baud.reset()
