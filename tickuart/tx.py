import logging

from .params import *


__all__ = ["Busy", "TransmitEngine"]


logger = logging.getLogger(__name__)


class Busy(Exception):
    """A send was requested while the transmitter was not idle."""


class TransmitEngine:
    """
    Serializes one value at a time onto TX. This module requires a baud
    edge from a BaudTickGenerator which runs while ``busy`` to work as
    intended; between edges the line holds its value.
    """
    def __init__(self, config):
        self.config = config

        self.tx_out = True
        self.phase = Phase.IDLE
        self.bit_index = 0
        self.stop_count = 0
        self.shift_register = 0
        self.running_parity = False

        self._send_pending = False
        self._data_to_send = 0

    @property
    def busy(self):
        return self._send_pending or self.phase is not Phase.IDLE

    def request_send(self, value):
        if self.busy:
            raise Busy("transmitter is not idle")
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{value!r} is not an integer")
        if not 0 <= value <= self.config.max_value:
            raise ValueError(f"{value!r} does not fit in "
                             f"{self.config.data_bits} data bits")

        self._data_to_send = value
        self._send_pending = True
        logger.debug("send of 0x%02x accepted", value)

    def parity_bit(self):
        if self.config.parity_even:
            return not self.running_parity
        return self.running_parity

    def tick(self, baud_edge):
        if not baud_edge:
            return self.tx_out

        if self.phase is Phase.IDLE:
            self.tx_out = True
            self.bit_index = 0
            self.stop_count = 0
            self.running_parity = False
            if self._send_pending:
                self._send_pending = False
                self.phase = Phase.START

        elif self.phase is Phase.START:
            self.tx_out = False
            # The value is captured here, not at request time.
            self.shift_register = self._data_to_send
            self.phase = Phase.DATA

        elif self.phase is Phase.DATA:
            bit = bool((self.shift_register >> self.bit_index) & 1)
            self.tx_out = bit
            self.running_parity ^= bit
            self.bit_index += 1
            if self.bit_index == self.config.data_bits:
                if self.config.parity_enabled:
                    self.phase = Phase.PARITY
                else:
                    self.phase = Phase.STOP

        elif self.phase is Phase.PARITY:
            self.tx_out = self.parity_bit()
            self.phase = Phase.STOP

        elif self.phase is Phase.STOP:
            self.tx_out = True
            self.stop_count += 1
            if self.stop_count == self.config.stop_bits:
                self.phase = Phase.IDLE

        return self.tx_out

    def reset(self):
        if self.busy:
            logger.debug("reset abandoned transmit in %s", self.phase.name)

        self.tx_out = True
        self.phase = Phase.IDLE
        self.bit_index = 0
        self.stop_count = 0
        self.shift_register = 0
        self.running_parity = False
        self._send_pending = False
