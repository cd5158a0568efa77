import logging
from dataclasses import dataclass
from typing import Optional

from .baud import BaudTickGenerator
from .params import *
from .rx import *
from .tx import *


__all__ = ["TickResult", "UartEngine"]


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickResult:
    tx_out: bool
    received: Optional[Frame] = None


class UartEngine:
    """
    Full-duplex UART advanced one clock tick at a time.

    Transmit and receive are independent state machines that share nothing
    but the call to ``tick()``; each direction owns its own baud generator.
    The caller supplies the RX sample for a tick with ``set_rx()`` before
    calling ``tick()``. Wiring ``set_rx(engine.tx_out)`` every tick gives a
    loopback.
    """
    def __init__(self, config):
        self.config = config

        self._tx_baud = BaudTickGenerator(config.ticks_per_bit)
        self._rx_baud = BaudTickGenerator(config.ticks_per_bit)

        self.transmitter = TransmitEngine(config)
        self.receiver = ReceiveEngine(config, self._rx_baud)

        self._rx_in = True

    @property
    def tx_out(self):
        return self.transmitter.tx_out

    @property
    def rx_in(self):
        return self._rx_in

    @property
    def tx_busy(self):
        return self.transmitter.busy

    @property
    def data_received(self):
        return self.receiver.data_received

    @property
    def error(self):
        return self.receiver.error

    def set_rx(self, level):
        self._rx_in = bool(level)

    def request_send(self, value):
        self.transmitter.request_send(value)

    def tick(self, reset=False):
        # Reset has priority over anything a baud edge would do this tick.
        if reset:
            self.reset()
            return TickResult(self.tx_out)

        received = self.receiver.tick(self._rx_in)

        baud_edge = self._tx_baud.advance(self.transmitter.busy)
        tx_out = self.transmitter.tick(baud_edge)

        return TickResult(tx_out, received)

    def reset(self):
        logger.debug("reset")
        self.transmitter.reset()
        self.receiver.reset()
        self._tx_baud.reset()
