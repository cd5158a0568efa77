import enum
import logging
from dataclasses import dataclass
from typing import Optional


__all__ = ["ConfigurationError", "ParityType", "Phase", "Config",
           "DEFAULT_SYNC_GUARD", "MIN_RECOMMENDED_TICKS_PER_BIT"]


logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    pass


class ParityType(enum.Enum):
    ODD = 0
    EVEN = 1


class Phase(enum.Enum):
    IDLE = 0
    START = 1
    DATA = 2
    PARITY = 3
    STOP = 4


DEFAULT_SYNC_GUARD = 10

# Below this, mid-bit sampling has too little slack for clock mismatch.
MIN_RECOMMENDED_TICKS_PER_BIT = 50


@dataclass(frozen=True)
class Config:
    """Framing and timing for one UART engine.

    ``ticks_per_bit`` is the number of ``tick()`` calls that make up one
    bit period on the wire. ``sync_guard`` is the number of consecutive low
    RX samples needed before the receiver commits to a start bit. It must
    fit within the half period, since the start bit is sampled there; left
    unset it is 10, shortened to the half period for short bits.
    """
    data_bits: int = 8
    parity_enabled: bool = False
    parity_even: bool = False
    stop_bits: int = 1
    ticks_per_bit: int = 100
    sync_guard: Optional[int] = None

    def __post_init__(self):
        for name in ("data_bits", "stop_bits", "ticks_per_bit", "sync_guard"):
            value = getattr(self, name)
            if name == "sync_guard" and value is None:
                # Frozen, so the resolved default has to bypass __setattr__.
                object.__setattr__(self, name,
                                   min(DEFAULT_SYNC_GUARD, self.half_period))
            elif isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(
                    f"{name} must be an integer, not {value!r}")

        for name in ("parity_enabled", "parity_even"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} must be a bool")

        if not 5 <= self.data_bits <= 9:
            raise ConfigurationError(
                f"data_bits must be between 5 and 9, not {self.data_bits}")
        if not 1 <= self.stop_bits <= 2:
            raise ConfigurationError(
                f"stop_bits must be 1 or 2, not {self.stop_bits}")
        if self.ticks_per_bit < 1:
            raise ConfigurationError(
                f"ticks_per_bit must be at least 1, not {self.ticks_per_bit}")
        if self.sync_guard < 1:
            raise ConfigurationError(
                f"sync_guard must be at least 1, not {self.sync_guard}")
        if self.sync_guard > self.half_period:
            raise ConfigurationError(
                f"sync_guard={self.sync_guard} outlasts the half period of "
                f"{self.half_period} ticks")

        if self.ticks_per_bit < MIN_RECOMMENDED_TICKS_PER_BIT:
            logger.warning("ticks_per_bit=%d is below the recommended "
                           "minimum of %d", self.ticks_per_bit,
                           MIN_RECOMMENDED_TICKS_PER_BIT)

    @classmethod
    def from_baud(cls, clk_freq=12000000, baud_rate=19200, **framing):
        # Rates are commonly written as floats, e.g. 12e6.
        if int(baud_rate) <= 0:
            raise ConfigurationError(
                f"baud_rate must be at least 1, not {baud_rate}")
        return cls(ticks_per_bit=int(clk_freq) // int(baud_rate), **framing)

    @property
    def parity_kind(self):
        return ParityType.EVEN if self.parity_even else ParityType.ODD

    @property
    def half_period(self):
        # Used as a divisor, so a one-tick bit still gets a one-tick wait.
        return max(1, self.ticks_per_bit // 2)

    @property
    def sync_window(self):
        return self.sync_guard

    @property
    def frame_bits(self):
        return 1 + self.data_bits + int(self.parity_enabled) + self.stop_bits

    @property
    def max_value(self):
        return (1 << self.data_bits) - 1
