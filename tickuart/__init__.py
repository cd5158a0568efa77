from .baud import BaudTickGenerator
from .core import TickResult, UartEngine
from .params import (Config, ConfigurationError, MIN_RECOMMENDED_TICKS_PER_BIT,
                     ParityType, Phase)
from .rx import Frame, ReceiveEngine
from .tx import Busy, TransmitEngine
