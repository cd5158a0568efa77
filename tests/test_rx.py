import pytest

from tickuart.baud import *
from tickuart.params import *
from tickuart.rx import *


def parity_level(config, value):
    ones = bin(value).count("1") % 2 == 1
    return not ones if config.parity_even else ones


def frame_levels(config, value, *, parity=None, stop=True):
    """One line level per bit period for a frame carrying ``value``."""
    levels = [False]
    levels += [bool((value >> i) & 1) for i in range(config.data_bits)]
    if config.parity_enabled:
        levels.append(parity_level(config, value) if parity is None
                      else parity)
    levels += [stop] * config.stop_bits
    return levels


@pytest.fixture
def receiver(config):
    return ReceiveEngine(config, BaudTickGenerator(config.ticks_per_bit))


@pytest.fixture
def hold(receiver):
    """Hold RX at ``level`` for ``ticks`` ticks, returning any frames
       completed meanwhile."""
    def task(level, ticks):
        frames = []
        for _ in range(ticks):
            frame = receiver.tick(level)
            if frame is not None:
                frames.append(frame)
        return frames

    return task


@pytest.fixture
def write_data(config, hold):
    """Simulate transmitting a word to the receiver, followed by one idle
       bit period."""
    def task(value, **kwargs):
        frames = []
        for level in frame_levels(config, value, **kwargs):
            frames += hold(level, config.ticks_per_bit)
        frames += hold(True, config.ticks_per_bit)
        return frames

    return task


@pytest.mark.parametrize("value", (0xAA, 0x55, 0x00, 0xFF))
def test_receive(receiver, write_data, value):
    assert write_data(value) == [Frame(value, False)]
    assert receiver.data_received == value
    assert receiver.error is False
    assert receiver.phase == Phase.IDLE


@pytest.mark.config(ticks_per_bit=16)
def test_back_to_back(receiver, write_data):
    frames = []
    for value in (0x01, 0x80, 0x7E):
        frames += write_data(value)

    assert frames == [Frame(0x01, False), Frame(0x80, False),
                      Frame(0x7E, False)]


@pytest.mark.parametrize("data_bits", (5, 6, 7, 8, 9))
def test_data_width(data_bits):
    config = Config(data_bits=data_bits, ticks_per_bit=20)
    receiver = ReceiveEngine(config, BaudTickGenerator(20))

    frames = []
    for level in frame_levels(config, config.max_value) + [True]:
        for _ in range(config.ticks_per_bit):
            frame = receiver.tick(level)
            if frame is not None:
                frames.append(frame)

    assert frames == [Frame(config.max_value, False)]


@pytest.mark.config(data_bits=7, parity_enabled=True, parity_even=False)
@pytest.mark.parametrize("value", (0, 0b0101010, 0b1010101, 127))
def test_odd_parity(write_data, value):
    assert write_data(value) == [Frame(value, False)]


@pytest.mark.config(data_bits=7, parity_enabled=True, parity_even=True)
@pytest.mark.parametrize("value", (0, 0b0101010, 0b1010101, 127))
def test_even_parity(write_data, value):
    assert write_data(value) == [Frame(value, False)]


@pytest.mark.parametrize("parity_even", (False, True))
@pytest.mark.parametrize("value", (0, 0b0101010, 0b1010101, 127))
def test_parity_error(parity_even, value):
    config = Config(data_bits=7, parity_enabled=True, parity_even=parity_even)
    receiver = ReceiveEngine(config, BaudTickGenerator(config.ticks_per_bit))

    bad_parity = not parity_level(config, value)
    frames = []
    for level in frame_levels(config, value, parity=bad_parity) + [True]:
        for _ in range(config.ticks_per_bit):
            frame = receiver.tick(level)
            if frame is not None:
                frames.append(frame)

    # A parity fault does not corrupt the data field.
    assert frames == [Frame(value, True)]


@pytest.mark.config(ticks_per_bit=16)
def test_framing_error(receiver, write_data):
    frames = write_data(0x55, stop=False)
    assert frames == [Frame(0x55, True)]
    assert receiver.error is True


@pytest.mark.config(stop_bits=2)
def test_second_stop_bit_checked(config, receiver, hold):
    levels = frame_levels(config, 0x0F)
    levels[-1] = False

    frames = []
    for level in levels:
        frames += hold(level, config.ticks_per_bit)
    frames += hold(True, config.ticks_per_bit)

    assert frames == [Frame(0x0F, True)]


def test_error_cleared_by_next_frame(receiver, write_data):
    assert write_data(0x33, stop=False)[0] == Frame(0x33, True)
    # Let any frame started by the low stop bit run out.
    receiver.reset()

    assert write_data(0x44) == [Frame(0x44, False)]
    assert receiver.error is False


def test_output_holds_until_next_frame(receiver, write_data, hold):
    write_data(0x9C)
    hold(True, 5000)
    assert receiver.data_received == 0x9C
    assert receiver.error is False


def test_glitch_rejected(receiver, hold):
    # Shorter than the sync guard window.
    assert hold(False, 2) == []
    assert receiver.phase == Phase.IDLE
    assert receiver.sync_guard == 2

    assert hold(True, 1) == []
    assert receiver.phase == Phase.IDLE
    assert receiver.sync_guard == 0
    assert receiver.baud.counter == 0

    assert hold(True, 5000) == []
    assert receiver.phase == Phase.IDLE


def test_guard_commits_start(config, receiver, hold):
    hold(False, config.sync_window - 1)
    assert receiver.phase == Phase.IDLE

    hold(False, 1)
    assert receiver.phase == Phase.START


@pytest.mark.config(ticks_per_bit=100, sync_guard=50)
def test_full_guard_window_required(config, receiver, hold):
    # A glitch shorter than the configured guard never leaves idle, even
    # when it is long.
    assert hold(False, 49) == []
    assert receiver.phase == Phase.IDLE
    assert hold(True, 5000) == []
    assert receiver.phase == Phase.IDLE

    # The whole guard commits and samples the start bit on the same tick.
    hold(False, 50)
    assert receiver.phase == Phase.DATA


def test_start_sampled_mid_bit(config, receiver, hold):
    hold(False, config.half_period - 1)
    assert receiver.phase == Phase.START

    # The half-period edge samples the start bit and moves on.
    hold(False, 1)
    assert receiver.phase == Phase.DATA
    assert receiver.baud.counter == 0

    # Data bits are then a full period apart.
    hold(True, config.ticks_per_bit - 1)
    assert receiver.bit_index == 0
    hold(True, 1)
    assert receiver.bit_index == 1
    assert receiver.received_register == 1


def test_false_start_reported(config, receiver, hold):
    # Low long enough to pass the guard, but gone by the centre of the bit.
    hold(False, config.sync_window + 5)
    assert receiver.phase == Phase.START

    frames = hold(True, config.ticks_per_bit * (config.frame_bits + 1))
    assert frames == [Frame(config.max_value, True)]
    assert receiver.phase == Phase.IDLE


def test_idle_is_stable(receiver, hold):
    for _ in range(10):
        assert hold(True, 1000) == []
        assert receiver.phase == Phase.IDLE
        assert receiver.baud.counter == 0


def test_reset_mid_frame(config, receiver, hold):
    levels = frame_levels(config, 0xC3)
    for level in levels[:4]:
        hold(level, config.ticks_per_bit)
    assert receiver.phase == Phase.DATA

    receiver.reset()
    assert receiver.phase == Phase.IDLE
    assert receiver.bit_index == 0
    assert receiver.received_register == 0
    assert receiver.error_latch is False
    assert receiver.baud.counter == 0

    # Remainder of the abandoned frame never completes.
    frames = []
    for level in levels[4:]:
        frames += hold(level, config.ticks_per_bit)
    frames += hold(True, config.ticks_per_bit * 2)
    assert all(f != Frame(0xC3, False) for f in frames)
    assert receiver.data_received == 0
