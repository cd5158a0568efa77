import logging
from collections import deque
from contextlib import nullcontext

from amaranth.sim import Simulator

from .gateware import Uart
from .rx import Frame


__all__ = ["frame_budget", "loopback", "simulate"]


logger = logging.getLogger(__name__)


def frame_budget(config, count):
    """Upper bound on the ticks a loopback of ``count`` values can take."""
    # Each frame also spends one period in Idle before its start bit.
    return (count + 1) * (config.frame_bits + 2) * config.ticks_per_bit


def loopback(uart, payload, *, probe=None, timeout=None):
    """Send ``payload`` through a UartEngine with TX wired to RX.

    A value is requested on the first tick the transmitter is idle. Returns
    the received frames in order. ``probe`` is called with every
    TickResult.
    """
    pending = deque(payload)
    count = len(pending)
    if timeout is None:
        timeout = frame_budget(uart.config, count)

    frames = []
    ticks = 0
    while len(frames) < count:
        if ticks == timeout:
            raise RuntimeError(f"loopback timed out after {timeout} ticks "
                               f"with {len(frames)} of {count} frames")

        if pending and not uart.tx_busy:
            uart.request_send(pending.popleft())

        uart.set_rx(uart.tx_out)
        result = uart.tick()
        ticks += 1

        if probe is not None:
            probe(result)
        if result.received is not None:
            frames.append(result.received)

    logger.debug("loopback of %d frames took %d ticks", count, ticks)
    return frames


def simulate(config, payload, *, vcd_file=None, gtkw_file=None,
             timeout=None):
    """Run the gateware twin of UartEngine in loopback.

    Uses the same send schedule as ``loopback()``. Returns the TX level
    after every clock cycle and the received frames.
    """
    dut = Uart(config)
    sim = Simulator(dut)
    sim.add_clock(1.0 / 12e6)

    pending = deque(payload)
    count = len(pending)
    if timeout is None:
        timeout = frame_budget(config, count)

    tx_levels = []
    frames = []

    async def testbench(ctx):
        while len(frames) < count:
            if len(tx_levels) == timeout:
                raise RuntimeError(f"simulation timed out after {timeout} "
                                   f"cycles with {len(frames)} of {count} "
                                   f"frames")

            if pending and ctx.get(dut.send_ready):
                ctx.set(dut.send_data, pending.popleft())
                ctx.set(dut.send, 1)
            else:
                ctx.set(dut.send, 0)

            ctx.set(dut.rx, ctx.get(dut.tx))
            await ctx.tick()

            tx_levels.append(bool(ctx.get(dut.tx)))
            if ctx.get(dut.recv_valid):
                frames.append(Frame(ctx.get(dut.recv_data),
                                    bool(ctx.get(dut.recv_error))))

    sim.add_testbench(testbench)

    if vcd_file is not None:
        trace = sim.write_vcd(vcd_file, gtkw_file)
    else:
        trace = nullcontext()

    with trace:
        sim.run()

    return tx_levels, frames
