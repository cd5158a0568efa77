from amaranth import *

from .params import *


__all__ = ["ShiftOut", "ShiftIn", "Uart"]


class ShiftOut(Elaboratable):
    """
    Gateware counterpart of TransmitEngine. Framing is fixed at elaboration
    time by ``config``; the baud divider runs only while a send is pending
    or a frame is in flight.
    """
    def __init__(self, config):
        self.config = config

        self.tx = Signal(1, init=1)
        self.phase = Signal(Phase)

        # Send request interface
        self.send = Signal(1)
        self.ready = Signal(1)
        self.data = Signal(config.data_bits)

    def elaborate(self, platform):
        cfg = self.config

        accept = Signal(1)
        busy = Signal(1)
        baud_edge = Signal(1)

        pending = Signal(1)
        data_to_send = Signal(cfg.data_bits)
        shreg = Signal(cfg.data_bits)
        bit_index = Signal(range(cfg.data_bits + 1))
        stop_count = Signal(range(cfg.stop_bits + 1))
        parity = Signal(1)
        counter = Signal(range(cfg.ticks_per_bit))

        ###

        m = Module()

        m.d.comb += [
            self.ready.eq((self.phase == Phase.IDLE) & ~pending),
            accept.eq(self.send & self.ready),
            busy.eq(~self.ready | accept),
            baud_edge.eq(busy & (counter == cfg.ticks_per_bit - 1)),
        ]

        with m.If(busy & ~baud_edge):
            m.d.sync += counter.eq(counter + 1)
        with m.Else():
            m.d.sync += counter.eq(0)

        with m.If(accept):
            m.d.sync += [
                pending.eq(1),
                data_to_send.eq(self.data),
            ]

        with m.If(baud_edge):
            with m.Switch(self.phase):
                with m.Case(Phase.IDLE):
                    m.d.sync += [
                        self.tx.eq(1),
                        bit_index.eq(0),
                        stop_count.eq(0),
                        parity.eq(0),
                    ]
                    # Must come after the accept above so the flag clears.
                    with m.If(pending | accept):
                        m.d.sync += [
                            pending.eq(0),
                            self.phase.eq(Phase.START),
                        ]

                with m.Case(Phase.START):
                    m.d.sync += [
                        self.tx.eq(0),
                        shreg.eq(data_to_send),
                        self.phase.eq(Phase.DATA),
                    ]

                with m.Case(Phase.DATA):
                    bit = shreg.bit_select(bit_index, 1)
                    m.d.sync += [
                        self.tx.eq(bit),
                        parity.eq(parity ^ bit),
                        bit_index.eq(bit_index + 1),
                    ]
                    with m.If(bit_index == cfg.data_bits - 1):
                        if cfg.parity_enabled:
                            m.d.sync += self.phase.eq(Phase.PARITY)
                        else:
                            m.d.sync += self.phase.eq(Phase.STOP)

                with m.Case(Phase.PARITY):
                    if cfg.parity_even:
                        m.d.sync += self.tx.eq(~parity)
                    else:
                        m.d.sync += self.tx.eq(parity)
                    m.d.sync += self.phase.eq(Phase.STOP)

                with m.Case(Phase.STOP):
                    m.d.sync += [
                        self.tx.eq(1),
                        stop_count.eq(stop_count + 1),
                    ]
                    with m.If(stop_count == cfg.stop_bits - 1):
                        m.d.sync += self.phase.eq(Phase.IDLE)

        return m


class ShiftIn(Elaboratable):
    """
    Gateware counterpart of ReceiveEngine. ``valid`` strobes for one cycle
    when ``data`` and ``error`` have been updated with a completed frame.
    """
    def __init__(self, config):
        self.config = config

        self.rx = Signal(1, init=1)
        self.phase = Signal(Phase)

        self.valid = Signal(1)
        self.data = Signal(config.data_bits)
        self.error = Signal(1)

    def elaborate(self, platform):
        cfg = self.config

        idle = Signal(1)
        active = Signal(1)
        baud_edge = Signal(1)

        shreg = Signal(cfg.data_bits)
        bit_index = Signal(range(cfg.data_bits + 1))
        stop_count = Signal(range(cfg.stop_bits + 1))
        parity = Signal(1)
        error_latch = Signal(1)
        guard = Signal(range(cfg.sync_window + 1))
        counter = Signal(range(cfg.ticks_per_bit))

        ###

        m = Module()

        m.d.comb += [
            idle.eq(self.phase == Phase.IDLE),
            active.eq(~idle | ~self.rx),
        ]

        # Until the start bit has been sampled, the divider runs at half
        # period so the sample lands mid-bit.
        with m.If(idle | (self.phase == Phase.START)):
            m.d.comb += baud_edge.eq(
                active & (counter == cfg.half_period - 1))
        with m.Else():
            m.d.comb += baud_edge.eq(
                active & (counter == cfg.ticks_per_bit - 1))

        with m.If(active & ~baud_edge):
            m.d.sync += counter.eq(counter + 1)
        with m.Else():
            m.d.sync += counter.eq(0)

        m.d.sync += self.valid.eq(0)

        with m.Switch(self.phase):
            with m.Case(Phase.IDLE):
                with m.If(self.rx):
                    m.d.sync += guard.eq(0)
                with m.Else():
                    m.d.sync += guard.eq(guard + 1)
                    # The guard window never outlasts the half period, so
                    # an edge here means the start bit is confirmed and
                    # sampled (low) on the same cycle.
                    with m.If(baud_edge):
                        m.d.sync += self.phase.eq(Phase.DATA)
                    with m.Elif(guard + 1 >= cfg.sync_window):
                        m.d.sync += self.phase.eq(Phase.START)

            with m.Case(Phase.START):
                with m.If(baud_edge):
                    m.d.sync += [
                        error_latch.eq(error_latch | self.rx),
                        self.phase.eq(Phase.DATA),
                    ]

            with m.Case(Phase.DATA):
                with m.If(baud_edge):
                    m.d.sync += [
                        shreg.eq(Cat(shreg[1:], self.rx)),
                        parity.eq(parity ^ self.rx),
                        bit_index.eq(bit_index + 1),
                    ]
                    with m.If(bit_index == cfg.data_bits - 1):
                        if cfg.parity_enabled:
                            m.d.sync += self.phase.eq(Phase.PARITY)
                        else:
                            m.d.sync += self.phase.eq(Phase.STOP)

            with m.Case(Phase.PARITY):
                with m.If(baud_edge):
                    if cfg.parity_even:
                        mismatch = self.rx == parity
                    else:
                        mismatch = self.rx != parity
                    m.d.sync += [
                        error_latch.eq(error_latch | mismatch),
                        self.phase.eq(Phase.STOP),
                    ]

            with m.Case(Phase.STOP):
                with m.If(baud_edge):
                    m.d.sync += [
                        error_latch.eq(error_latch | ~self.rx),
                        stop_count.eq(stop_count + 1),
                    ]
                    with m.If(stop_count == cfg.stop_bits - 1):
                        m.d.sync += [
                            self.valid.eq(1),
                            self.data.eq(shreg),
                            self.error.eq(error_latch | ~self.rx),
                            self.phase.eq(Phase.IDLE),
                            shreg.eq(0),
                            bit_index.eq(0),
                            stop_count.eq(0),
                            parity.eq(0),
                            error_latch.eq(0),
                            guard.eq(0),
                        ]

        return m


class Uart(Elaboratable):
    def __init__(self, config):
        self.config = config

        self.tx = Signal(1)
        self.rx = Signal(1, init=1)

        self.send = Signal(1)
        self.send_ready = Signal(1)
        self.send_data = Signal(config.data_bits)

        self.recv_valid = Signal(1)
        self.recv_data = Signal(config.data_bits)
        self.recv_error = Signal(1)

        self.shift_out = ShiftOut(config)
        self.shift_in = ShiftIn(config)

    def elaborate(self, platform):
        m = Module()
        m.submodules.shift_out = self.shift_out
        m.submodules.shift_in = self.shift_in

        m.d.comb += [
            self.tx.eq(self.shift_out.tx),
            self.shift_out.send.eq(self.send),
            self.shift_out.data.eq(self.send_data),
            self.send_ready.eq(self.shift_out.ready),

            self.shift_in.rx.eq(self.rx),
            self.recv_valid.eq(self.shift_in.valid),
            self.recv_data.eq(self.shift_in.data),
            self.recv_error.eq(self.shift_in.error),
        ]

        return m
