import pytest

from amaranth.sim import Simulator

from tickuart.core import *
from tickuart.params import *


class SimulatorFixture:
    def __init__(self, mod, clks, req, tmp_path):
        self.name = req.function.__name__
        self.tmp_path = tmp_path
        self.sim = Simulator(mod.args[0])

        for clk in clks.args[0]:
            self.sim.add_clock(clk)

    def run(self, testbenches):
        for t in testbenches:
            self.sim.add_testbench(t)

        with self.sim.write_vcd(str(self.tmp_path / (self.name + ".vcd")),
                                str(self.tmp_path / (self.name + ".gtkw"))):
            self.sim.run()


@pytest.fixture
def sim_mod(request, tmp_path):
    mod = request.node.get_closest_marker("module")
    clks = request.node.get_closest_marker("clks")
    return (SimulatorFixture(mod, clks, request, tmp_path), mod.args[0])


@pytest.fixture
def config(request):
    """Config built from the closest ``config`` marker, defaulting to
       8N1 at 100 ticks per bit."""
    marker = request.node.get_closest_marker("config")
    fields = marker.kwargs if marker else {}
    return Config(**fields)


@pytest.fixture
def uart(config):
    return UartEngine(config)
