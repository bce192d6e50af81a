import pytest

from minnow.lossy import LossyFdAdapter, get_random_engine
from minnow.tcp_config import FdAdapterConfig
from minnow.tcp_message import TCPMessage, TCPSenderMessage


class FixedBits:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def getrandbits(self, k):
        self.calls += 1
        return self.value % (1 << k)


class FakeAdapter:
    def __init__(self, incoming=None):
        self.config = FdAdapterConfig()
        self.listening = False
        self.incoming = list(incoming or [])
        self.written = []
        self.ticks = []
        self.descriptor = object()

    def read(self):
        return self.incoming.pop(0) if self.incoming else None

    def write(self, msg):
        self.written.append(msg)

    def tick(self, ms):
        self.ticks.append(ms)

    def fd(self):
        return self.descriptor


def _msg(payload=b"x"):
    return TCPMessage(sender=TCPSenderMessage(payload=payload))


def test_no_loss_passes_everything_and_draws_nothing():
    rng = FixedBits(0)
    adapter = FakeAdapter([_msg(b"a")])
    lossy = LossyFdAdapter(adapter, rng)
    assert lossy.read() == _msg(b"a")
    lossy.write(_msg(b"b"))
    assert adapter.written == [_msg(b"b")]
    assert rng.calls == 0


@pytest.mark.parametrize("draw,rate,dropped", [(100, 101, True), (100, 100, False)])
def test_write_drop_threshold(draw, rate, dropped):
    adapter = FakeAdapter()
    adapter.config.loss_rate_up = rate
    lossy = LossyFdAdapter(adapter, FixedBits(draw))
    lossy.write(_msg())
    assert (adapter.written == []) is dropped


@pytest.mark.parametrize("draw,rate,dropped", [(100, 101, True), (100, 100, False)])
def test_read_drop_threshold_consumes_underlying(draw, rate, dropped):
    adapter = FakeAdapter([_msg(b"a")])
    adapter.config.loss_rate_dn = rate
    lossy = LossyFdAdapter(adapter, FixedBits(draw))
    result = lossy.read()
    assert (result is None) is dropped
    assert adapter.incoming == []


def test_directions_use_separate_rates():
    adapter = FakeAdapter([_msg(b"in")])
    adapter.config.loss_rate_up = 65535
    lossy = LossyFdAdapter(adapter, FixedBits(0))
    lossy.write(_msg())
    assert adapter.written == []
    assert lossy.read() == _msg(b"in")


def test_passthroughs():
    adapter = FakeAdapter()
    lossy = LossyFdAdapter(adapter, FixedBits(0))
    lossy.set_listening(True)
    assert adapter.listening is True
    lossy.tick(25)
    assert adapter.ticks == [25]
    assert lossy.fd() is adapter.descriptor
    lossy.config().loss_rate_dn = 7
    assert adapter.config.loss_rate_dn == 7


def test_random_engines_are_independently_seeded():
    first = get_random_engine()
    second = get_random_engine()
    assert [first.getrandbits(64) for _ in range(4)] != [
        second.getrandbits(64) for _ in range(4)
    ]


def test_random_engine_draws_in_range():
    engine = get_random_engine()
    draws = [engine.getrandbits(16) for _ in range(200)]
    assert all(0 <= d < 65536 for d in draws)