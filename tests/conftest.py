import logging

import pytest

from ip5306 import DeviceController, Platform, PressStateMachine
from ip5306.constants import DEVICE_ADDR


class FakeBus:
    """In-memory register file; ``fail`` maps register address -> errno."""

    def __init__(self, regs=None):
        self.regs = dict(regs or {})
        self.fail = {}
        self.reads = []
        self.writes = []

    def read_register(self, address, register, length, timeout_ms):
        assert address == DEVICE_ADDR
        self.reads.append(register)
        if register in self.fail:
            raise OSError(self.fail[register], "Remote I/O error")
        return bytes([self.regs.get(register, 0)])

    def write_register(self, address, register, data, wait_ms):
        assert address == DEVICE_ADDR
        if register in self.fail:
            raise OSError(self.fail[register], "Remote I/O error")
        self.writes.append((register, bytes(data)))
        self.regs[register] = data[0]


class FakeButton:
    def __init__(self, clock):
        self.clock = clock
        self.events = []

    def set_mode(self, mode):
        self.events.append(("mode", mode, self.clock.now))

    def set_level(self, level):
        self.events.append(("level", level, self.clock.now))


class FakeClock:
    """Manual clock; ``sleep_ms`` records the duration and moves time forward."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def sleep_ms(self, duration_ms):
        self.sleeps.append(duration_ms)
        self.now += duration_ms

    def monotonic_ms(self):
        return self.now


class FakeInterrupt:
    def __init__(self, asserted=False):
        self.asserted = asserted
        self.samples = 0

    def __call__(self):
        self.samples += 1
        return self.asserted


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    return FakeBus()


@pytest.fixture
def button(clock):
    return FakeButton(clock)


@pytest.fixture
def irq():
    return FakeInterrupt()


@pytest.fixture
def platform(bus, button, irq, clock):
    return Platform(
        bus=bus,
        button=button,
        interrupt=irq,
        sleep_ms=clock.sleep_ms,
        monotonic_ms=clock.monotonic_ms,
        logger=logging.getLogger("ip5306.test"),
    )


@pytest.fixture
def controller(platform):
    return DeviceController(platform)


@pytest.fixture
def machine(platform):
    return PressStateMachine(platform)
