"""
Platform context for the IP5306 driver.

Everything the driver needs from its environment (register bus, KEY button
line, IRQ line, clock, diagnostics) is carried in one ``Platform`` value
that is passed to each component explicitly.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol

from smbus2 import SMBus

from .constants import DEFAULT_BUS


class LineMode(Enum):
    OUTPUT = "output"  # push-pull
    FLOATING = "floating"  # high-impedance input


class LineLevel(Enum):
    LOW = 0
    HIGH = 1


class RegisterBus(Protocol):
    def read_register(self, address: int, register: int, length: int, timeout_ms: int) -> bytes:
        ...

    def write_register(self, address: int, register: int, data: bytes, wait_ms: int) -> None:
        ...


class ButtonLine(Protocol):
    def set_mode(self, mode: LineMode) -> None:
        ...

    def set_level(self, level: LineLevel) -> None:
        ...


def _sleep_ms(duration_ms: float) -> None:
    time.sleep(duration_ms / 1000.0)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class Platform:
    bus: RegisterBus
    button: ButtonLine
    interrupt: Callable[[], bool]
    sleep_ms: Callable[[float], None] = _sleep_ms
    monotonic_ms: Callable[[], float] = _monotonic_ms
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("ip5306"))


class SMBusRegisterBus:
    """Register bus on a Linux i2c-dev adapter via smbus2.

    smbus2 transfers are synchronous; the timeout and wait hints are accepted
    for interface compatibility and otherwise unused.
    """

    def __init__(self, bus_id: int = DEFAULT_BUS) -> None:
        self.bus_id = bus_id
        self.bus = SMBus(bus_id)

    def close(self) -> None:
        self.bus.close()

    def __enter__(self) -> "SMBusRegisterBus":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def read_register(self, address: int, register: int, length: int, timeout_ms: int) -> bytes:
        if length == 1:
            return bytes([self.bus.read_byte_data(address, register) & 0xFF])
        return bytes(b & 0xFF for b in self.bus.read_i2c_block_data(address, register, length))

    def write_register(self, address: int, register: int, data: bytes, wait_ms: int) -> None:
        if len(data) == 1:
            self.bus.write_byte_data(address, register, data[0] & 0xFF)
        else:
            self.bus.write_i2c_block_data(address, register, [b & 0xFF for b in data])
