"""Exceptions raised by the IP5306 driver."""

from __future__ import annotations

from typing import Optional


class IP5306Error(Exception):
    pass


class BusTransactionFailed(IP5306Error):
    """A single register read or write failed on the bus.

    ``register`` names the sub-register that failed; the bus error is chained
    as ``__cause__``. Sub-registers handled earlier in the same grouped call
    keep their updated cache.
    """

    def __init__(self, op: str, register: str, errno: Optional[int] = None) -> None:
        self.op = op
        self.register = register
        self.errno = errno
        detail = f": {errno}" if errno is not None else ""
        super().__init__(f"Failed to {op} {register} register{detail}")


class EncodingPreconditionError(IP5306Error, ValueError):
    """A value cannot be encoded, or a write has no cached byte to start from."""
