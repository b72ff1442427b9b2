"""
IP5306 device controller.

Grouped, masked register access on top of the codec. The controller keeps
the last raw byte read from or written to every sub-register; writes always
re-encode from that byte, so a sub-register must be read before it is
written.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .codec import (
    FIELD_REGISTER,
    Group,
    Status,
    decode_register,
    encode_register,
    field_values,
    group_of,
)
from .constants import DEVICE_ADDR, I2C_READ_TIMEOUT_MS, I2C_WRITE_WAIT_MS, READ_ONLY, Sub
from .errors import BusTransactionFailed, EncodingPreconditionError
from .platform import Platform


class DeviceController:
    def __init__(self, platform: Platform, address: int = DEVICE_ADDR) -> None:
        self.platform = platform
        self.address = address
        self._raw: Dict[Sub, int] = {}
        self._values: Dict[Sub, Dict[str, Any]] = {}

    @property
    def log(self):
        return self.platform.logger

    # -- cache ----------------------------------------------------------------

    def raw(self, sub: Sub) -> Optional[int]:
        """Last byte read from or written to ``sub``, ``None`` before the first read."""
        return self._raw.get(sub)

    def view(self, group: Group) -> Any:
        """Decoded view of ``group`` from the cache; unread fields are ``None``."""
        merged: Dict[str, Any] = {}
        for sub in group.registers:
            merged.update(self._values.get(sub, {}))
        return group.view(**merged)

    def get(self, name: str) -> Any:
        return self._values.get(self._register_for(name), {}).get(name)

    # -- bus ------------------------------------------------------------------

    def _selected(self, group: Group, mask: Optional[int], writable: bool = False) -> List[Sub]:
        if mask is None:
            if writable:
                return [sub for sub in group.registers if not sub & READ_ONLY]
            return list(group.registers)
        stray = int(mask) & ~int(group.all)
        if stray:
            raise ValueError(f"mask 0o{stray:o} selects registers outside {group.name}")
        return [sub for sub in group.registers if int(mask) & int(sub)]

    def _read_one(self, sub: Sub) -> int:
        try:
            data = self.platform.bus.read_register(self.address, sub.address, 1, I2C_READ_TIMEOUT_MS)
        except OSError as exc:
            self.log.error("IP5306: Failed to read %s register: %s", sub.name, exc)
            raise BusTransactionFailed("read", sub.name, exc.errno) from exc
        byte = data[0] & 0xFF
        values = decode_register(sub, byte)
        self._raw[sub] = byte
        self._values[sub] = values
        self.log.debug("IP5306: %s = 0x%02X", sub.name, byte)
        return byte

    def _encode(self, sub: Sub, raw: int, values: Dict[str, Any]) -> int:
        try:
            return encode_register(sub, raw, values)
        except EncodingPreconditionError as exc:
            self.log.error("IP5306: cannot encode %s: %s", sub.name, exc)
            raise

    def _write_one(self, sub: Sub, byte: int) -> None:
        try:
            self.platform.bus.write_register(self.address, sub.address, bytes([byte]), I2C_WRITE_WAIT_MS)
        except OSError as exc:
            self.log.error("IP5306: Failed to write %s register: %s", sub.name, exc)
            raise BusTransactionFailed("write", sub.name, exc.errno) from exc
        self._raw[sub] = byte
        self._values[sub] = decode_register(sub, byte)
        self.log.debug("IP5306: %s <- 0x%02X", sub.name, byte)

    def read(self, group: Group, mask: Optional[int] = None) -> Any:
        """Read the selected sub-registers of ``group`` (all by default).

        Stops at the first bus failure with ``BusTransactionFailed``;
        sub-registers read before it keep their new cached values.
        """
        for sub in self._selected(group, mask):
            self._read_one(sub)
        return self.view(group)

    def write(self, group: Group, fields: Any, mask: Optional[int] = None) -> None:
        """Write the non-``None`` ``fields`` into the selected sub-registers.

        Without a mask every writable sub-register of ``group`` is selected;
        for STATUS that is READ3 alone.

        Every selected sub-register must have been read before; encoding is
        checked for all of them before the first bus write. Bus failures
        stop the call, earlier sub-registers stay written.
        """
        if not isinstance(fields, group.view):
            raise TypeError(f"{group.name} expects {group.view.__name__}, got {type(fields).__name__}")
        selected = self._selected(group, mask, writable=True)
        values = field_values(fields)

        pending = []
        for sub in selected:
            if sub & READ_ONLY:
                self.log.error("IP5306: %s register is read-only", sub.name)
                raise ValueError(f"{sub.name} register is read-only")
            raw = self._raw.get(sub)
            if raw is None:
                self.log.error("IP5306: %s written before it was read", sub.name)
                raise EncodingPreconditionError(f"{sub.name} must be read before it is written")
            pending.append((sub, self._encode(sub, raw, values)))

        for sub, byte in pending:
            self._write_one(sub, byte)

    # -- per-field access -----------------------------------------------------

    def _register_for(self, name: str) -> Sub:
        try:
            return FIELD_REGISTER[name]
        except KeyError:
            raise ValueError(f"Unknown IP5306 field {name!r}") from None

    def set(self, name: str, value: Any) -> None:
        """Read-modify-write of a single field."""
        sub = self._register_for(name)
        if sub & READ_ONLY or sub == Sub.READ3:
            self.log.error("IP5306: %s is a status field", name)
            raise ValueError(f"{name} is a status field")
        if sub not in self._raw:
            self._read_one(sub)
        self._write_one(sub, self._encode(sub, self._raw[sub], {name: value}))

    def charging_current(self) -> int:
        """Charger (VIN side) current setting in mA, read from the device."""
        self._read_one(Sub.CHG_DIG_CTL0)
        return self._values[Sub.CHG_DIG_CTL0]["charging_current"]

    def set_charging_current(self, current_ma: int) -> None:
        self.set("charging_current", current_ma)

    def set_boost_enabled(self, enabled: bool) -> None:
        self.set("boost_enable", bool(enabled))

    def set_charger_enabled(self, enabled: bool) -> None:
        self.set("charger_enable", bool(enabled))

    def acknowledge_presses(self) -> Status:
        """Read the KEY press flags and clear the ones that are set."""
        status = self.read(Group.STATUS, Sub.READ3)
        if status.double_click or status.long_press or status.short_press:
            self.write(Group.STATUS, status, Sub.READ3)
        return status


def status_signature_probe(
    controller: DeviceController, asleep_signature: int, register: Sub = Sub.READ0
) -> Callable[[], bool]:
    """Mode probe reporting "working" unless ``register`` reads ``asleep_signature``.

    Alternative to sampling the IRQ line for :class:`ip5306.press.PressStateMachine`.
    """

    def probe() -> bool:
        controller.read(group_of(register), register)
        return controller.raw(register) != asleep_signature

    return probe
