"""
IP5306 register codec.

Pure functions mapping raw register bytes to typed field values and back.
Encoding always starts from a retained raw byte and only rewrites the bits
owned by the fields being changed; reserved and unrelated bits pass through.
"""

from __future__ import annotations

from dataclasses import dataclass, fields as dc_fields
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Type

from .constants import Sub
from .errors import EncodingPreconditionError


def get_bits(value: int, offset: int, width: int = 1) -> int:
    return (value >> offset) & ((1 << width) - 1)


def set_bits(value: int, offset: int, width: int, bits: int) -> int:
    mask = ((1 << width) - 1) << offset
    return (value & ~mask & 0xFF) | ((bits << offset) & mask)


# ---- Enumerations ----------------------------------------------------------

class BoostOffTrigger(IntEnum):
    SHORT_PRESS_TWICE = 0
    LONG_PRESS = 1


class FlashlightTrigger(IntEnum):
    LONG_PRESS = 0
    SHORT_PRESS_TWICE = 1


class LightLoadShutdownTime(IntEnum):
    # Datasheet order, not monotonic.
    S_8 = 0
    S_32 = 1
    S_16 = 2
    S_64 = 3


class ChargerFullStop(IntEnum):
    """Full-charge stop voltage, for a 4.2V cell (higher cells shift up)."""

    V4_14 = 0
    V4_17 = 1
    V4_185 = 2
    V4_2 = 3


class EndCurrentDetection(IntEnum):
    MA_200 = 0
    MA_400 = 1
    MA_500 = 2
    MA_600 = 3


class ChargingUndervoltageLoop(IntEnum):
    """VOUT voltage kept while charging; charge current backs off below it."""

    V4_45 = 0
    V4_5 = 1
    V4_55 = 2
    V4_6 = 3
    V4_65 = 4
    V4_7 = 5
    V4_75 = 6
    V4_8 = 7


class BatteryVoltage(IntEnum):
    V4_2 = 0
    V4_3 = 1
    V4_35 = 2
    V4_4 = 3


class ConstantVoltageBoost(IntEnum):
    NONE = 0
    MV_14 = 1
    MV_28 = 2
    MV_42 = 3


class ChargingCurrentLoop(IntEnum):
    BAT_CC = 0
    VIN_CC = 1


# ---- Charging current (CHG_DIG_CTL0) ---------------------------------------

CURRENT_BASE_MA = 50
CURRENT_WEIGHTS_MA = (100, 200, 400, 800, 1600)  # bit 0 .. bit 4
CURRENT_STEP_MA = CURRENT_WEIGHTS_MA[0]
CURRENT_MAX_MA = CURRENT_BASE_MA + sum(CURRENT_WEIGHTS_MA)


def bits_to_charging_current(bits: int) -> int:
    current = CURRENT_BASE_MA
    for bit, weight in enumerate(CURRENT_WEIGHTS_MA):
        if get_bits(bits, bit):
            current += weight
    return current


def charging_current_to_bits(current: int) -> int:
    """Greedy decomposition of ``current - 50`` over the bit weights.

    Only values the register can express are accepted: 50 mA plus a
    multiple of 100 mA, up to 3150 mA.
    """
    if isinstance(current, bool) or not isinstance(current, int):
        raise EncodingPreconditionError(f"charging current must be an int, got {current!r}")
    if not CURRENT_BASE_MA <= current <= CURRENT_MAX_MA:
        raise EncodingPreconditionError(
            f"charging current {current} mA out of range "
            f"{CURRENT_BASE_MA}..{CURRENT_MAX_MA} mA"
        )
    if (current - CURRENT_BASE_MA) % CURRENT_STEP_MA:
        raise EncodingPreconditionError(
            f"charging current {current} mA is not {CURRENT_BASE_MA} mA "
            f"plus a multiple of {CURRENT_STEP_MA} mA"
        )

    remainder = current - CURRENT_BASE_MA
    bits = 0
    for bit in reversed(range(len(CURRENT_WEIGHTS_MA))):
        weight = CURRENT_WEIGHTS_MA[bit]
        if remainder >= weight:
            bits |= 1 << bit
            remainder -= weight
    return bits


# ---- Field descriptors -----------------------------------------------------

class Field:
    def __init__(self, name: str, offset: int, width: int = 1) -> None:
        self.name = name
        self.offset = offset
        self.width = width

    def decode(self, byte: int) -> Any:
        return get_bits(byte, self.offset, self.width)

    def to_bits(self, value: Any) -> int:
        return int(value)

    def encode(self, byte: int, value: Any) -> int:
        return set_bits(byte, self.offset, self.width, self.to_bits(value))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, offset={self.offset}, width={self.width})"


class Flag(Field):
    def decode(self, byte: int) -> bool:
        return bool(get_bits(byte, self.offset))

    def to_bits(self, value: Any) -> int:
        return 1 if value else 0


class Choice(Field):
    def __init__(self, name: str, offset: int, width: int, enum: Type[IntEnum]) -> None:
        super().__init__(name, offset, width)
        self.enum = enum

    def decode(self, byte: int) -> IntEnum:
        raw = get_bits(byte, self.offset, self.width)
        try:
            return self.enum(raw)
        except ValueError:
            raise ValueError(f"{self.name}: no {self.enum.__name__} for raw value {raw}") from None

    def to_bits(self, value: Any) -> int:
        if isinstance(value, Enum) and not isinstance(value, self.enum):
            raise EncodingPreconditionError(f"{self.name}: expected {self.enum.__name__}, got {value!r}")
        try:
            return int(self.enum(value))
        except ValueError:
            raise EncodingPreconditionError(f"{self.name}: {value!r} is not a {self.enum.__name__}") from None


class ChargingCurrent(Field):
    def __init__(self, name: str) -> None:
        super().__init__(name, 0, len(CURRENT_WEIGHTS_MA))

    def decode(self, byte: int) -> int:
        return bits_to_charging_current(get_bits(byte, self.offset, self.width))

    def to_bits(self, value: Any) -> int:
        return charging_current_to_bits(value)


REGISTER_FIELDS: Dict[Sub, Tuple[Field, ...]] = {
    Sub.SYS_CTL0: (
        Flag("boost_enable", 5),
        Flag("charger_enable", 4),
        Flag("auto_power_on", 2),
        Flag("output_normally_open", 1),
        Flag("key_shutdown_enable", 0),
    ),
    Sub.SYS_CTL1: (
        Choice("disable_boost_control", 7, 1, BoostOffTrigger),
        Choice("switch_wled_control", 6, 1, FlashlightTrigger),
        Flag("short_press_switch_boost", 5),
        Flag("boost_after_vin_unplug", 2),
        Flag("batlow_3v0_shutdown", 0),
    ),
    Sub.SYS_CTL2: (
        Choice("light_load_shutdown_time", 2, 2, LightLoadShutdownTime),
    ),
    Sub.CHARGER_CTL0: (
        Choice("charger_full_stop", 0, 2, ChargerFullStop),
    ),
    Sub.CHARGER_CTL1: (
        Choice("end_current_detection", 6, 2, EndCurrentDetection),
        Choice("charging_undervoltage_loop", 2, 3, ChargingUndervoltageLoop),
    ),
    Sub.CHARGER_CTL2: (
        Choice("battery_voltage", 2, 2, BatteryVoltage),
        Choice("constant_voltage_charging", 0, 2, ConstantVoltageBoost),
    ),
    Sub.CHARGER_CTL3: (
        Choice("charging_current_loop", 5, 1, ChargingCurrentLoop),
    ),
    Sub.CHG_DIG_CTL0: (
        ChargingCurrent("charging_current"),
    ),
    Sub.READ0: (Flag("charging_on", 3),),
    Sub.READ1: (Flag("fully_charged", 3),),
    Sub.READ2: (Flag("light_load", 2),),
    Sub.READ3: (
        Flag("double_click", 2),
        Flag("long_press", 1),
        Flag("short_press", 0),
    ),
}

FIELD_REGISTER: Dict[str, Sub] = {
    field.name: sub for sub, group in REGISTER_FIELDS.items() for field in group
}

PRESS_FLAGS = REGISTER_FIELDS[Sub.READ3]
PRESS_FLAGS_MASK = sum(1 << f.offset for f in PRESS_FLAGS)


# ---- Register groups -------------------------------------------------------

@dataclass
class SystemControl:
    # SYS_CTL0
    boost_enable: Optional[bool] = None
    charger_enable: Optional[bool] = None
    auto_power_on: Optional[bool] = None
    output_normally_open: Optional[bool] = None
    key_shutdown_enable: Optional[bool] = None
    # SYS_CTL1
    disable_boost_control: Optional[BoostOffTrigger] = None
    switch_wled_control: Optional[FlashlightTrigger] = None
    short_press_switch_boost: Optional[bool] = None
    boost_after_vin_unplug: Optional[bool] = None
    batlow_3v0_shutdown: Optional[bool] = None
    # SYS_CTL2
    light_load_shutdown_time: Optional[LightLoadShutdownTime] = None


@dataclass
class ChargerControl:
    charger_full_stop: Optional[ChargerFullStop] = None
    end_current_detection: Optional[EndCurrentDetection] = None
    charging_undervoltage_loop: Optional[ChargingUndervoltageLoop] = None
    battery_voltage: Optional[BatteryVoltage] = None
    constant_voltage_charging: Optional[ConstantVoltageBoost] = None
    charging_current_loop: Optional[ChargingCurrentLoop] = None
    charging_current: Optional[int] = None  # mA


@dataclass
class Status:
    charging_on: Optional[bool] = None
    fully_charged: Optional[bool] = None
    light_load: Optional[bool] = None
    # Write 1 to clear
    double_click: Optional[bool] = None
    long_press: Optional[bool] = None
    short_press: Optional[bool] = None


class Group(Enum):
    SYSTEM_CONTROL = (SystemControl, (Sub.SYS_CTL0, Sub.SYS_CTL1, Sub.SYS_CTL2))
    CHARGER_CONTROL = (
        ChargerControl,
        (Sub.CHARGER_CTL0, Sub.CHARGER_CTL1, Sub.CHARGER_CTL2, Sub.CHARGER_CTL3, Sub.CHG_DIG_CTL0),
    )
    STATUS = (Status, (Sub.READ0, Sub.READ1, Sub.READ2, Sub.READ3))

    def __init__(self, view: type, registers: Tuple[Sub, ...]) -> None:
        self.view = view
        self.registers = registers

    @property
    def all(self) -> Sub:
        mask = Sub(0)
        for sub in self.registers:
            mask |= sub
        return mask


def group_of(sub: Sub) -> Group:
    for group in Group:
        if sub in group.registers:
            return group
    raise ValueError(f"{sub!r} is not a single register")


def field_values(view: Any) -> Dict[str, Any]:
    """Non-``None`` fields of a group view, by name."""
    return {f.name: getattr(view, f.name) for f in dc_fields(view) if getattr(view, f.name) is not None}


# ---- Sub-register level ----------------------------------------------------

def decode_register(sub: Sub, byte: int) -> Dict[str, Any]:
    return {field.name: field.decode(byte) for field in REGISTER_FIELDS[sub]}


def encode_register(sub: Sub, byte: int, values: Mapping[str, Any]) -> int:
    """Re-encode ``byte`` with the fields of ``sub`` found in ``values``.

    Fields missing from ``values`` (or set to ``None``) keep their bits.
    READ3 is write-1-to-clear and goes through :func:`encode_press_ack`.
    """
    if sub == Sub.READ3:
        return encode_press_ack(
            byte,
            double_click=bool(values.get("double_click")),
            long_press=bool(values.get("long_press")),
            short_press=bool(values.get("short_press")),
        )
    data = byte & 0xFF
    for field in REGISTER_FIELDS[sub]:
        value = values.get(field.name)
        if value is not None:
            data = field.encode(data, value)
    return data


def encode_press_ack(
    raw: int, double_click: bool = False, long_press: bool = False, short_press: bool = False
) -> int:
    """Build the READ3 acknowledgement byte.

    A press flag is written as 1 (clearing it on the chip) only when it is
    requested and was set in ``raw``. Every other bit is ``raw`` verbatim.
    """
    requested = {"double_click": double_click, "long_press": long_press, "short_press": short_press}
    data = raw & ~PRESS_FLAGS_MASK & 0xFF
    for flag in PRESS_FLAGS:
        if requested[flag.name] and get_bits(raw, flag.offset):
            data |= 1 << flag.offset
    return data


# ---- Group level -----------------------------------------------------------

def _decode_group(group: Group, raw: Sequence[int]) -> Any:
    if len(raw) != len(group.registers):
        raise ValueError(f"{group.name}: expected {len(group.registers)} bytes, got {len(raw)}")
    merged: Dict[str, Any] = {}
    for sub, byte in zip(group.registers, raw):
        merged.update(decode_register(sub, byte))
    return group.view(**merged)


def _encode_group(group: Group, raw: Sequence[int], view: Any) -> Tuple[int, ...]:
    if len(raw) != len(group.registers):
        raise ValueError(f"{group.name}: expected {len(group.registers)} bytes, got {len(raw)}")
    values = field_values(view)
    return tuple(encode_register(sub, byte, values) for sub, byte in zip(group.registers, raw))


def decode_system_control(ctl0: int, ctl1: int, ctl2: int) -> SystemControl:
    return _decode_group(Group.SYSTEM_CONTROL, (ctl0, ctl1, ctl2))


def encode_system_control(raw: Sequence[int], fields: SystemControl) -> Tuple[int, ...]:
    return _encode_group(Group.SYSTEM_CONTROL, raw, fields)


def decode_charger_control(ctl0: int, ctl1: int, ctl2: int, ctl3: int, dig_ctl0: int) -> ChargerControl:
    return _decode_group(Group.CHARGER_CONTROL, (ctl0, ctl1, ctl2, ctl3, dig_ctl0))


def encode_charger_control(raw: Sequence[int], fields: ChargerControl) -> Tuple[int, ...]:
    return _encode_group(Group.CHARGER_CONTROL, raw, fields)


def decode_status(read0: int, read1: int, read2: int, read3: int) -> Status:
    return _decode_group(Group.STATUS, (read0, read1, read2, read3))


def encode_status(read3: int, fields: Status) -> int:
    """Acknowledgement byte for READ3; the other status registers are read-only."""
    return encode_press_ack(
        read3,
        double_click=bool(fields.double_click),
        long_press=bool(fields.long_press),
        short_press=bool(fields.short_press),
    )
