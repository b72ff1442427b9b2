"""
IP5306 power-bank controller driver: register codec, grouped register access
and KEY button emulation.
"""

from .codec import (
    BatteryVoltage,
    BoostOffTrigger,
    ChargerControl,
    ChargerFullStop,
    ChargingCurrentLoop,
    ChargingUndervoltageLoop,
    ConstantVoltageBoost,
    EndCurrentDetection,
    FlashlightTrigger,
    Group,
    LightLoadShutdownTime,
    Status,
    SystemControl,
)
from .constants import DEVICE_ADDR, Sub
from .controller import DeviceController, status_signature_probe
from .errors import BusTransactionFailed, EncodingPreconditionError, IP5306Error
from .platform import LineLevel, LineMode, Platform, SMBusRegisterBus
from .press import PowerMode, PressStateMachine

__version__ = "0.1.0"
