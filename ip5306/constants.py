"""
IP5306 register map and timing constants.
"""

from enum import IntFlag

# I2C
DEVICE_ADDR = 0xEA >> 1  # 0x75
DEFAULT_BUS = 1

I2C_READ_TIMEOUT_MS = 5
I2C_WRITE_WAIT_MS = 5

REG = {
    "SYS_CTL0": 0x00,
    "SYS_CTL1": 0x01,
    "SYS_CTL2": 0x02,
    "CHARGER_CTL0": 0x20,
    "CHARGER_CTL1": 0x21,
    "CHARGER_CTL2": 0x22,
    "CHARGER_CTL3": 0x23,
    "CHG_DIG_CTL0": 0x24,
    "READ0": 0x70,
    "READ1": 0x71,
    "READ2": 0x72,
    "READ3": 0x77,
}


class Sub(IntFlag):
    """Sub-register selector bits, one per register."""

    SYS_CTL0 = 0o0001
    SYS_CTL1 = 0o0002
    SYS_CTL2 = 0o0004
    CHARGER_CTL0 = 0o0010
    CHARGER_CTL1 = 0o0020
    CHARGER_CTL2 = 0o0040
    CHARGER_CTL3 = 0o0100
    CHG_DIG_CTL0 = 0o0200
    READ0 = 0o0400
    READ1 = 0o1000
    READ2 = 0o2000
    READ3 = 0o4000

    SYS_CTL_ALL = 0o0007
    CHARGER_CTL_ALL = 0o0370
    READ_ALL = 0o7400

    @property
    def address(self) -> int:
        return REG[self.name]


# Read-only status registers; READ3 takes write-1-to-clear acknowledgements.
READ_ONLY = Sub.READ0 | Sub.READ1 | Sub.READ2

# KEY button timing (ms)
SHORT_PRESS_MS = 30
LONG_PRESS_MS = 2000
PRESS_PULSE_MS = SHORT_PRESS_MS * 4
DOUBLE_CLICK_GAP_MS = 100
STATE_CHANGE_MS = 1000
STATE_CHANGE_MARGIN_MS = 500
STATE_GUARD_MS = STATE_CHANGE_MS + STATE_CHANGE_MARGIN_MS
