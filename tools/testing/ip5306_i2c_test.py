#!/usr/bin/env python3
"""
IP5306 I2C test script.

Runs non-interactive register tests against an IP5306 at 0x75 through the
ip5306 driver. Every value changed is restored before the test returns.
Defaults are conservative; use flags to enable tests that touch power paths.
"""

import argparse
import logging
import sys

from ip5306 import (
    BusTransactionFailed,
    ChargerControl,
    DeviceController,
    EncodingPreconditionError,
    Group,
    Platform,
    SMBusRegisterBus,
    Sub,
    SystemControl,
)
from ip5306.constants import DEFAULT_BUS, DEVICE_ADDR


class TestRunner:
    """Collects PASS/FAIL/SKIP outcomes and prints them grouped by outcome."""

    def __init__(self) -> None:
        self.results: list[tuple[str, str, str]] = []

    def record(self, name: str, ok: bool, detail: str = "") -> None:
        self.results.append(("PASS" if ok else "FAIL", name, detail))

    def skip(self, name: str, reason: str) -> None:
        self.results.append(("SKIP", name, reason))

    def count(self, outcome: str) -> int:
        return sum(1 for r in self.results if r[0] == outcome)

    def summary(self) -> int:
        for outcome in ("PASS", "SKIP", "FAIL"):
            for status, name, detail in self.results:
                if status == outcome:
                    print(f"{status} - {name}" + (f": {detail}" if detail else ""))
        print(
            f"\n{len(self.results)} checks: {self.count('PASS')} passed, "
            f"{self.count('SKIP')} skipped, {self.count('FAIL')} failed"
        )
        return 1 if self.count("FAIL") else 0


def choose_alternate_current(value: int) -> int:
    if value + 100 <= 1050:
        return value + 100
    return value - 100


def test_group_reads(t: TestRunner, ctl: DeviceController) -> None:
    for group in Group:
        try:
            fields = ctl.read(group)
        except BusTransactionFailed as exc:
            t.record(f"{group.name} read", False, str(exc))
            continue
        raw = " ".join(f"{sub.name}=0x{ctl.raw(sub):02X}" for sub in group.registers)
        t.record(f"{group.name} read", True, raw)
        t.record(f"{group.name} decoded", None not in vars(fields).values(), str(fields))


def test_masked_read(t: TestRunner, ctl: DeviceController) -> None:
    before = ctl.raw(Sub.CHARGER_CTL2)
    fields = ctl.read(Group.CHARGER_CONTROL, Sub.CHARGER_CTL2)
    after = ctl.raw(Sub.CHARGER_CTL2)
    t.record("Masked read CHARGER_CTL2 stable", before == after, f"before 0x{before:02X} after 0x{after:02X}")
    t.record("Masked read keeps other cached fields", fields.charging_current is not None)


def test_rw_charging_current(t: TestRunner, ctl: DeviceController) -> None:
    orig = ctl.charging_current()
    orig_raw = ctl.raw(Sub.CHG_DIG_CTL0)
    alt = choose_alternate_current(orig)
    try:
        ctl.set_charging_current(alt)
        read_back = ctl.charging_current()
        t.record("Charging current write/read", read_back == alt, f"wrote {alt} read {read_back}")
        reserved_ok = (ctl.raw(Sub.CHG_DIG_CTL0) & 0xE0) == (orig_raw & 0xE0)
        t.record("Charging current keeps reserved bits", reserved_ok, f"orig 0x{orig_raw:02X}")
    finally:
        ctl.set_charging_current(orig)
        restored = ctl.charging_current()
        t.record("Charging current restore", restored == orig, f"restored {restored}")


def test_rejects_unreachable_current(t: TestRunner, ctl: DeviceController) -> None:
    before = ctl.charging_current()
    try:
        ctl.set_charging_current(before + 50)
        t.record("Unreachable charging current rejected", False, f"wrote {before + 50}")
    except EncodingPreconditionError as exc:
        t.record("Unreachable charging current rejected", True, str(exc))
    t.record("Charging current unchanged after reject", ctl.charging_current() == before)


def test_rw_charger_control(t: TestRunner, ctl: DeviceController) -> None:
    orig = ctl.read(Group.CHARGER_CONTROL, Sub.CHARGER_CTL1)
    alt_loop = orig.charging_undervoltage_loop ^ 1
    try:
        ctl.write(Group.CHARGER_CONTROL, ChargerControl(charging_undervoltage_loop=alt_loop), Sub.CHARGER_CTL1)
        read_back = ctl.read(Group.CHARGER_CONTROL, Sub.CHARGER_CTL1)
        ok = (
            read_back.charging_undervoltage_loop == alt_loop
            and read_back.end_current_detection == orig.end_current_detection
        )
        t.record("Undervoltage loop write/read", ok, f"wrote {alt_loop} read {read_back.charging_undervoltage_loop}")
    finally:
        ctl.write(Group.CHARGER_CONTROL, orig, Sub.CHARGER_CTL1)
        restored = ctl.read(Group.CHARGER_CONTROL, Sub.CHARGER_CTL1)
        t.record("Undervoltage loop restore", restored == orig, str(restored.charging_undervoltage_loop))


def test_press_flags(t: TestRunner, ctl: DeviceController) -> None:
    status = ctl.acknowledge_presses()
    t.record(
        "KEY press flags acknowledged",
        True,
        f"short={status.short_press} long={status.long_press} double={status.double_click}",
    )
    after = ctl.read(Group.STATUS, Sub.READ3)
    cleared = not (after.short_press or after.long_press or after.double_click)
    t.record("KEY press flags clear after ack", cleared, f"READ3=0x{ctl.raw(Sub.READ3):02X}")


def test_optional_power_controls(t: TestRunner, ctl: DeviceController) -> None:
    orig = ctl.read(Group.SYSTEM_CONTROL, Sub.SYS_CTL1)
    alt = not orig.boost_after_vin_unplug
    try:
        ctl.write(Group.SYSTEM_CONTROL, SystemControl(boost_after_vin_unplug=alt), Sub.SYS_CTL1)
        read_back = ctl.read(Group.SYSTEM_CONTROL, Sub.SYS_CTL1).boost_after_vin_unplug
        t.record("Boost after VIN unplug write/read", read_back == alt, f"wrote {alt} read {read_back}")
    finally:
        ctl.write(Group.SYSTEM_CONTROL, orig, Sub.SYS_CTL1)
        restored = ctl.read(Group.SYSTEM_CONTROL, Sub.SYS_CTL1) == orig
        t.record("Boost after VIN unplug restore", restored)


class NoButton:
    def set_mode(self, mode) -> None:
        raise RuntimeError("KEY line not wired for this test")

    def set_level(self, level) -> None:
        raise RuntimeError("KEY line not wired for this test")


def main() -> int:
    parser = argparse.ArgumentParser(description="IP5306 I2C integration test.")
    parser.add_argument("--bus", type=int, default=DEFAULT_BUS, help="I2C bus number (default: 1)")
    parser.add_argument("--addr", type=lambda x: int(x, 0), default=DEVICE_ADDR, help="I2C address (default: 0x75)")
    parser.add_argument(
        "--allow-power-actions",
        action="store_true",
        help="Allow tests that may affect power state (boost after VIN unplug)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every register access")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    t = TestRunner()
    bus = SMBusRegisterBus(args.bus)
    try:
        ctl = DeviceController(Platform(bus=bus, button=NoButton(), interrupt=lambda: False), args.addr)
        test_group_reads(t, ctl)
        test_masked_read(t, ctl)
        test_rw_charging_current(t, ctl)
        test_rejects_unreachable_current(t, ctl)
        test_rw_charger_control(t, ctl)
        test_press_flags(t, ctl)
        if args.allow_power_actions:
            test_optional_power_controls(t, ctl)
        else:
            t.skip("Power-state tests", "use --allow-power-actions")
    except BusTransactionFailed as exc:
        t.record("I2C transaction", False, str(exc))
    finally:
        bus.close()
    return t.summary()


if __name__ == "__main__":
    sys.exit(main())
