"""Decoding of HiSilicon HIP08 OEM type-1 error sections."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .hisilicon import DecodeError, err_severity

HISI_BUF_LEN = 1024

HIP08_OEM_TYPE1_TABLE = "hip08_oem_type1_event_v2"
HIP08_OEM_EVENT_FIELDS = (
    ("id", "INTEGER PRIMARY KEY"),
    ("timestamp", "TEXT"),
    ("version", "INTEGER"),
    ("soc_id", "INTEGER"),
    ("socket_id", "INTEGER"),
    ("nimbus_id", "INTEGER"),
    ("module_id", "TEXT"),
    ("sub_module_id", "TEXT"),
    ("err_severity", "TEXT"),
    ("regs_dump", "TEXT"),
)


class OemValid(enum.IntEnum):
    """Validity bits shared by the OEM type-1 and type-2 section headers."""

    SOC_ID = 0
    SOCKET_ID = 1
    NIMBUS_ID = 2
    MODULE_ID = 3
    SUB_MODULE_ID = 4
    ERR_SEVERITY = 5


class Type1Valid(enum.IntEnum):
    """Validity bits of the OEM type-1 register dump."""

    ERR_MISC_0 = 6
    ERR_MISC_1 = 7
    ERR_MISC_2 = 8
    ERR_MISC_3 = 9
    ERR_MISC_4 = 10
    ERR_ADDR = 11


class OemField(enum.IntEnum):
    """Column positions of the OEM type-1 and type-2 event tables."""

    ID = 0
    TIMESTAMP = 1
    VERSION = 2
    SOC_ID = 3
    SOCKET_ID = 4
    NIMBUS_ID = 5
    MODULE_ID = 6
    SUB_MODULE_ID = 7
    ERR_SEV = 8
    REGS_DUMP = 9


@dataclass(frozen=True)
class ModuleInfo:
    """A hardware module id with its name and optional sub-module names."""

    id: int
    name: str
    sub: tuple | None = None


HISI_OEM_TYPE1_MODULES = (
    ModuleInfo(
        1,
        "PLL",
        (
            "TB_PLL0", "TB_PLL1", "TB_PLL2", "TB_PLL3",
            "TA_PLL0", "TA_PLL1", "TA_PLL2", "TA_PLL3",
            "NIMBUS_PLL0", "NIMBUS_PLL1", "NIMBUS_PLL2", "NIMBUS_PLL3",
            "NIMBUS_PLL4",
        ),
    ),
    ModuleInfo(15, "SAS", ("SAS0", "SAS1")),
    ModuleInfo(5, "POE", ("TB_POE", "TA_POE")),
    ModuleInfo(
        2,
        "SLLC",
        (
            "TB_SLLC0", "TB_SLLC1", "TB_SLLC2",
            "TA_SLLC0", "TA_SLLC1", "TA_SLLC2",
            "NIMBUS_SLLC0", "NIMBUS_SLLC1",
        ),
    ),
    ModuleInfo(
        4,
        "SIOE",
        (
            "TB_SIOE0", "TB_SIOE1", "TB_SIOE2", "TB_SIOE3",
            "TA_SIOE0", "TA_SIOE1", "TA_SIOE2", "TA_SIOE3",
            "NIMBUS_SIOE0", "NIMBUS_SIOE1",
        ),
    ),
    ModuleInfo(
        8,
        "DISP",
        (
            "TB_PERI_DISP", "TB_POE_DISP", "TB_GIC_DISP",
            "TA_PERI_DISP", "TA_POE_DISP", "TA_GIC_DISP",
            "HAC_DISP", "PCIE_DISP", "IO_MGMT_DISP", "NETWORK_DISP",
        ),
    ),
    ModuleInfo(0, "MN"),
    ModuleInfo(3, "AA"),
    ModuleInfo(9, "LPC"),
    ModuleInfo(13, "GIC"),
    ModuleInfo(14, "RDE"),
    ModuleInfo(16, "SATA"),
    ModuleInfo(17, "USB"),
)


def oem_module_name(modules, module_id):
    """Name of ``module_id`` in ``modules``, or "unknown"."""
    for module in modules:
        if module.id == module_id:
            return module.name
    return "unknown"


def oem_submodule_name(modules, module_id, sub_module_id):
    """Sub-module name; the module name when it has no sub-modules."""
    for module in modules:
        if module.id != module_id:
            continue
        if module.sub is None:
            return module.name
        if sub_module_id >= len(module.sub):
            return "unknown"
        return module.sub[sub_module_id]
    return "unknown"


_LAYOUT = struct.Struct("<I7Bx5IQ")


@dataclass(frozen=True)
class OemType1Section:
    """HIP08 OEM type-1 error section."""

    val_bits: int
    version: int
    soc_id: int
    socket_id: int
    nimbus_id: int
    module_id: int
    sub_module_id: int
    err_severity: int
    err_misc_0: int
    err_misc_1: int
    err_misc_2: int
    err_misc_3: int
    err_misc_4: int
    err_addr: int

    def has(self, bit):
        return bool(self.val_bits & (1 << bit))

    @classmethod
    def from_bytes(cls, data):
        """Parse a little-endian OEM type-1 error section."""
        data = bytes(data)
        if len(data) < _LAYOUT.size:
            raise DecodeError("OEM type-1 error section is too short")
        return cls(*_LAYOUT.unpack_from(data))


def _bounded(text):
    return text[: HISI_BUF_LEN - 1]


def _decode_oem_header(err, modules, recorder):
    """Header line shared by the OEM type-1 and type-2 sections."""

    def record(field, value):
        if recorder is not None:
            recorder.record(field, value)

    parts = [f"[ table_version={err.version} "]
    record(OemField.VERSION, err.version)

    if err.has(OemValid.SOC_ID):
        parts.append(f"SOC_ID={err.soc_id} ")
        record(OemField.SOC_ID, err.soc_id)
    if err.has(OemValid.SOCKET_ID):
        parts.append(f"socket_ID={err.socket_id} ")
        record(OemField.SOCKET_ID, err.socket_id)
    if err.has(OemValid.NIMBUS_ID):
        parts.append(f"nimbus_ID={err.nimbus_id} ")
        record(OemField.NIMBUS_ID, err.nimbus_id)
    if err.has(OemValid.MODULE_ID):
        name = oem_module_name(modules, err.module_id)
        parts.append(f"module={name} ")
        record(OemField.MODULE_ID, name)
    if err.has(OemValid.SUB_MODULE_ID):
        name = oem_submodule_name(modules, err.module_id, err.sub_module_id)
        parts.append(f"submodule={name} ")
        record(OemField.SUB_MODULE_ID, name)
    if err.has(OemValid.ERR_SEVERITY):
        severity = err_severity(err.err_severity)
        parts.append(f"error_severity={severity} ")
        record(OemField.ERR_SEV, severity)
    parts.append("]")
    return f"{_bounded(''.join(parts))}\n"


def _finish_regs(entries, recorder, table_name):
    """Render register entries as lines and store the one-line dump."""
    lines = ["Reg Dump:\n"]
    lines.extend(f"{entry}\n" for entry in entries)
    joined = "".join(f"{entry} " for entry in entries)
    dump = _bounded(joined) if len(joined) >= HISI_BUF_LEN else joined[:-1]
    if recorder is not None:
        recorder.record(OemField.REGS_DUMP, dump)
        recorder.step(table_name)
    return "".join(lines)


def _decode_regs(err, recorder):
    entries = []
    for bit, label, value in (
        (Type1Valid.ERR_MISC_0, "ERR_MISC0", err.err_misc_0),
        (Type1Valid.ERR_MISC_1, "ERR_MISC1", err.err_misc_1),
        (Type1Valid.ERR_MISC_2, "ERR_MISC2", err.err_misc_2),
        (Type1Valid.ERR_MISC_3, "ERR_MISC3", err.err_misc_3),
        (Type1Valid.ERR_MISC_4, "ERR_MISC4", err.err_misc_4),
        (Type1Valid.ERR_ADDR, "ERR_ADDR", err.err_addr),
    ):
        if err.has(bit):
            entries.append(f"{label}=0x{value:x}")
    return _finish_regs(entries, recorder, "hip08_oem_type1_event_tab")


def decode_hip08_oem_type1_error(data, recorder=None, timestamp=""):
    """Decode an OEM type-1 section, store it if a recorder is given, return the text."""
    err = OemType1Section.from_bytes(data)
    if err.val_bits == 0:
        raise DecodeError("decode_hip08_oem_type1_error: no valid error information")

    if recorder is not None:
        recorder.record(OemField.TIMESTAMP, timestamp)

    return (
        "\nHISI HIP08: OEM Type-1 Error\n"
        + _decode_oem_header(err, HISI_OEM_TYPE1_MODULES, recorder)
        + _decode_regs(err, recorder)
    )