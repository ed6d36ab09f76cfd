"""Decoding of HiSilicon HIP08 PCIe local error sections."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .hisilicon import DecodeError, err_severity

HISI_BUF_LEN = 1024
HISI_PCIE_LOCAL_ERR_MISC_MAX = 33

HIP08_PCIE_LOCAL_TABLE = "hip08_pcie_local_event_v2"
HIP08_PCIE_LOCAL_FIELDS = (
    ("id", "INTEGER PRIMARY KEY"),
    ("timestamp", "TEXT"),
    ("version", "INTEGER"),
    ("soc_id", "INTEGER"),
    ("socket_id", "INTEGER"),
    ("nimbus_id", "INTEGER"),
    ("sub_module_id", "TEXT"),
    ("core_id", "INTEGER"),
    ("port_id", "INTEGER"),
    ("err_severity", "TEXT"),
    ("err_type", "INTEGER"),
    ("regs_dump", "TEXT"),
)

_SUB_MODULES = {
    0: "AP_Layer",
    1: "TL_Layer",
    2: "MAC_Layer",
    3: "DL_Layer",
    4: "SDI_Layer",
}


class PcieLocalValid(enum.IntEnum):
    """Bit positions of the validity mask of a PCIe local error section."""

    VERSION = 0
    SOC_ID = 1
    SOCKET_ID = 2
    NIMBUS_ID = 3
    SUB_MODULE_ID = 4
    CORE_ID = 5
    PORT_ID = 6
    ERR_TYPE = 7
    ERR_SEVERITY = 8
    ERR_MISC = 9


class PcieLocalField(enum.IntEnum):
    """Column positions of the PCIe local event table."""

    ID = 0
    TIMESTAMP = 1
    VERSION = 2
    SOC_ID = 3
    SOCKET_ID = 4
    NIMBUS_ID = 5
    SUB_MODULE_ID = 6
    CORE_ID = 7
    PORT_ID = 8
    ERR_SEV = 9
    ERR_TYPE = 10
    REGS_DUMP = 11


_LAYOUT = struct.Struct(f"<Q8BH2x{HISI_PCIE_LOCAL_ERR_MISC_MAX}I")


def pcie_local_sub_module_name(sub_module_id):
    """Name of a PCIe local sub-module."""
    return _SUB_MODULES.get(sub_module_id, "unknown")


@dataclass(frozen=True)
class PcieLocalErrorSection:
    """HIP08 PCIe local error section."""

    val_bits: int
    version: int
    soc_id: int
    socket_id: int
    nimbus_id: int
    sub_module_id: int
    core_id: int
    port_id: int
    err_severity: int
    err_type: int
    err_misc: tuple

    def has(self, bit):
        return bool(self.val_bits & (1 << bit))

    @classmethod
    def from_bytes(cls, data):
        """Parse a little-endian PCIe local error section."""
        data = bytes(data)
        if len(data) < _LAYOUT.size:
            raise DecodeError("PCIe local error section is too short")
        values = _LAYOUT.unpack_from(data)
        return cls(*values[:10], err_misc=tuple(values[10:]))


def _bounded(parts):
    text = "".join(parts)
    return text[: HISI_BUF_LEN - 1]


def _decode_header(err, recorder):
    def record(field, value):
        if recorder is not None:
            recorder.record(field, value)

    parts = [f"[ table_version={err.version} "]
    record(PcieLocalField.VERSION, err.version)

    if err.has(PcieLocalValid.SOC_ID):
        parts.append(f"SOC_ID={err.soc_id} ")
        record(PcieLocalField.SOC_ID, err.soc_id)
    if err.has(PcieLocalValid.SOCKET_ID):
        parts.append(f"socket_ID={err.socket_id} ")
        record(PcieLocalField.SOCKET_ID, err.socket_id)
    if err.has(PcieLocalValid.NIMBUS_ID):
        parts.append(f"nimbus_ID={err.nimbus_id} ")
        record(PcieLocalField.NIMBUS_ID, err.nimbus_id)
    if err.has(PcieLocalValid.SUB_MODULE_ID):
        name = pcie_local_sub_module_name(err.sub_module_id)
        parts.append(f"submodule={name} ")
        record(PcieLocalField.SUB_MODULE_ID, name)
    if err.has(PcieLocalValid.CORE_ID):
        parts.append(f"core_ID=core{err.core_id} ")
        record(PcieLocalField.CORE_ID, err.core_id)
    if err.has(PcieLocalValid.PORT_ID):
        parts.append(f"port_ID=port{err.port_id} ")
        record(PcieLocalField.PORT_ID, err.port_id)
    if err.has(PcieLocalValid.ERR_SEVERITY):
        severity = err_severity(err.err_severity)
        parts.append(f"error_severity={severity} ")
        record(PcieLocalField.ERR_SEV, severity)
    if err.has(PcieLocalValid.ERR_TYPE):
        parts.append(f"error_type=0x{err.err_type:x} ")
        record(PcieLocalField.ERR_TYPE, err.err_type)
    parts.append("]")
    return f"{_bounded(parts)}\n"


def _decode_regs(err, recorder):
    lines = ["Reg Dump:\n"]
    parts = []
    for index, value in enumerate(err.err_misc):
        if err.has(PcieLocalValid.ERR_MISC + index):
            entry = f"ERR_MISC_{index}=0x{value:x}"
            lines.append(f"{entry}\n")
            parts.append(f"{entry} ")

    joined = "".join(parts)
    if len(joined) >= HISI_BUF_LEN:
        dump = joined[: HISI_BUF_LEN - 1]
    else:
        dump = joined[:-1]

    if recorder is not None:
        recorder.record(PcieLocalField.REGS_DUMP, dump)
        recorder.step("hip08_pcie_local_event_tab")
    return "".join(lines)


def decode_hip08_pcie_local_error(data, recorder=None, timestamp=""):
    """Decode a PCIe local error section, store it if a recorder is given, return the text."""
    err = PcieLocalErrorSection.from_bytes(data)
    if err.val_bits == 0:
        raise DecodeError("decode_hip08_pcie_local_error: no valid error information")

    if recorder is not None:
        recorder.record(PcieLocalField.TIMESTAMP, timestamp)

    return (
        "\nHISI HIP08: PCIe local error\n"
        + _decode_header(err, recorder)
        + _decode_regs(err, recorder)
    )