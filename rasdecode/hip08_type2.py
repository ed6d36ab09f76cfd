"""Decoding of HiSilicon HIP08 OEM type-2 error sections."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .hip08_type1 import (
    HIP08_OEM_EVENT_FIELDS,
    ModuleInfo,
    OemField,
    _decode_oem_header,
    _finish_regs,
)
from .hisilicon import DecodeError

HIP08_OEM_TYPE2_TABLE = "hip08_oem_type2_event_v2"
HIP08_OEM_TYPE2_FIELDS = HIP08_OEM_EVENT_FIELDS


class Type2Valid(enum.IntEnum):
    """Validity bits of the OEM type-2 register dump."""

    ERR_FR = 6
    ERR_CTRL = 7
    ERR_STATUS = 8
    ERR_ADDR = 9
    ERR_MISC_0 = 10
    ERR_MISC_1 = 11


HISI_OEM_TYPE2_MODULES = (
    ModuleInfo(0, "SMMU", ("HAC_SMMU", "PCIE_SMMU", "MGMT_SMMU", "NIC_SMMU")),
    ModuleInfo(1, "HHA", ("TB_HHA0", "TB_HHA1", "TA_HHA0", "TA_HHA1")),
    ModuleInfo(2, "PA"),
    ModuleInfo(3, "HLLC", ("HLLC0", "HLLC1", "HLLC2")),
    ModuleInfo(
        4,
        "DDRC",
        (
            "TB_DDRC0", "TB_DDRC1", "TB_DDRC2", "TB_DDRC3",
            "TA_DDRC0", "TA_DDRC1", "TA_DDRC2", "TA_DDRC3",
        ),
    ),
    ModuleInfo(
        5,
        "L3TAG",
        tuple(f"TB_PARTITION{i}" for i in range(8))
        + tuple(f"TA_PARTITION{i}" for i in range(8)),
    ),
    ModuleInfo(
        6,
        "L3DATA",
        (
            "TB_BANK0", "TB_BANK1", "TB_BANK2", "TB_BANK3",
            "TA_BANK0", "TA_BANK1", "TA_BANK2", "TA_BANK3",
        ),
    ),
)

_LAYOUT = struct.Struct("<I7Bx12I")


@dataclass(frozen=True)
class OemType2Section:
    """HIP08 OEM type-2 error section."""

    val_bits: int
    version: int
    soc_id: int
    socket_id: int
    nimbus_id: int
    module_id: int
    sub_module_id: int
    err_severity: int
    err_fr_0: int
    err_fr_1: int
    err_ctrl_0: int
    err_ctrl_1: int
    err_status_0: int
    err_status_1: int
    err_addr_0: int
    err_addr_1: int
    err_misc0_0: int
    err_misc0_1: int
    err_misc1_0: int
    err_misc1_1: int

    def has(self, bit):
        return bool(self.val_bits & (1 << bit))

    @classmethod
    def from_bytes(cls, data):
        """Parse a little-endian OEM type-2 error section."""
        data = bytes(data)
        if len(data) < _LAYOUT.size:
            raise DecodeError("OEM type-2 error section is too short")
        return cls(*_LAYOUT.unpack_from(data))


def _decode_regs(err, recorder):
    entries = []
    for bit, label, first, second in (
        (Type2Valid.ERR_FR, "ERR_FR", err.err_fr_0, err.err_fr_1),
        (Type2Valid.ERR_CTRL, "ERR_CTRL", err.err_ctrl_0, err.err_ctrl_1),
        (Type2Valid.ERR_STATUS, "ERR_STATUS", err.err_status_0, err.err_status_1),
        (Type2Valid.ERR_ADDR, "ERR_ADDR", err.err_addr_0, err.err_addr_1),
        (Type2Valid.ERR_MISC_0, "ERR_MISC0", err.err_misc0_0, err.err_misc0_1),
        (Type2Valid.ERR_MISC_1, "ERR_MISC1", err.err_misc1_0, err.err_misc1_1),
    ):
        if err.has(bit):
            entries.append(f"{label}_0=0x{first:x}")
            entries.append(f"{label}_1=0x{second:x}")
    return _finish_regs(entries, recorder, "hip08_oem_type2_event_tab")


def decode_hip08_oem_type2_error(data, recorder=None, timestamp=""):
    """Decode an OEM type-2 section, store it if a recorder is given, return the text."""
    err = OemType2Section.from_bytes(data)
    if err.val_bits == 0:
        raise DecodeError("decode_hip08_oem_type2_error: no valid error information")

    if recorder is not None:
        recorder.record(OemField.TIMESTAMP, timestamp)

    return (
        "\nHISI HIP08: OEM Type-2 Error\n"
        + _decode_oem_header(err, HISI_OEM_TYPE2_MODULES, recorder)
        + _decode_regs(err, recorder)
    )