"""Ampere vendor error payload layouts and the names of their error types."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar

from .hisilicon import DecodeError

PAYLOAD_TYPE_0 = 0x00
PAYLOAD_TYPE_1 = 0x01
PAYLOAD_TYPE_2 = 0x02
PAYLOAD_TYPE_3 = 0x03


class AmpRasType(enum.IntEnum):
    """Ampere RAS error types."""

    CPU = 0
    MCU = 1
    MESH = 2
    LINK_2P_QS = 3
    LINK_2P_MQ = 4
    GIC = 5
    SMMU = 6
    PCIE_AER = 7
    PCIE_RASDP = 8
    OCM = 9
    SMPRO = 10
    PMPRO = 11
    ATF_FW = 12
    SMPRO_FW = 13
    PMPRO_FW = 14
    BERT = 63


_TYPE_INFO = (
    (AmpRasType.CPU, "CPM", ("Snoop-Logic", "ARMv8 Core 0", "ARMv8 Core 1")),
    (
        AmpRasType.MCU,
        "MCU",
        ("ERR0", "ERR1", "ERR2", "ERR3", "ERR4", "ERR5", "ERR6", "Link Error"),
    ),
    (
        AmpRasType.MESH,
        "MESH",
        ("Cross Point", "Home Node(IO)", "Home Node(Memory)", "CCIX Node"),
    ),
    (AmpRasType.LINK_2P_QS, "2P Link(Altra)", None),
    (AmpRasType.LINK_2P_MQ, "2P Link(Altra Max)", ("ERR0", "ERR1", "ERR2", "ERR3")),
    (
        AmpRasType.GIC,
        "GIC",
        tuple(f"ERR{i}" for i in range(13))
        + tuple(f"ERR{13 + i}(GIC ITS {i})" for i in range(8)),
    ),
    (AmpRasType.SMMU, "SMMU", None),
    (AmpRasType.PCIE_AER, "PCIe AER", ("Root Port", "Device")),
    (AmpRasType.PCIE_RASDP, "PCIe RASDP", None),
    (AmpRasType.OCM, "OCM", ("ERR0", "ERR1", "ERR2")),
    (AmpRasType.SMPRO, "SMPRO", ("ERR0", "ERR1", "MPA_ERR")),
    (AmpRasType.PMPRO, "PMPRO", ("ERR0", "ERR1", "MPA_ERR")),
    (AmpRasType.ATF_FW, "ATF FW", ("EL3", "SPM", "Secure Partition(SEL0/SEL1)")),
    (AmpRasType.SMPRO_FW, "SMPRO FW", ("RAS_MSG_ERR", "")),
    (AmpRasType.PMPRO_FW, "PMPRO FW", ("RAS_MSG_ERR", "")),
    (
        AmpRasType.BERT,
        "BERT",
        ("Default", "Watchdog", "ATF Fatal", "SMPRO Fatal", "PMPRO Fatal"),
    ),
)

_SMMU_SUBTYPES = {**{i: f"TBU{i}" for i in range(10)}, 0x64: "TCU"}

_RASDP_SUBTYPES = {0x00: "RCA HB Error", 0x01: "RCB HB Error", 0x08: "RASDP Error"}


def payload_type(first_byte):
    """Payload layout (0-3) encoded in the top bits of a payload's first byte."""
    return (first_byte >> 6) & 0x3


def socket_num(instance):
    """Processor socket encoded in an instance field."""
    return (instance >> 14) & 0x3


def instance_id(instance):
    """Instance number encoded in an instance field."""
    return instance & 0x3FFF


def oem_type_name(type_id):
    """Name of an error type, or "unknown"."""
    for ident, name, _ in _TYPE_INFO:
        if ident == type_id:
            return name
    return "unknown"


def oem_subtype_name(type_id, subtype_id):
    """Name of an error subtype; the type name when the type has no subtypes."""
    for ident, name, subs in _TYPE_INFO:
        if ident != type_id:
            continue
        if subs is None:
            return name
        if subtype_id >= len(subs):
            return "unknown"
        return subs[subtype_id]
    return "unknown"


def smmu_subtype_name(subtype):
    """Name of an SMMU error subtype."""
    return _SMMU_SUBTYPES.get(subtype, "unknown error")


def rasdp_subtype_name(subtype):
    """Name of a PCIe RASDP error subtype."""
    return _RASDP_SUBTYPES.get(subtype, "unknown error")


def _unpack(cls, data):
    data = bytes(data)
    layout = cls._LAYOUT
    if len(data) < layout.size:
        raise DecodeError(f"{cls.__name__} needs {layout.size} bytes, got {len(data)}")
    return cls(*layout.unpack_from(data))


@dataclass(frozen=True)
class _Payload:
    type: int
    subtype: int
    instance: int

    @property
    def error_type(self):
        return self.type & 0x3F

    @property
    def payload_type(self):
        return payload_type(self.type)

    @property
    def instance_id(self):
        return instance_id(self.instance)

    @property
    def socket(self):
        return socket_num(self.instance)


@dataclass(frozen=True)
class Payload0(_Payload):
    """ARMv8 RAS compliant error record."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BBHIQQQQQ")

    err_status: int
    err_addr: int
    err_misc_0: int
    err_misc_1: int
    err_misc_2: int
    err_misc_3: int

    @classmethod
    def from_bytes(cls, data):
        """Parse a little-endian type-0 payload."""
        return _unpack(cls, data)


@dataclass(frozen=True)
class Payload1(_Payload):
    """PCIe AER error record."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BBH9IQ")

    uncore_status: int
    uncore_mask: int
    uncore_sev: int
    core_status: int
    core_mask: int
    root_err_cmd: int
    root_status: int
    src_id: int
    reserved1: int
    reserved2: int

    @classmethod
    def from_bytes(cls, data):
        """Parse a little-endian type-1 payload."""
        return _unpack(cls, data)


@dataclass(frozen=True)
class Payload2(_Payload):
    """PCIe RAS data path error record."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BBH7IQQ")

    ce_register: int
    ce_location: int
    ce_addr: int
    ue_register: int
    ue_location: int
    ue_addr: int
    reserved1: int
    reserved2: int
    reserved3: int

    @classmethod
    def from_bytes(cls, data):
        """Parse a little-endian type-2 payload."""
        return _unpack(cls, data)


@dataclass(frozen=True)
class Payload3(_Payload):
    """Firmware-specific error record."""

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BBHI5Q")

    fw_speci_data0: int
    fw_speci_data1: int
    fw_speci_data2: int
    fw_speci_data3: int
    fw_speci_data4: int
    fw_speci_data5: int

    @classmethod
    def from_bytes(cls, data):
        """Parse a little-endian type-3 payload."""
        return _unpack(cls, data)


PAYLOAD_CLASSES = {
    PAYLOAD_TYPE_0: Payload0,
    PAYLOAD_TYPE_1: Payload1,
    PAYLOAD_TYPE_2: Payload2,
    PAYLOAD_TYPE_3: Payload3,
}