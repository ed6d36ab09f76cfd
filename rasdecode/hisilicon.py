"""HiSilicon common error section decoding and the vendor-table recorder it shares."""

from __future__ import annotations

import enum
import logging
import sqlite3
import struct
from dataclasses import dataclass

logger = logging.getLogger(__name__)

HISI_BUF_LEN = 2048

HISI_ERR_SEVERITY_NFE = 0
HISI_ERR_SEVERITY_FE = 1
HISI_ERR_SEVERITY_CE = 2
HISI_ERR_SEVERITY_NONE = 3

_SEVERITY = {
    HISI_ERR_SEVERITY_NFE: "recoverable",
    HISI_ERR_SEVERITY_FE: "fatal",
    HISI_ERR_SEVERITY_CE: "corrected",
    HISI_ERR_SEVERITY_NONE: "none",
}

HISI_COMMON_SECTION_TABLE = "hisi_common_section"
HISI_COMMON_SECTION_FIELDS = (
    ("id", "INTEGER PRIMARY KEY"),
    ("timestamp", "TEXT"),
    ("err_info", "TEXT"),
    ("regs_dump", "TEXT"),
)

SOC_DESC = ("Kunpeng916", "Kunpeng920", "Kunpeng930")

MODULE_NAME = (
    "MN", "PLL", "SLLC", "AA", "SIOE", "POE", "CPA", "DISP", "GIC", "ITS",
    "AVSBUS", "CS", "PPU", "SMMU", "PA", "HLLC", "DDRC", "L3TAG", "L3DATA",
    "PCS", "MATA", "PCIe Local", "SAS", "SATA", "NIC", "RoCE", "USB", "ZIP",
    "HPRE", "SEC", "RDE", "MEE", "L4D", "Tsensor", "ROH", "BTC", "HILINK",
)


class DecodeError(ValueError):
    """Raised when a vendor error section cannot be decoded."""


def err_severity(severity):
    """Name of a HiSilicon error severity code."""
    return _SEVERITY.get(severity, "unknown")


class VendorRecorder:
    """Stores decoded vendor events as rows of one SQLite table.

    ``fields`` lists ``(name, type)`` pairs; the first is the row id. Field ids
    passed to :meth:`record` are positions in that list, starting at 1.
    """

    def __init__(self, connection, table, fields):
        self._connection = connection
        self.table = table
        self.fields = tuple(fields)
        if len(self.fields) < 2:
            raise ValueError("a vendor table needs an id and at least one field")
        columns = ", ".join(f"{name} {kind}" for name, kind in self.fields)
        connection.execute(f"CREATE TABLE IF NOT EXISTS {table} ({columns})")
        connection.commit()
        names = [name for name, _ in self.fields[1:]]
        placeholders = ", ".join("?" * len(names))
        self._insert = (
            f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})"
        )
        self._values = {}

    def record(self, field_id, value):
        """Bind ``value`` to the field at position ``field_id``."""
        field_id = int(field_id)
        if not 1 <= field_id < len(self.fields):
            raise ValueError(f"no field {field_id} in table {self.table}")
        self._values[field_id] = value

    def step(self, name):
        """Insert the bound values as a new row and clear them; return the row id."""
        row = tuple(self._values.get(i) for i in range(1, len(self.fields)))
        self._values.clear()
        try:
            cursor = self._connection.execute(self._insert, row)
            self._connection.commit()
        except sqlite3.Error as exc:
            logger.error("Failed to do %s step on sqlite: error = %s", name, exc)
            return None
        return cursor.lastrowid


class _Message:
    """Space-separated message with a bounded length."""

    def __init__(self, limit=HISI_BUF_LEN):
        self.text = ""
        self._limit = limit

    def add(self, text):
        room = self._limit - 1 - len(self.text)
        if room <= 0:
            return
        piece = f" {text}" if self.text else text
        self.text += piece[:room]


class CommonValid(enum.IntEnum):
    """Bit positions of the validity mask of a common error section."""

    SOC_ID = 0
    SOCKET_ID = 1
    TOTEM_ID = 2
    NIMBUS_ID = 3
    SUBSYSTEM_ID = 4
    MODULE_ID = 5
    SUBMODULE_ID = 6
    CORE_ID = 7
    PORT_ID = 8
    ERR_TYPE = 9
    PCIE_INFO = 10
    ERR_SEVERITY = 11
    REG_ARRAY_SIZE = 12


class CommonField(enum.IntEnum):
    """Column positions of the common section table."""

    ID = 0
    TIMESTAMP = 1
    ERR_INFO = 2
    REGS_DUMP = 3


_COMMON_HEADER = struct.Struct("<I10BHBBHB3xB3xI")
_REG = struct.Struct("<I")


@dataclass(frozen=True)
class HisiCommonSection:
    """HiSilicon common error section."""

    val_bits: int
    version: int
    soc_id: int
    socket_id: int
    totem_id: int
    nimbus_id: int
    subsystem_id: int
    module_id: int
    submodule_id: int
    core_id: int
    port_id: int
    err_type: int
    pcie_function: int
    pcie_device: int
    pcie_segment: int
    pcie_bus: int
    err_severity: int
    reg_array_size: int
    reg_array: tuple = ()

    def has(self, bit):
        return bool(self.val_bits & (1 << bit))

    @classmethod
    def from_bytes(cls, data):
        """Parse a little-endian section; registers are read when declared valid."""
        data = bytes(data)
        if len(data) < _COMMON_HEADER.size:
            raise DecodeError("common error section is too short")
        values = _COMMON_HEADER.unpack_from(data)
        val_bits, reg_array_size = values[0], values[-1]
        regs = ()
        if val_bits & (1 << CommonValid.REG_ARRAY_SIZE) and reg_array_size > 0:
            count = reg_array_size // _REG.size
            end = _COMMON_HEADER.size + count * _REG.size
            if len(data) < end:
                raise DecodeError("register array is truncated")
            regs = tuple(
                value
                for (value,) in _REG.iter_unpack(data[_COMMON_HEADER.size:end])
            )
        return cls(*values, reg_array=regs)


def _soc_desc(soc_id):
    return SOC_DESC[soc_id] if soc_id < len(SOC_DESC) else "unknown"


def _module(module_id):
    if module_id >= len(MODULE_NAME):
        return f"module=unknown(id={module_id}) "
    return f"module={MODULE_NAME[module_id]} "


def _decode_header(err):
    msg = _Message()
    msg.add(f"[ table_version={err.version}")
    if err.has(CommonValid.SOC_ID):
        msg.add(f"soc={_soc_desc(err.soc_id)}")
    if err.has(CommonValid.SOCKET_ID):
        msg.add(f"socket_id={err.socket_id}")
    if err.has(CommonValid.TOTEM_ID):
        msg.add(f"totem_id={err.totem_id}")
    if err.has(CommonValid.NIMBUS_ID):
        msg.add(f"nimbus_id={err.nimbus_id}")
    if err.has(CommonValid.SUBSYSTEM_ID):
        msg.add(f"subsystem_id={err.subsystem_id}")
    if err.has(CommonValid.MODULE_ID):
        msg.add(_module(err.module_id))
    if err.has(CommonValid.SUBMODULE_ID):
        msg.add(f"submodule_id={err.submodule_id}")
    if err.has(CommonValid.CORE_ID):
        msg.add(f"core_id={err.core_id}")
    if err.has(CommonValid.PORT_ID):
        msg.add(f"port_id={err.port_id}")
    if err.has(CommonValid.ERR_TYPE):
        msg.add(f"err_type={err.err_type}")
    if err.has(CommonValid.PCIE_INFO):
        msg.add(
            f"pcie_device_id={err.pcie_segment:04x}:{err.pcie_bus:02x}:"
            f"{err.pcie_device:02x}.{err.pcie_function:x}"
        )
    if err.has(CommonValid.ERR_SEVERITY):
        msg.add(f"err_severity={err_severity(err.err_severity)}")
    msg.add("]")
    return msg.text


def decode_hisi_common_section(data, recorder=None, timestamp=""):
    """Decode a common error section, store it if a recorder is given, return the text."""
    err = HisiCommonSection.from_bytes(data)
    lines = ["\nHisilicon Common Error Section:\n"]
    error_msg = _decode_header(err)
    lines.append(f"{error_msg}\n")

    reg_msg = _Message()
    if err.reg_array:
        lines.append("Register Dump:\n")
        for index, value in enumerate(err.reg_array):
            entry = f"reg{index:02d}=0x{value:08x}"
            lines.append(f"{entry}\n")
            reg_msg.add(entry)

    if recorder is not None:
        recorder.record(CommonField.TIMESTAMP, timestamp)
        recorder.record(CommonField.ERR_INFO, error_msg)
        recorder.record(CommonField.REGS_DUMP, reg_msg.text)
        recorder.step("hisi_common_section_tab")

    return "".join(lines)