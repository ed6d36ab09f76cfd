"""SQLite storage of decoded Ampere vendor error payloads."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from .ampere_types import Payload0, Payload1, Payload2, Payload3

logger = logging.getLogger(__name__)

_COMMON_FIELDS = (
    ("id", "INTEGER PRIMARY KEY"),
    ("timestamp", "TEXT"),
    ("type", "TEXT"),
    ("subtype", "TEXT"),
    ("instance", "INTEGER"),
    ("socket_num", "INTEGER"),
)


@dataclass(frozen=True)
class _TableSpec:
    name: str
    list_name: str
    payload_class: type
    # (column name, payload attribute, width in bits of the stored integer)
    registers: tuple

    @property
    def fields(self):
        return _COMMON_FIELDS + tuple(
            (column, "INTEGER") for column, _, _ in self.registers
        )


_TABLES = {
    0: _TableSpec(
        "amp_payload0_event",
        "amp_payload0_event_tab",
        Payload0,
        (
            ("status_reg", "err_status", 32),
            ("addr_reg", "err_addr", 64),
            ("misc0", "err_misc_0", 64),
            ("misc1", "err_misc_1", 64),
            ("misc2", "err_misc_2", 64),
            ("misc3", "err_misc_3", 64),
        ),
    ),
    1: _TableSpec(
        "amp_payload1_event",
        "amp_payload1_event_tab",
        Payload1,
        (
            ("uncore_err_status", "uncore_status", 32),
            ("uncore_err_mask", "uncore_mask", 32),
            ("uncore_err_sev", "uncore_sev", 32),
            ("core_err_status", "core_status", 32),
            ("core_err_mask", "core_mask", 32),
            ("root_err_cmd", "root_err_cmd", 32),
            ("root_err_status", "root_status", 32),
            ("src_id", "src_id", 32),
            ("reserved1", "reserved1", 32),
            ("reserverd2", "reserved2", 64),
        ),
    ),
    2: _TableSpec(
        "amp_payload2_event",
        "amp_payload2_event_tab",
        Payload2,
        (
            ("ce_report_reg", "ce_register", 32),
            ("ce_location", "ce_location", 32),
            ("ce_addr", "ce_addr", 32),
            ("ue_report_reg", "ue_register", 32),
            ("ue_location", "ue_location", 32),
            ("ue_addr", "ue_addr", 32),
            ("reserved1", "reserved1", 32),
            ("reserved2", "reserved2", 64),
            ("reserved3", "reserved3", 64),
        ),
    ),
    3: _TableSpec(
        "amp_payload3_event",
        "amp_payload3_event_tab",
        Payload3,
        (
            ("fw_spec_data0", "fw_speci_data0", 32),
            ("fw_spec_data1", "fw_speci_data1", 64),
            ("fw_spec_data2", "fw_speci_data2", 64),
            ("fw_spec_data3", "fw_speci_data3", 64),
            ("fw_spec_data4", "fw_speci_data4", 64),
            ("fw_spec_data5", "fw_speci_data5", 64),
        ),
    ),
}


def _signed(value, bits):
    value &= (1 << bits) - 1
    return value - (1 << bits) if value >> (bits - 1) else value


def _spec(kind):
    try:
        return _TABLES[kind]
    except KeyError:
        raise ValueError(f"wrong payload type: {kind!r}") from None


class AmpereStore:
    """Writes decoded Ampere payloads to one table per payload type."""

    def __init__(self, connection):
        self._connection = connection
        self._created = set()

    def ensure_table(self, kind):
        """Create the table for payload type ``kind`` if needed; return its name."""
        spec = _spec(kind)
        if kind not in self._created:
            columns = ", ".join(f"{name} {sqltype}" for name, sqltype in spec.fields)
            self._connection.execute(
                f"CREATE TABLE IF NOT EXISTS {spec.name} ({columns})"
            )
            self._connection.commit()
            self._created.add(kind)
        return spec.name

    def record(self, kind, timestamp, type_str, subtype_str, payload):
        """Insert one decoded payload; return the new row id, or None on failure."""
        spec = _spec(kind)
        if not isinstance(payload, spec.payload_class):
            raise TypeError(
                f"payload type {kind} needs {spec.payload_class.__name__}, "
                f"got {type(payload).__name__}"
            )
        self.ensure_table(kind)

        row = (
            timestamp,
            type_str,
            subtype_str,
            payload.instance_id,
            payload.socket,
        ) + tuple(
            _signed(getattr(payload, attr), bits) for _, attr, bits in spec.registers
        )
        names = [name for name, _ in spec.fields[1:]]
        statement = (
            f"INSERT INTO {spec.name} ({', '.join(names)}) "
            f"VALUES ({', '.join('?' * len(names))})"
        )
        try:
            cursor = self._connection.execute(statement, row)
            self._connection.commit()
        except sqlite3.Error as exc:
            logger.error(
                "Failed to do %s step on sqlite: error = %s", spec.list_name, exc
            )
            return None
        return cursor.lastrowid