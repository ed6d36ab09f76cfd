import sqlite3
import struct

import pytest

from rasdecode.ampere import decode_amp_oem_type_error
from rasdecode.ampere_payload01 import decode_amp_payload0_err_regs
from rasdecode.ampere_payload23 import decode_amp_payload3_err_regs
from rasdecode.ampere_store import AmpereStore
from rasdecode.hisilicon import DecodeError


def _p0(type_byte, subtype, instance, status=0, addr=0):
    return struct.pack("<BBHIQQQQQ", type_byte, subtype, instance, status, addr, 0, 0, 0, 0)


def _p1(type_byte, subtype, instance):
    return struct.pack("<BBH9IQ", type_byte, subtype, instance, *(0,) * 9, 0)


def _p3(type_byte, subtype, instance):
    return struct.pack("<BBHI5Q", type_byte, subtype, instance, 0, *(0,) * 5)


def test_dispatches_payload0_without_store():
    data = _p0(0x01, 2, 4, status=0x55)
    assert decode_amp_oem_type_error(data) == decode_amp_payload0_err_regs(data)


def test_dispatches_payload3():
    data = _p3(0xFF, 0, 0)
    assert decode_amp_oem_type_error(data, "t") == decode_amp_payload3_err_regs(data)


def test_payload1_selected_from_top_bits():
    text = decode_amp_oem_type_error(_p1(0x47, 0, 0))
    assert "AER_UNCORR_ERR_STATUS:" in text
    assert "Error Subtype: Root Port" in text


def test_records_payload0_row():
    connection = sqlite3.connect(":memory:")
    store = AmpereStore(connection)
    timestamp = "2024-01-01 00:00:00 +0000"
    decode_amp_oem_type_error(_p0(0x02, 3, (1 << 14) | 7, status=9), timestamp, store)
    rows = connection.execute(
        "SELECT timestamp, type, subtype, instance, socket_num, status_reg "
        "FROM amp_payload0_event"
    ).fetchall()
    assert rows == [(timestamp, "MESH", "CCIX Node", 7, 1, 9)]


def test_records_into_table_of_payload_kind():
    connection = sqlite3.connect(":memory:")
    store = AmpereStore(connection)
    decode_amp_oem_type_error(_p3(0xFF, 4, 0), "t", store)
    decode_amp_oem_type_error(_p3(0xFF, 4, 0), "t", store)
    rows = connection.execute("SELECT type, subtype FROM amp_payload3_event").fetchall()
    assert rows == [("BERT", "PMPRO Fatal"), ("BERT", "PMPRO Fatal")]


def test_table_creation_failure():
    connection = sqlite3.connect(":memory:")
    store = AmpereStore(connection)
    connection.close()
    with pytest.raises(DecodeError, match="amp_payload0_event_tab"):
        decode_amp_oem_type_error(_p0(0x00, 0, 0), "t", store)


def test_empty_section():
    with pytest.raises(DecodeError):
        decode_amp_oem_type_error(b"")


def test_truncated_section():
    with pytest.raises(DecodeError):
        decode_amp_oem_type_error(b"\x00\x00\x00\x00")