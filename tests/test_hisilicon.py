import sqlite3
import struct

import pytest

from rasdecode.hisilicon import (
    HISI_COMMON_SECTION_FIELDS,
    HISI_COMMON_SECTION_TABLE,
    DecodeError,
    HisiCommonSection,
    VendorRecorder,
    decode_hisi_common_section,
    err_severity,
)

_HEADER = struct.Struct("<I10BHBBHB3xB3xI")


def _pack(val_bits=0, version=1, soc_id=1, socket_id=0, totem_id=0, nimbus_id=0,
          subsystem_id=0, module_id=17, submodule_id=0, core_id=0, port_id=0,
          err_type=0, function=4, device=3, segment=1, bus=2, severity=2,
          regs=()):
    head = _HEADER.pack(
        val_bits, version, soc_id, socket_id, totem_id, nimbus_id, subsystem_id,
        module_id, submodule_id, core_id, port_id, err_type, function, device,
        segment, bus, severity, 4 * len(regs),
    )
    return head + b"".join(struct.pack("<I", r) for r in regs)


def _recorder():
    conn = sqlite3.connect(":memory:")
    return conn, VendorRecorder(conn, HISI_COMMON_SECTION_TABLE, HISI_COMMON_SECTION_FIELDS)


@pytest.mark.parametrize(
    "code, name",
    [(0, "recoverable"), (1, "fatal"), (2, "corrected"), (3, "none"), (9, "unknown")],
)
def test_err_severity(code, name):
    assert err_severity(code) == name


def test_from_bytes_reads_fields():
    err = HisiCommonSection.from_bytes(
        _pack(val_bits=1 << 12, socket_id=5, err_type=300, segment=7, regs=(10, 20))
    )
    assert err.socket_id == 5
    assert err.err_type == 300
    assert err.pcie_segment == 7
    assert err.reg_array == (10, 20)


def test_from_bytes_ignores_registers_without_valid_bit():
    err = HisiCommonSection.from_bytes(_pack(val_bits=0, regs=(1, 2, 3)))
    assert err.reg_array == ()


def test_short_header_raises():
    with pytest.raises(DecodeError):
        HisiCommonSection.from_bytes(b"\x00" * 10)


def test_truncated_registers_raise():
    data = _pack(val_bits=1 << 12, regs=(1, 2, 3))[:-4]
    with pytest.raises(DecodeError):
        HisiCommonSection.from_bytes(data)


def test_minimal_header():
    text = decode_hisi_common_section(_pack(val_bits=0, version=1))
    assert text.splitlines()[1] == "Hisilicon Common Error Section:"
    assert text.splitlines()[2] == "[ table_version=1 ]"


def test_header_fields():
    bits = (1 << 0) | (1 << 5) | (1 << 10) | (1 << 11)
    text = decode_hisi_common_section(_pack(val_bits=bits))
    header = text.splitlines()[2]
    assert "soc=Kunpeng920" in header
    assert "module=L3TAG" in header
    assert "pcie_device_id=0001:02:03.4" in header
    assert "err_severity=corrected" in header
    assert header.startswith("[ table_version=") and header.endswith(" ]")


def test_unknown_soc_and_module():
    text = decode_hisi_common_section(_pack(val_bits=(1 << 0) | (1 << 5), soc_id=50, module_id=200))
    assert "soc=unknown" in text
    assert "module=unknown(id=200)" in text


def test_register_dump_lines():
    regs = (0xDEAD, 0, 7, 0xFFFFFFFF)
    text = decode_hisi_common_section(_pack(val_bits=1 << 12, regs=regs))
    lines = text.splitlines()
    assert "Register Dump:" in lines
    reg_lines = [line for line in lines if line.startswith("reg")]
    assert len(reg_lines) == len(regs)
    assert reg_lines[0].startswith("reg00=0x")


def test_recorder_stores_row():
    conn, recorder = _recorder()
    text = decode_hisi_common_section(
        _pack(val_bits=(1 << 0) | (1 << 12), regs=(1, 2)), recorder, "2024-01-01 00:00:00"
    )
    rows = conn.execute("SELECT timestamp, err_info, regs_dump FROM hisi_common_section").fetchall()
    assert len(rows) == 1
    timestamp, err_info, regs_dump = rows[0]
    assert timestamp == "2024-01-01 00:00:00"
    assert err_info == text.splitlines()[2]
    reg_lines = [line for line in text.splitlines() if line.startswith("reg")]
    assert regs_dump == " ".join(reg_lines)


def test_recorder_rejects_bad_field():
    _, recorder = _recorder()
    with pytest.raises(ValueError):
        recorder.record(0, "x")
    with pytest.raises(ValueError):
        recorder.record(4, "x")


def test_step_clears_bindings():
    conn, recorder = _recorder()
    recorder.record(1, "first")
    first = recorder.step("tab")
    second = recorder.step("tab")
    assert second == first + 1
    rows = conn.execute("SELECT timestamp FROM hisi_common_section ORDER BY id").fetchall()
    assert rows == [("first",), (None,)]