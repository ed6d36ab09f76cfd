import sqlite3
import struct

import pytest

from rasdecode.hip08_type1 import (
    HIP08_OEM_EVENT_FIELDS,
    HIP08_OEM_TYPE1_TABLE,
    HISI_OEM_TYPE1_MODULES,
    ModuleInfo,
    OemType1Section,
    decode_hip08_oem_type1_error,
    oem_module_name,
    oem_submodule_name,
)
from rasdecode.hisilicon import DecodeError, VendorRecorder


def _section(val_bits, version=1, soc=2, socket=0, nimbus=3, module=1, sub=4,
             severity=2, misc=(0x11, 0x22, 0x33, 0x44, 0x55), addr=0x1000):
    return struct.pack(
        "<I7Bx5IQ", val_bits, version, soc, socket, nimbus, module, sub, severity,
        *misc, addr,
    )


@pytest.fixture
def recorder():
    conn = sqlite3.connect(":memory:")
    rec = VendorRecorder(conn, HIP08_OEM_TYPE1_TABLE, HIP08_OEM_EVENT_FIELDS)
    yield rec, conn
    conn.close()


def test_module_name_lookup():
    assert oem_module_name(HISI_OEM_TYPE1_MODULES, 1) == "PLL"
    assert oem_module_name(HISI_OEM_TYPE1_MODULES, 17) == "USB"
    assert oem_module_name(HISI_OEM_TYPE1_MODULES, 6) == "unknown"


def test_submodule_name_lookup():
    assert oem_submodule_name(HISI_OEM_TYPE1_MODULES, 1, 4) == "TA_PLL0"
    assert oem_submodule_name(HISI_OEM_TYPE1_MODULES, 15, 1) == "SAS1"
    assert oem_submodule_name(HISI_OEM_TYPE1_MODULES, 0, 7) == "MN"
    assert oem_submodule_name(HISI_OEM_TYPE1_MODULES, 15, 2) == "unknown"
    assert oem_submodule_name(HISI_OEM_TYPE1_MODULES, 6, 0) == "unknown"


def test_submodule_name_custom_table():
    modules = (ModuleInfo(7, "X", ("A", "B")),)
    assert oem_submodule_name(modules, 7, 1) == "B"
    assert oem_module_name(modules, 7) == "X"


def test_from_bytes_round_trip():
    err = OemType1Section.from_bytes(_section(0xFFF))
    assert err.val_bits == 0xFFF
    assert err.module_id == 1
    assert err.sub_module_id == 4
    assert err.err_misc_4 == 0x55
    assert err.err_addr == 0x1000


def test_from_bytes_too_short():
    with pytest.raises(DecodeError):
        OemType1Section.from_bytes(_section(1)[:-1])


def test_no_valid_bits_raises():
    with pytest.raises(DecodeError):
        decode_hip08_oem_type1_error(_section(0))


def test_full_decode_text():
    text = decode_hip08_oem_type1_error(_section(0xFFF))
    lines = text.split("\n")
    assert lines[1] == "HISI HIP08: OEM Type-1 Error"
    assert lines[2] == (
        "[ table_version=1 SOC_ID=2 socket_ID=0 nimbus_ID=3 module=PLL "
        "submodule=TA_PLL0 error_severity=corrected ]"
    )
    assert lines[3] == "Reg Dump:"
    assert lines[4] == "ERR_MISC0=0x11"
    assert lines[9] == "ERR_ADDR=0x1000"


def test_header_only_bits():
    text = decode_hip08_oem_type1_error(_section(1 << 3, module=0))
    assert "[ table_version=1 module=MN ]" in text
    assert "ERR_MISC" not in text
    assert text.endswith("Reg Dump:\n")


def test_recorded_row(recorder):
    rec, conn = recorder
    decode_hip08_oem_type1_error(_section(0xFFF), rec, "2024-01-01 00:00:00 +0000")
    row = conn.execute(
        f"SELECT timestamp, version, soc_id, module_id, sub_module_id, "
        f"err_severity, regs_dump FROM {HIP08_OEM_TYPE1_TABLE}"
    ).fetchone()
    assert row[0] == "2024-01-01 00:00:00 +0000"
    assert row[1:6] == (1, 2, "PLL", "TA_PLL0", "corrected")
    assert row[6].split(" ") == [
        "ERR_MISC0=0x11", "ERR_MISC1=0x22", "ERR_MISC2=0x33",
        "ERR_MISC3=0x44", "ERR_MISC4=0x55", "ERR_ADDR=0x1000",
    ]


def test_recorded_empty_dump(recorder):
    rec, conn = recorder
    decode_hip08_oem_type1_error(_section(1), rec, "ts")
    row = conn.execute(
        f"SELECT regs_dump, nimbus_id FROM {HIP08_OEM_TYPE1_TABLE}"
    ).fetchone()
    assert row == ("", None)