import struct

import pytest

from rasdecode.ampere_payload01 import (
    decode_amp_payload0_err_regs,
    decode_amp_payload1_err_regs,
)
from rasdecode.ampere_types import Payload0, Payload1
from rasdecode.hisilicon import DecodeError


def _p0(type_byte, subtype, instance, status=0, addr=0, misc=(0, 0, 0, 0)):
    return struct.pack("<BBHIQQQQQ", type_byte, subtype, instance, status, addr, *misc)


def _p1(type_byte, subtype, instance, regs=(0,) * 9, reserved2=0):
    return struct.pack("<BBH9IQ", type_byte, subtype, instance, *regs, reserved2)


def test_payload0_cpu_core_number():
    instance = (1 << 14) | 3
    text = decode_amp_payload0_err_regs(_p0(0x00, 0x01, instance))
    assert text.startswith(" Error Type: CPM\n Error Subtype: ARMv8 Core 0\n")
    assert " Error Instance: 0x3\n" in text
    assert " Processor Socket: 1, Core Number is:6\n" in text


def test_payload0_registers_in_order():
    data = _p0(0x01, 7, 2, status=0xABCD, addr=0x1234, misc=(1, 2, 3, 4))
    text = decode_amp_payload0_err_regs(data)
    lines = text.splitlines()
    assert lines[0] == " Error Type: MCU"
    assert lines[1] == " Error Subtype: Link Error"
    assert lines[3] == " Processor Socket: 0"
    assert lines[4:] == [
        f" Status: 0x{0xABCD:x}",
        f" Address: 0x{0x1234:x}",
        " MISC0: 0x1",
        " MISC1: 0x2",
        " MISC2: 0x3",
        " MISC3: 0x4",
    ]
    assert text.endswith("\n")


def test_payload0_smmu_subtype():
    text = decode_amp_payload0_err_regs(_p0(0x06, 0x64, 0))
    assert " Error Type: SMMU\n Error Subtype: TCU\n" in text


def test_payload0_unknown_type():
    text = decode_amp_payload0_err_regs(_p0(0x20, 0, 0))
    assert " Error Type: unknown\n Error Subtype: unknown\n" in text


def test_payload0_store_receives_decoded_payload():
    calls = []
    data = _p0(0x02, 1, 5)
    decode_amp_payload0_err_regs(data, lambda *args: calls.append(args))
    assert calls == [("MESH", "Home Node(IO)", Payload0.from_bytes(data))]


def test_payload0_accepts_parsed_payload():
    data = _p0(0x05, 13, 9, status=7)
    assert decode_amp_payload0_err_regs(Payload0.from_bytes(data)) == (
        decode_amp_payload0_err_regs(data)
    )


def test_payload0_too_short():
    with pytest.raises(DecodeError):
        decode_amp_payload0_err_regs(b"\x00\x01")


def test_payload1_layout():
    regs = tuple(range(1, 10))
    data = _p1(0x47, 1, (2 << 14) | 4, regs, reserved2=0xFF)
    text = decode_amp_payload1_err_regs(data)
    assert text.startswith(
        " Error Type: PCIe AER\n Error Subtype: Device\nError Instance: 0x4\n"
    )
    assert " Processor Socket: 2\n" in text
    assert " AER_UNCORR_ERR_STATUS: 0x1\n" in text
    assert " AER_ERR_SRC_ID: 0x8\n" in text
    assert text.endswith(" Reserved: 0x9\n Reserved: 0xff\n")


def test_payload1_store():
    calls = []
    data = _p1(0x47, 0, 0)
    decode_amp_payload1_err_regs(data, lambda *args: calls.append(args))
    assert calls == [("PCIe AER", "Root Port", Payload1.from_bytes(data))]


def test_payload1_too_short():
    with pytest.raises(DecodeError):
        decode_amp_payload1_err_regs(bytes(10))