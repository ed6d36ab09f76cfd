import struct

import pytest

from rasdecode.ampere_types import (
    AmpRasType,
    Payload0,
    Payload1,
    Payload2,
    Payload3,
    instance_id,
    oem_subtype_name,
    oem_type_name,
    payload_type,
    rasdp_subtype_name,
    smmu_subtype_name,
    socket_num,
)
from rasdecode.hisilicon import DecodeError


@pytest.mark.parametrize("kind", [0, 1, 2, 3])
def test_payload_type_reads_top_bits(kind):
    assert payload_type((kind << 6) | int(AmpRasType.GIC)) == kind


@pytest.mark.parametrize("socket,inst", [(0, 0), (1, 5), (3, 0x3FFF), (2, 123)])
def test_instance_fields_round_trip(socket, inst):
    raw = (socket << 14) | inst
    assert socket_num(raw) == socket
    assert instance_id(raw) == inst


def test_type_names():
    assert oem_type_name(AmpRasType.CPU) == "CPM"
    assert oem_type_name(AmpRasType.BERT) == "BERT"
    assert oem_type_name(AmpRasType.LINK_2P_MQ) == "2P Link(Altra Max)"
    assert oem_type_name(40) == "unknown"


def test_subtype_without_table_gives_type_name():
    assert oem_subtype_name(AmpRasType.SMMU, 9) == "SMMU"
    assert oem_subtype_name(AmpRasType.LINK_2P_QS, 0) == "2P Link(Altra)"


def test_subtype_out_of_range_and_unknown_type():
    assert oem_subtype_name(AmpRasType.PCIE_AER, 2) == "unknown"
    assert oem_subtype_name(50, 0) == "unknown"


def test_smmu_and_rasdp_subtypes():
    assert smmu_subtype_name(0) == "TBU0"
    assert smmu_subtype_name(9) == "TBU9"
    assert smmu_subtype_name(0x64) == "TCU"
    assert smmu_subtype_name(10) == "unknown error"
    assert rasdp_subtype_name(0x00) == "RCA HB Error"
    assert rasdp_subtype_name(0x08) == "RASDP Error"
    assert rasdp_subtype_name(0x02) == "unknown error"


def test_payload0_from_bytes():
    raw = struct.pack("<BBHIQQQQQ", 0x06, 2, (1 << 14) | 7, 0xAB, 10, 11, 12, 13, 14)
    p = Payload0.from_bytes(raw)
    assert (p.type, p.subtype, p.err_status) == (0x06, 2, 0xAB)
    assert (p.err_addr, p.err_misc_3) == (10, 14)
    assert p.socket == 1
    assert p.instance_id == 7
    assert p.error_type == AmpRasType.SMMU
    assert p.payload_type == 0


def test_payload1_from_bytes():
    regs = list(range(100, 109))
    raw = struct.pack("<BBH9IQ", 0x47, 1, 3, *regs, 0xFFFFFFFFFFFFFFFF)
    p = Payload1.from_bytes(raw)
    assert p.payload_type == 1
    assert p.error_type == AmpRasType.PCIE_AER
    assert p.uncore_status == regs[0]
    assert p.reserved1 == regs[-1]
    assert p.reserved2 == 0xFFFFFFFFFFFFFFFF


def test_payload2_from_bytes():
    raw = struct.pack("<BBH7IQQ", 0x88, 8, 0, 1, 2, 3, 4, 5, 6, 7, 8, 9)
    p = Payload2.from_bytes(raw)
    assert p.payload_type == 2
    assert p.error_type == AmpRasType.PCIE_RASDP
    assert (p.ce_register, p.ue_addr, p.reserved3) == (1, 6, 9)


def test_payload3_from_bytes_ignores_trailing_bytes():
    raw = struct.pack("<BBHI5Q", 0xFF, 1, 0, 5, 6, 7, 8, 9, 10) + b"\x00" * 8
    p = Payload3.from_bytes(raw)
    assert p.payload_type == 3
    assert p.error_type == AmpRasType.BERT
    assert (p.fw_speci_data0, p.fw_speci_data5) == (5, 10)


@pytest.mark.parametrize("cls", [Payload0, Payload1, Payload2, Payload3])
def test_short_payload_is_rejected(cls):
    with pytest.raises(DecodeError):
        cls.from_bytes(b"\x00" * 10)