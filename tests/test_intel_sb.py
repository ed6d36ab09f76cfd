from rasdecode.intel_sb import snb_decode_model
from rasdecode.mce_event import MCI_STATUS_UC, CpuType, MceEvent

BOTH_RANKS = (1 << 62) | (1 << 63) | (5 << 46) | (9 << 51)


def test_pcu_bank():
    event = MceEvent(bank=4, status=3 << 16)
    snb_decode_model(CpuType.SANDY_BRIDGE, event)
    assert event.error_msg == "Bad_OpCode No Error"


def test_qpi_bank_name_only_on_ep():
    ep = MceEvent(bank=6)
    snb_decode_model(CpuType.SANDY_BRIDGE_EP, ep)
    assert ep.bank_name == "QPI"
    client = MceEvent(bank=7)
    snb_decode_model(CpuType.SANDY_BRIDGE, client)
    assert client.bank_name == ""


def test_memory_controller_bits_and_location():
    event = MceEvent(bank=8, status=0x82 | (0x8 << 16), misc=BOTH_RANKS)
    snb_decode_model(CpuType.SANDY_BRIDGE_EP, event)
    assert event.error_msg == "Corrected patrol scrub error"
    assert event.mc_location == "memory_channel=2 ranks=5 and 9"


def test_only_first_rank_valid():
    event = MceEvent(bank=9, status=0x83, misc=(1 << 62) | (5 << 46))
    snb_decode_model(CpuType.SANDY_BRIDGE_EP, event)
    assert event.mc_location.startswith("memory_channel=3 ranks=5 and ")


def test_uncorrected_error_has_no_location():
    event = MceEvent(bank=8, status=0x82 | MCI_STATUS_UC, misc=BOTH_RANKS)
    snb_decode_model(CpuType.SANDY_BRIDGE_EP, event)
    assert event.mc_location == ""


def test_unspecified_channel_has_no_location():
    event = MceEvent(bank=10, status=0x8F, misc=BOTH_RANKS)
    snb_decode_model(CpuType.SANDY_BRIDGE_EP, event)
    assert event.mc_location == ""


def test_non_imc_bank_has_no_location():
    event = MceEvent(bank=12, status=0x82, misc=BOTH_RANKS)
    snb_decode_model(CpuType.SANDY_BRIDGE_EP, event)
    assert event.mc_location == ""
    assert event.error_msg == ""


def test_non_memory_error_has_no_location():
    event = MceEvent(bank=8, status=0x402, misc=BOTH_RANKS)
    snb_decode_model(CpuType.SANDY_BRIDGE_EP, event)
    assert event.mc_location == ""