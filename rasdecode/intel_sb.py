"""Model-specific decoding for Sandy Bridge machine checks."""

from __future__ import annotations

from .mce_event import (
    MCI_STATUS_UC,
    BitField,
    CpuType,
    decode_bitfield,
    extract,
    test_prefix,
)

_PCU_1 = {
    0: "No error",
    1: "Non_IMem_Sel",
    2: "I_Parity_Error",
    3: "Bad_OpCode",
    4: "I_Stack_Underflow",
    5: "I_Stack_Overflow",
    6: "D_Stack_Underflow",
    7: "D_Stack_Overflow",
    8: "Non-DMem_Sel",
    9: "D_Parity_Error",
}

_PCU_2 = {
    0x00: "No Error",
    0x0D: "MC_IMC_FORCE_SR_S3_TIMEOUT",
    0x0E: "MC_MC_CPD_UNCPD_ST_TIMEOUT",
    0x0F: "MC_PKGS_SAFE_WP_TIMEOUT",
    0x43: "MC_PECI_MAILBOX_QUIESCE_TIMEOUT",
    0x5C: "MC_MORE_THAN_ONE_LT_AGENT",
    0x60: "MC_INVALID_PKGS_REQ_PCH",
    0x61: "MC_INVALID_PKGS_REQ_QPI",
    0x62: "MC_INVALID_PKGS_RES_QPI",
    0x63: "MC_INVALID_PKGC_RES_PCH",
    0x64: "MC_INVALID_PKG_STATE_CONFIG",
    0x70: "MC_WATCHDG_TIMEOUT_PKGC_SLAVE",
    0x71: "MC_WATCHDG_TIMEOUT_PKGC_MASTER",
    0x72: "MC_WATCHDG_TIMEOUT_PKGS_MASTER",
    0x7A: "MC_HA_FAILSTS_CHANGE_DETECTED",
    0x81: "MC_RECOVERABLE_DIE_THERMAL_TOO_HOT",
}

PCU_MC4 = (BitField(16, _PCU_1), BitField(24, _PCU_2))

_MEMCTRL_1 = {
    0x001: "Address parity error",
    0x002: "HA Wrt buffer Data parity error",
    0x004: "HA Wrt byte enable parity error",
    0x008: "Corrected patrol scrub error",
    0x010: "Uncorrected patrol scrub error",
    0x020: "Corrected spare error",
    0x040: "Uncorrected spare error",
}

MEMCTRL_MC8 = (BitField(16, _MEMCTRL_1),)

_IMC_BANKS = range(8, 12)


def snb_decode_model(cputype, event):
    """Decode Sandy Bridge model-specific banks and the memory error location."""
    status = event.status
    mca = status & 0xFFFF

    if event.bank == 4:
        decode_bitfield(event, status, PCU_MC4)
    elif event.bank in (6, 7):
        if cputype is CpuType.SANDY_BRIDGE_EP:
            event.append("bank_name", "QPI")
    elif event.bank in _IMC_BANKS:
        decode_bitfield(event, status, MEMCTRL_MC8)

    if (mca >> 7) != 1:
        return
    # Only corrected extended errors from an iMC bank carry a location.
    if (
        event.bank not in _IMC_BANKS
        or status & MCI_STATUS_UC
        or not test_prefix(7, status & 0xEFFF)
    ):
        return

    chan = extract(status, 0, 3)
    if chan == 0xF:
        return
    event.append("mc_location", f"memory_channel={chan}")

    # Ranks are unsigned with an all-ones "unset" marker, so both are always
    # reported; an unset rank shows as -1.
    rank0 = extract(event.misc, 46, 50) if extract(event.misc, 62, 62) else -1
    rank1 = extract(event.misc, 51, 55) if extract(event.misc, 63, 63) else -1
    event.append("mc_location", f"ranks={rank0} and {rank1}")