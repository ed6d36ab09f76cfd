"""Decoding of Intel machine-check events and enabling of iMC corrected-error logging."""

from __future__ import annotations

import os
import struct

from .intel_p4_p6 import core2_decode_model, p4_decode_model, p6old_decode_model
from .intel_sb import snb_decode_model
from .intel_skylake import skylake_s_decode_model
from .intel_tulsa import tulsa_decode_model
from .mce_event import (
    MCG_STATUS_EIPV,
    MCG_STATUS_LMCE,
    MCG_STATUS_MCIP,
    MCG_STATUS_RIPV,
    MCI_STATUS_AR,
    MCI_STATUS_EN,
    MCI_STATUS_OVER,
    MCI_STATUS_PCC,
    MCI_STATUS_S,
    MCI_STATUS_UC,
    MCI_STATUS_VAL,
    CpuType,
    extract,
    test_prefix,
)

MCE_EXTENDED_BANK = 128
MCE_THERMAL_BANK = MCE_EXTENDED_BANK + 0
MCE_TIMEOUT_BANK = MCE_EXTENDED_BANK + 90

MCG_TES_P = 1 << 11  # threshold-based error status supported

MSR_PATH = "/dev/cpu/{cpu}/msr"
MSR_ERROR_CONTROL = 0x17F
MEMERROR_LOG_ENABLE = 0x2

_QWORD = struct.Struct("=Q")

_TT = ("Instruction", "Data", "Generic", "Unknown")
_LL = ("Level-0", "Level-1", "Level-2", "Level-3")
_RRRR = {
    0: "Generic",
    1: "Read",
    2: "Write",
    3: "Data-Read",
    4: "Data-Write",
    5: "Instruction-Fetch",
    6: "Prefetch",
    7: "Eviction",
    8: "Snoop",
}
_PP = (
    "Local-CPU-originated-request",
    "Responed-to-request",
    "Observed-error-as-third-party",
    "Generic",
)
_T = ("Request-did-not-timeout", "Request-timed-out")
_II = ("Memory-access", "Reserved", "IO", "Other-transaction")
_MCA_MSG = (
    "No Error",
    "Unclassified",
    "Microcode ROM parity error",
    "External error",
    "FRC error",
    "Internal parity error",
    "SMM Handler Code Access Violation",
)
_TRACKING_MSG = {1: "green", 2: "yellow", 3: "res3"}
_ARSTATE = ("UCNA", "AR", "SRAO", "SRAR")
_MMM_MNEMONIC = ("GEN", "RD", "WR", "AC", "MS", "RES5", "RES6", "RES7")
_MMM_DESC = (
    "Generic undefined request",
    "Memory read error",
    "Memory write error",
    "Address/Command error",
    "Memory scrubbing error",
    "Reserved 5",
    "Reserved 6",
    "Reserved 7",
)

_IMC_LOG_CPUS = frozenset(
    {
        CpuType.SANDY_BRIDGE_EP,
        CpuType.IVY_BRIDGE_EPEX,
        CpuType.HASWELL_EPEX,
        CpuType.KNIGHTS_LANDING,
        CpuType.KNIGHTS_MILL,
    }
)


class ImcLogError(Exception):
    """Raised when iMC error logging cannot be enabled on a CPU."""


def _attr(names, value):
    return names[value] if 0 <= value < len(names) else "UNKNOWN"


def _rrrr(value):
    return _RRRR.get(value, "UNKNOWN")


def _decode_memory_controller(event, mca):
    channel = "unspecified" if (mca & 0xF) == 0xF else str(mca & 0xF)
    mmm = (mca >> 4) & 7
    event.append(
        "error_msg", f"MEMORY CONTROLLER {_MMM_MNEMONIC[mmm]}_CHANNEL{channel}_ERR"
    )
    event.append("error_msg", f"Transaction: {_MMM_DESC[mmm]}")


def _decode_thermal_bank(event):
    if event.status & 1:
        event.append(
            "mcgstatus_msg",
            f"Processor {event.cpu} heated above trip temperature. Throttling enabled.",
        )
        event.append(
            "user_action",
            "Please check your system cooling. Performance will be impacted",
        )
    else:
        event.append(
            "error_msg",
            f"Processor {event.cpu} below trip temperature. Throttling disabled",
        )


def _decode_mcg(event):
    mcgstatus = event.mcgstatus
    signed = mcgstatus - (1 << 64) if mcgstatus >= 1 << 63 else mcgstatus
    event.append("mcgstatus_msg", f"mcgstatus={signed}")
    for bit, name in (
        (MCG_STATUS_RIPV, "RIPV"),
        (MCG_STATUS_EIPV, "EIPV"),
        (MCG_STATUS_MCIP, "MCIP"),
        (MCG_STATUS_LMCE, "LMCE"),
    ):
        if mcgstatus & bit:
            event.append("mcgstatus_msg", name)


def _set_bank_name(event):
    if event.bank == MCE_THERMAL_BANK:
        event.bank_name = "THERMAL EVENT"
    elif event.bank == MCE_TIMEOUT_BANK:
        event.bank_name = "Timeout waiting for exception on other CPUs"


def _decode_mca(event):
    mca = event.status & 0xFFFF

    if mca & (1 << 12):
        event.append(
            "mcastatus_msg",
            "corrected filtering (some unreported errors in same region)",
        )
        mca &= ~(1 << 12)

    if mca < len(_MCA_MSG):
        event.append("mcastatus_msg", _MCA_MSG[mca])
        return

    if (mca >> 2) == 3:
        event.append(
            "mcastatus_msg", f"{_attr(_LL, mca & 3)} Generic memory hierarchy error"
        )
    elif test_prefix(4, mca):
        event.append(
            "mcastatus_msg",
            f"{_attr(_TT, (mca & 0xC) >> 2)} TLB {_attr(_LL, mca & 0x3)} Error",
        )
    elif test_prefix(8, mca):
        event.append(
            "mcastatus_msg",
            f"{_attr(_TT, (mca & 0xC) >> 2)} CACHE {_attr(_LL, mca & 0x3)} "
            f"{_rrrr((mca & 0xF0) >> 4)} Error",
        )
    elif test_prefix(10, mca):
        if mca == 0x400:
            event.append("mcastatus_msg", "Internal Timer error")
        else:
            event.append("mcastatus_msg", f"Internal unclassified error: {mca:x}")
    elif test_prefix(11, mca):
        event.append(
            "mcastatus_msg",
            "BUS {} {} {} {} {} Error".format(
                _attr(_LL, mca & 0x3),
                _attr(_PP, (mca & 0x600) >> 9),
                _rrrr((mca & 0xF0) >> 4),
                _attr(_II, (mca & 0xC) >> 2),
                _attr(_T, (mca & 0x100) >> 8),
            ),
        )
    elif test_prefix(7, mca):
        _decode_memory_controller(event, mca)
    else:
        event.append("mcastatus_msg", f"Unknown Error {mca:x}")


def _decode_tracking(event, track):
    if track == 1:
        event.append(
            "user_action",
            "Large number of corrected cache errors. System operating, "
            "but might leadto uncorrected errors soon",
        )
    if track:
        event.append(
            "mcistatus_msg", f"Threshold based error status: {_TRACKING_MSG[track]}"
        )


def _decode_mci(event):
    status = event.status

    if not status & MCI_STATUS_VAL:
        event.append("mcistatus_msg", "MCE_INVALID")
    if status & MCI_STATUS_OVER:
        event.append("mcistatus_msg", "Error_overflow")
    if status & MCI_STATUS_UC:
        event.append("mcistatus_msg", "Uncorrected_error")
    else:
        event.append("mcistatus_msg", "Corrected_error")
    if status & MCI_STATUS_EN:
        event.append("mcistatus_msg", "Error_enabled")
    if status & MCI_STATUS_PCC:
        event.append("mcistatus_msg", "Processor_context_corrupt")
    if status & (MCI_STATUS_S | MCI_STATUS_AR):
        event.append("mcistatus_msg", _ARSTATE[(status >> 55) & 3])

    if (event.mcgcap == 0 or event.mcgcap & MCG_TES_P) and not status & MCI_STATUS_UC:
        _decode_tracking(event, (status >> 53) & 3)

    _decode_mca(event)


def _decode_bus_model(cputype, event):
    if cputype is CpuType.P6OLD:
        p6old_decode_model(event)
    elif cputype in (
        CpuType.DUNNINGTON,
        CpuType.CORE2,
        CpuType.NEHALEM,
        CpuType.XEON75XX,
    ):
        core2_decode_model(event)
    elif cputype in (CpuType.TULSA, CpuType.P4):
        p4_decode_model(event)


def parse_intel_event(cputype, event):
    """Decode an Intel machine-check event in place and return it."""
    _set_bank_name(event)

    if event.bank == MCE_THERMAL_BANK:
        _decode_thermal_bank(event)
        return event

    _decode_mcg(event)
    _decode_mci(event)

    if ((event.status & 0xFFFF) >> 7) == 1:
        event.append("mc_location", f"n_errors={extract(event.status, 38, 52)}")

    if test_prefix(11, event.status & 0xFFFF):
        _decode_bus_model(cputype, event)

    if cputype is CpuType.TULSA:
        tulsa_decode_model(event)
    elif cputype in (CpuType.SANDY_BRIDGE, CpuType.SANDY_BRIDGE_EP):
        snb_decode_model(cputype, event)
    elif cputype is CpuType.SKYLAKE_XEON:
        skylake_s_decode_model(event)

    return event


def _read_qword(fd, offset, message):
    try:
        raw = os.pread(fd, _QWORD.size, offset)
    except OSError as exc:
        raise ImcLogError(message) from exc
    if len(raw) != _QWORD.size:
        raise ImcLogError(message)
    return _QWORD.unpack(raw)[0]


def _set_msr_bit(cpu, msr, bit):
    path = MSR_PATH.format(cpu=cpu)
    try:
        fd = os.open(path, os.O_RDWR)
    except FileNotFoundError:
        raise ImcLogError(f"Warning: cpu {cpu} offline?, imc_log not set") from None
    except OSError as exc:
        raise ImcLogError(f"Cannot open {path} to set imc_log") from exc

    try:
        data = _read_qword(fd, msr, f"Cannot read MSR_ERROR_CONTROL from {path}")
        data |= bit
        try:
            written = os.pwrite(fd, _QWORD.pack(data), msr)
        except OSError as exc:
            raise ImcLogError(f"Cannot write MSR_ERROR_CONTROL to {path}") from exc
        if written != _QWORD.size:
            raise ImcLogError(f"Cannot write MSR_ERROR_CONTROL to {path}")
        data = _read_qword(fd, msr, f"Cannot re-read MSR_ERROR_CONTROL from {path}")
        if not data & bit:
            raise ImcLogError(f"Failed to set imc_log on cpu {cpu}")
    finally:
        os.close(fd)


def set_intel_imc_log(cputype, ncpus):
    """Enable iMC corrected-error logging on every CPU; return how many were set.

    CPU types without the feature are left alone and 0 is returned.
    """
    if cputype not in _IMC_LOG_CPUS:
        return 0
    for cpu in range(ncpus):
        _set_msr_bit(cpu, MSR_ERROR_CONTROL, MEMERROR_LOG_ENABLE)
    return ncpus