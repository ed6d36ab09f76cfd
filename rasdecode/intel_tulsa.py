"""Model-specific decoding for Tulsa (Xeon 7100) machine checks."""

from __future__ import annotations

from .mce_event import (
    MCI_STATUS_MISCV,
    BitField,
    NumField,
    decode_bitfield,
    decode_numfield,
)

CORR_NUMBERS = (NumField(32, 39, "Corrected events"),)
ECC_NUMBERS = (NumField(44, 51, "ECC syndrome", hex=True),)

TLS_BUS_STATUS = (
    BitField.flag(16, "Parity error detected during FSB request phase"),
    BitField.flag(17, "Partity error detected on Core 0 request's address field"),
    BitField.flag(18, "Partity error detected on Core 1 request's address field"),
    BitField.reserved(19),
    BitField.flag(20, "Parity error on FSB response field detected"),
    BitField.flag(21, "FSB data parity error on inbound date detected"),
    BitField.flag(22, "Data parity error on data received from Core 0 detected"),
    BitField.flag(23, "Data parity error on data received from Core 1 detected"),
    BitField.flag(24, "Detected an Enhanced Defer parity error phase A or phase B"),
    BitField.flag(25, "Data ECC event to error on inbound data correctable or uncorrectable"),
    BitField.flag(26, "Pad logic detected a data strobe glitch or sequencing error"),
    BitField.flag(27, "Pad logic detected a request strobe glitch or sequencing error"),
    BitField.reserved(28),
    BitField.reserved(31),
)

_TLS_FRONT_ERROR = {
    0x1: "Inclusion error from core 0",
    0x2: "Inclusion error from core 1",
    0x3: "Write Exclusive error from core 0",
    0x4: "Write Exclusive error from core 1",
    0x5: "Inclusion error from FSB",
    0x6: "SNP stall error from FSB",
    0x7: "Write stall error from FSB",
    0x8: "FSB Arbiter Timeout error",
    0x9: "CBC OOD Queue Underflow/overflow",
}

_TLS_INT_ERROR = {
    0x1: "Enhanced Intel SpeedStep Technology TM1-TM2 Error",
    0x2: "Internal timeout error",
    0x3: "Internal timeout error",
    0x4: "Intel Cache Safe Technology Queue full error\nor disabled ways in a set overflow",
}

TLS_INT_STATUS = (BitField(8, _TLS_INT_ERROR, 0xF),)
TLS_FRONT_STATUS = (BitField(0, _TLS_FRONT_ERROR, 0xF),)

TLS_CECC = (
    BitField.flag(0, "Correctable ECC event on outgoing FSB data"),
    BitField.flag(1, "Correctable ECC event on outgoing core 0 data"),
    BitField.flag(2, "Correctable ECC event on outgoing core 1 data"),
)

TLS_UECC = (
    BitField.flag(0, "Uncorrectable ECC event on outgoing FSB data"),
    BitField.flag(1, "Uncorrectable ECC event on outgoing core 0 data"),
    BitField.flag(2, "Uncorrectable ECC event on outgoing core 1 data"),
)


def _decode_internal(event, status):
    mca = (status >> 16) & 0xFFFF
    if (mca & 0xFFF0) == 0:
        decode_bitfield(event, mca, TLS_FRONT_STATUS)
    elif (mca & 0xF0FF) == 0:
        decode_bitfield(event, mca, TLS_INT_STATUS)
    elif (mca & 0xFFF0) == 0xC000:
        decode_bitfield(event, mca, TLS_CECC)
    elif (mca & 0xFFF0) == 0xE000:
        decode_bitfield(event, mca, TLS_UECC)


def tulsa_decode_model(event):
    """Decode Tulsa model-specific status information."""
    status = event.status
    decode_numfield(event, status, CORR_NUMBERS)
    if status & (1 << 52):
        decode_numfield(event, status, ECC_NUMBERS)
    # The MISC register layout is undocumented; report it raw.
    if status & MCI_STATUS_MISCV:
        event.append(
            "mcistatus_msg",
            f"MISC format {(status >> 40) & 3:x} value {event.misc:x}\n",
        )

    low = status & 0xFFFF
    if low == 0xE0F:
        decode_bitfield(event, status, TLS_BUS_STATUS)
    elif low == 1 << 10:
        _decode_internal(event, status)