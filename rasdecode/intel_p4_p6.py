"""Model-specific decoding for P4, old P6 and Core2 family machine checks."""

from __future__ import annotations

from .mce_event import BitField, NumField, decode_bitfield, decode_numfield

_BUS_QUEUE_REQ_TYPE = {
    0: "BQ_DCU_READ_TYPE",
    2: "BQ_IFU_DEMAND_TYPE",
    3: "BQ_IFU_DEMAND_NC_TYPE",
    4: "BQ_DCU_RFO_TYPE",
    5: "BQ_DCU_RFO_LOCK_TYPE",
    6: "BQ_DCU_ITOM_TYPE",
    8: "BQ_DCU_WB_TYPE",
    10: "BC_DCU_WCEVICT_TYPE",
    11: "BQ_DCU_WCLINE_TYPE",
    12: "BQ_DCU_BTM_TYPE",
    13: "BQ_DCU_INTACK_TYPE",
    14: "BQ_DCU_INVALL2_TYPE",
    15: "BQ_DCU_FLUSHL2_TYPE",
    16: "BQ_DCU_PART_RD_TYPE",
    18: "BQ_DCU_PART_WR_TYPE",
    20: "BQ_DCU_SPEC_CYC_TYPE",
    24: "BQ_DCU_IO_RD_TYPE",
    25: "BQ_DCU_IO_WR_TYPE",
    28: "BQ_DCU_LOCK_RD_TYPE",
    30: "BQ_DCU_SPLOCK_RD_TYPE",
    29: "BQ_DCU_LOCK_WR_TYPE",
}

_BUS_QUEUE_ERROR_TYPE = {
    0: "BQ_ERR_HARD_TYPE",
    1: "BQ_ERR_DOUBLE_TYPE",
    2: "BQ_ERR_AERR2_TYPE",
    4: "BQ_ERR_SINGLE_TYPE",
    5: "BQ_ERR_AERR1_TYPE",
}

P6_SHARED_STATUS = (
    BitField.reserved(16),
    BitField(19, _BUS_QUEUE_REQ_TYPE),
    BitField(25, _BUS_QUEUE_ERROR_TYPE),
    BitField(25, _BUS_QUEUE_ERROR_TYPE),
    BitField.flag(30, "internal BINIT"),
    BitField.flag(36, "received parity error on response transaction"),
    BitField.flag(
        38,
        "timeout BINIT (ROB timeout). No micro-instruction retired for some time",
    ),
    BitField.reserved(39),
    BitField.flag(42, "bus transaction received hard error response"),
    BitField.flag(43, "failure that caused IERR"),
    # Reserved for Core in the SDM, decoded anyway.
    BitField.flag(44, "two failing bus transactions with address parity error (AERR)"),
    BitField.flag(45, "uncorrectable ECC error"),
    BitField.flag(46, "correctable ECC error"),
    BitField.reserved(55),
)

P6OLD_STATUS = (
    BitField.flag(28, "FRC error"),
    BitField.flag(29, "BERR on this CPU"),
    BitField.reserved(31),
    BitField.reserved(32),
    BitField.flag(35, "BINIT received from external bus"),
    BitField.flag(37, "Received hard error reponse on split transaction (Bus BINIT)"),
)

CORE2_STATUS = (
    BitField.flag(28, "MCE driven"),
    BitField.flag(29, "MCE is observed"),
    BitField.flag(31, "BINIT observed"),
    BitField.reserved(32),
    BitField.flag(34, "PIC or FSB data parity error"),
    BitField.reserved(35),
    BitField.flag(37, "FSB address parity error detected"),
)

P6OLD_STATUS_NUMBERS = (NumField(47, 54, "ECC syndrome", hex=True),)

_P4_MODEL = (
    (16, "FSB address parity"),
    (17, "Response hard fail"),
    (18, "Response parity"),
    (19, "PIC and FSB data parity"),
    (20, "Invalid PIC request(Signature=0xF04H)"),
    (21, "Pad state machine"),
    (22, "Pad strobe glitch"),
    (23, "Pad address glitch"),
)


def p4_decode_model(event):
    """Decode the P4 model-specific status bits."""
    model = event.status & 0xFFFF0000
    for bit, text in _P4_MODEL:
        if model & (1 << bit):
            event.append("error_msg", text)


def core2_decode_model(event):
    """Decode Core2 model-specific bus errors."""
    status = event.status
    decode_bitfield(event, status, P6_SHARED_STATUS)
    decode_bitfield(event, status, CORE2_STATUS)
    decode_numfield(event, status, P6OLD_STATUS_NUMBERS)


def p6old_decode_model(event):
    """Decode old P6 model-specific bus errors."""
    status = event.status
    decode_bitfield(event, status, P6_SHARED_STATUS)
    decode_bitfield(event, status, P6OLD_STATUS)
    decode_numfield(event, status, P6OLD_STATUS_NUMBERS)