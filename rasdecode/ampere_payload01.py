"""Text rendering of Ampere payload type 0 (ARMv8 RAS record) and type 1 (PCIe AER)."""

from __future__ import annotations

from .ampere_types import (
    AmpRasType,
    Payload0,
    Payload1,
    oem_subtype_name,
    oem_type_name,
    smmu_subtype_name,
)


def _coerce(cls, payload):
    """Return ``payload`` as an instance of ``cls``, parsing raw bytes if needed."""
    return payload if isinstance(payload, cls) else cls.from_bytes(payload)


def _line(label, value):
    return f" {label} {value}\n"


def _hex(value):
    return f"0x{value:x}"


def _emit(store, type_str, subtype_str, payload):
    if store is not None:
        store(type_str, subtype_str, payload)


def decode_amp_payload0_err_regs(payload, store=None):
    """Render a type-0 payload as text.

    ``payload`` is a :class:`Payload0` or its raw bytes. ``store``, if given, is
    called with ``(type_str, subtype_str, payload)`` once the payload is decoded.
    """
    err = _coerce(Payload0, payload)
    type_str = oem_type_name(err.error_type)
    if err.error_type == AmpRasType.SMMU:
        subtype_str = smmu_subtype_name(err.subtype)
    else:
        subtype_str = oem_subtype_name(err.error_type, err.subtype)

    lines = [
        _line("Error Type:", type_str),
        _line("Error Subtype:", subtype_str),
        _line("Error Instance:", _hex(err.instance_id)),
    ]
    if err.error_type == AmpRasType.CPU and err.subtype in (0x01, 0x02):
        core_num = err.instance_id * 2 + err.subtype - 1
        lines.append(
            _line("Processor Socket:", f"{err.socket}, Core Number is:{core_num}")
        )
    else:
        lines.append(_line("Processor Socket:", err.socket))

    lines.extend(
        _line(label, _hex(value))
        for label, value in (
            ("Status:", err.err_status),
            ("Address:", err.err_addr),
            ("MISC0:", err.err_misc_0),
            ("MISC1:", err.err_misc_1),
            ("MISC2:", err.err_misc_2),
            ("MISC3:", err.err_misc_3),
        )
    )

    _emit(store, type_str, subtype_str, err)
    return "".join(lines)


def decode_amp_payload1_err_regs(payload, store=None):
    """Render a type-1 (PCIe AER) payload as text.

    ``payload`` is a :class:`Payload1` or its raw bytes. ``store``, if given, is
    called with ``(type_str, subtype_str, payload)`` once the payload is decoded.
    """
    err = _coerce(Payload1, payload)
    type_str = oem_type_name(err.error_type)
    subtype_str = oem_subtype_name(err.error_type, err.subtype)

    lines = [
        _line("Error Type:", type_str),
        f" Error Subtype: {subtype_str}",
        f"\nError Instance: {_hex(err.instance_id)}\n",
        _line("Processor Socket:", err.socket),
    ]
    lines.extend(
        _line(label, _hex(value))
        for label, value in (
            ("AER_UNCORR_ERR_STATUS:", err.uncore_status),
            ("AER_UNCORR_ERR_MASK:", err.uncore_mask),
            ("AER_UNCORR_ERR_SEV:", err.uncore_sev),
            ("AER_CORR_ERR_STATUS:", err.core_status),
            ("AER_CORR_ERR_MASK:", err.core_mask),
            ("AER_ROOT_ERR_CMD:", err.root_err_cmd),
            ("AER_ROOT_ERR_STATUS:", err.root_status),
            ("AER_ERR_SRC_ID:", err.src_id),
            ("Reserved:", err.reserved1),
            ("Reserved:", err.reserved2),
        )
    )

    _emit(store, type_str, subtype_str, err)
    return "".join(lines)