"""Text rendering of Ampere payload type 2 (PCIe RASDP) and type 3 (firmware data)."""

from __future__ import annotations

from .ampere_payload01 import _coerce, _emit, _hex, _line
from .ampere_types import (
    AmpRasType,
    Payload2,
    Payload3,
    oem_subtype_name,
    oem_type_name,
    rasdp_subtype_name,
)


def _header(err, type_str, subtype_str):
    return [
        _line("Error Type:", type_str),
        _line("Error Subtype:", subtype_str),
        _line("Error Instance:", _hex(err.instance_id)),
        _line("Processor Socket:", err.socket),
    ]


def decode_amp_payload2_err_regs(payload, store=None):
    """Render a type-2 (PCIe RASDP) payload as text.

    ``payload`` is a :class:`Payload2` or its raw bytes. ``store``, if given, is
    called with ``(type_str, subtype_str, payload)`` once the payload is decoded.
    """
    err = _coerce(Payload2, payload)
    type_str = oem_type_name(err.error_type)
    if err.error_type == AmpRasType.PCIE_RASDP:
        subtype_str = rasdp_subtype_name(err.subtype)
    else:
        subtype_str = oem_subtype_name(err.error_type, err.subtype)

    lines = _header(err, type_str, subtype_str)
    lines.extend(
        _line(label, _hex(value))
        for label, value in (
            ("CE Report Register:", err.ce_register),
            ("CE Location Register:", err.ce_location),
            ("CE Address:", err.ce_addr),
            ("UE Reprot Register:", err.ue_register),
            ("UE Location Register:", err.ue_location),
            ("UE Address:", err.ue_addr),
            ("Reserved:", err.reserved1),
            ("Reserved:", err.reserved2),
            ("Reserved:", err.reserved3),
        )
    )

    _emit(store, type_str, subtype_str, err)
    return "".join(lines)


def decode_amp_payload3_err_regs(payload, store=None):
    """Render a type-3 (firmware-specific) payload as text.

    ``payload`` is a :class:`Payload3` or its raw bytes. ``store``, if given, is
    called with ``(type_str, subtype_str, payload)`` once the payload is decoded.
    """
    err = _coerce(Payload3, payload)
    type_str = oem_type_name(err.error_type)
    subtype_str = oem_subtype_name(err.error_type, err.subtype)

    lines = _header(err, type_str, subtype_str)
    lines.extend(
        _line(f"Firmware-Specific Data {index}:", _hex(value))
        for index, value in enumerate(
            (
                err.fw_speci_data0,
                err.fw_speci_data1,
                err.fw_speci_data2,
                err.fw_speci_data3,
                err.fw_speci_data4,
                err.fw_speci_data5,
            )
        )
    )

    _emit(store, type_str, subtype_str, err)
    return "".join(lines)