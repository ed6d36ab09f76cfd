"""Decoding of Ampere vendor-specific error sections."""

from __future__ import annotations

import functools
import sqlite3

from .ampere_payload01 import decode_amp_payload0_err_regs, decode_amp_payload1_err_regs
from .ampere_payload23 import decode_amp_payload2_err_regs, decode_amp_payload3_err_regs
from .ampere_types import (
    PAYLOAD_TYPE_0,
    PAYLOAD_TYPE_1,
    PAYLOAD_TYPE_2,
    PAYLOAD_TYPE_3,
    payload_type,
)
from .hisilicon import DecodeError

AMP_NS_SEC_TYPE = "e8ed898ddf1643cc8ecc54f060ef157f"

SQLITE_TABLE_LIST = (
    "amp_payload0_event_tab",
    "amp_payload1_event_tab",
    "amp_payload2_event_tab",
    "amp_payload3_event_tab",
)

_DECODERS = {
    PAYLOAD_TYPE_0: decode_amp_payload0_err_regs,
    PAYLOAD_TYPE_1: decode_amp_payload1_err_regs,
    PAYLOAD_TYPE_2: decode_amp_payload2_err_regs,
    PAYLOAD_TYPE_3: decode_amp_payload3_err_regs,
}


def decode_amp_oem_type_error(data, timestamp="", store=None):
    """Decode an Ampere error section and return its text.

    The payload layout is chosen from the top bits of the first byte. When an
    :class:`~rasdecode.ampere_store.AmpereStore` is given, the decoded payload is
    written to its table with ``timestamp``.
    """
    data = bytes(data)
    if not data:
        raise DecodeError("decode_amp_oem_type_error: empty error section")

    kind = payload_type(data[0])
    decoder = _DECODERS.get(kind)
    if decoder is None:
        raise DecodeError("decode_amp_oem_type_error: wrong payload type")

    sink = None
    if store is not None:
        try:
            store.ensure_table(kind)
        except sqlite3.Error as exc:
            raise DecodeError(f"create sql {SQLITE_TABLE_LIST[kind]} fail") from exc
        sink = functools.partial(store.record, kind, timestamp)

    return f"{decoder(data, sink)}"