"""Machine-check event record and the bit-field decoding helpers shared by the CPU decoders."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Mapping

# IA32_MCi_STATUS bits
MCI_STATUS_VAL = 1 << 63
MCI_STATUS_OVER = 1 << 62
MCI_STATUS_UC = 1 << 61
MCI_STATUS_EN = 1 << 60
MCI_STATUS_MISCV = 1 << 59
MCI_STATUS_ADDRV = 1 << 58
MCI_STATUS_PCC = 1 << 57
MCI_STATUS_S = 1 << 56
MCI_STATUS_AR = 1 << 55

# IA32_MCG_STATUS bits
MCG_STATUS_RIPV = 1 << 0
MCG_STATUS_EIPV = 1 << 1
MCG_STATUS_MCIP = 1 << 2
MCG_STATUS_LMCE = 1 << 3


class CpuType(enum.Enum):
    """Processor families that the Intel decoders tell apart."""

    GENERIC = enum.auto()
    P6OLD = enum.auto()
    CORE2 = enum.auto()
    P4 = enum.auto()
    NEHALEM = enum.auto()
    DUNNINGTON = enum.auto()
    TULSA = enum.auto()
    INTEL = enum.auto()
    XEON75XX = enum.auto()
    SANDY_BRIDGE = enum.auto()
    SANDY_BRIDGE_EP = enum.auto()
    IVY_BRIDGE = enum.auto()
    IVY_BRIDGE_EPEX = enum.auto()
    HASWELL = enum.auto()
    HASWELL_EPEX = enum.auto()
    BROADWELL = enum.auto()
    BROADWELL_DE = enum.auto()
    BROADWELL_EPEX = enum.auto()
    KNIGHTS_LANDING = enum.auto()
    KNIGHTS_MILL = enum.auto()
    SKYLAKE_XEON = enum.auto()
    ICELAKE_XEON = enum.auto()
    ICELAKE_DE = enum.auto()
    TREMONT_D = enum.auto()
    SAPPHIRERAPIDS = enum.auto()


_MESSAGE_FIELDS = frozenset(
    {
        "bank_name",
        "error_msg",
        "mcgstatus_msg",
        "mcistatus_msg",
        "mcastatus_msg",
        "user_action",
        "mc_location",
    }
)


@dataclass
class MceEvent:
    """Raw machine-check registers plus the text fields filled in by decoding."""

    bank: int = 0
    status: int = 0
    misc: int = 0
    addr: int = 0
    mcgstatus: int = 0
    mcgcap: int = 0
    cpu: int = 0
    socket: int = 0
    bank_name: str = ""
    error_msg: str = ""
    mcgstatus_msg: str = ""
    mcistatus_msg: str = ""
    mcastatus_msg: str = ""
    user_action: str = ""
    mc_location: str = ""

    def append(self, field, text):
        """Append text to a message field, separated from earlier text by a space."""
        if field not in _MESSAGE_FIELDS:
            raise ValueError(f"unknown message field: {field!r}")
        current = getattr(self, field)
        setattr(self, field, f"{current} {text}" if current else text)


@dataclass(frozen=True)
class BitField:
    """A field of a status register starting at ``start`` whose values index ``names``."""

    start: int
    names: Mapping[int, str] = field(default_factory=dict)
    size: int = 0

    def __post_init__(self):
        if self.size <= 0:
            object.__setattr__(self, "size", max(self.names, default=0) + 1)

    @classmethod
    def flag(cls, bit, text):
        """A single bit that reports ``text`` when set."""
        return cls(bit, {1: text}, 2)

    @classmethod
    def reserved(cls, bit):
        """A single bit with no known meaning; reported raw when set."""
        return cls(bit, {}, 1)

    @property
    def mask(self):
        return (1 << max(1, (self.size - 1).bit_length())) - 1


@dataclass(frozen=True)
class NumField:
    """A numeric field spanning bits ``start`` to ``end`` inclusive."""

    start: int
    end: int
    name: str
    hex: bool = False


def extract(value, start, end):
    """Return bits ``start`` to ``end`` (inclusive) of ``value``."""
    return (value >> start) & ((1 << (end - start + 1)) - 1)


def test_prefix(nr, value):
    """True when the highest set bit of ``value`` is bit ``nr``."""
    return (value >> nr) == 1


def decode_bitfield(event, status, fields: Iterable[BitField]):
    """Append the names of the field values present in ``status`` to the error message."""
    for bf in fields:
        value = (status >> bf.start) & bf.mask
        name = bf.names.get(value) if value < bf.size else None
        if name is None:
            if value == 0:
                continue
            event.append("error_msg", f"<{bf.start}:{value:x}>")
        else:
            event.append("error_msg", name)


def decode_numfield(event, status, fields: Iterable[NumField]):
    """Append the non-zero numeric fields of ``status`` to the error message."""
    for nf in fields:
        value = extract(status, nf.start, nf.end)
        if value == 0:
            continue
        shown = f"0x{value:x}" if nf.hex else str(value)
        event.append("error_msg", f"{nf.name}: {shown}")