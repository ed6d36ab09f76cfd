# rasdecode

Decoders that turn raw hardware error records into readable text.

It covers:

- **Intel machine check events**: the MCi_STATUS and MCG_STATUS bits, the
  compound MCA error codes, and the model-specific fields of P4, old P6,
  Core 2, Tulsa, Sandy Bridge and Skylake Xeon processors.
- **HiSilicon non-standard error sections**: the common error section and the
  HIP08 OEM type-1, OEM type-2 and PCIe local error sections.
- **Ampere non-standard error sections**: payload types 0 to 3.

Decoded records can optionally be stored in SQLite tables through the
standard library's `sqlite3` module. The package has no third-party runtime
dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Intel machine checks

Fill an `MceEvent` from `rasdecode.mce_event` with the register values of the
event. Then pass the processor's `CpuType` and the event to
`parse_intel_event` in `rasdecode.intel`. The decoder appends text to the
event's message fields (`bank_name`, `error_msg`, `mcgstatus_msg`,
`mcistatus_msg`, `mcastatus_msg`, `user_action`, `mc_location`) and returns
the same event.

```python
from rasdecode.mce_event import CpuType, MceEvent
from rasdecode.intel import parse_intel_event

event = MceEvent(bank=8, status=0x8C00004000010090, misc=0, mcgstatus=0, mcgcap=0, cpu=0)
parse_intel_event(CpuType.SANDY_BRIDGE_EP, event)
print(event.mcistatus_msg)
print(event.mcastatus_msg)
print(event.mc_location)
```

Model-specific decoding is applied for the P4, P6OLD, CORE2, DUNNINGTON,
NEHALEM and XEON75XX bus errors, and for TULSA, SANDY_BRIDGE,
SANDY_BRIDGE_EP and SKYLAKE_XEON. Other `CpuType` members get the generic
MCG/MCi/MCA decoding only.

The per-model decoders can also be called on their own:

- `p4_decode_model`, `core2_decode_model`, `p6old_decode_model` in
  `rasdecode.intel_p4_p6`
- `tulsa_decode_model` in `rasdecode.intel_tulsa`
- `snb_decode_model(cputype, event)` in `rasdecode.intel_sb`
- `skylake_s_decode_model` in `rasdecode.intel_skylake`

The helpers `extract`, `test_prefix`, `decode_bitfield` and
`decode_numfield`, and the `BitField` and `NumField` descriptions they work
on, are in `rasdecode.mce_event`.

`set_intel_imc_log(cputype, ncpus)` sets the MemError Log Enable bit of
MSR_ERROR_CONTROL through `/dev/cpu/<n>/msr` on each CPU, for the CPU types
that support it (SANDY_BRIDGE_EP, IVY_BRIDGE_EPEX, HASWELL_EPEX,
KNIGHTS_LANDING, KNIGHTS_MILL). It returns the number of CPUs set, or 0 for
other types, and raises `ImcLogError` if an MSR device cannot be opened,
read or written, or the bit does not stick.

## HiSilicon sections

Each decoder takes the raw little-endian section bytes, an optional
recorder and a timestamp string, and returns the decoded text:

- `decode_hisi_common_section` in `rasdecode.hisilicon`
- `decode_hip08_oem_type1_error` in `rasdecode.hip08_type1`
- `decode_hip08_oem_type2_error` in `rasdecode.hip08_type2`
- `decode_hip08_pcie_local_error` in `rasdecode.hip08_pcie`

They raise `DecodeError` (from `rasdecode.hisilicon`) when the section is too
short. The three HIP08 decoders also raise it when the section's validity
mask is zero.

To store the decoded fields as well, pass a `VendorRecorder`, which writes one
row per event to a SQLite table:

```python
import sqlite3
from rasdecode.hisilicon import (
    HISI_COMMON_SECTION_FIELDS,
    HISI_COMMON_SECTION_TABLE,
    VendorRecorder,
    decode_hisi_common_section,
)

connection = sqlite3.connect(":memory:")
recorder = VendorRecorder(connection, HISI_COMMON_SECTION_TABLE, HISI_COMMON_SECTION_FIELDS)
print(decode_hisi_common_section(section_bytes, recorder, "2024-01-01 00:00:00 +0000"))
```

The table names and fields for the HIP08 sections are `HIP08_OEM_TYPE1_TABLE`
and `HIP08_OEM_EVENT_FIELDS` in `rasdecode.hip08_type1`,
`HIP08_OEM_TYPE2_TABLE` and `HIP08_OEM_TYPE2_FIELDS` in
`rasdecode.hip08_type2`, and `HIP08_PCIE_LOCAL_TABLE` and
`HIP08_PCIE_LOCAL_FIELDS` in `rasdecode.hip08_pcie`.

## Ampere sections

`decode_amp_oem_type_error(data, timestamp="", store=None)` in
`rasdecode.ampere` reads the payload type from the top bits of the first
byte, decodes the section and returns its text. Pass an `AmpereStore`
wrapping an `sqlite3` connection to store each event in the table for its
payload type, or leave `store` out to decode only. It raises `DecodeError`
for an empty or too-short section.

```python
import sqlite3
from rasdecode.ampere import decode_amp_oem_type_error
from rasdecode.ampere_store import AmpereStore

store = AmpereStore(sqlite3.connect(":memory:"))
print(decode_amp_oem_type_error(section_bytes, "2024-01-01 00:00:00 +0000", store))
```

The payload layouts (`Payload0` to `Payload3`) and the type and subtype name
lookups are in `rasdecode.ampere_types`. The per-payload renderers
`decode_amp_payload0_err_regs`, `decode_amp_payload1_err_regs`
(`rasdecode.ampere_payload01`), `decode_amp_payload2_err_regs` and
`decode_amp_payload3_err_regs` (`rasdecode.ampere_payload23`) take a payload
object or its bytes and an optional callable that receives
`(type_str, subtype_str, payload)`.

## What it does not do

The package only decodes records that are handed to it. It does not read
events from the kernel's tracing interface, run as a daemon, or provide a
command-line tool; the caller is responsible for obtaining the raw register
values and section bytes.