"""
FPQR Types & Constants — Camera Settings Barcode Codec
=======================================================

Foundational type definitions, constants, enumerations, the settings
record, the diagnostics channel and error classes for the FPQR codec.
This module has ZERO external dependencies beyond the Python standard
library.

Layout authority:
  - Byte offset table (reverse-engineered from captured camera barcodes)
  - "Golden rule": every stored byte is its logical value plus its own
    offset in the buffer, modulo 256
  - APEX scale: 256 internal units per photographic stop
"""

import math
import logging
import dataclasses
from enum import IntEnum
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional, Union


# ═══════════════════════════════════════════════════════════════
# BUFFER GEOMETRY
# ═══════════════════════════════════════════════════════════════

# Smallest buffer that holds every known field (last field: WB shift M-G, 208)
MIN_BUFFER_SIZE = 209

# Size of the buffers the camera emits
DEFAULT_BUFFER_SIZE = 256

# APEX: one photographic stop is 256 internal units
UNITS_PER_STOP = 256

# ISO scale anchor: 3.125 * 2^(1280 / 256) == ISO 100
ISO_BASE = 3.125

# Sentinel values carried by the record
ISO_AUTO = 'auto'
INFINITE_REPEATS = 'Infinity'


# ═══════════════════════════════════════════════════════════════
# BYTE OFFSETS (bit-exact, locked)
# ═══════════════════════════════════════════════════════════════

class Offset(IntEnum):
    """First byte of every known field."""
    SHOOTING_MODE_NAME            = 0    # 16 bytes
    SHOOTING_MODE_ICON            = 16   # 2 bytes
    SHOOTING_MODE                 = 110
    SHUTTER_SPEED                 = 111  # 111-112, signed 16-bit log
    APERTURE                      = 116  # 116-117
    EXPOSURE_COMPENSATION         = 118  # 118 step, 119 integer EV
    ISO_MODE                      = 120
    ISO_SENSITIVITY               = 121  # 121-122
    ISO_CONFIGURATION             = 123  # bitmask
    AUTO_ISO_LOWER_LIMIT          = 124  # 124-125
    AUTO_ISO_UPPER_LIMIT          = 126  # 126-127
    AUTO_ISO_SLOWEST_SHUTTER_MODE = 128
    AUTO_ISO_SLOWEST_SHUTTER_LIMIT = 129  # 129-130
    AE_METERING_MODE              = 138
    DRIVE_MODE                    = 139
    INTERVAL_TIMER_COUNT          = 140
    INTERVAL_TIMER_DURATION       = 141  # 141 low, 142 high
    WHITE_BALANCE_MODE            = 206
    WHITE_BALANCE_SHIFT_BA        = 207
    WHITE_BALANCE_SHIFT_MG        = 208


SHOOTING_MODE_NAME_WIDTH = 16
SHOOTING_MODE_ICON_WIDTH = 2


# ═══════════════════════════════════════════════════════════════
# ENUMERATIONS (value == logical index stored in the byte)
# ═══════════════════════════════════════════════════════════════

class LabeledEnum(IntEnum):
    """IntEnum whose members carry the camera's display label."""

    @property
    def label(self) -> str:
        return ENUM_LABELS[type(self)][self]

    @classmethod
    def from_label(cls, label: str) -> 'LabeledEnum':
        for member, text in ENUM_LABELS[cls].items():
            if text == label:
                return member
        raise ValueError(f"{label!r} is not a valid {cls.__name__} label")

    @classmethod
    def coerce(cls, value: Any) -> 'LabeledEnum':
        """Accept a member, its label, its name or its integer index."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls.from_label(value)
            except ValueError:
                if value in cls.__members__:
                    return cls.__members__[value]
                raise
        if isinstance(value, bool):
            raise ValueError(f"{value!r} is not a valid {cls.__name__}")
        return cls(value)


class ShootingMode(LabeledEnum):
    M = 0
    S = 1
    A = 2
    P = 3


class IsoMode(LabeledEnum):
    MANUAL = 0  # stored byte == its own offset
    AUTO   = 1


class IsoStep(LabeledEnum):
    ONE_EV   = 0
    THIRD_EV = 1


class SlowestShutterMode(LabeledEnum):
    MANUAL      = 0
    AUTO_FASTER = 1
    AUTO_FAST   = 2
    AUTO        = 3
    AUTO_SLOW   = 4
    AUTO_SLOWER = 5


class AeMeteringMode(LabeledEnum):
    EVALUATIVE      = 0
    CENTER_WEIGHTED = 1
    SPOT            = 2


class DriveMode(LabeledEnum):
    SINGLE          = 0
    CONTINUOUS_H    = 1
    CONTINUOUS_M    = 2
    CONTINUOUS_L    = 3
    SELF_TIMER_2S   = 4
    SELF_TIMER_10S  = 5
    INTERVAL_TIMER  = 6


class WhiteBalanceMode(LabeledEnum):
    AUTO                = 0
    AUTO_LIGHT_PRIORITY = 1
    DAYLIGHT            = 2
    SHADE               = 3
    OVERCAST            = 4
    INCANDESCENT        = 5
    FLUORESCENT         = 6
    FLASH               = 7
    COLOR_TEMPERATURE   = 8
    CUSTOM_1            = 9
    CUSTOM_2            = 10
    CUSTOM_3            = 11


ENUM_LABELS = {
    ShootingMode: {
        ShootingMode.M: 'M',
        ShootingMode.S: 'S',
        ShootingMode.A: 'A',
        ShootingMode.P: 'P',
    },
    IsoMode: {
        IsoMode.MANUAL: 'manual',
        IsoMode.AUTO: 'auto',
    },
    IsoStep: {
        IsoStep.ONE_EV: '1 EV',
        IsoStep.THIRD_EV: '1/3 EV',
    },
    SlowestShutterMode: {
        SlowestShutterMode.MANUAL: 'Manual',
        SlowestShutterMode.AUTO_FASTER: 'Auto Faster',
        SlowestShutterMode.AUTO_FAST: 'Auto Fast',
        SlowestShutterMode.AUTO: 'Auto',
        SlowestShutterMode.AUTO_SLOW: 'Auto Slow',
        SlowestShutterMode.AUTO_SLOWER: 'Auto Slower',
    },
    AeMeteringMode: {
        AeMeteringMode.EVALUATIVE: 'Evaluative Metering',
        AeMeteringMode.CENTER_WEIGHTED: 'Center Weighted Average Metering',
        AeMeteringMode.SPOT: 'Spot Metering',
    },
    DriveMode: {
        DriveMode.SINGLE: 'Single capture',
        DriveMode.CONTINUOUS_H: 'Continuous H',
        DriveMode.CONTINUOUS_M: 'Continuous M',
        DriveMode.CONTINUOUS_L: 'Continuous L',
        DriveMode.SELF_TIMER_2S: 'Self timer 2s',
        DriveMode.SELF_TIMER_10S: 'Self timer 10s',
        DriveMode.INTERVAL_TIMER: 'Interval timer',
    },
    WhiteBalanceMode: {
        WhiteBalanceMode.AUTO: 'Auto',
        WhiteBalanceMode.AUTO_LIGHT_PRIORITY: 'Auto light priority',
        WhiteBalanceMode.DAYLIGHT: 'Daylight',
        WhiteBalanceMode.SHADE: 'Shade',
        WhiteBalanceMode.OVERCAST: 'Overcast',
        WhiteBalanceMode.INCANDESCENT: 'Incandescent',
        WhiteBalanceMode.FLUORESCENT: 'Fluorescent',
        WhiteBalanceMode.FLASH: 'Flash',
        WhiteBalanceMode.COLOR_TEMPERATURE: 'Color Temperature',
        WhiteBalanceMode.CUSTOM_1: 'Custom 1',
        WhiteBalanceMode.CUSTOM_2: 'Custom 2',
        WhiteBalanceMode.CUSTOM_3: 'Custom 3',
    },
}


class IsoConfiguration(NamedTuple):
    """The three sub-fields packed into the ISO configuration byte."""
    iso_step: IsoStep
    low_iso_expansion: bool
    high_iso_expansion: bool


# ═══════════════════════════════════════════════════════════════
# ERROR CLASSES
# ═══════════════════════════════════════════════════════════════

class FpError(Exception):
    """Base error for all FPQR operations."""
    pass

class FpFormatError(FpError):
    """Buffer absent, empty, immutable or unreadable."""
    pass

class FpValueError(FpError, ValueError):
    """Unknown record key or field identifier."""
    pass

class FpLayoutError(FpError):
    """Field registry inconsistency (overlapping bytes, uncovered attributes)."""
    pass


# ═══════════════════════════════════════════════════════════════
# DIAGNOSTICS CHANNEL
# ═══════════════════════════════════════════════════════════════

# Diagnostic kinds
SHORT_BUFFER = 'short-buffer'
UNKNOWN_VALUE = 'unknown-value'
IGNORED_KEY = 'ignored-key'


@dataclass(frozen=True)
class Diagnostic:
    """One recoverable anomaly met while decoding or encoding a field."""
    field_id: str
    kind: str
    message: str


class Diagnostics:
    """
    Collects field-level anomalies for one decode/encode call.

    Each entry is also logged at WARNING unless ``echo`` is False.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, echo: bool = True):
        self.logger = logger or logging.getLogger(__name__)
        self.echo = echo
        self.entries: List[Diagnostic] = []

    def warn(self, field_id: str, kind: str, message: str) -> Diagnostic:
        entry = Diagnostic(field_id=field_id, kind=kind, message=message)
        self.entries.append(entry)
        if self.echo:
            self.logger.warning("%s [%s]: %s", field_id, kind, message)
        return entry

    def for_field(self, field_id: str) -> List[Diagnostic]:
        return [d for d in self.entries if d.field_id == field_id]

    def kinds(self) -> List[str]:
        return [d.kind for d in self.entries]

    def clear(self) -> None:
        self.entries.clear()

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)


# ═══════════════════════════════════════════════════════════════
# SETTINGS RECORD
# ═══════════════════════════════════════════════════════════════

IsoValue = Union[int, str]
RepeatCount = Union[int, str]


@dataclass(frozen=True)
class SettingsRecord:
    """
    Every decoded camera setting, one attribute per known field.

    Defaults are the values a field decodes to when the buffer is too
    short to hold it. Records are never edited in place: use
    ``replace()`` to derive a new one.
    """
    shooting_mode_name: str = ''
    shooting_mode_icon: str = ''
    shooting_mode: ShootingMode = ShootingMode.M
    shutter_speed: str = '1/125 s'
    aperture: str = 'f/2.8'
    exposure_compensation: float = 0.0
    iso_mode: IsoMode = IsoMode.AUTO
    iso_sensitivity: IsoValue = ISO_AUTO
    iso_step: IsoStep = IsoStep.ONE_EV
    low_iso_expansion: bool = False
    high_iso_expansion: bool = False
    auto_iso_lower_limit: int = 100
    auto_iso_upper_limit: int = 6400
    auto_iso_slowest_shutter_mode: SlowestShutterMode = SlowestShutterMode.AUTO
    auto_iso_slowest_shutter_limit: float = 1 / 30
    ae_metering_mode: AeMeteringMode = AeMeteringMode.EVALUATIVE
    drive_mode: DriveMode = DriveMode.SINGLE
    interval_timer_count: RepeatCount = INFINITE_REPEATS
    interval_timer_duration: int = 0
    white_balance_mode: WhiteBalanceMode = WhiteBalanceMode.AUTO
    white_balance_shift_ba: int = 0
    white_balance_shift_mg: int = 0

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in dataclasses.fields(cls)]

    def replace(self, **changes) -> 'SettingsRecord':
        """Return a copy with ``changes`` applied. Unknown keys raise."""
        unknown = sorted(set(changes) - set(self.field_names()))
        if unknown:
            raise FpValueError(f"Unknown settings: {', '.join(unknown)}")
        return dataclasses.replace(self, **_coerce_enums(changes))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], strict: bool = True,
                  diagnostics: Optional[Diagnostics] = None) -> 'SettingsRecord':
        """
        Build a record from a mapping (e.g. the output of ``to_dict``).

        Enum attributes accept members, labels or indexes. Unknown keys
        raise FpValueError when ``strict``; otherwise they are dropped
        and reported to ``diagnostics``.
        """
        known = set(cls.field_names())
        unknown = sorted(k for k in data if k not in known)
        if unknown and strict:
            raise FpValueError(f"Unknown settings: {', '.join(unknown)}")
        for key in unknown:
            if diagnostics is not None:
                diagnostics.warn(key, IGNORED_KEY, f"Ignoring unknown setting {key!r}")
        values = {k: v for k, v in data.items() if k in known}
        return cls(**_coerce_enums(values))

    def to_dict(self) -> Dict[str, Any]:
        """Plain mapping with enum members replaced by their labels."""
        out = {}
        for name in self.field_names():
            value = getattr(self, name)
            out[name] = value.label if isinstance(value, LabeledEnum) else value
        return out


# Record attributes holding enum members
ENUM_FIELDS = {
    'shooting_mode': ShootingMode,
    'iso_mode': IsoMode,
    'iso_step': IsoStep,
    'auto_iso_slowest_shutter_mode': SlowestShutterMode,
    'ae_metering_mode': AeMeteringMode,
    'drive_mode': DriveMode,
    'white_balance_mode': WhiteBalanceMode,
}


def _coerce_enums(values: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(values)
    for name, enum_cls in ENUM_FIELDS.items():
        if name in out:
            try:
                out[name] = enum_cls.coerce(out[name])
            except ValueError as e:
                raise FpValueError(f"Invalid {name}: {e}") from e
    return out


# ═══════════════════════════════════════════════════════════════
# UTILITY FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def bias(value: int, index: int) -> int:
    """Golden rule, encode direction: stored byte for ``value`` at ``index``."""
    return (value + index) & 0xFF

def unbias(buffer, index: int) -> int:
    """Golden rule, decode direction: logical value (0..255) at ``index``."""
    return (buffer[index] - index) & 0xFF

def signed_unbias(buffer, index: int) -> int:
    """Logical value at ``index`` without wrap-around (may be negative)."""
    return buffer[index] - index

def read_word(buffer, index: int) -> int:
    """16-bit internal value from low byte ``index`` and high byte ``index+1``."""
    return (unbias(buffer, index + 1) << 8) | unbias(buffer, index)

def write_word(buffer, index: int, value: int) -> None:
    """Store a 16-bit internal value (two's complement if negative)."""
    value &= 0xFFFF
    buffer[index] = bias(value & 0xFF, index)
    buffer[index + 1] = bias(value >> 8, index + 1)

def to_signed16(value: int) -> int:
    return value - 0x10000 if value > 0x7FFF else value

def round_half_up(x: float) -> int:
    """Round to nearest integer, halves towards +infinity."""
    return math.floor(x + 0.5)
