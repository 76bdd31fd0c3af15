"""
FPQR Field Codecs — one encode/decode unit per settings field
==============================================================

Every known setting is handled by a codec unit that owns a fixed set of
byte offsets and one quantization scheme:

  - linear    one-byte enumerations, index-biased ("golden rule")
  - text      fixed-width strings, one index-biased char per byte
  - counter   unsigned 16-bit counters split over two biased bytes
  - signed    small signed offsets (white-balance shift)
  - sentinel  repeat counter where logical 0 means "unlimited"
  - apex      16-bit logarithmic values, 256 units per stop, snapped
              onto a stop table
  - ev-step   exposure compensation: integer EV + 1/3 step selector
  - bitmask   several sub-fields packed into one byte

FIELD_CODECS is the registry the record assembler iterates. Its layout
(no two units owning the same byte, every record attribute filled by
exactly one unit) is checked when this module is imported.

Codecs never raise on field-level problems: a buffer too short for the
field yields the field default (decode) or leaves the buffer untouched
(encode); unknown stored or supplied values fall back to the default.
Both are reported to the Diagnostics channel.
"""

import math
import logging
from fractions import Fraction
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from fpqr_types import (
    Offset, SHOOTING_MODE_NAME_WIDTH, SHOOTING_MODE_ICON_WIDTH,
    UNITS_PER_STOP, ISO_BASE, ISO_AUTO, INFINITE_REPEATS,
    LabeledEnum, ShootingMode, IsoMode, IsoStep, SlowestShutterMode,
    AeMeteringMode, DriveMode, WhiteBalanceMode, IsoConfiguration,
    SettingsRecord, Diagnostics, SHORT_BUFFER, UNKNOWN_VALUE,
    FpLayoutError, FpValueError,
    bias, unbias, signed_unbias, read_word, write_word, to_signed16,
    round_half_up,
)
from fpqr_stops import (
    ISO_STOPS, AUTO_ISO_LOWER_LIMIT_STOPS, AUTO_ISO_UPPER_LIMIT_STOPS,
    APERTURE_STOPS, SHUTTER_SPEEDS, SHUTTER_SPEED_STOPS,
    SLOWEST_SHUTTER_LIMIT_STOPS,
    snap, aperture_number, nearest_aperture, nearest_shutter_speed,
)

logger = logging.getLogger(__name__)


def _positive_number(value) -> bool:
    """True for a finite, positive int/float/Fraction (not bool)."""
    return (isinstance(value, (int, float, Fraction)) and not isinstance(value, bool)
            and math.isfinite(value) and value > 0)


# ═══════════════════════════════════════════════════════════════
# BASE UNIT
# ═══════════════════════════════════════════════════════════════

class FieldCodec:
    """
    Encode/decode unit for one settings field.

    Subclasses implement ``_decode`` and ``_encode``; the public
    ``decode``/``encode`` wrap them with the short-buffer policy.
    ``read``/``write`` map between the codec's value and the
    SettingsRecord attribute(s) it fills.
    """
    family = 'abstract'
    stops: Optional[Sequence[Any]] = None

    def __init__(self, field_id: str, offsets: Iterable[int], default: Any,
                 attrs: Optional[Tuple[str, ...]] = None):
        self.field_id = field_id
        self.offsets = tuple(int(i) for i in offsets)
        self.default = default
        self.attrs = attrs or (field_id,)

    def __repr__(self):
        return f"<{type(self).__name__} {self.field_id} @{list(self.offsets)}>"

    @property
    def min_length(self) -> int:
        return max(self.offsets) + 1

    def fits(self, buffer) -> bool:
        return buffer is not None and len(buffer) >= self.min_length

    # ─── Buffer side ──────────────────────────────────────────

    def decode(self, buffer, diagnostics: Optional[Diagnostics] = None) -> Any:
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        if not self.fits(buffer):
            self._short(buffer, diagnostics)
            return self.default
        return self._decode(buffer, diagnostics)

    def encode(self, value: Any, buffer, diagnostics: Optional[Diagnostics] = None) -> None:
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        if not self.fits(buffer):
            self._short(buffer, diagnostics)
            return
        self._encode(value, buffer, diagnostics)

    def _decode(self, buffer, diagnostics: Diagnostics) -> Any:
        raise NotImplementedError

    def _encode(self, value: Any, buffer, diagnostics: Diagnostics) -> None:
        raise NotImplementedError

    def _short(self, buffer, diagnostics: Diagnostics) -> None:
        have = 0 if buffer is None else len(buffer)
        diagnostics.warn(
            self.field_id, SHORT_BUFFER,
            f"Buffer too short for {self.field_id}: need {self.min_length} bytes, got {have}"
        )

    def _unknown(self, diagnostics: Diagnostics, message: str) -> None:
        diagnostics.warn(self.field_id, UNKNOWN_VALUE, message)

    # ─── Record side ──────────────────────────────────────────

    def read(self, buffer, diagnostics: Optional[Diagnostics] = None) -> Dict[str, Any]:
        """Decode into ``{attribute: value}`` for the record assembler."""
        return {self.attrs[0]: self.decode(buffer, diagnostics)}

    def value_of(self, record: SettingsRecord) -> Any:
        return getattr(record, self.attrs[0])

    def write(self, record: SettingsRecord, buffer,
              diagnostics: Optional[Diagnostics] = None) -> None:
        self.encode(self.value_of(record), buffer, diagnostics)

    # ─── Introspection ────────────────────────────────────────

    def legal_values(self) -> List[Any]:
        """Values this field must round-trip exactly."""
        if self.stops is not None:
            return list(self.stops)
        raise NotImplementedError

    def describe(self) -> dict:
        return {
            'field_id': self.field_id,
            'family': self.family,
            'attrs': list(self.attrs),
            'offsets': list(self.offsets),
            'default': self.default,
            'stops': len(self.stops) if self.stops is not None else None,
        }


# ═══════════════════════════════════════════════════════════════
# LINEAR OFFSET FAMILY
# ═══════════════════════════════════════════════════════════════

class EnumCodec(FieldCodec):
    """One byte, stored = enum index + offset (mod 256)."""
    family = 'linear'

    def __init__(self, field_id: str, offset: int, enum_cls: Type[LabeledEnum], default: LabeledEnum):
        super().__init__(field_id, (offset,), default)
        self.enum_cls = enum_cls

    def _decode(self, buffer, diagnostics):
        value = unbias(buffer, self.offsets[0])
        try:
            return self.enum_cls(value)
        except ValueError:
            self._unknown(diagnostics, f"Unknown {self.enum_cls.__name__} value {value}, "
                                       f"using {self.default.label!r}")
            return self.default

    def _encode(self, value, buffer, diagnostics):
        try:
            member = self.enum_cls.coerce(value)
        except ValueError:
            self._unknown(diagnostics, f"Cannot encode {value!r} as {self.enum_cls.__name__}")
            return
        buffer[self.offsets[0]] = bias(int(member), self.offsets[0])

    def legal_values(self):
        return list(self.enum_cls)


class IsoModeCodec(EnumCodec):
    """ISO mode byte: a stored byte equal to its offset is manual, anything else auto."""

    def __init__(self, field_id: str, offset: int):
        super().__init__(field_id, offset, IsoMode, IsoMode.AUTO)

    def _decode(self, buffer, diagnostics):
        return IsoMode.MANUAL if unbias(buffer, self.offsets[0]) == 0 else IsoMode.AUTO


class TextCodec(FieldCodec):
    """
    Fixed-width string, one char per byte, each biased by its own index.

    Logical 0 is padding and skipped on decode. Encode truncates to the
    field width and zero-pads. Only Latin-1 code points fit in a byte.
    """
    family = 'text'

    def __init__(self, field_id: str, start: int, width: int, samples: Sequence[str]):
        super().__init__(field_id, range(start, start + width), '')
        self.width = width
        self.samples = tuple(samples)

    def _decode(self, buffer, diagnostics):
        chars = []
        for index in self.offsets:
            code = unbias(buffer, index)
            if code == 0:
                continue
            chars.append(chr(code))
        return ''.join(chars).strip()

    def _encode(self, value, buffer, diagnostics):
        text = '' if value is None else str(value)
        if len(text) > self.width:
            logger.debug("%s truncated to %d chars: %r", self.field_id, self.width, text)
            text = text[:self.width]
        for position, index in enumerate(self.offsets):
            code = ord(text[position]) if position < len(text) else 0
            if code > 0xFF:
                self._unknown(diagnostics, f"Character {text[position]!r} does not fit in a byte, "
                                           f"written as '?'")
                code = ord('?')
            buffer[index] = bias(code, index)

    def legal_values(self):
        return list(self.samples)


class CounterCodec(FieldCodec):
    """Unsigned 16-bit counter: low byte at ``offset``, high byte after it."""
    family = 'counter'

    def __init__(self, field_id: str, offset: int, samples: Sequence[int]):
        super().__init__(field_id, (offset, offset + 1), 0)
        self.samples = tuple(samples)

    def _decode(self, buffer, diagnostics):
        low = unbias(buffer, self.offsets[0])
        # High byte wraps mod 256 too: counts from 114 * 256 up store it below its offset
        high = unbias(buffer, self.offsets[1])
        return high * 256 + low

    def _encode(self, value, buffer, diagnostics):
        try:
            count = int(value)
        except (TypeError, ValueError, OverflowError):
            self._unknown(diagnostics, f"Cannot encode {value!r} as a counter")
            return
        if not 0 <= count <= 0xFFFF:
            self._unknown(diagnostics, f"Counter {count} outside 0..65535")
            return
        buffer[self.offsets[0]] = bias(count % 256, self.offsets[0])
        buffer[self.offsets[1]] = bias(count // 256, self.offsets[1])

    def legal_values(self):
        return list(self.samples)


class SignedByteCodec(FieldCodec):
    """Small signed offset, value = stored - offset (no wrap on decode)."""
    family = 'signed'

    def __init__(self, field_id: str, offset: int, limit: int):
        super().__init__(field_id, (offset,), 0)
        self.limit = limit

    def _decode(self, buffer, diagnostics):
        return signed_unbias(buffer, self.offsets[0])

    def _encode(self, value, buffer, diagnostics):
        try:
            shift = int(value)
        except (TypeError, ValueError, OverflowError):
            self._unknown(diagnostics, f"Cannot encode {value!r} as a shift")
            return
        if abs(shift) > self.limit:
            self._unknown(diagnostics, f"Shift {shift} outside -{self.limit}..+{self.limit}")
            return
        buffer[self.offsets[0]] = bias(shift, self.offsets[0])

    def legal_values(self):
        return list(range(-self.limit, self.limit + 1))


class RepeatCountCodec(FieldCodec):
    """Repeat counter; a stored byte equal to its own offset means unlimited."""
    family = 'sentinel'

    def __init__(self, field_id: str, offset: int, maximum: int = 99):
        super().__init__(field_id, (offset,), INFINITE_REPEATS)
        self.maximum = maximum

    def _decode(self, buffer, diagnostics):
        # Mod 256: counts 116..255 are stored below the offset
        value = unbias(buffer, self.offsets[0])
        return INFINITE_REPEATS if value == 0 else value

    def _encode(self, value, buffer, diagnostics):
        if value == INFINITE_REPEATS:
            count = 0
        else:
            try:
                count = int(value)
            except (TypeError, ValueError, OverflowError):
                self._unknown(diagnostics, f"Cannot encode {value!r} as a repeat count")
                return
            # 0 is the unlimited sentinel; only INFINITE_REPEATS may write it
            if not 1 <= count <= 0xFF:
                self._unknown(diagnostics, f"Repeat count {count} outside 1..255")
                return
        buffer[self.offsets[0]] = bias(count, self.offsets[0])

    def legal_values(self):
        return [INFINITE_REPEATS] + list(range(1, self.maximum + 1))


# ═══════════════════════════════════════════════════════════════
# LOGARITHMIC / APEX FAMILY
# ═══════════════════════════════════════════════════════════════

class IsoCodec(FieldCodec):
    """
    ISO on the 16-bit log scale: ISO = 3.125 * 2^(internal / 256).

    ``auto_sentinel``: internal value 0 means 'auto'.
    ``correction``: (low, high, forced) pins the low byte of the encoded
    internal value to ``forced`` when it falls in low..high, matching the
    vendor's byte table for 2/3-stop values.
    """
    family = 'apex'

    def __init__(self, field_id: str, offset: int, stops: Sequence[int], default: Any,
                 auto_sentinel: bool = False,
                 correction: Optional[Tuple[int, int, int]] = None):
        super().__init__(field_id, (offset, offset + 1), default)
        self.stops = tuple(stops)
        self.auto_sentinel = auto_sentinel
        self.correction = correction

    def _decode(self, buffer, diagnostics):
        internal = read_word(buffer, self.offsets[0])
        if self.auto_sentinel and internal == 0:
            return ISO_AUTO
        iso = ISO_BASE * 2 ** (internal / UNITS_PER_STOP)
        return snap(iso, self.stops)

    def to_internal(self, iso: float) -> int:
        internal = round_half_up(math.log2(iso / ISO_BASE) * UNITS_PER_STOP)
        if self.correction:
            low, high, forced = self.correction
            if low <= (internal & 0xFF) <= high:
                internal = (internal & 0xFF00) | forced
        return internal

    def _encode(self, value, buffer, diagnostics):
        if self.auto_sentinel and value in (ISO_AUTO, 0):
            internal = 0
        else:
            try:
                iso = float(value)
            except (TypeError, ValueError):
                self._unknown(diagnostics, f"Cannot encode {value!r} as ISO")
                return
            if not math.isfinite(iso) or iso <= 0:
                self._unknown(diagnostics, f"ISO must be a positive number, got {value!r}")
                return
            internal = self.to_internal(iso)
        write_word(buffer, self.offsets[0], internal)

    def legal_values(self):
        return ([ISO_AUTO] if self.auto_sentinel else []) + list(self.stops)


# Vendor-observed byte pairs for apertures the plain formula misses or
# that were captured directly from the camera.
VENDOR_APERTURE_BYTES = {
    'f/2.8': (0x6C, 0x77),
    'f/3.2': (0xCF, 0x78),
    'f/3.5': (0x11, 0x78),
    'f/4.0': (0x74, 0x79),
    'f/22': (0x5F, 0x7D),
}


class ApertureCodec(FieldCodec):
    """Aperture as APEX Av * 256, i.e. internal = 512 * log2(N)."""
    family = 'apex'
    stops = APERTURE_STOPS

    UNITS_PER_DOUBLING = 2 * UNITS_PER_STOP

    def __init__(self, field_id: str, offset: int, default: str):
        super().__init__(field_id, (offset, offset + 1), default)

    def _decode(self, buffer, diagnostics):
        internal = read_word(buffer, self.offsets[0])
        return nearest_aperture(2 ** (internal / self.UNITS_PER_DOUBLING))

    def _label(self, value, diagnostics) -> Optional[str]:
        if _positive_number(value):
            return nearest_aperture(float(value))
        if value in self.stops:
            return value
        self._unknown(diagnostics, f"Unknown aperture {value!r}")
        return None

    def _encode(self, value, buffer, diagnostics):
        label = self._label(value, diagnostics)
        if label is None:
            return
        start = self.offsets[0]
        if label in VENDOR_APERTURE_BYTES:
            buffer[start], buffer[start + 1] = VENDOR_APERTURE_BYTES[label]
            return
        internal = round_half_up(self.UNITS_PER_DOUBLING * math.log2(aperture_number(label)))
        write_word(buffer, start, internal)


class ShutterSpeedCodec(FieldCodec):
    """
    Shutter speed as APEX Tv * 256, signed: t = 2^(-internal / 256).

    Negative internal values are exposures longer than one second.
    Encoding floors fast speeds and rounds slow ones with a -0.25 bias;
    both rules reproduce the vendor's byte pairs exactly.
    """
    family = 'apex'
    stops = SHUTTER_SPEED_STOPS

    def __init__(self, field_id: str, offset: int, default: str):
        super().__init__(field_id, (offset, offset + 1), default)

    def _decode(self, buffer, diagnostics):
        internal = to_signed16(read_word(buffer, self.offsets[0]))
        return nearest_shutter_speed(2 ** (-internal / UNITS_PER_STOP))

    @staticmethod
    def to_internal(seconds: Fraction) -> int:
        raw = UNITS_PER_STOP * math.log2(float(1 / seconds))
        if raw > 0:
            return math.floor(raw)
        return round_half_up(raw - 0.25)

    def _encode(self, value, buffer, diagnostics):
        if _positive_number(value):
            value = nearest_shutter_speed(float(value))
        seconds = SHUTTER_SPEEDS.get(value)
        if seconds is None:
            self._unknown(diagnostics, f"Unknown shutter speed {value!r}")
            return
        write_word(buffer, self.offsets[0], self.to_internal(seconds))


class SlowestShutterLimitCodec(FieldCodec):
    """Auto-ISO slowest shutter limit in seconds, unsigned Tv * 256."""
    family = 'apex'
    stops = SLOWEST_SHUTTER_LIMIT_STOPS

    def __init__(self, field_id: str, offset: int, default: float):
        super().__init__(field_id, (offset, offset + 1), default)

    def _decode(self, buffer, diagnostics):
        internal = read_word(buffer, self.offsets[0])
        return snap(2 ** (-internal / UNITS_PER_STOP), self.stops)

    def _encode(self, value, buffer, diagnostics):
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            self._unknown(diagnostics, f"Cannot encode {value!r} as seconds")
            return
        if not math.isfinite(seconds) or seconds <= 0:
            self._unknown(diagnostics, f"Shutter limit must be a positive number, got {value!r}")
            return
        internal = round_half_up(-math.log2(seconds) * UNITS_PER_STOP)
        write_word(buffer, self.offsets[0], internal)


class ExposureCompensationCodec(FieldCodec):
    """
    Exposure compensation over two bytes:
        offset      step selector, (offset + step * 85) mod 256,
                    step 0/1/2 = +0.0/+0.3/+0.7 EV
        offset + 1  signed integer EV, index-biased
    """
    family = 'ev-step'

    STEP_INCREMENT = 85  # 256 / 3, rounded
    STEP_FRACTIONS = (0.0, 0.3, 0.7)
    STEP_TOLERANCE = 0.1
    LIMIT = 5

    def __init__(self, field_id: str, offset: int):
        super().__init__(field_id, (offset, offset + 1), 0.0)

    def _decode(self, buffer, diagnostics):
        step_index, int_index = self.offsets
        integer = signed_unbias(buffer, int_index)
        step = unbias(buffer, step_index) / self.STEP_INCREMENT
        fraction = 0.0
        for n, frac in enumerate(self.STEP_FRACTIONS):
            if abs(step - n) < self.STEP_TOLERANCE:
                fraction = frac
                break
        else:
            self._unknown(diagnostics, f"Unknown exposure step byte {buffer[step_index]:#04x}")
        return round(integer + fraction, 1)

    def _encode(self, value, buffer, diagnostics):
        try:
            ev = float(value)
        except (TypeError, ValueError):
            ev = None
        if ev is None or not math.isfinite(ev):
            self._unknown(diagnostics, f"Cannot encode {value!r} as EV")
            return
        ev = max(-self.LIMIT, min(self.LIMIT, ev))
        integer = math.floor(ev + 0.0001)
        remainder = ev - integer
        if remainder > 0.5:
            step = 2
        elif remainder > 0.15:
            step = 1
        else:
            step = 0
        step_index, int_index = self.offsets
        buffer[int_index] = bias(integer, int_index)
        buffer[step_index] = bias(step * self.STEP_INCREMENT, step_index)

    def legal_values(self):
        return [round(n / 3, 1) for n in range(-3 * self.LIMIT, 3 * self.LIMIT + 1)]


# ═══════════════════════════════════════════════════════════════
# BITMASK FAMILY
# ═══════════════════════════════════════════════════════════════

class IsoConfigurationCodec(FieldCodec):
    """
    ISO configuration byte, index-biased, then:
        bit 0  ISO step is 1/3 EV
        bit 1  low ISO expansion
        bit 2  high ISO expansion
    The three sub-fields are always written together.
    """
    family = 'bitmask'

    STEP_BIT = 0x01
    LOW_BIT = 0x02
    HIGH_BIT = 0x04

    def __init__(self, field_id: str, offset: int):
        super().__init__(
            field_id, (offset,), IsoConfiguration(IsoStep.ONE_EV, False, False),
            attrs=IsoConfiguration._fields,
        )

    def _decode(self, buffer, diagnostics):
        value = unbias(buffer, self.offsets[0])
        if value & ~(self.STEP_BIT | self.LOW_BIT | self.HIGH_BIT):
            self._unknown(diagnostics, f"Unknown ISO configuration bits {value:#04x}")
        return IsoConfiguration(
            iso_step=IsoStep.THIRD_EV if value & self.STEP_BIT else IsoStep.ONE_EV,
            low_iso_expansion=bool(value & self.LOW_BIT),
            high_iso_expansion=bool(value & self.HIGH_BIT),
        )

    def _encode(self, value, buffer, diagnostics):
        try:
            step, low, high = value
            step = IsoStep.coerce(step)
        except (TypeError, ValueError):
            self._unknown(diagnostics, f"Cannot encode {value!r} as ISO configuration")
            return
        bits = 0
        if step == IsoStep.THIRD_EV:
            bits |= self.STEP_BIT
        if low:
            bits |= self.LOW_BIT
        if high:
            bits |= self.HIGH_BIT
        buffer[self.offsets[0]] = bias(bits, self.offsets[0])

    def read(self, buffer, diagnostics=None):
        return self.decode(buffer, diagnostics)._asdict()

    def value_of(self, record):
        return IsoConfiguration(record.iso_step, record.low_iso_expansion, record.high_iso_expansion)

    def legal_values(self):
        return [IsoConfiguration(step, low, high)
                for step in IsoStep for low in (False, True) for high in (False, True)]


# ═══════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════

FIELD_CODECS: Tuple[FieldCodec, ...] = (
    TextCodec('shooting_mode_name', Offset.SHOOTING_MODE_NAME, SHOOTING_MODE_NAME_WIDTH,
              samples=('', 'C1', 'Street', 'Night 1/3 EV', 'ABCDEFGHIJKLMNOP')),
    TextCodec('shooting_mode_icon', Offset.SHOOTING_MODE_ICON, SHOOTING_MODE_ICON_WIDTH,
              samples=('', 'C', 'C1', 'P2')),
    EnumCodec('shooting_mode', Offset.SHOOTING_MODE, ShootingMode, ShootingMode.M),
    ShutterSpeedCodec('shutter_speed', Offset.SHUTTER_SPEED, '1/125 s'),
    ApertureCodec('aperture', Offset.APERTURE, 'f/2.8'),
    ExposureCompensationCodec('exposure_compensation', Offset.EXPOSURE_COMPENSATION),
    IsoModeCodec('iso_mode', Offset.ISO_MODE),
    IsoCodec('iso_sensitivity', Offset.ISO_SENSITIVITY, ISO_STOPS, ISO_AUTO,
             auto_sentinel=True),
    IsoConfigurationCodec('iso_configuration', Offset.ISO_CONFIGURATION),
    IsoCodec('auto_iso_lower_limit', Offset.AUTO_ISO_LOWER_LIMIT, AUTO_ISO_LOWER_LIMIT_STOPS, 100,
             correction=(170, 178, 164)),
    IsoCodec('auto_iso_upper_limit', Offset.AUTO_ISO_UPPER_LIMIT, AUTO_ISO_UPPER_LIMIT_STOPS, 6400,
             correction=(173, 175, 173)),
    EnumCodec('auto_iso_slowest_shutter_mode', Offset.AUTO_ISO_SLOWEST_SHUTTER_MODE,
              SlowestShutterMode, SlowestShutterMode.AUTO),
    SlowestShutterLimitCodec('auto_iso_slowest_shutter_limit', Offset.AUTO_ISO_SLOWEST_SHUTTER_LIMIT,
                             1 / 30),
    EnumCodec('ae_metering_mode', Offset.AE_METERING_MODE, AeMeteringMode, AeMeteringMode.EVALUATIVE),
    EnumCodec('drive_mode', Offset.DRIVE_MODE, DriveMode, DriveMode.SINGLE),
    RepeatCountCodec('interval_timer_count', Offset.INTERVAL_TIMER_COUNT),
    CounterCodec('interval_timer_duration', Offset.INTERVAL_TIMER_DURATION,
                 samples=(0, 1, 30, 59, 60, 255, 256, 600, 3599, 3600, 65535)),
    EnumCodec('white_balance_mode', Offset.WHITE_BALANCE_MODE, WhiteBalanceMode, WhiteBalanceMode.AUTO),
    SignedByteCodec('white_balance_shift_ba', Offset.WHITE_BALANCE_SHIFT_BA, limit=16),
    SignedByteCodec('white_balance_shift_mg', Offset.WHITE_BALANCE_SHIFT_MG, limit=16),
)


def check_layout(codecs: Sequence[FieldCodec], record_cls=SettingsRecord) -> Dict[int, str]:
    """
    Verify a codec registry and return its byte ownership map.

    Raises FpLayoutError if two units share a field id or a byte, or if
    the record attributes are not each filled by exactly one unit.
    """
    owners: Dict[int, str] = {}
    seen_ids = set()
    filled: Dict[str, str] = {}
    for codec in codecs:
        if codec.field_id in seen_ids:
            raise FpLayoutError(f"Duplicate field id {codec.field_id!r}")
        seen_ids.add(codec.field_id)
        for index in codec.offsets:
            if index in owners:
                raise FpLayoutError(
                    f"Byte {index} claimed by both {owners[index]!r} and {codec.field_id!r}"
                )
            owners[index] = codec.field_id
        for attr in codec.attrs:
            if attr in filled:
                raise FpLayoutError(
                    f"Attribute {attr!r} filled by both {filled[attr]!r} and {codec.field_id!r}"
                )
            filled[attr] = codec.field_id
    missing = [name for name in record_cls.field_names() if name not in filled]
    extra = [name for name in filled if name not in record_cls.field_names()]
    if missing or extra:
        raise FpLayoutError(f"Record attributes not covered: {missing}, unknown: {extra}")
    return owners


BYTE_OWNERS = check_layout(FIELD_CODECS)
CODECS_BY_ID = {codec.field_id: codec for codec in FIELD_CODECS}


def get_codec(field_id: str) -> FieldCodec:
    try:
        return CODECS_BY_ID[field_id]
    except KeyError:
        raise FpValueError(f"Unknown field {field_id!r}") from None


def owned_offsets(codecs: Iterable[FieldCodec] = FIELD_CODECS) -> List[int]:
    return sorted(index for codec in codecs for index in codec.offsets)
