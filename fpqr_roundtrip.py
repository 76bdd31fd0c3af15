"""
FPQR Round-trip Harness — codec self-check over every registered field
=======================================================================

Drives each field codec through the properties the buffer format
depends on:

  - fixed points   decode(encode(blank, v)) == v for every legal value
  - isolation      encoding a field touches no byte outside its offsets
  - short buffer   a truncated buffer decodes to the default and is
                   left untouched by encode
  - buffer check   encode(decode(buffer)) changes only the bytes of
                   fields whose stored value was off-stop or unknown,
                   and a second pass changes nothing

Usage:
    report = RoundTripHarness().run_all()
    report['valid']          # True when every check passed
    report['failures']       # human-readable failure lines
"""

import logging
from typing import Any, Dict, List, Optional

from fpqr_types import DEFAULT_BUFFER_SIZE, Diagnostics, SHORT_BUFFER
from fpqr_fields import FieldCodec, BYTE_OWNERS
from fpqr_decoder import FpDecoder
from fpqr_encoder import FpEncoder

log = logging.getLogger(__name__)


def changed_offsets(before, after) -> List[int]:
    """Indexes where two equal-length buffers differ."""
    return [i for i, (a, b) in enumerate(zip(before, after)) if a != b]


def pattern_buffer(size: int = DEFAULT_BUFFER_SIZE) -> bytearray:
    """Non-blank buffer whose bytes all differ from a blank one."""
    return bytearray((i * 37 + 11) & 0xFF for i in range(size))


class RoundTripHarness:
    """Runs the round-trip properties against a decoder/encoder pair."""

    def __init__(self, decoder: Optional[FpDecoder] = None,
                 encoder: Optional[FpEncoder] = None,
                 buffer_size: int = DEFAULT_BUFFER_SIZE):
        self.decoder = decoder or FpDecoder()
        self.encoder = encoder or FpEncoder(buffer_size=buffer_size)
        self.buffer_size = buffer_size

    # ─── Per-field checks ─────────────────────────────────────

    def legal_values(self, codec: FieldCodec) -> List[Any]:
        return codec.legal_values()

    def check_fixed_points(self, codec: FieldCodec) -> List[str]:
        failures = []
        for value in self.legal_values(codec):
            diagnostics = Diagnostics(echo=False)
            buffer = self.encoder.new_buffer(self.buffer_size)
            codec.encode(value, buffer, diagnostics)
            decoded = codec.decode(buffer, diagnostics)
            if decoded != value:
                failures.append(f"{codec.field_id}: {value!r} decoded as {decoded!r}")
            elif diagnostics:
                failures.append(f"{codec.field_id}: {value!r} raised {diagnostics.kinds()}")
        return failures

    def check_isolation(self, codec: FieldCodec) -> List[str]:
        failures = []
        owned = set(codec.offsets)
        for value in self.legal_values(codec):
            for start in (self.encoder.new_buffer(self.buffer_size), pattern_buffer(self.buffer_size)):
                buffer = bytearray(start)
                codec.encode(value, buffer, Diagnostics(echo=False))
                stray = [i for i in changed_offsets(start, buffer) if i not in owned]
                if stray:
                    failures.append(f"{codec.field_id}: {value!r} wrote outside its bytes at {stray}")
        return failures

    def check_short_buffer(self, codec: FieldCodec) -> List[str]:
        """Run with none of the field's bytes present, then with all but the last."""
        failures = []
        values = self.legal_values(codec)
        for length in sorted({min(codec.offsets), max(codec.offsets)}):
            buffer = bytearray(i & 0xFF for i in range(length))
            original = bytes(buffer)

            diagnostics = Diagnostics(echo=False)
            decoded = codec.decode(buffer, diagnostics)
            if decoded != codec.default:
                failures.append(f"{codec.field_id}: {length}-byte buffer decoded as {decoded!r}, "
                                f"expected default {codec.default!r}")

            codec.encode(values[-1] if values else codec.default, buffer, diagnostics)
            if bytes(buffer) != original:
                failures.append(f"{codec.field_id}: encode modified a {length}-byte buffer")
            if diagnostics.kinds().count(SHORT_BUFFER) != 2:
                failures.append(f"{codec.field_id}: {length}-byte buffer not reported "
                                f"({diagnostics.kinds()})")
        return failures

    # ─── Whole-buffer check ───────────────────────────────────

    def check_buffer(self, buffer) -> dict:
        """
        Re-encode the record decoded from ``buffer`` into a copy of it.

        Returns:
            dict with 'snapped' (fields whose bytes were normalized),
            'failures' and 'valid'.
        """
        diagnostics = Diagnostics(echo=False)
        record = self.decoder.decode(buffer, diagnostics)
        encoded = self.encoder.encode(bytearray(buffer), record, diagnostics)

        failures = []
        snapped = []
        for index in changed_offsets(buffer, encoded):
            owner = BYTE_OWNERS.get(index)
            if owner is None:
                failures.append(f"byte {index} changed but belongs to no field")
            elif owner not in snapped:
                snapped.append(owner)

        # One pass normalizes; a second must change nothing
        diagnostics = Diagnostics(echo=False)
        normalized = bytes(encoded)
        self.encoder.encode(encoded, self.decoder.decode(normalized, diagnostics), diagnostics)
        unstable = changed_offsets(normalized, encoded)
        if unstable:
            failures.append(f"normalized buffer not stable at bytes {unstable}")

        return {'snapped': snapped, 'failures': failures, 'valid': not failures}

    # ─── All fields ───────────────────────────────────────────

    def run_all(self) -> dict:
        fields: Dict[str, dict] = {}
        failures: List[str] = []
        for codec in self.decoder.codecs:
            result = {
                **codec.describe(),
                'legal_values': len(self.legal_values(codec)),
                'fixed_points': self.check_fixed_points(codec),
                'isolation': self.check_isolation(codec),
                'short_buffer': self.check_short_buffer(codec),
            }
            field_failures = result['fixed_points'] + result['isolation'] + result['short_buffer']
            result['valid'] = not field_failures
            fields[codec.field_id] = result
            failures.extend(field_failures)

        for name, start in (('blank', self.encoder.new_buffer(self.buffer_size)),
                            ('pattern', pattern_buffer(self.buffer_size))):
            check = self.check_buffer(start)
            failures.extend(f"{name} buffer: {line}" for line in check['failures'])

        if failures:
            log.warning("Round-trip harness found %d failure(s)", len(failures))
        return {'fields': fields, 'failures': failures, 'valid': not failures}
