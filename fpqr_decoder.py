"""
FPQR Decoder — Camera Settings Barcode Decoder
===============================================

Turns a raw settings buffer (the byte payload of a scanned barcode)
into one immutable SettingsRecord.

Every registered field codec decodes independently. A buffer that is
too short for some fields still yields a complete record: missing
fields take their defaults and are reported to the Diagnostics channel.
Only an absent or empty buffer is an error.

The decoder never mutates or keeps the buffer it is given.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from fpqr_types import (
    MIN_BUFFER_SIZE,
    SettingsRecord, Diagnostics,
    FpFormatError,
)
from fpqr_fields import FIELD_CODECS, FieldCodec

log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# DECODER
# ═══════════════════════════════════════════════════════════════

class FpDecoder:
    """
    FPQR settings decoder.

    Usage:
        decoder = FpDecoder()
        record = decoder.decode(buffer)
        record.shutter_speed        # '1/125 s'
        record.to_dict()            # labels, ready for storage
    """

    def __init__(self, logger: Optional[logging.Logger] = None,
                 codecs: Optional[Sequence[FieldCodec]] = None):
        self.logger = logger or log
        self.codecs = tuple(codecs) if codecs is not None else FIELD_CODECS

    # ─── Main Entry Points ────────────────────────────────────

    def decode(self, buffer, diagnostics: Optional[Diagnostics] = None) -> SettingsRecord:
        """
        Decode a settings buffer.

        Args:
            buffer: bytes, bytearray or any sequence of 0..255 ints.
            diagnostics: channel collecting field-level anomalies.
                None = a fresh channel logging through this decoder's logger.

        Returns:
            SettingsRecord with every known field populated.
        """
        if buffer is None or len(buffer) == 0:
            raise FpFormatError("Cannot decode an empty or absent buffer")
        if diagnostics is None:
            diagnostics = Diagnostics(logger=self.logger)

        values = {}
        for codec in self.codecs:
            values.update(codec.read(buffer, diagnostics))
        record = SettingsRecord(**values)

        self.logger.debug(
            "Decoded %d-byte buffer: %s %s %s ISO %s (%d diagnostics)",
            len(buffer), record.shooting_mode.label, record.shutter_speed,
            record.aperture, record.iso_sensitivity, len(diagnostics),
        )
        return record

    def decode_file(self, filepath, diagnostics: Optional[Diagnostics] = None) -> SettingsRecord:
        """Decode a raw binary buffer stored on disk."""
        try:
            raw = Path(filepath).read_bytes()
        except OSError as e:
            raise FpFormatError(f"Cannot read settings buffer {filepath}: {e}") from e
        return self.decode(raw, diagnostics)

    def decode_hex(self, text: str, diagnostics: Optional[Diagnostics] = None) -> SettingsRecord:
        """Decode a hex dump (whitespace ignored), as produced by bytes_to_hex."""
        try:
            raw = bytes.fromhex(''.join(text.split()))
        except ValueError as e:
            raise FpFormatError(f"Invalid hex buffer: {e}") from e
        return self.decode(raw, diagnostics)

    def inspect(self, buffer) -> dict:
        """
        Decode and report, without raising on field-level problems.

        Returns:
            dict with 'record', 'settings' (labels), 'length', 'complete'
            (buffer holds every field), 'diagnostics', 'valid'.
        """
        diagnostics = Diagnostics(logger=self.logger, echo=False)
        record = self.decode(buffer, diagnostics)
        return {
            'record': record,
            'settings': record.to_dict(),
            'length': len(buffer),
            'complete': len(buffer) >= MIN_BUFFER_SIZE,
            'diagnostics': [
                {'field': d.field_id, 'kind': d.kind, 'message': d.message}
                for d in diagnostics
            ],
            'valid': not diagnostics,
        }


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

_default_decoder = FpDecoder()


def decode(buffer, diagnostics: Optional[Diagnostics] = None) -> SettingsRecord:
    """Convenience: decode a buffer with the default decoder."""
    return _default_decoder.decode(buffer, diagnostics)

def decode_file(filepath, diagnostics: Optional[Diagnostics] = None) -> SettingsRecord:
    """Convenience: decode a raw buffer file in one call."""
    return _default_decoder.decode_file(filepath, diagnostics)
