"""
FPQR Encoder — Camera Settings Barcode Encoder
===============================================

Writes a SettingsRecord back into a settings buffer.

The buffer is edited in place: each field codec rewrites only the bytes
it owns, so everything the codec does not understand (unknown ranges,
vendor padding) survives an edit untouched. Encoding the record decoded
from a buffer reproduces that buffer, except where snapping moved a
value onto a camera-legal stop.

Also builds blank buffers for composing a record from scratch and
renders a buffer as a byte-mode QR code PNG (qrcode + Pillow).
"""

import io
import logging
from typing import Iterable, Optional, Sequence

import qrcode
import qrcode.image.pil
import qrcode.util

from fpqr_types import (
    DEFAULT_BUFFER_SIZE,
    SettingsRecord, Diagnostics,
    FpFormatError, FpValueError,
)
from fpqr_fields import FIELD_CODECS, CODECS_BY_ID, FieldCodec

log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# ENCODER
# ═══════════════════════════════════════════════════════════════

class FpEncoder:
    """
    FPQR settings encoder.

    Usage:
        encoder = FpEncoder()
        record = decoder.decode(buffer).replace(shutter_speed='1/250 s')
        encoder.encode(buffer, record)              # buffer edited in place
        encoder.encode_fields(buffer, record, ['aperture'])
        png = render_qr_png(buffer)
    """

    def __init__(self, logger: Optional[logging.Logger] = None,
                 buffer_size: int = DEFAULT_BUFFER_SIZE,
                 codecs: Optional[Sequence[FieldCodec]] = None):
        self.logger = logger or log
        self.buffer_size = buffer_size
        self.codecs = tuple(codecs) if codecs is not None else FIELD_CODECS
        self._by_id = {c.field_id: c for c in self.codecs} if codecs is not None else CODECS_BY_ID

    # ─── Main Entry Points ────────────────────────────────────

    def encode(self, buffer, record: SettingsRecord,
               diagnostics: Optional[Diagnostics] = None):
        """
        Write every field of ``record`` into ``buffer``.

        Args:
            buffer: bytearray (or list of ints) previously decoded, or a
                blank buffer from new_buffer().
            record: settings to write.
            diagnostics: channel collecting field-level anomalies.

        Returns:
            The same buffer object, mutated.
        """
        return self._run(buffer, record, self.codecs, diagnostics)

    def encode_fields(self, buffer, record: SettingsRecord, fields: Iterable[str],
                      diagnostics: Optional[Diagnostics] = None):
        """Partial update: only the named field codecs write."""
        selected = []
        for field_id in fields:
            if field_id not in self._by_id:
                raise FpValueError(f"Unknown field {field_id!r}")
            selected.append(self._by_id[field_id])
        return self._run(buffer, record, selected, diagnostics)

    def new_buffer(self, size: Optional[int] = None) -> bytearray:
        """Blank buffer: every byte holds its own index, i.e. all fields logically zero."""
        size = self.buffer_size if size is None else size
        return bytearray(i & 0xFF for i in range(size))

    def encode_record(self, record: SettingsRecord,
                      diagnostics: Optional[Diagnostics] = None) -> bytearray:
        """Encode ``record`` into a fresh blank buffer."""
        return self.encode(self.new_buffer(), record, diagnostics)

    # ─── Internals ────────────────────────────────────────────

    def _run(self, buffer, record, codecs, diagnostics):
        self._check_writable(buffer)
        if not isinstance(record, SettingsRecord):
            raise FpValueError(f"Expected a SettingsRecord, got {type(record).__name__}")
        if diagnostics is None:
            diagnostics = Diagnostics(logger=self.logger)

        before = len(diagnostics)
        for codec in codecs:
            codec.write(record, buffer, diagnostics)

        self.logger.debug(
            "Encoded %d field(s) into %d-byte buffer (%d diagnostics)",
            len(codecs), len(buffer), len(diagnostics) - before,
        )
        return buffer

    @staticmethod
    def _check_writable(buffer) -> None:
        if buffer is None:
            raise FpFormatError("Cannot encode into an absent buffer")
        if isinstance(buffer, (bytes, str)):
            raise FpFormatError(f"Cannot encode into immutable {type(buffer).__name__}; "
                                f"pass a bytearray")
        if isinstance(buffer, memoryview) and buffer.readonly:
            raise FpFormatError("Cannot encode into a read-only memoryview")


# ═══════════════════════════════════════════════════════════════
# QR RENDERING
# ═══════════════════════════════════════════════════════════════

def render_qr_png(buffer, box_size: int = 4, border: int = 2,
                  error_correction: int = qrcode.constants.ERROR_CORRECT_M) -> bytes:
    """
    Render a settings buffer as a byte-mode QR code.

    Returns:
        PNG file bytes.
    """
    if buffer is None or len(buffer) == 0:
        raise FpFormatError("Cannot render an empty or absent buffer")
    qr = qrcode.QRCode(
        version=None,
        error_correction=error_correction,
        box_size=box_size,
        border=border,
        image_factory=qrcode.image.pil.PilImage,
    )
    qr.add_data(qrcode.util.QRData(bytes(buffer), mode=qrcode.util.MODE_8BIT_BYTE))
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    out = io.BytesIO()
    img.save(out, format='PNG')
    log.debug("Rendered %d-byte buffer as QR version %d", len(buffer), qr.version)
    return out.getvalue()


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

_default_encoder = FpEncoder()


def encode(buffer, record: SettingsRecord, diagnostics: Optional[Diagnostics] = None):
    """Convenience: encode a record with the default encoder."""
    return _default_encoder.encode(buffer, record, diagnostics)

def new_buffer(size: int = DEFAULT_BUFFER_SIZE) -> bytearray:
    return _default_encoder.new_buffer(size)
