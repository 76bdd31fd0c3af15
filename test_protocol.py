"""
FPQR Protocol — Test Suite
===========================

Record-level verification of the decoder/encoder facade:
  1. SettingsRecord construction, replace, from_dict / to_dict
  2. Decoding blank, captured-style and short buffers
  3. Encode-after-decode preserves the buffer; partial updates
  4. Facade errors (absent, empty, immutable buffers; unknown fields)
  5. Diagnostics channel and logging
  6. Raw file and hex input
  7. QR rendering
  8. Round-trip harness over every field
  9. Display helpers

Run: python test_protocol.py
"""

import io
import os
import sys
import logging
import tempfile

from PIL import Image

from conftest import run_suite

from fpqr_types import (
    SettingsRecord, Diagnostics, ShootingMode, IsoMode, IsoStep, DriveMode,
    WhiteBalanceMode, AeMeteringMode, SlowestShutterMode,
    FpFormatError, FpValueError, SHORT_BUFFER, IGNORED_KEY, UNKNOWN_VALUE,
    ISO_AUTO, INFINITE_REPEATS, MIN_BUFFER_SIZE,
)
from fpqr_decoder import FpDecoder, decode, decode_file
from fpqr_encoder import FpEncoder, encode, new_buffer, render_qr_png
from fpqr_roundtrip import RoundTripHarness, changed_offsets, pattern_buffer
from fpqr_format import (
    bytes_to_hex, hex_at_indexes, format_seconds, format_interval_duration,
    format_wb_shift_ba, format_wb_shift_mg,
)


def street_record():
    return SettingsRecord(
        shooting_mode_name='Street',
        shooting_mode_icon='C1',
        shooting_mode=ShootingMode.A,
        shutter_speed='1/250 s',
        aperture='f/8.0',
        exposure_compensation=-0.7,
        iso_mode=IsoMode.AUTO,
        iso_sensitivity=400,
        iso_step=IsoStep.THIRD_EV,
        low_iso_expansion=False,
        high_iso_expansion=True,
        auto_iso_lower_limit=160,
        auto_iso_upper_limit=12800,
        auto_iso_slowest_shutter_mode=SlowestShutterMode.AUTO_FAST,
        auto_iso_slowest_shutter_limit=1 / 125,
        ae_metering_mode=AeMeteringMode.SPOT,
        drive_mode=DriveMode.CONTINUOUS_H,
        interval_timer_count=12,
        interval_timer_duration=90,
        white_balance_mode=WhiteBalanceMode.DAYLIGHT,
        white_balance_shift_ba=2,
        white_balance_shift_mg=-4,
    )


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


# ═══════════════════════════════════════════════════════════════
# SETTINGS RECORD
# ═══════════════════════════════════════════════════════════════

def test_record_defaults(r):
    rec = SettingsRecord()
    assert rec.shutter_speed == '1/125 s'
    assert rec.aperture == 'f/2.8'
    assert rec.iso_sensitivity == ISO_AUTO
    assert rec.auto_iso_lower_limit == 100
    assert rec.auto_iso_upper_limit == 6400
    assert rec.interval_timer_count == INFINITE_REPEATS
    assert len(SettingsRecord.field_names()) == 22


def test_record_replace(r):
    rec = SettingsRecord()
    edited = rec.replace(aperture='f/4.0', drive_mode='Continuous L')
    assert edited.aperture == 'f/4.0'
    assert edited.drive_mode == DriveMode.CONTINUOUS_L
    assert rec.aperture == 'f/2.8', "Original must be unchanged"
    try:
        rec.replace(flash='on')
        assert False, "Should have raised"
    except FpValueError:
        pass
    try:
        rec.replace(drive_mode='Bracketing')
        assert False, "Should have raised"
    except FpValueError:
        pass


def test_record_dict_round_trip(r):
    rec = street_record()
    data = rec.to_dict()
    assert data['shooting_mode'] == 'A'
    assert data['iso_step'] == '1/3 EV'
    assert data['ae_metering_mode'] == 'Spot Metering'
    assert data['iso_mode'] == 'auto'
    assert SettingsRecord.from_dict(data) == rec

    data['flash'] = 'on'
    try:
        SettingsRecord.from_dict(data)
        assert False, "Should have raised"
    except FpValueError:
        pass
    diag = Diagnostics(echo=False)
    assert SettingsRecord.from_dict(data, strict=False, diagnostics=diag) == rec
    assert diag.kinds() == [IGNORED_KEY]


# ═══════════════════════════════════════════════════════════════
# DECODE / ENCODE
# ═══════════════════════════════════════════════════════════════

def test_decode_blank_buffer(r):
    """All-zero logical state."""
    rec = decode(new_buffer())
    assert rec.shooting_mode_name == ''
    assert rec.shooting_mode == ShootingMode.M
    assert rec.shutter_speed == '1 s'
    assert rec.iso_mode == IsoMode.MANUAL
    assert rec.iso_sensitivity == ISO_AUTO
    assert rec.exposure_compensation == 0.0
    assert rec.interval_timer_count == INFINITE_REPEATS
    assert rec.white_balance_shift_ba == 0


def test_full_record_round_trip(r):
    rec = street_record()
    buf = new_buffer()
    assert encode(buf, rec) is buf
    assert decode(buf) == rec


def test_encode_preserves_unknown_bytes(r):
    """Encode-after-decode of an unedited record is a no-op."""
    buf = new_buffer()
    encode(buf, street_record())
    for i in (20, 50, 113, 131, 150, 205, 209, 255):
        buf[i] = 0xA5
    original = bytes(buf)
    encode(buf, decode(buf))
    assert bytes(buf) == original


def test_edit_touches_only_field(r):
    buf = new_buffer()
    encode(buf, street_record())
    before = bytes(buf)
    edited = decode(buf).replace(shutter_speed='1/1250 s')
    encode(buf, edited)
    assert changed_offsets(before, buf) == [111, 112]
    assert decode(buf).shutter_speed == '1/1250 s'


def test_encode_fields(r):
    encoder = FpEncoder()
    buf = new_buffer()
    rec = street_record()
    encoder.encode_fields(buf, rec, ['aperture', 'iso_configuration'])
    assert set(changed_offsets(new_buffer(), buf)) <= {116, 117, 123}
    assert buf[123] == 123 + 0b101
    partial = decode(buf)
    assert partial.aperture == 'f/8.0'
    assert partial.high_iso_expansion and not partial.low_iso_expansion
    assert partial.shutter_speed == '1 s', "Shutter was not in the field list"
    try:
        encoder.encode_fields(buf, rec, ['aperture', 'flash'])
        assert False, "Should have raised"
    except FpValueError:
        pass


def test_short_buffer_record(r):
    """A 100-byte buffer decodes with defaults beyond byte 99."""
    buf = new_buffer(100)
    diag = Diagnostics(echo=False)
    rec = FpDecoder().decode(buf, diag)
    assert rec.shutter_speed == '1/125 s'
    assert rec.aperture == 'f/2.8'
    assert rec.iso_sensitivity == ISO_AUTO
    assert rec.auto_iso_slowest_shutter_limit == 1 / 30
    assert rec.interval_timer_count == INFINITE_REPEATS
    assert set(diag.kinds()) == {SHORT_BUFFER}
    assert 'shooting_mode_name' not in {d.field_id for d in diag}

    original = bytes(buf)
    FpEncoder().encode(buf, rec, Diagnostics(echo=False))
    assert bytes(buf) == original


def test_facade_errors(r):
    decoder = FpDecoder()
    for bad in (None, b'', bytearray()):
        try:
            decoder.decode(bad)
            assert False, f"Should have raised for {bad!r}"
        except FpFormatError:
            pass

    encoder = FpEncoder()
    for bad in (None, bytes(256), memoryview(bytes(256))):
        try:
            encoder.encode(bad, SettingsRecord())
            assert False, "Should have raised"
        except FpFormatError:
            pass
    try:
        encoder.encode(new_buffer(), {'aperture': 'f/2.8'})
        assert False, "Should have raised"
    except FpValueError:
        pass


def test_unknown_values_recovered(r):
    buf = new_buffer()
    buf[110] = 110 + 42
    buf[139] = 139 + 99
    info = FpDecoder().inspect(buf)
    assert info['record'].shooting_mode == ShootingMode.M
    assert info['settings']['drive_mode'] == 'Single capture'
    assert info['complete']
    assert not info['valid']
    assert [d['field'] for d in info['diagnostics']] == ['shooting_mode', 'drive_mode']
    assert {d['kind'] for d in info['diagnostics']} == {UNKNOWN_VALUE}


def test_diagnostics_logging(r):
    logger = logging.getLogger('fpqr.test.diagnostics')
    handler = ListHandler()
    logger.addHandler(handler)
    logger.propagate = False
    try:
        FpDecoder(logger=logger).decode(new_buffer(50))
        warnings = [rec for rec in handler.records if rec.levelno == logging.WARNING]
        assert warnings, "Short-buffer diagnostics should be logged"
        assert 'short-buffer' in warnings[0].getMessage()

        handler.records.clear()
        FpDecoder(logger=logger).decode(new_buffer(50), Diagnostics(echo=False))
        assert not [rec for rec in handler.records if rec.levelno == logging.WARNING]
    finally:
        logger.removeHandler(handler)


def test_decode_file_and_hex(r):
    buf = new_buffer()
    encode(buf, street_record())
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "street.bin")
        with open(path, 'wb') as f:
            f.write(buf)
        assert decode_file(path) == street_record()
        try:
            decode_file(os.path.join(tmpdir, "missing.bin"))
            assert False, "Should have raised"
        except FpFormatError:
            pass

    assert FpDecoder().decode_hex(bytes_to_hex(buf)) == street_record()
    try:
        FpDecoder().decode_hex("zz 01")
        assert False, "Should have raised"
    except FpFormatError:
        pass


def test_new_buffer(r):
    buf = FpEncoder(buffer_size=300).new_buffer()
    assert len(buf) == 300
    assert buf[255] == 255 and buf[256] == 0 and buf[299] == 43
    assert len(FpEncoder().encode_record(SettingsRecord())) == 256


# ═══════════════════════════════════════════════════════════════
# RENDERING
# ═══════════════════════════════════════════════════════════════

def test_render_qr_png(r):
    buf = new_buffer()
    encode(buf, street_record())
    png = render_qr_png(buf)
    assert png[:8] == b'\x89PNG\r\n\x1a\n'
    img = Image.open(io.BytesIO(png))
    assert img.format == 'PNG'
    assert img.size[0] == img.size[1]
    r.message = f"{img.size[0]}px, {len(png)} bytes"
    try:
        render_qr_png(b'')
        assert False, "Should have raised"
    except FpFormatError:
        pass


# ═══════════════════════════════════════════════════════════════
# HARNESS
# ═══════════════════════════════════════════════════════════════

def test_harness_run_all(r):
    report = RoundTripHarness().run_all()
    assert report['valid'], "\n".join(report['failures'][:10])
    assert set(report['fields']) >= {'shutter_speed', 'aperture', 'iso_configuration'}
    assert report['fields']['shutter_speed']['legal_values'] == 55
    r.message = f"{len(report['fields'])} fields"


def test_harness_check_buffer(r):
    harness = RoundTripHarness()
    result = harness.check_buffer(pattern_buffer())
    assert result['valid'], result['failures']
    assert 'exposure_compensation' in result['snapped']

    buf = new_buffer()
    encode(buf, street_record())
    result = harness.check_buffer(buf)
    assert result['valid'] and result['snapped'] == []


def test_harness_detects_leaky_codec(r):
    """A codec writing outside its bytes is reported."""
    from fpqr_fields import SignedByteCodec

    class LeakyCodec(SignedByteCodec):
        def _encode(self, value, buffer, diagnostics):
            super()._encode(value, buffer, diagnostics)
            buffer[0] = 0xFF

    leaky = LeakyCodec('white_balance_shift_mg', 208, limit=16)
    failures = RoundTripHarness().check_isolation(leaky)
    assert failures and 'outside its bytes' in failures[0]


# ═══════════════════════════════════════════════════════════════
# DISPLAY HELPERS
# ═══════════════════════════════════════════════════════════════

def test_format_helpers(r):
    assert bytes_to_hex(bytes([0, 10, 255])) == '00 0A FF'
    assert hex_at_indexes(bytes([1, 2, 0xAB]), [2, 0, 7]) == 'AB 01 ??'

    assert format_seconds(2) == '2s'
    assert format_seconds(1.6) == '1.6s'
    assert format_seconds(2 / 3) == '0.6s'
    assert format_seconds(1 / 3) == '0.3s'
    assert format_seconds(0.5) == '0.5s'
    assert format_seconds(1 / 125) == '1/125s'
    assert format_seconds('1/125 s') == '1/125 s'

    assert format_interval_duration(90) == '1min 30s'
    assert format_interval_duration(None) == 'N/A'

    assert format_wb_shift_ba(0) == 'B-A'
    assert format_wb_shift_ba(3) == 'A3'
    assert format_wb_shift_ba(-2) == 'B2'
    assert format_wb_shift_mg(None) == 'M-G'
    assert format_wb_shift_mg(5) == 'G5'
    assert format_wb_shift_mg(-1) == 'M1'
    assert MIN_BUFFER_SIZE == 209


# ═══════════════════════════════════════════════════════════════
# RUNNER
# ═══════════════════════════════════════════════════════════════

def main():
    tests = [
        ("Record Defaults", test_record_defaults),
        ("Record Replace", test_record_replace),
        ("Record Dict Round-Trip", test_record_dict_round_trip),
        ("Decode Blank Buffer", test_decode_blank_buffer),
        ("Full Record Round-Trip", test_full_record_round_trip),
        ("Encode Preserves Unknown Bytes", test_encode_preserves_unknown_bytes),
        ("Edit Touches Only Field", test_edit_touches_only_field),
        ("Partial Encode", test_encode_fields),
        ("Short Buffer Record", test_short_buffer_record),
        ("Facade Errors", test_facade_errors),
        ("Unknown Values Recovered", test_unknown_values_recovered),
        ("Diagnostics Logging", test_diagnostics_logging),
        ("Decode File & Hex", test_decode_file_and_hex),
        ("New Buffer", test_new_buffer),
        ("Render QR PNG", test_render_qr_png),
        ("Harness Run All", test_harness_run_all),
        ("Harness Check Buffer", test_harness_check_buffer),
        ("Harness Detects Leaky Codec", test_harness_detects_leaky_codec),
        ("Format Helpers", test_format_helpers),
    ]
    return run_suite("FPQR — Protocol Test Suite", tests)


if __name__ == "__main__":
    sys.exit(main())
