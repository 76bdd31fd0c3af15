"""
FPQR Stop Tables — camera-legal values and snapping
====================================================

Static, ordered tables of the values the camera accepts for ISO
sensitivity, aperture and shutter speed, plus the nearest-stop
snapping every logarithmic field applies after decoding.

Snapping compares base-2 logarithms: one stop is the same distance
anywhere on the scale, so 1/8000 s and 30 s are treated alike. On an
exact tie the entry met first in table order wins.
"""

import math
from fractions import Fraction
from typing import Callable, Dict, Optional, Sequence, TypeVar

T = TypeVar('T')

# ═══════════════════════════════════════════════════════════════
# ISO SENSITIVITY (1/3 stop, ISO_n = 100 * 2^(n/3), conventionally rounded)
# ═══════════════════════════════════════════════════════════════

# Extended low (Lo), below native sensor sensitivity
ISO_STOPS_LOW = (6, 8, 10, 12, 16, 20, 25, 32, 40, 50, 64, 80)

# Native range
ISO_STOPS_STANDARD = (
    100, 125, 160, 200, 250, 320, 400, 500, 640, 800, 1000, 1250, 1600,
    2000, 2500, 3200, 4000, 5000, 6400, 8000, 10000, 12800, 16000, 20000,
    25600,
)

# Extended high (Hi), amplified beyond native range
ISO_STOPS_HIGH = (32000, 40000, 51200, 64000, 80000, 102400)

ISO_STOPS = ISO_STOPS_LOW + ISO_STOPS_STANDARD + ISO_STOPS_HIGH

# Auto-ISO limits never go below base ISO
AUTO_ISO_LOWER_LIMIT_STOPS = ISO_STOPS_STANDARD + ISO_STOPS_HIGH[:-1]
AUTO_ISO_UPPER_LIMIT_STOPS = ISO_STOPS_STANDARD + ISO_STOPS_HIGH


# ═══════════════════════════════════════════════════════════════
# APERTURE (1/3 stop, f_n = 2^(n/6), i.e. powers of sqrt(2) per stop)
# ═══════════════════════════════════════════════════════════════

APERTURE_STOPS = (
    'f/1.4', 'f/1.6', 'f/1.8', 'f/2.0', 'f/2.2', 'f/2.5', 'f/2.8',
    'f/3.2', 'f/3.5', 'f/4.0', 'f/4.5', 'f/5.0', 'f/5.6', 'f/6.3',
    'f/7.1', 'f/8.0', 'f/9.0', 'f/10', 'f/11', 'f/13', 'f/14', 'f/16',
    'f/18', 'f/20', 'f/22',
)


def aperture_number(label: str) -> Optional[float]:
    """'f/5.6' -> 5.6. None if the label is not an f-number."""
    if not isinstance(label, str) or not label.startswith('f/'):
        return None
    try:
        value = float(label[2:])
    except ValueError:
        return None
    return value if value > 0 else None


# ═══════════════════════════════════════════════════════════════
# SHUTTER SPEED (1/3 stop, t_n = 2^(-n/3))
# ═══════════════════════════════════════════════════════════════

# Display label -> exact exposure time. The camera encodes the exact
# value: '1.6 s' is 5/3 s, '0.6 s' is 2/3 s, '1/15 s' is 1/15 (not 1/16).
SHUTTER_SPEEDS: Dict[str, Fraction] = {
    '30 s': Fraction(30),
    '25 s': Fraction(25),
    '20 s': Fraction(20),
    '15 s': Fraction(15),
    '13 s': Fraction(13),
    '10 s': Fraction(10),
    '8 s': Fraction(8),
    '6 s': Fraction(6),
    '5 s': Fraction(5),
    '4 s': Fraction(4),
    '3.2 s': Fraction(32, 10),
    '2.5 s': Fraction(25, 10),
    '2 s': Fraction(2),
    '1.6 s': Fraction(5, 3),
    '1.3 s': Fraction(4, 3),
    '1 s': Fraction(1),
    '0.8 s': Fraction(4, 5),
    '0.6 s': Fraction(2, 3),
    '0.5 s': Fraction(1, 2),
    '0.4 s': Fraction(2, 5),
    '0.3 s': Fraction(1, 3),
    '1/4 s': Fraction(1, 4),
    '1/5 s': Fraction(1, 5),
    '1/6 s': Fraction(1, 6),
    '1/8 s': Fraction(1, 8),
    '1/10 s': Fraction(1, 10),
    '1/13 s': Fraction(1, 13),
    '1/15 s': Fraction(1, 15),
    '1/20 s': Fraction(1, 20),
    '1/25 s': Fraction(1, 25),
    '1/30 s': Fraction(1, 30),
    '1/40 s': Fraction(1, 40),
    '1/50 s': Fraction(1, 50),
    '1/60 s': Fraction(1, 60),
    '1/80 s': Fraction(1, 80),
    '1/100 s': Fraction(1, 100),
    '1/125 s': Fraction(1, 125),
    '1/160 s': Fraction(1, 160),
    '1/200 s': Fraction(1, 200),
    '1/250 s': Fraction(1, 250),
    '1/320 s': Fraction(1, 320),
    '1/400 s': Fraction(1, 400),
    '1/500 s': Fraction(1, 500),
    '1/640 s': Fraction(1, 640),
    '1/800 s': Fraction(1, 800),
    '1/1000 s': Fraction(1, 1000),
    '1/1250 s': Fraction(1, 1250),
    '1/1600 s': Fraction(1, 1600),
    '1/2000 s': Fraction(1, 2000),
    '1/2500 s': Fraction(1, 2500),
    '1/3200 s': Fraction(1, 3200),
    '1/4000 s': Fraction(1, 4000),
    '1/5000 s': Fraction(1, 5000),
    '1/6000 s': Fraction(1, 6000),
    '1/8000 s': Fraction(1, 8000),
}

SHUTTER_SPEED_STOPS = tuple(SHUTTER_SPEEDS)

# Auto-ISO slowest shutter limit, in seconds (1 s and faster)
SLOWEST_SHUTTER_LIMIT_STOPS = (
    1, 0.8, 2 / 3, 0.5, 0.4, 1 / 3, 1 / 4, 1 / 5, 1 / 6, 1 / 8, 1 / 10,
    1 / 13, 1 / 15, 1 / 20, 1 / 25, 1 / 30, 1 / 40, 1 / 50, 1 / 60,
    1 / 80, 1 / 100, 1 / 125, 1 / 160, 1 / 200, 1 / 250, 1 / 320,
    1 / 400, 1 / 500, 1 / 640, 1 / 800, 1 / 1000, 1 / 1250, 1 / 1600,
    1 / 2000, 1 / 2500, 1 / 3200, 1 / 4000, 1 / 5000, 1 / 6400, 1 / 8000,
)


# ═══════════════════════════════════════════════════════════════
# SNAPPING
# ═══════════════════════════════════════════════════════════════

def snap(value: float, table: Sequence[T],
         key: Optional[Callable[[T], float]] = None) -> T:
    """
    Return the entry of ``table`` nearest to ``value`` in stops.

    ``key`` maps an entry to its physical quantity (defaults to the
    entry itself). Distance is |log2(entry) - log2(value)|; the first
    entry wins a tie.
    """
    if value <= 0:
        raise ValueError(f"Cannot snap non-positive quantity {value!r}")
    target = math.log2(value)
    best = table[0]
    best_diff = abs(math.log2(key(best) if key else best) - target)
    for entry in table[1:]:
        diff = abs(math.log2(key(entry) if key else entry) - target)
        if diff < best_diff:
            best, best_diff = entry, diff
    return best


def nearest_aperture(f_number: float) -> str:
    return snap(f_number, APERTURE_STOPS, key=aperture_number)


def nearest_shutter_speed(seconds: float) -> str:
    return snap(seconds, SHUTTER_SPEED_STOPS, key=lambda label: float(SHUTTER_SPEEDS[label]))


def nearest_slowest_shutter_limit(seconds: float) -> float:
    return snap(seconds, SLOWEST_SHUTTER_LIMIT_STOPS)
