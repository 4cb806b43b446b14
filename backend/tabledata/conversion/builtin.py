"""
Built-in cell converters and zero-values.

Each converter takes the raw cell text and either returns a value or raises;
the registry turns any exception into the destination's zero-value.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from tabledata.errors import MalformedFieldError
from tabledata.types import (
    Color, Color32, NAMED_COLORS, Quaternion, Vector2, Vector3, Vector4
)

TRUE_VALUES = frozenset({'true', '1', 'yes', 'on', 'enabled'})

# Tried in order after ISO-8601 parsing fails
DATETIME_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y/%m/%d %H:%M:%S',
    '%Y/%m/%d',
    '%m/%d/%Y %H:%M:%S',
    '%m/%d/%Y %H:%M',
    '%m/%d/%Y',
    '%d.%m.%Y %H:%M:%S',
    '%d.%m.%Y',
)


def split_components(text: str) -> List[str]:
    """Split a comma-separated cell into trimmed parts."""
    return [part.strip() for part in text.split(',')]


def _float_components(text: str, count: int, type_name: str) -> List[float]:
    parts = split_components(text)
    if len(parts) < count:
        raise MalformedFieldError(
            f"{type_name} needs {count} comma-separated components, got {len(parts)}"
        )
    return [float(part) for part in parts[:count]]


def parse_bool(text: str) -> bool:
    return text.strip().lower() in TRUE_VALUES


def parse_int(text: str) -> int:
    return int(text.strip())


def parse_float(text: str) -> float:
    return float(text.strip())


def parse_decimal(text: str) -> Decimal:
    return Decimal(text.strip())


def parse_datetime(text: str) -> datetime:
    text = text.strip()
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    raise MalformedFieldError(f"Unrecognized date/time format: '{text}'")


def parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        return parse_datetime(text).date()


def parse_vector2(text: str) -> Vector2:
    return Vector2(*_float_components(text, 2, 'Vector2'))


def parse_vector3(text: str) -> Vector3:
    return Vector3(*_float_components(text, 3, 'Vector3'))


def parse_vector4(text: str) -> Vector4:
    return Vector4(*_float_components(text, 4, 'Vector4'))


def _parse_hex_color(text: str) -> Optional[Color]:
    """Parse #RGB, #RGBA, #RRGGBB or #RRGGBBAA. Returns None when invalid."""
    digits = text[1:]
    if len(digits) in (3, 4):
        digits = ''.join(ch * 2 for ch in digits)
    if len(digits) not in (6, 8):
        return None

    try:
        channels = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
    except ValueError:
        return None

    if len(channels) == 3:
        channels.append(255)
    return Color(*(channel / 255.0 for channel in channels))


def parse_color(text: str) -> Color:
    text = text.strip()

    if text.startswith('#'):
        color = _parse_hex_color(text)
        if color is not None:
            return color

    parts = split_components(text)
    if len(parts) >= 3:
        r, g, b = (float(part) for part in parts[:3])
        a = float(parts[3]) if len(parts) >= 4 else 1.0
        return Color(r, g, b, a)

    named = NAMED_COLORS.get(text.lower())
    if named is None:
        raise MalformedFieldError(f"Unknown color '{text}'")
    return named


def parse_color32(text: str) -> Color32:
    return parse_color(text).to_color32()


def parse_quaternion(text: str) -> Quaternion:
    parts = split_components(text)
    if len(parts) >= 4:
        return Quaternion(*(float(part) for part in parts[:4]))
    if len(parts) == 3:
        return Quaternion.from_euler(*(float(part) for part in parts))
    raise MalformedFieldError(
        f"Quaternion needs 4 components or 3 Euler angles, got {len(parts)}"
    )


BUILTIN_CONVERTERS: Dict[Any, Callable[[str], Any]] = {
    str: lambda text: text,
    int: parse_int,
    float: parse_float,
    Decimal: parse_decimal,
    bool: parse_bool,
    datetime: parse_datetime,
    date: parse_date,
    Vector2: parse_vector2,
    Vector3: parse_vector3,
    Vector4: parse_vector4,
    Color: parse_color,
    Color32: parse_color32,
    Quaternion: parse_quaternion,
}

ZERO_VALUES: Dict[Any, Any] = {
    str: '',
    int: 0,
    float: 0.0,
    Decimal: Decimal(0),
    bool: False,
    datetime: datetime.min,
    date: date.min,
    Vector2: Vector2(),
    Vector3: Vector3(),
    Vector4: Vector4(),
    Color: Color(),
    Color32: Color32(),
    Quaternion: Quaternion(),
}
