"""
Numeric value types that table cells can convert into.

Immutable dataclasses so converted values are safe to share between records.
"""
from dataclasses import dataclass
import math


@dataclass(frozen=True)
class Vector2:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class Vector4:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 0.0


@dataclass(frozen=True)
class Color:
    """RGBA color with float components in the 0..1 range."""
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 0.0

    def to_color32(self) -> 'Color32':
        return Color32(*(_to_byte(c) for c in (self.r, self.g, self.b, self.a)))


@dataclass(frozen=True)
class Color32:
    """RGBA color with byte components."""
    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 0


@dataclass(frozen=True)
class Quaternion:
    """Rotation stored as (x, y, z, w). The default is the identity rotation."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @classmethod
    def from_euler(cls, x: float, y: float, z: float) -> 'Quaternion':
        """
        Build a rotation from Euler angles in degrees.

        Rotations are applied around Z, then X, then Y.
        """
        hx, hy, hz = (math.radians(angle) * 0.5 for angle in (x, y, z))
        sx, cx = math.sin(hx), math.cos(hx)
        sy, cy = math.sin(hy), math.cos(hy)
        sz, cz = math.sin(hz), math.cos(hz)

        return cls(
            x=cy * sx * cz + sy * cx * sz,
            y=sy * cx * cz - cy * sx * sz,
            z=cy * cx * sz - sy * sx * cz,
            w=cy * cx * cz + sy * sx * sz,
        )


def _to_byte(component: float) -> int:
    return max(0, min(255, int(round(component * 255))))


NAMED_COLORS = {
    'red': Color(1.0, 0.0, 0.0, 1.0),
    'green': Color(0.0, 1.0, 0.0, 1.0),
    'blue': Color(0.0, 0.0, 1.0, 1.0),
    'white': Color(1.0, 1.0, 1.0, 1.0),
    'black': Color(0.0, 0.0, 0.0, 1.0),
    'yellow': Color(1.0, 0.92156863, 0.015686275, 1.0),
    'cyan': Color(0.0, 1.0, 1.0, 1.0),
    'magenta': Color(1.0, 0.0, 1.0, 1.0),
    'gray': Color(0.5, 0.5, 0.5, 1.0),
    'grey': Color(0.5, 0.5, 0.5, 1.0),
    'clear': Color(0.0, 0.0, 0.0, 0.0),
}
