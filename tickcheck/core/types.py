#!filepath: tickcheck/core/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Mapping, NamedTuple, Optional

DEFAULT_NAMESPACE = "minecraft"
AIR = "minecraft:air"
EMPTY_BLOCK_IDS = frozenset({AIR, "minecraft:cave_air", "minecraft:void_air"})


# -------------------------
# Position
# -------------------------
class Position(NamedTuple):
    x: int
    y: int
    z: int

    @classmethod
    def of(cls, value: Iterable[int]) -> "Position":
        x, y, z = (int(v) for v in value)
        return cls(x, y, z)

    def offset(self, delta: "Position") -> "Position":
        return Position(self.x + delta.x, self.y + delta.y, self.z + delta.z)

    def relative_to(self, origin: "Position") -> "Position":
        return Position(self.x - origin.x, self.y - origin.y, self.z - origin.z)

    def chebyshev(self, other: "Position") -> int:
        return max(abs(self.x - other.x), abs(self.y - other.y), abs(self.z - other.z))

    def as_list(self) -> list[int]:
        return [self.x, self.y, self.z]


ZERO = Position(0, 0, 0)


# -------------------------
# BlockSpec
# -------------------------
def normalize_block_id(raw: str) -> str:
    block_id = raw.strip().lower()
    if not block_id:
        raise ValueError("empty block identifier")
    if ":" not in block_id:
        block_id = f"{DEFAULT_NAMESPACE}:{block_id}"
    return block_id


def normalize_property_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip().lower()


@dataclass(frozen=True)
class BlockSpec:
    """
    identifier + 可选属性（字符串 → 字符串）

    与观测到的方块比较时永远是子集匹配：未声明的属性忽略。
    """

    id: str
    properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "id", normalize_block_id(self.id))
        props: Dict[str, str] = {
            str(k).strip().lower(): normalize_property_value(v)
            for k, v in sorted(self.properties.items())
        }
        object.__setattr__(self, "properties", props)

    def __hash__(self) -> int:
        return hash((self.id, tuple(self.properties.items())))

    @classmethod
    def parse(cls, text: str) -> "BlockSpec":
        """
        "minecraft:oak_fence[east=true,west=false]" → BlockSpec
        """
        text = text.strip()
        if "[" not in text:
            return cls(text)

        open_at = text.index("[")
        if not text.endswith("]"):
            raise ValueError(f"unterminated property list in block '{text}'")

        block_id = text[:open_at]
        props: Dict[str, str] = {}
        for pair in text[open_at + 1:-1].split(","):
            pair = pair.strip()
            if not pair:
                continue
            if "=" not in pair:
                raise ValueError(f"malformed property '{pair}' in block '{text}'")
            key, value = pair.split("=", 1)
            props[key.strip()] = value.strip()
        return cls(block_id, props)

    @classmethod
    def air(cls) -> "BlockSpec":
        return cls(AIR)

    @property
    def is_empty(self) -> bool:
        return self.id in EMPTY_BLOCK_IDS

    def get(self, prop: str) -> Optional[str]:
        return self.properties.get(prop.lower())

    def matches(self, observed: "BlockSpec") -> bool:
        if self.id != observed.id:
            return False
        return all(observed.get(k) == v for k, v in self.properties.items())

    def to_command(self) -> str:
        if not self.properties:
            return self.id
        props = ",".join(f"{k}={v}" for k, v in self.properties.items())
        return f"{self.id}[{props}]"

    def __str__(self) -> str:
        return self.to_command()


# -------------------------
# Region
# -------------------------
@dataclass(frozen=True)
class Region:
    """Axis-aligned box, both corners inclusive, low <= high on every axis."""

    low: Position
    high: Position

    @classmethod
    def from_corners(cls, a: Iterable[int], b: Iterable[int]) -> "Region":
        pa, pb = Position.of(a), Position.of(b)
        return cls(
            Position(min(pa.x, pb.x), min(pa.y, pb.y), min(pa.z, pb.z)),
            Position(max(pa.x, pb.x), max(pa.y, pb.y), max(pa.z, pb.z)),
        )

    @classmethod
    def point(cls, pos: Position) -> "Region":
        return cls(pos, pos)

    @classmethod
    def bounding(cls, regions: Iterable["Region"]) -> Optional["Region"]:
        box: Optional[Region] = None
        for r in regions:
            box = r if box is None else box.union(r)
        return box

    def union(self, other: "Region") -> "Region":
        return Region.from_corners(
            (min(self.low.x, other.low.x), min(self.low.y, other.low.y), min(self.low.z, other.low.z)),
            (max(self.high.x, other.high.x), max(self.high.y, other.high.y), max(self.high.z, other.high.z)),
        )

    def translate(self, delta: Position) -> "Region":
        return Region(self.low.offset(delta), self.high.offset(delta))

    def pad(self, n: int) -> "Region":
        return Region(
            Position(self.low.x - n, self.low.y - n, self.low.z - n),
            Position(self.high.x + n, self.high.y + n, self.high.z + n),
        )

    def contains(self, pos: Position) -> bool:
        return (
            self.low.x <= pos.x <= self.high.x
            and self.low.y <= pos.y <= self.high.y
            and self.low.z <= pos.z <= self.high.z
        )

    def contains_region(self, other: "Region") -> bool:
        return self.contains(other.low) and self.contains(other.high)

    def intersects(self, other: "Region") -> bool:
        return (
            self.low.x <= other.high.x and other.low.x <= self.high.x
            and self.low.y <= other.high.y and other.low.y <= self.high.y
            and self.low.z <= other.high.z and other.low.z <= self.high.z
        )

    @property
    def size(self) -> Position:
        return Position(
            self.high.x - self.low.x + 1,
            self.high.y - self.low.y + 1,
            self.high.z - self.low.z + 1,
        )

    def positions(self) -> Iterator[Position]:
        for x in range(self.low.x, self.high.x + 1):
            for y in range(self.low.y, self.high.y + 1):
                for z in range(self.low.z, self.high.z + 1):
                    yield Position(x, y, z)

    def as_lists(self) -> list[list[int]]:
        return [self.low.as_list(), self.high.as_list()]
