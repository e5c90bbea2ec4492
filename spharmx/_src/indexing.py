"""
Multi-Index Bookkeeping
=======================

Canonical enumeration of the index tuples of the four basis families and a
generic odometer cursor that walks them.

Index schemes:
--------------
    scalar        (l, m)          l in [0, B], m in [-l, l]
    radial        (n, l, m)       n in [1, B], l in [0, B],
                                  m in [0, l] (real data) or [-l, l]
    vector        (l, k, m)       l in [0, B], k in {-1, 0, 1}, m in [-l, l]
    vector_radial (n, l, k, m)    n in [1, B], then as vector

The odometer advances the innermost position first and carries outward on
overflow, so every scheme is enumerated in the same lexicographic order used
to lay out caches and coefficient sets.
"""

from typing import Callable, Iterator, Literal

import equinox as eqx

Family = Literal["scalar", "radial", "vector", "vector_radial"]
FAMILIES: tuple[str, ...] = ("scalar", "radial", "vector", "vector_radial")

LevelSize = Callable[[tuple[int, ...]], int]


class MultiIndexOdometer:
    """
    Forward cursor over a nested index structure.

    The structure is described by `level_size(prefix)`, the number of entries
    at depth len(prefix) below the outer positions `prefix`.  Positions are
    0-based at every level.  Once the outermost level overflows the cursor
    sits on the end sentinel (outer_size, 0, ..., 0).

    Attributes:
    -----------
    depth : int
        Number of nesting levels.
    position : tuple of int
        Current position, one entry per level.
    """

    def __init__(
        self,
        level_size: LevelSize,
        depth: int,
        position: tuple[int, ...] | None = None,
    ):
        if depth < 1:
            raise ValueError(f"depth must be at least 1, got {depth}")
        self._level_size = level_size
        self.depth = depth
        self.position = tuple(position) if position is not None else (0,) * depth
        if len(self.position) != depth:
            raise ValueError(f"position {self.position} does not have depth {depth}")
        self._skip_empty()

    @classmethod
    def begin(cls, level_size: LevelSize, depth: int) -> "MultiIndexOdometer":
        """Cursor on the first entry of the structure."""
        return cls(level_size, depth)

    @classmethod
    def end(cls, level_size: LevelSize, depth: int) -> "MultiIndexOdometer":
        """End sentinel built from the outer size."""
        return cls(level_size, depth, (level_size(()),) + (0,) * (depth - 1))

    @property
    def exhausted(self) -> bool:
        return self.position[0] >= self._level_size(())

    def _valid(self) -> bool:
        return all(
            self.position[level] < self._level_size(self.position[:level])
            for level in range(self.depth)
        )

    def _step(self) -> None:
        pos = list(self.position)
        for level in reversed(range(self.depth)):
            pos[level] += 1
            if level == 0 or pos[level] < self._level_size(tuple(pos[:level])):
                break
            pos[level] = 0
        self.position = tuple(pos)

    def _skip_empty(self) -> None:
        while not self.exhausted and not self._valid():
            self._step()

    def advance(self) -> "MultiIndexOdometer":
        """Move to the next entry (no-op on the end sentinel)."""
        if not self.exhausted:
            self._step()
            self._skip_empty()
        return self

    def copy(self) -> "MultiIndexOdometer":
        return MultiIndexOdometer(self._level_size, self.depth, self.position)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiIndexOdometer):
            return NotImplemented
        return self.position == other.position

    __hash__ = None

    def __iter__(self) -> Iterator[tuple[int, ...]]:
        cursor = self.copy()
        while not cursor.exhausted:
            yield cursor.position
            cursor.advance()

    def __repr__(self) -> str:
        return f"MultiIndexOdometer(position={self.position})"


def walk(
    begin: MultiIndexOdometer, end: MultiIndexOdometer
) -> Iterator[tuple[int, ...]]:
    """Positions of the half-open range [begin, end)."""
    cursor = begin.copy()
    while cursor != end and not cursor.exhausted:
        yield cursor.position
        cursor.advance()


class IndexScheme(eqx.Module):
    """
    Index layout of one basis family up to a maximum band.

    Attributes:
    -----------
    family : str
        One of "scalar", "radial", "vector", "vector_radial".
    band : int
        Maximum degree l (and maximum radial index n).
    real_data : bool
        Radial family only: keep m in [0, l].
    """

    family: Family
    band: int
    real_data: bool = False

    def __check_init__(self):
        if self.family not in FAMILIES:
            raise ValueError(f"Unknown family {self.family!r}, expected one of {FAMILIES}")
        if self.band < 0:
            raise ValueError(f"band must be non-negative, got {self.band}")

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def is_radial(self) -> bool:
        return self.family in ("radial", "vector_radial")

    @property
    def is_vector(self) -> bool:
        return self.family in ("vector", "vector_radial")

    @property
    def _half_orders(self) -> bool:
        return self.family == "radial" and self.real_data

    @property
    def depth(self) -> int:
        return 2 + int(self.is_radial) + int(self.is_vector)

    def _order_count(self, l: int) -> int:
        return l + 1 if self._half_orders else 2 * l + 1

    def level_size(self, prefix: tuple[int, ...]) -> int:
        """Number of entries below the outer positions `prefix`."""
        level = len(prefix)
        if self.is_radial:
            if level == 0:
                return self.band
            prefix, level = prefix[1:], level - 1
        if level == 0:
            return self.band + 1
        l = prefix[0]
        if self.is_vector and level == 1:
            return 3
        return self._order_count(l)

    def cursor(self) -> MultiIndexOdometer:
        """Odometer on the first index."""
        return MultiIndexOdometer.begin(self.level_size, self.depth)

    def end(self) -> MultiIndexOdometer:
        """End sentinel of the scheme."""
        return MultiIndexOdometer.end(self.level_size, self.depth)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def to_key(self, position: tuple[int, ...]) -> tuple[int, ...]:
        """Convert odometer positions to (n, l, k, m) style index values."""
        key = []
        if self.is_radial:
            key.append(position[0] + 1)
            position = position[1:]
        l = position[0]
        key.append(l)
        if self.is_vector:
            key.append(position[1] - 1)
        key.append(position[-1] if self._half_orders else position[-1] - l)
        return tuple(key)

    def _split(self, key: tuple[int, ...]) -> tuple[int, int, int, int]:
        if len(key) != self.depth:
            raise KeyError(f"{key} is not a {self.family} index (expected {self.depth} entries)")
        n = key[0] if self.is_radial else 1
        rest = key[1:] if self.is_radial else key
        l, m = rest[0], rest[-1]
        k = rest[1] if self.is_vector else 0
        m_min = 0 if self._half_orders else -l
        in_range = 0 <= l <= self.band and -1 <= k <= 1 and m_min <= m <= l
        if self.is_radial:
            in_range = in_range and 1 <= n <= self.band
        if not in_range:
            raise KeyError(f"{key} is outside the {self.family} scheme of band {self.band}")
        return n, l, k, m

    def offset(self, key: tuple[int, ...]) -> int:
        """Position of `key` in the canonical enumeration (arena offset)."""
        n, l, k, m = self._split(key)
        if self._half_orders:
            before_l = l * (l + 1) // 2
            m_pos = m
        else:
            before_l = l * l
            m_pos = m + l
        if self.is_vector:
            off = 3 * before_l + (k + 1) * self._order_count(l) + m_pos
        else:
            off = before_l + m_pos
        return (n - 1) * self._block_size + off

    def __contains__(self, key: object) -> bool:
        try:
            self._split(tuple(key))
        except (KeyError, TypeError):
            return False
        return True

    @property
    def _block_size(self) -> int:
        b = self.band
        per_l = (b + 1) * (b + 2) // 2 if self._half_orders else (b + 1) ** 2
        return 3 * per_l if self.is_vector else per_l

    def __len__(self) -> int:
        return self._block_size * (self.band if self.is_radial else 1)

    def indices(self) -> tuple[tuple[int, ...], ...]:
        """Every key of the scheme in canonical order."""
        return tuple(self.to_key(p) for p in walk(self.cursor(), self.end()))

    def __iter__(self) -> Iterator[tuple[int, ...]]:
        for position in self.cursor():
            yield self.to_key(position)
