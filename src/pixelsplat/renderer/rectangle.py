"""Integer pixel rectangles and tile partitioning.

A Rectangle covers pixels ``left <= x < right`` and ``top <= y < bottom``.
Rasters are laid out over a Rectangle in row-major order, tiles are
Rectangles, and tile halos are Rectangles expanded by the filter radius and
clipped back to the image.

Invariants:
    - left <= right and top <= bottom (empty rectangles are allowed)
    - tile_iter() partitions the rectangle exactly: no gaps, no overlaps
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple


@dataclass(frozen=True)
class Rectangle:
    """Half-open integer pixel rectangle."""
    left: int
    top: int
    right: int
    bottom: int

    def __post_init__(self):
        if self.left > self.right:
            raise ValueError(
                f"left must be less than or equal to right but {self.left} > {self.right}"
            )
        if self.top > self.bottom:
            raise ValueError(
                f"top must be less than or equal to bottom but {self.top} > {self.bottom}"
            )

    @classmethod
    def from_size(cls, width: int, height: int) -> 'Rectangle':
        """Rectangle anchored at the origin."""
        return cls(0, 0, width, height)

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def size(self) -> int:
        return self.width * self.height

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width), the numpy shape of a raster over this rectangle."""
        return (self.height, self.width)

    def is_empty(self) -> bool:
        return self.left == self.right or self.top == self.bottom

    def contains(self, x: int, y: int) -> bool:
        return self.left <= x < self.right and self.top <= y < self.bottom

    def union(self, other: 'Rectangle') -> 'Rectangle':
        """Smallest rectangle containing both."""
        return Rectangle(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def overlaps(self, other: 'Rectangle') -> bool:
        return (
            self.left < other.right and self.top < other.bottom
            and self.right > other.left and self.bottom > other.top
        )

    def intersection(self, other: 'Rectangle') -> Optional['Rectangle']:
        """Overlapping region, or None when the rectangles don't overlap."""
        if not self.overlaps(other):
            return None
        return Rectangle(
            max(self.left, other.left),
            max(self.top, other.top),
            min(self.right, other.right),
            min(self.bottom, other.bottom),
        )

    def expand(self, margin_x: int, margin_y: int) -> 'Rectangle':
        """Grow by a halo on every side (margins must be non-negative)."""
        if margin_x < 0 or margin_y < 0:
            raise ValueError(f"Margins must be non-negative, got ({margin_x}, {margin_y})")
        return Rectangle(
            self.left - margin_x,
            self.top - margin_y,
            self.right + margin_x,
            self.bottom + margin_y,
        )

    def clip(self, bounds: 'Rectangle') -> 'Rectangle':
        """Clip to ``bounds``; returns an empty rectangle when disjoint."""
        clipped = self.intersection(bounds)
        if clipped is None:
            return Rectangle(bounds.left, bounds.top, bounds.left, bounds.top)
        return clipped

    def linear_index(self, x: int, y: int) -> int:
        """Row-major offset of pixel (x, y) inside this rectangle."""
        if not self.contains(x, y):
            raise IndexError(
                f"Pixel ({x}, {y}) outside rectangle "
                f"[{self.left}, {self.right}) x [{self.top}, {self.bottom})"
            )
        return (y - self.top) * self.width + (x - self.left)

    def index_iter(self) -> Iterator[Tuple[int, int]]:
        """Yield every pixel (x, y) in row-major order."""
        for y in range(self.top, self.bottom):
            for x in range(self.left, self.right):
                yield (x, y)

    def tile_iter(self, tile_count_x: int, tile_count_y: int) -> Iterator['Rectangle']:
        """Partition into a grid of tiles, row-major.

        Tile counts are capped at the rectangle's width and height so no tile is
        empty. Each tile takes the remaining extent divided by the remaining
        tile count, so tile sizes differ by at most one pixel per axis.

        Parameters
        ----------
        tile_count_x : int
            Tiles per row (> 0)
        tile_count_y : int
            Tiles per column (> 0)

        Yields
        ------
        Rectangle
            Tiles whose union is exactly this rectangle
        """
        if tile_count_x <= 0:
            raise ValueError(f"tile_count_x must be greater than zero, got {tile_count_x}")
        if tile_count_y <= 0:
            raise ValueError(f"tile_count_y must be greater than zero, got {tile_count_y}")

        count_x = min(tile_count_x, self.width)
        count_y = min(tile_count_y, self.height)

        top = self.top
        for index_y in range(count_y):
            bottom = top + (self.bottom - top) // (count_y - index_y)
            left = self.left
            for index_x in range(count_x):
                right = left + (self.right - left) // (count_x - index_x)
                yield Rectangle(left, top, right, bottom)
                left = right
            top = bottom

    def tile_count(self, tile_count_x: int, tile_count_y: int) -> int:
        """Number of tiles tile_iter() yields for these counts."""
        return min(tile_count_x, self.width) * min(tile_count_y, self.height)
