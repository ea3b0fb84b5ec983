"""
Grid sampling for area-wide suitability analysis.
Turns a rectangle into an evenly spaced set of sample coordinates.
"""

import math
from typing import List, Optional

from core.config import DEFAULT_GRID_SIZE, DEFAULT_MAX_GRID_SIZE, validate_grid_size
from core.models import Rectangle, SamplePoint

# Approx km per degree of latitude
KM_PER_DEGREE = 111


class GridSampler:
    """
    Builds a sqrt(n) x sqrt(n) grid of sample points inclusive of the
    rectangle's corners. Points are ordered row by row, south to north,
    and west to east within a row.
    """

    def __init__(self, default_size: int = DEFAULT_GRID_SIZE, max_size: int = DEFAULT_MAX_GRID_SIZE):
        validate_grid_size(default_size, max_size)
        self.default_size = default_size
        self.max_size = max_size

    def generate(self, rectangle: Rectangle, n: Optional[int] = None) -> List[SamplePoint]:
        """
        Generate sample points for a rectangle.

        Args:
            rectangle: Area to sample
            n: Number of points, a positive perfect square no larger than
               `max_size`. Defaults to the sampler's configured size.

        Returns:
            Ordered list of n SamplePoints. A single point is the center.
            A degenerate rectangle yields repeated coordinates.
        """
        side = validate_grid_size(self.default_size if n is None else n, self.max_size)
        if side == 1:
            return [rectangle.center]

        sw, ne = rectangle.south_west, rectangle.north_east
        lat_span = ne.lat - sw.lat
        lng_span = ne.lng - sw.lng
        steps = side - 1

        points = []
        for i in range(side):
            lat = sw.lat + lat_span * i / steps
            for j in range(side):
                lng = sw.lng + lng_span * j / steps
                points.append(SamplePoint(lat, lng))
        return points


def area_size_km2(rectangle: Rectangle) -> float:
    """
    Approximate surface area of a rectangle in km².

    Planar approximation at 111 km per degree, with longitude scaled by the
    cosine of the mean latitude. Fine for selections under ~100 km²; not
    valid near the poles or for very large areas.
    """
    sw, ne = rectangle.south_west, rectangle.north_east
    lat_km = (ne.lat - sw.lat) * KM_PER_DEGREE
    lng_km = (ne.lng - sw.lng) * KM_PER_DEGREE * math.cos(math.radians((sw.lat + ne.lat) / 2))
    return abs(lat_km * lng_km)
