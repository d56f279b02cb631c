"""Read-only observability over dimensions and their matches."""

from dimension.station.station import Station

__all__ = ["Station"]
