"""Adapter layer package for station backend integration boundaries."""

from .interfaces import AdapterFetchResult, StationRecordSourcePort
from .station_api import STATION_API_SOURCES, StationApiAdapter, StationApiSource
from .station_api_errors import (
	StationApiAuthError,
	StationApiConnectionError,
	StationApiError,
	StationApiResponseError,
	StationApiTimeoutError,
)

__all__ = [
	"AdapterFetchResult",
	"STATION_API_SOURCES",
	"StationApiAdapter",
	"StationApiAuthError",
	"StationApiConnectionError",
	"StationApiError",
	"StationApiResponseError",
	"StationApiSource",
	"StationApiTimeoutError",
	"StationRecordSourcePort",
]
