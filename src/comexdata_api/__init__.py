"""comexdata_api — ComexStat aggregation engine and HTTP API."""

__version__ = "0.1.0"
