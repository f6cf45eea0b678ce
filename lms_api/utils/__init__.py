"""Utility modules."""
from lms_api.utils.json_utils import json_dump, json_load, load_string_list
from lms_api.utils.time_utils import as_utc, parse_iso_timestamp, utc_now

__all__ = [
    "json_dump",
    "json_load",
    "load_string_list",
    "as_utc",
    "parse_iso_timestamp",
    "utc_now",
]
