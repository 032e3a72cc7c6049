"""Record model shared by the local cache, the remote store and the coordinator."""

from .types import Record, merge_payload, new_record, parse_timestamp, utc_now

__all__ = [
    "Record",
    "merge_payload",
    "new_record",
    "parse_timestamp",
    "utc_now",
]
