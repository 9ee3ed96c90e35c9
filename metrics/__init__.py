"""
metrics package.

Pure record normalization, filtering, bucketing, aggregation and export
helpers. Nothing in this package performs I/O or depends on the HTTP or
persistence layers.
"""

from metrics.aggregator import AggregateMetrics, aggregate
from metrics.export import to_delimited_text
from metrics.filters import DateRange, FilterSpec, filter_records, matches
from metrics.normalizer import RecordNormalizer, normalize
from metrics.records import AdRecord, CommerceOrderRecord, DomainRecord, ShippingRecord
from metrics.schema import DataSource, get_schema
from metrics.timeseries import DayBucket, bucket_by_day

__all__ = [
    "AdRecord",
    "AggregateMetrics",
    "CommerceOrderRecord",
    "DataSource",
    "DateRange",
    "DayBucket",
    "DomainRecord",
    "FilterSpec",
    "RecordNormalizer",
    "ShippingRecord",
    "aggregate",
    "bucket_by_day",
    "filter_records",
    "get_schema",
    "matches",
    "normalize",
    "to_delimited_text",
]
