"""
Operation kinds - the unit of measurement aggregation.
"""

from enum import Enum


class OperationKind(str, Enum):
    """Benchmark operation kinds, in OPERATION_PROPORTION order."""

    INGESTION = "INGESTION"
    PRECISE_QUERY = "PRECISE_POINT"
    RANGE_QUERY = "TIME_RANGE"
    VALUE_RANGE_QUERY = "VALUE_RANGE"
    AGG_RANGE_QUERY = "AGG_RANGE"
    AGG_VALUE_QUERY = "AGG_VALUE"
    AGG_RANGE_VALUE_QUERY = "AGG_RANGE_VALUE"
    GROUP_BY_QUERY = "GROUP_BY"
    LATEST_POINT_QUERY = "LATEST_POINT"
    RANGE_QUERY_ORDER_BY_TIME_DESC = "RANGE_QUERY_DESC"
    VALUE_RANGE_QUERY_ORDER_BY_TIME_DESC = "VALUE_RANGE_QUERY_DESC"

    @property
    def is_write(self) -> bool:
        return self is OperationKind.INGESTION


# Positional order of the colon-separated OPERATION_PROPORTION string:
# INGESTION:Q1:Q2:Q3:Q4:Q5:Q6:Q7:Q8:Q9:Q10
OPERATION_ORDER: tuple[OperationKind, ...] = tuple(OperationKind)
