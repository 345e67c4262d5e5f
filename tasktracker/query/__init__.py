from .fields import COLLECTION_FIELDS, TASK_FIELDS, USER_FIELDS, FieldSpec, fields_for
from .translator import Projection, QueryPlan, parse_projection, run_query, translate

__all__ = [
    "COLLECTION_FIELDS",
    "TASK_FIELDS",
    "USER_FIELDS",
    "FieldSpec",
    "fields_for",
    "Projection",
    "QueryPlan",
    "parse_projection",
    "run_query",
    "translate",
]
