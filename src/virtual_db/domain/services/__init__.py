"""Domain services for query evaluation.

Services implement the comparison and evaluation logic shared by the
query engine and by table implementations that want to evaluate WHERE
themselves.
"""

from virtual_db.domain.services.collation import (
    BINARY,
    NOCASE,
    RTRIM,
    BinaryCollator,
    Collator,
    LocaleCollator,
    NoCaseCollator,
    RTrimCollator,
    canonical_name,
    canonicalize_locale,
    collations_match,
    from_name,
    to_name,
)
from virtual_db.domain.services.where_evaluator import (
    SubqueryResolver,
    WhereEvaluator,
    like,
)

__all__ = [
    # Collation
    "BINARY",
    "NOCASE",
    "RTRIM",
    "BinaryCollator",
    "Collator",
    "LocaleCollator",
    "NoCaseCollator",
    "RTrimCollator",
    "canonical_name",
    "canonicalize_locale",
    "collations_match",
    "from_name",
    "to_name",
    # Evaluation
    "SubqueryResolver",
    "WhereEvaluator",
    "like",
]
