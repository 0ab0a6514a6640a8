# src/plumbline/engine/transform.py
"""
Precondition / Segment Transformer.

    transform(table, preconditions, seg_col, seg_val) -> [(label, table_subset), ...]

Preconditions run first (once), segmentation second. Any failure surfaces
as TransformError so the caller can pin it on the one step.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

from plumbline.engine.backends.registry import is_backend
from plumbline.engine.predicates import Cmp, Col, IsNull, Lit
from plumbline.errors import StepError, TransformError
from plumbline.logging import get_logger
from plumbline.plan.refs import ALL_VALUES

_logger = get_logger(__name__)

Segment = Tuple[Optional[str], Any]


def apply_preconditions(table: Any, preconditions: Optional[Callable[[Any], Any]]) -> Any:
    """Apply a table -> table function to a fresh view of `table`."""
    if preconditions is None:
        return table
    try:
        out = table.apply(preconditions)
    except StepError:
        raise
    except TypeError as e:
        raise TransformError(f"Precondition did not return a supported table: {e}") from e
    except Exception as e:
        raise TransformError(f"Precondition failed: {type(e).__name__}: {e}") from e
    if not is_backend(out):
        raise TransformError(f"Precondition returned {type(out).__name__}, not a table")
    return out


def segment_values(table: Any, seg_col: str) -> List[Any]:
    """Distinct values of the segmentation column, sorted, missing last."""
    if seg_col not in table.columns():
        raise TransformError(f"Segmentation column '{seg_col}' is not in the table")
    try:
        values = table.distinct_values(seg_col)
    except Exception as e:
        raise TransformError(f"Could not read segments from '{seg_col}': {e}") from e
    present = [v for v in values if v is not None]
    try:
        present.sort()
    except TypeError:
        pass
    if len(present) < len(values):
        present.append(None)
    return present


def split_segments(table: Any, seg_col: Optional[str], seg_val: Any) -> List[Tuple[Optional[str], Any, Any]]:
    """
    Return [(seg_col, seg_val, subset), ...].

    - no segmentation: one entry holding the whole table
    - explicit value: one entry (an unseen value yields an empty subset)
    - ALL_VALUES: one entry per distinct value observed right now
    """
    if seg_col is None:
        return [(None, None, table)]

    if seg_val is ALL_VALUES:
        values = segment_values(table, seg_col)
    else:
        if seg_col not in table.columns():
            raise TransformError(f"Segmentation column '{seg_col}' is not in the table")
        values = [seg_val]

    out = []
    for v in values:
        pred = IsNull(Col(seg_col)) if v is None else Cmp("==", Col(seg_col), Lit(v))
        try:
            out.append((seg_col, v, table.filter(pred)))
        except Exception as e:
            raise TransformError(f"Could not filter segment {seg_col}={v!r}: {e}") from e
    _logger.debug("Segmented on %s into %d subset(s)", seg_col, len(out))
    return out


def transform(
    table: Any,
    preconditions: Optional[Callable[[Any], Any]] = None,
    seg_col: Optional[str] = None,
    seg_val: Any = None,
) -> List[Tuple[Optional[str], Any, Any]]:
    """Preconditions, then segmentation."""
    return split_segments(apply_preconditions(table, preconditions), seg_col, seg_val)
