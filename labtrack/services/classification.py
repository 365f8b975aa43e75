"""
Result classification against normal and critical reference ranges
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..models import ResultValue, PanelParameter

logger = logging.getLogger(__name__)


@dataclass
class ResultSummary:
    """Counts shown above the result entry form"""
    critical: int = 0
    abnormal: int = 0
    normal: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.abnormal + self.normal


def is_abnormal(value: float, parameter: PanelParameter) -> bool:
    normal = parameter.normal_range
    return value < normal.min or value > normal.max


def is_critical(value: float, parameter: PanelParameter) -> bool:
    critical = parameter.critical_range
    if critical is None:
        return False
    return value < critical.min or value > critical.max


def parse_value(raw: Any) -> Optional[float]:
    """Parse entered input into a finite float, or None if unusable"""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if not math.isfinite(value):
        return None
    return value


def classify(parameter: PanelParameter, value: float, comment: Optional[str] = None) -> ResultValue:
    """Build a ResultValue with abnormal/critical flags for a numeric value"""
    return ResultValue(
        parameter_id=parameter.id,
        value=value,
        is_abnormal=is_abnormal(value, parameter),
        is_critical=is_critical(value, parameter),
        comment=comment or None,
    )


def classify_entries(parameters: Iterable[PanelParameter], entries: Mapping[str, Any],
                     comments: Optional[Mapping[str, str]] = None) -> List[ResultValue]:
    """Classify raw form entries keyed by parameter id.

    Entries for unknown parameters and entries that do not parse as a
    number are skipped; they produce no ResultValue.
    """
    by_id: Dict[str, PanelParameter] = {p.id: p for p in parameters}
    comments = comments or {}
    results = []

    for parameter_id, raw in entries.items():
        parameter = by_id.get(parameter_id)
        if parameter is None:
            logger.debug(f"Ignoring value for unknown parameter {parameter_id}")
            continue

        value = parse_value(raw)
        if value is None:
            logger.debug(f"Ignoring unparseable value {raw!r} for {parameter_id}")
            continue

        results.append(classify(parameter, value, comments.get(parameter_id)))

    return results


def merge_results(existing: Optional[Iterable[ResultValue]],
                  incoming: Iterable[ResultValue]) -> List[ResultValue]:
    """Replace results per parameter, keeping first-entry order"""
    merged: Dict[str, ResultValue] = {r.parameter_id: r for r in existing or []}
    for result in incoming:
        merged[result.parameter_id] = result
    return list(merged.values())


def summarize(results: Iterable[ResultValue]) -> ResultSummary:
    summary = ResultSummary()
    for result in results:
        if result.is_critical:
            summary.critical += 1
        elif result.is_abnormal:
            summary.abnormal += 1
        else:
            summary.normal += 1
    return summary
