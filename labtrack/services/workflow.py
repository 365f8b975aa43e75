"""
Sample lifecycle and result entry workflow
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from ..core.clock import utc_now
from ..core.exceptions import (
    InvalidStatusTransitionException, ResultEntryException,
    SampleNotFoundException, ValidationException
)
from ..models import ReviewStatus, Sample, SampleStatus, PanelParameter
from ..stores import SampleStore
from .classification import classify_entries, merge_results
from .panels import PanelRegistry

logger = logging.getLogger(__name__)


STATUS_ORDER = [
    SampleStatus.RECEIVED,
    SampleStatus.PROCESSING,
    SampleStatus.COMPLETED,
    SampleStatus.ARCHIVED,
]

ALLOWED_TRANSITIONS: Dict[SampleStatus, Set[SampleStatus]] = {
    SampleStatus.RECEIVED: {SampleStatus.PROCESSING},
    SampleStatus.PROCESSING: {SampleStatus.COMPLETED},
    SampleStatus.COMPLETED: {SampleStatus.ARCHIVED},
    SampleStatus.ARCHIVED: set(),
}

STATUS_TIMESTAMPS = {
    SampleStatus.PROCESSING: "processed_at",
    SampleStatus.COMPLETED: "completed_at",
    SampleStatus.ARCHIVED: "archived_at",
}


class SampleWorkflow:
    """Enforces received -> processing -> completed -> archived.

    With ``enforce_transitions`` off every status write is accepted. With
    ``allow_override`` on, callers may force an out-of-order transition by
    passing ``override=True``.
    """

    def __init__(self, samples: SampleStore, enforce_transitions: bool = True,
                 allow_override: bool = False, clock: Callable[[], datetime] = utc_now):
        self.samples = samples
        self.enforce_transitions = enforce_transitions
        self.allow_override = allow_override
        self._clock = clock

    @staticmethod
    def allowed_targets(status: SampleStatus) -> Set[SampleStatus]:
        return set(ALLOWED_TRANSITIONS.get(status, set()))

    def can_transition(self, current: SampleStatus, target: SampleStatus) -> bool:
        if not self.enforce_transitions or current == target:
            return True
        return target in ALLOWED_TRANSITIONS.get(current, set())

    def transition(self, sample_id: str, target: SampleStatus, override: bool = False,
                   notes: Optional[str] = None,
                   changes: Optional[Mapping[str, Any]] = None) -> Sample:
        """Move a sample to target status and stamp the matching timestamp.

        ``changes`` are written in the same store update as the status, so a
        rejected transition leaves the sample untouched.
        """
        sample = self._require(sample_id)
        target = SampleStatus(target)

        updates: Dict[str, Any] = dict(changes or {})
        if notes is not None:
            updates["notes"] = notes

        if sample.status == target:
            return self.samples.update(sample_id, updates) if updates else sample

        if not self.can_transition(sample.status, target):
            if not (override and self.allow_override):
                logger.warning(f"Rejected status change for {sample_id}: "
                               f"{sample.status.value} -> {target.value}")
                raise InvalidStatusTransitionException(sample_id, sample.status, target)
            logger.warning(f"Manual override for {sample_id}: "
                           f"{sample.status.value} -> {target.value}")

        updates["status"] = target
        timestamp_field = STATUS_TIMESTAMPS.get(target)
        if timestamp_field:
            updates[timestamp_field] = self._clock()

        # Moving backwards drops the timestamps of the stages being undone
        target_index = STATUS_ORDER.index(target)
        if target_index < STATUS_ORDER.index(sample.status):
            for later in STATUS_ORDER[target_index + 1:]:
                updates[STATUS_TIMESTAMPS[later]] = None

        updated = self.samples.update(sample_id, updates)
        logger.info(f"Sample {sample_id} moved from {sample.status.value} to {target.value}")
        return updated

    def advance(self, sample_id: str, target: SampleStatus) -> Sample:
        """Step forward through each intermediate status up to target"""
        sample = self._require(sample_id)
        current_index = STATUS_ORDER.index(sample.status)
        target_index = STATUS_ORDER.index(target)

        if target_index < current_index:
            return self.transition(sample_id, target)

        for status in STATUS_ORDER[current_index + 1:target_index + 1]:
            sample = self.transition(sample_id, status)
        return sample

    def _require(self, sample_id: str) -> Sample:
        sample = self.samples.get_by_id(sample_id)
        if sample is None:
            raise SampleNotFoundException(sample_id)
        return sample


class ResultEntryWorkflow:
    """Result entry, submission and review for a sample's parameter panel"""

    def __init__(self, samples: SampleStore, workflow: SampleWorkflow, panels: PanelRegistry,
                 clock: Callable[[], datetime] = utc_now):
        self.samples = samples
        self.workflow = workflow
        self.panels = panels
        self._clock = clock

    def parameters_for(self, sample_id: str) -> List[PanelParameter]:
        sample = self._require(sample_id)
        return self.panels.parameters_for(sample.test_definition_id)

    def save_draft(self, sample_id: str, values: Mapping[str, Any],
                   comments: Optional[Mapping[str, str]] = None,
                   interpretation: Optional[str] = None) -> Sample:
        """Record values without submitting; starts processing if needed"""
        sample = self._record(sample_id, values, comments, interpretation, ReviewStatus.DRAFT)

        if sample.status == SampleStatus.RECEIVED:
            sample = self.workflow.transition(sample_id, SampleStatus.PROCESSING)

        logger.info(f"Saved draft results for {sample_id} ({len(sample.results or [])} values)")
        return sample

    def submit_for_review(self, sample_id: str, values: Optional[Mapping[str, Any]] = None,
                          comments: Optional[Mapping[str, str]] = None,
                          interpretation: Optional[str] = None) -> Sample:
        """Record values, complete the sample and queue it for review"""
        current = self._require(sample_id)
        self._check_editable(current)

        merged = self._merged_results(current, values or {}, comments)
        if not merged:
            raise ValidationException(
                f"No result values entered for sample {sample_id}", "NO_RESULTS"
            )

        if current.status != SampleStatus.COMPLETED:
            self.workflow.advance(sample_id, SampleStatus.COMPLETED)

        updates: Dict[str, Any] = {
            "results": merged,
            "review_status": ReviewStatus.PENDING_REVIEW,
            "reviewed_by": None,
            "reviewed_at": None,
            "review_comment": None,
        }
        if interpretation is not None:
            updates["interpretation"] = interpretation

        sample = self.samples.update(sample_id, updates)
        logger.info(f"Submitted results for {sample_id} for review")
        return sample

    def approve(self, sample_id: str, reviewer: str, comment: Optional[str] = None) -> Sample:
        return self._review(sample_id, reviewer, ReviewStatus.APPROVED, comment)

    def reject(self, sample_id: str, reviewer: str, reason: str) -> Sample:
        if not reason or not reason.strip():
            raise ValidationException("A reason is required to reject results", "REASON_REQUIRED")
        return self._review(sample_id, reviewer, ReviewStatus.REJECTED, reason)

    def _review(self, sample_id: str, reviewer: str, outcome: ReviewStatus,
                comment: Optional[str]) -> Sample:
        sample = self._require(sample_id)
        if not reviewer or not reviewer.strip():
            raise ValidationException("Reviewer is required", "REVIEWER_REQUIRED")
        if sample.review_status != ReviewStatus.PENDING_REVIEW:
            state = sample.review_status.value if sample.review_status else "not submitted"
            raise ResultEntryException(
                f"Results for sample {sample_id} are not awaiting review ({state})",
                "NOT_PENDING_REVIEW",
            )

        updated = self.samples.update(sample_id, {
            "review_status": outcome,
            "reviewed_by": reviewer.strip(),
            "reviewed_at": self._clock(),
            "review_comment": comment,
        })
        logger.info(f"Results for {sample_id} {outcome.value} by {reviewer}")
        return updated

    def _record(self, sample_id: str, values: Mapping[str, Any],
                comments: Optional[Mapping[str, str]], interpretation: Optional[str],
                review_status: ReviewStatus) -> Sample:
        sample = self._require(sample_id)
        self._check_editable(sample)

        updates: Dict[str, Any] = {
            "results": self._merged_results(sample, values, comments),
            "review_status": review_status,
        }
        if interpretation is not None:
            updates["interpretation"] = interpretation
        return self.samples.update(sample_id, updates)

    def _merged_results(self, sample: Sample, values: Mapping[str, Any],
                        comments: Optional[Mapping[str, str]]):
        parameters = self.panels.parameters_for(sample.test_definition_id)
        entered = classify_entries(parameters, values, comments)
        return merge_results(sample.results, entered)

    def _check_editable(self, sample: Sample):
        if sample.status == SampleStatus.ARCHIVED:
            raise ResultEntryException(
                f"Sample {sample.id} is archived and cannot take results", "SAMPLE_ARCHIVED"
            )
        if sample.review_status in (ReviewStatus.PENDING_REVIEW, ReviewStatus.APPROVED):
            raise ResultEntryException(
                f"Results for sample {sample.id} are {sample.review_status.value}",
                "RESULTS_LOCKED",
            )

    def _require(self, sample_id: str) -> Sample:
        sample = self.samples.get_by_id(sample_id)
        if sample is None:
            raise SampleNotFoundException(sample_id)
        return sample
