# -*- coding: utf-8 -*-
"""
Compliance Service - framework saves, score recomputation and events

Unified facade over progress tracking and score aggregation for one
persistence backend. Collaborators are injected through the constructor; the
service holds no ambient global state.

Save discipline (per FrameworkInstance, last write wins):
    1. Load (or create) the instance and replace its disclosure tree
    2. Recompute progress with the framework's completion predicate
    3. Increment ``version``, stamp ``last_updated``, derive ``status``
    4. Persist the instance
    5. Recompute ComplianceScores from the freshly loaded persisted scores
    6. Publish FrameworkUpdatedEvent if progress or score changed

Example:
    >>> service = ComplianceService(repository=my_repo, event_sink=my_sink)
    >>> outcome = service.save_framework_data("acme", "gri", tree)
    >>> print(outcome.instance.progress_percent, outcome.scores.overall)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from esgcore.compliance.models import (
    CompanyExport,
    ComplianceScores,
    FrameworkId,
    FrameworkInstance,
    FrameworkSaveResult,
    FrameworkScore,
    FrameworkUpdatedEvent,
    ProgressResult,
    coerce_framework_id,
)
from esgcore.compliance.progress import (
    FrameworkProgressTracker,
    TreeInput,
    parse_disclosure_tree,
    status_for_progress,
)
from esgcore.compliance.scoring import ComplianceScoreAggregator
from esgcore.determinism import utcnow
from esgcore.metrics import record_duration

logger = logging.getLogger(__name__)

FrameworkRef = Union[str, FrameworkId]


# =============================================================================
# Collaborator protocols
# =============================================================================


class FrameworkRepository(Protocol):
    """Persistence collaborator for framework instances."""

    def load_framework_instance(
        self, company_id: str, framework_id: FrameworkId,
    ) -> Optional[FrameworkInstance]:
        ...

    def save_framework_instance(self, instance: FrameworkInstance) -> None:
        ...

    def load_all_framework_scores(
        self, company_id: str,
    ) -> Mapping[FrameworkId, FrameworkScore]:
        ...


class EventSink(Protocol):
    """Notification collaborator; delivery is its concern, not ours."""

    def publish(self, event: FrameworkUpdatedEvent) -> None:
        ...


# =============================================================================
# Service
# =============================================================================


class ComplianceService:
    """Framework data saves with progress and score recomputation.

    Attributes:
        repository: FrameworkRepository persisting framework instances.
        event_sink: Optional EventSink receiving FrameworkUpdatedEvent.
        aggregator: ComplianceScoreAggregator used for every recompute.
    """

    def __init__(
        self,
        repository: FrameworkRepository,
        event_sink: Optional[EventSink] = None,
        aggregator: Optional[ComplianceScoreAggregator] = None,
    ) -> None:
        self.repository = repository
        self.event_sink = event_sink
        self.aggregator = aggregator or ComplianceScoreAggregator()
        logger.info("ComplianceService created")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_framework_data(
        self, company_id: str, framework_id: FrameworkRef,
    ) -> FrameworkInstance:
        """Return the stored instance, or an empty draft if none exists."""
        fw = coerce_framework_id(framework_id)
        instance = self.repository.load_framework_instance(company_id, fw)
        if instance is None:
            instance = FrameworkInstance(framework_id=fw, company_id=company_id)
        return instance

    def get_scores(self, company_id: str) -> ComplianceScores:
        """Current compliance scores, recomputed from persisted values."""
        return self.aggregator.recompute_scores(
            self.repository.load_all_framework_scores(company_id),
        )

    def prepare_for_analysis(
        self, company_id: str, framework_id: FrameworkRef,
    ) -> Dict[str, Any]:
        """Flattened disclosure data and completion metadata for analysis."""
        instance = self.get_framework_data(company_id, framework_id)
        tracker = FrameworkProgressTracker(instance.framework_id)
        return tracker.prepare_for_analysis(instance.disclosure_tree)

    def export_company(self, company_id: str) -> CompanyExport:
        """Read-only snapshot of every framework instance plus scores."""
        frameworks: Dict[FrameworkId, FrameworkInstance] = {}
        for fw in FrameworkId:
            instance = self.repository.load_framework_instance(company_id, fw)
            if instance is not None:
                frameworks[fw] = instance
        export = CompanyExport(
            company_id=company_id,
            frameworks=frameworks,
            scores=self.get_scores(company_id),
        )
        logger.info(
            "Exported %d frameworks for company %s", len(frameworks), company_id,
        )
        return export

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_framework_data(
        self, company_id: str, framework_id: FrameworkRef, tree: TreeInput,
    ) -> FrameworkSaveResult:
        """Replace a framework's disclosure tree and recompute everything.

        Raises:
            MalformedTreeError: If ``tree`` is not a mapping.
            UnknownFrameworkError: Unsupported framework id.
        """
        start = time.perf_counter()
        fw = coerce_framework_id(framework_id)
        parsed = parse_disclosure_tree(tree)
        previous = self.get_framework_data(company_id, fw)

        progress = FrameworkProgressTracker(fw).compute_progress(parsed)
        instance = previous.model_copy(update={
            "disclosure_tree": parsed,
            "progress_percent": progress.percent,
            "status": status_for_progress(progress.percent),
            "version": previous.version + 1,
            "last_updated": utcnow(),
        })

        outcome = self._persist(previous, instance, progress)
        record_duration("framework_save", time.perf_counter() - start)
        logger.info(
            "Saved %s for company %s: version %d, progress %d%% (%d/%d fields)",
            fw.value, company_id, instance.version, progress.percent,
            progress.completed_count, progress.total_count,
        )
        return outcome

    def update_framework_score(
        self, company_id: str, framework_id: FrameworkRef, score: Any,
    ) -> FrameworkSaveResult:
        """Store an externally supplied score (e.g. from an analysis step).

        Raises:
            InvalidQuantityError: Score outside 0-100.
            UnknownFrameworkError: Unsupported framework id.
        """
        fw = coerce_framework_id(framework_id)
        previous = self.get_framework_data(company_id, fw)
        instance = FrameworkInstance.model_validate({
            **previous.model_dump(),
            "score": score,
            "version": previous.version + 1,
            "last_updated": utcnow(),
        })
        progress = FrameworkProgressTracker(fw).compute_progress(
            instance.disclosure_tree,
        )
        outcome = self._persist(previous, instance, progress)
        logger.info(
            "Updated %s score for company %s to %s", fw.value, company_id, instance.score,
        )
        return outcome

    def import_company(self, export: Union[CompanyExport, Mapping[str, Any]]) -> ComplianceScores:
        """Restore framework instances from a previous export."""
        if not isinstance(export, CompanyExport):
            export = CompanyExport.model_validate(dict(export))
        for instance in export.frameworks.values():
            self.repository.save_framework_instance(instance)
        logger.info(
            "Imported %d frameworks for company %s",
            len(export.frameworks), export.company_id,
        )
        return self.get_scores(export.company_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist(
        self,
        previous: FrameworkInstance,
        instance: FrameworkInstance,
        progress: ProgressResult,
    ) -> FrameworkSaveResult:
        self.repository.save_framework_instance(instance)
        scores = self.get_scores(instance.company_id)

        event: Optional[FrameworkUpdatedEvent] = None
        changed = (
            previous.progress_percent != instance.progress_percent
            or previous.score != instance.score
        )
        if changed:
            event = FrameworkUpdatedEvent(
                framework_id=instance.framework_id,
                company_id=instance.company_id,
                progress=instance.progress_percent,
                score=instance.score,
                version=instance.version,
            )
            if self.event_sink is not None:
                self.event_sink.publish(event)
            logger.debug(
                "Published framework_data_updated for %s/%s",
                instance.company_id, instance.framework_id.value,
            )

        return FrameworkSaveResult(
            instance=instance, progress=progress, scores=scores, event=event,
        )


__all__ = [
    "FrameworkRepository",
    "EventSink",
    "ComplianceService",
]
