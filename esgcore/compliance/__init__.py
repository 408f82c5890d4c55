# -*- coding: utf-8 -*-
"""Framework disclosure progress, compliance scoring and the save service."""

from esgcore.compliance.models import (
    CompanyExport,
    ComplianceScores,
    DisclosureBranch,
    DisclosureField,
    FrameworkId,
    FrameworkInstance,
    FrameworkScore,
    FrameworkStatus,
    FrameworkUpdatedEvent,
    ProgressResult,
)
from esgcore.compliance.progress import FrameworkProgressTracker, compute_progress
from esgcore.compliance.scoring import ComplianceScoreAggregator
from esgcore.compliance.service import ComplianceService, EventSink, FrameworkRepository

__all__ = [
    "CompanyExport",
    "ComplianceScores",
    "DisclosureBranch",
    "DisclosureField",
    "FrameworkId",
    "FrameworkInstance",
    "FrameworkScore",
    "FrameworkStatus",
    "FrameworkUpdatedEvent",
    "ProgressResult",
    "FrameworkProgressTracker",
    "compute_progress",
    "ComplianceScoreAggregator",
    "ComplianceService",
    "EventSink",
    "FrameworkRepository",
]
