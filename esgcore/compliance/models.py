# -*- coding: utf-8 -*-
"""
Compliance Data Models

Pydantic v2 models for framework disclosure trees, per-framework progress and
scores, and the E/S/G compliance score roll-up.

Disclosure trees are a tagged variant:

    DisclosureNode = DisclosureLeaf(field) | DisclosureBranch(children)

Raw nested mappings (as stored by the persistence collaborator) are converted
with :func:`esgcore.compliance.progress.parse_disclosure_tree`.

Enumerations (2):
    - FrameworkId, FrameworkStatus

Models (10):
    - DisclosureField, DisclosureLeaf, DisclosureBranch, ProgressResult,
      FrameworkScore, FrameworkInstance, ComplianceScores,
      FrameworkUpdatedEvent, FrameworkSaveResult, CompanyExport
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from esgcore.determinism import HUNDRED, ZERO, round_percent, safe_decimal, utcnow
from esgcore.exceptions import InvalidQuantityError, UnknownFrameworkError

#: Version tag written into company exports.
EXPORT_FORMAT_VERSION = "1.0.0"


# =============================================================================
# Enumerations
# =============================================================================


class FrameworkId(str, Enum):
    """Supported reporting frameworks."""

    GRI = "gri"
    TCFD = "tcfd"
    SBTI = "sbti"
    CSRD = "csrd"
    CDP = "cdp"
    SDG = "sdg"
    SASB = "sasb"
    ISSB = "issb"
    PCAF = "pcaf"


def coerce_framework_id(framework_id: Any) -> FrameworkId:
    """Resolve a framework identifier (case-insensitive).

    Raises:
        UnknownFrameworkError: If it is not a supported framework.
    """
    if isinstance(framework_id, FrameworkId):
        return framework_id
    try:
        return FrameworkId(str(framework_id).strip().lower())
    except ValueError as e:
        raise UnknownFrameworkError(
            f"Unknown framework: {framework_id!r}",
            context={"framework_id": str(framework_id)},
        ) from e


class FrameworkStatus(str, Enum):
    """Lifecycle status of a framework instance, derived from progress."""

    DRAFT = "draft"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


# =============================================================================
# Disclosure tree
# =============================================================================


def value_is_completed(value: Any) -> bool:
    """A disclosure value is complete iff it is non-empty after trimming.

    Numeric 0 counts as completed; only ``None`` and blank strings do not.
    """
    return value is not None and str(value).strip() != ""


class DisclosureField(BaseModel):
    """A single atomic disclosure data point (e.g. GRI "2-1").

    Framework-specific attributes that are not ``name``/``value``/
    ``completed`` (such as the SDG ``relevance`` and impact texts) are kept
    in ``attributes``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    value: Optional[Union[int, float, Decimal, str]] = None
    completed: bool = False
    attributes: Dict[str, Any] = Field(default_factory=dict)

    def with_value(self, value: Any) -> DisclosureField:
        """Return a copy holding ``value`` with ``completed`` recomputed."""
        return self.model_copy(
            update={"value": value, "completed": value_is_completed(value)},
        )

    def to_raw(self) -> Dict[str, Any]:
        """Nested-mapping form, as stored by the persistence collaborator."""
        raw: Dict[str, Any] = dict(self.attributes)
        if self.name:
            raw["name"] = self.name
        raw["value"] = self.value
        raw["completed"] = self.completed
        return raw


class DisclosureLeaf(BaseModel):
    """Leaf node wrapping one disclosure field."""

    kind: Literal["leaf"] = "leaf"
    field: DisclosureField


class DisclosureBranch(BaseModel):
    """Section node; children are keyed by section or field id."""

    kind: Literal["branch"] = "branch"
    children: Dict[str, DisclosureNode] = Field(default_factory=dict)

    def to_raw(self) -> Dict[str, Any]:
        raw: Dict[str, Any] = {}
        for key, child in self.children.items():
            if isinstance(child, DisclosureLeaf):
                raw[key] = child.field.to_raw()
            else:
                raw[key] = child.to_raw()
        return raw


DisclosureNode = Annotated[
    Union[DisclosureLeaf, DisclosureBranch], Field(discriminator="kind")
]

DisclosureBranch.model_rebuild()


class ProgressResult(BaseModel):
    """Completion of one disclosure tree."""

    model_config = ConfigDict(frozen=True)

    percent: int = Field(default=0, ge=0, le=100)
    completed_count: int = Field(default=0, ge=0)
    total_count: int = Field(default=0, ge=0)


# =============================================================================
# Scores
# =============================================================================


def _validate_score(field: str, value: Any) -> Decimal:
    try:
        score = safe_decimal(value)
    except TypeError as e:
        raise InvalidQuantityError(
            f"{field} is not numeric", field=field, value=value,
        ) from e
    if not score.is_finite() or score < ZERO or score > HUNDRED:
        raise InvalidQuantityError(
            f"{field} must be between 0 and 100",
            field=field,
            value=value,
        )
    return score


class FrameworkScore(BaseModel):
    """Score and progress of one framework as persisted for a company."""

    score: Decimal = ZERO
    progress: int = 0
    last_updated: Optional[datetime] = None

    @field_validator("score", mode="before")
    @classmethod
    def _check_score(cls, v: Any) -> Decimal:
        return _validate_score("score", v)

    @field_validator("progress", mode="before")
    @classmethod
    def _check_progress(cls, v: Any) -> int:
        return round_percent(_validate_score("progress", v))


class FrameworkInstance(BaseModel):
    """One company's disclosure data for one framework."""

    framework_id: FrameworkId
    company_id: str = Field(..., min_length=1)
    disclosure_tree: DisclosureBranch = Field(default_factory=DisclosureBranch)
    progress_percent: int = Field(default=0, ge=0, le=100)
    score: Decimal = ZERO
    status: FrameworkStatus = FrameworkStatus.DRAFT
    version: int = Field(default=0, ge=0)
    last_updated: Optional[datetime] = None

    @field_validator("score", mode="before")
    @classmethod
    def _check_score(cls, v: Any) -> Decimal:
        return _validate_score("score", v)

    def to_framework_score(self) -> FrameworkScore:
        return FrameworkScore(
            score=self.score,
            progress=self.progress_percent,
            last_updated=self.last_updated,
        )


class ComplianceScores(BaseModel):
    """Pillar and overall compliance scores, the single dashboard source."""

    overall: int = 0
    environmental: int = 0
    social: int = 0
    governance: int = 0
    per_framework: Dict[FrameworkId, FrameworkScore] = Field(default_factory=dict)
    calculated_at: datetime = Field(default_factory=utcnow)
    provenance_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# =============================================================================
# Service outputs and events
# =============================================================================


class FrameworkUpdatedEvent(BaseModel):
    """Domain event published after a save changes progress or score."""

    event_type: Literal["framework_data_updated"] = "framework_data_updated"
    framework_id: FrameworkId
    company_id: str
    progress: int
    score: Decimal
    version: int
    occurred_at: datetime = Field(default_factory=utcnow)


class FrameworkSaveResult(BaseModel):
    """Outcome of a framework save or score update."""

    instance: FrameworkInstance
    progress: ProgressResult
    scores: ComplianceScores
    event: Optional[FrameworkUpdatedEvent] = None


class CompanyExport(BaseModel):
    """Read-only snapshot of a company's frameworks and scores."""

    company_id: str
    frameworks: Dict[FrameworkId, FrameworkInstance] = Field(default_factory=dict)
    scores: ComplianceScores
    exported_at: datetime = Field(default_factory=utcnow)
    format_version: str = EXPORT_FORMAT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


__all__ = [
    "EXPORT_FORMAT_VERSION",
    "FrameworkId",
    "FrameworkStatus",
    "coerce_framework_id",
    "value_is_completed",
    "DisclosureField",
    "DisclosureLeaf",
    "DisclosureBranch",
    "DisclosureNode",
    "ProgressResult",
    "FrameworkScore",
    "FrameworkInstance",
    "ComplianceScores",
    "FrameworkUpdatedEvent",
    "FrameworkSaveResult",
    "CompanyExport",
]
