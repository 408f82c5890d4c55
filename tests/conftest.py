# -*- coding: utf-8 -*-
"""
Shared fixtures for the esgcore test suite.

Every test runs against a fresh configuration and a freshly loaded default
factor table, so environment overrides and table swaps never leak between
tests.
"""

from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Tuple

import pytest

from esgcore.compliance.models import (
    FrameworkId,
    FrameworkInstance,
    FrameworkScore,
    FrameworkUpdatedEvent,
)
from esgcore.config import EsgCoreConfig, reset_config, set_config
from esgcore.determinism import DeterministicClock
from esgcore.emissions.factors import (
    DEFAULT_REGISTRY_PATH,
    EmissionFactorTable,
    reset_default_table,
)
from esgcore.emissions.models import ActivityRecord


# ==================== CONFIG ====================

@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the config and default factor table around every test."""
    reset_config()
    reset_default_table()
    set_config(EsgCoreConfig())
    yield
    reset_config()
    reset_default_table()


@pytest.fixture
def strict_config():
    """Config that rejects unknown activity keys."""
    set_config(EsgCoreConfig(strict_unknown_activities=True))
    reset_default_table()


@pytest.fixture
def frozen_clock():
    """Freeze utcnow() for timestamp assertions."""
    frozen = datetime(2025, 6, 30, 12, 0, 0, tzinfo=timezone.utc)
    DeterministicClock.freeze(frozen)
    yield frozen
    DeterministicClock.unfreeze()


# ==================== FACTOR TABLES ====================

@pytest.fixture
def factor_table() -> EmissionFactorTable:
    """The bundled registry, loaded directly."""
    return EmissionFactorTable.from_yaml(DEFAULT_REGISTRY_PATH)


@pytest.fixture
def minimal_registry() -> Dict:
    """Small in-memory registry used to exercise table construction."""
    return {
        "metadata": {"version": "test-1"},
        "fuels": {
            "naturalGas": {
                "factor": 0.2,
                "unit": "kWh",
                "scope": 1,
                "source": "Test Source",
                "uncertainty": 0.05,
            },
        },
        "electricity": {
            "ukGrid": {
                "factor": "0.5",
                "unit": "kWh",
                "scope": 2,
                "source": "Test Source",
            },
        },
    }


# ==================== PERSISTENCE DOUBLES ====================

class InMemoryFrameworkRepository:
    """Dict-backed FrameworkRepository."""

    def __init__(self):
        self.instances: Dict[Tuple[str, FrameworkId], FrameworkInstance] = {}
        self.save_count = 0

    def load_framework_instance(
        self, company_id: str, framework_id: FrameworkId,
    ) -> Optional[FrameworkInstance]:
        return self.instances.get((company_id, framework_id))

    def save_framework_instance(self, instance: FrameworkInstance) -> None:
        self.save_count += 1
        self.instances[(instance.company_id, instance.framework_id)] = instance

    def load_all_framework_scores(
        self, company_id: str,
    ) -> Mapping[FrameworkId, FrameworkScore]:
        return {
            fw: instance.to_framework_score()
            for (company, fw), instance in self.instances.items()
            if company == company_id
        }


class InMemoryEventSink:
    """Collects published events."""

    def __init__(self):
        self.events: List[FrameworkUpdatedEvent] = []

    def publish(self, event: FrameworkUpdatedEvent) -> None:
        self.events.append(event)


class InMemoryActivitySource:
    """ActivityRecordSource keyed by (company_id, period)."""

    def __init__(self, records: Dict[Tuple[str, str], List[ActivityRecord]]):
        self.records = records

    def load_activity_records(self, company_id: str, period: str) -> List[ActivityRecord]:
        return list(self.records.get((company_id, period), []))


@pytest.fixture
def repository() -> InMemoryFrameworkRepository:
    return InMemoryFrameworkRepository()


@pytest.fixture
def repository_factory():
    """Creates additional empty repositories (e.g. import targets)."""
    return InMemoryFrameworkRepository


@pytest.fixture
def event_sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def activity_source():
    """Builds an ActivityRecordSource from {(company, period): records}."""
    return InMemoryActivitySource


# ==================== SAMPLE DATA ====================

@pytest.fixture
def gri_tree() -> Dict:
    """Three sections, eight fields, three completed."""
    return {
        "general": {
            "name": "General Disclosures",
            "2-1": {"name": "Organizational details", "value": "Acme plc", "completed": True},
            "2-2": {"name": "Entities included", "value": "Acme group", "completed": True},
            "2-3": {"name": "Reporting period", "value": "", "completed": False},
        },
        "environment": {
            "305": {
                "305-1": {"name": "Direct GHG emissions", "value": 0, "completed": True},
                "305-2": {"name": "Energy indirect GHG emissions", "value": None, "completed": False},
                "305-3": {"name": "Other indirect GHG emissions", "value": "  ", "completed": False},
            },
        },
        "social": {
            "401-1": {"name": "New employee hires", "completed": False},
            "405-1": {"name": "Diversity of governance bodies", "completed": False},
        },
    }
