# -*- coding: utf-8 -*-
"""
Exception hierarchy tests: error codes, context and serialization.
"""

import json

import pytest

from esgcore.exceptions import (
    CalculationException,
    ComplianceException,
    ConfigurationError,
    EsgCoreException,
    ForecastException,
    InsufficientHistoryError,
    InvalidQuantityError,
    MalformedTreeError,
    MissingFactorError,
    UnknownFrameworkError,
    format_exception_chain,
)


class TestHierarchy:

    @pytest.mark.parametrize("exc_type,parent", [
        (InvalidQuantityError, CalculationException),
        (MissingFactorError, CalculationException),
        (MalformedTreeError, ComplianceException),
        (UnknownFrameworkError, ComplianceException),
        (InsufficientHistoryError, ForecastException),
        (ConfigurationError, EsgCoreException),
    ])
    def test_parents(self, exc_type, parent):
        assert issubclass(exc_type, parent)
        assert issubclass(exc_type, EsgCoreException)

    def test_not_value_errors(self):
        assert not issubclass(InvalidQuantityError, ValueError)


class TestErrorCodes:

    def test_generated_codes(self):
        assert InvalidQuantityError("x").error_code == "ESG_CALC_INVALID_QUANTITY_ERROR"
        assert MalformedTreeError("x").error_code == "ESG_COMPLIANCE_MALFORMED_TREE_ERROR"
        assert InsufficientHistoryError("x").error_code == "ESG_FORECAST_INSUFFICIENT_HISTORY_ERROR"
        assert ConfigurationError("x").error_code == "ESG_CONFIGURATION_ERROR"

    def test_explicit_code(self):
        assert EsgCoreException("x", error_code="ESG_CUSTOM").error_code == "ESG_CUSTOM"

    def test_str(self):
        assert str(ConfigurationError("bad registry")) == "[ESG_CONFIGURATION_ERROR] - bad registry"


class TestContext:

    def test_invalid_quantity_context(self):
        exc = InvalidQuantityError("negative", field="dieselLiters", value=-5)
        assert exc.context == {"field": "dieselLiters", "value": "-5"}
        assert exc.field == "dieselLiters"
        assert exc.value == -5

    def test_missing_factor_context(self):
        exc = MissingFactorError("none", category="fuels", key="jet")
        assert exc.context == {"category": "fuels", "key": "jet"}

    def test_malformed_tree_path(self):
        assert MalformedTreeError("bad", path="general").context == {"path": "general"}

    def test_to_json(self):
        payload = json.loads(MissingFactorError("none", category="fuels").to_json())
        assert payload["error_type"] == "MissingFactorError"
        assert payload["context"] == {"category": "fuels"}


class TestFormatExceptionChain:

    def test_chain(self):
        try:
            try:
                raise KeyError("factor")
            except KeyError as e:
                raise ConfigurationError("Invalid entry") from e
        except ConfigurationError as exc:
            text = format_exception_chain(exc)
        assert "[ESG_CONFIGURATION_ERROR] - Invalid entry" in text
        assert "KeyError" in text
