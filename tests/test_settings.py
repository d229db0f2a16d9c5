import logging

import pytest
from pydantic import ValidationError

import utils
from infinite import count
from models import EngineSettings, EnumerationRequest, PipelineRequest, PipelineStep, load_settings
from utils import (
    clear_performance_metrics,
    configure_logging,
    drain_limited,
    get_performance_summary,
    measure_performance,
    run_pipeline,
)


class TestEngineSettings:
    """Test configuration loading and validation"""

    def test_defaults(self):
        settings = load_settings({})
        assert settings.pool_limit is None
        assert settings.default_result_limit == 100
        assert settings.max_result_limit == 10_000
        assert settings.log_level == "INFO"

    def test_environment_overrides(self):
        settings = load_settings({
            "LAZYITER_POOL_LIMIT": "10",
            "LAZYITER_DEFAULT_LIMIT": "5",
            "LAZYITER_MAX_LIMIT": "50",
            "LAZYITER_LOG_LEVEL": "debug",
        })
        assert settings.pool_limit == 10
        assert settings.default_result_limit == 5
        assert settings.max_result_limit == 50
        assert settings.log_level == "DEBUG"

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("LAZYITER_POOL_LIMIT", "7")
        assert load_settings().pool_limit == 7

    @pytest.mark.parametrize("env", [
        {"LAZYITER_POOL_LIMIT": "0"},
        {"LAZYITER_POOL_LIMIT": "many"},
        {"LAZYITER_LOG_LEVEL": "LOUD"},
        {"LAZYITER_DEFAULT_LIMIT": "500", "LAZYITER_MAX_LIMIT": "100"},
    ])
    def test_invalid_values_rejected(self, env):
        with pytest.raises(ValidationError):
            load_settings(env)

    def test_resolve_limit(self):
        settings = EngineSettings(default_result_limit=10, max_result_limit=50)
        assert settings.resolve_limit(None) == 10
        assert settings.resolve_limit(20) == 20
        assert settings.resolve_limit(500) == 50


class TestRequestModels:
    """Test request payload validation"""

    def test_single_pool_kinds(self):
        with pytest.raises(ValidationError):
            EnumerationRequest(kind="permutations", pools=[[1], [2]])
        with pytest.raises(ValidationError):
            EnumerationRequest(kind="combinations", pools=[[1, 2]])
        request = EnumerationRequest(kind="product", pools=[])
        assert request.pools == []

    def test_step_requirements(self):
        with pytest.raises(ValidationError):
            PipelineStep(type="takewhile")
        with pytest.raises(ValidationError):
            PipelineStep(type="map")
        assert PipelineStep(type="pairwise").predicate is None


class TestPerformanceUtils:
    """Test measurement helpers"""

    def setup_method(self):
        clear_performance_metrics()

    def test_measure_performance_records_metrics(self):
        result, info = measure_performance("sum", sum, range(100))
        assert result == 4950
        assert info["success"] is True
        assert info["execution_time_ms"] >= 0
        summary = get_performance_summary()
        assert summary["total_operations"] == 1

    def test_measure_performance_reraises(self):
        with pytest.raises(ZeroDivisionError):
            measure_performance("boom", lambda: 1 / 0)
        summary = get_performance_summary()
        assert summary["total_operations"] == 1
        assert summary["failed_operations"] == 1

    def test_empty_summary(self):
        assert get_performance_summary()["avg_time_ms"] == 0.0

    def test_metrics_hold_totals_only(self):
        """Repeated requests grow the counters, not the stored state"""
        request = PipelineRequest(source={"values": [1]})
        settings = EngineSettings()
        for _ in range(50):
            run_pipeline(request, settings)
        assert get_performance_summary()["total_operations"] == 50
        assert len(utils._performance_metrics) == 4
        assert all(isinstance(v, (int, float)) for v in utils._performance_metrics.values())


class TestDrainLimited:
    """Test bounded draining of pipelines"""

    def test_input_ending_within_limit(self):
        assert drain_limited([1, 2, 3], 5) == ([1, 2, 3], False)
        assert drain_limited([], 5) == ([], False)

    def test_limit_reached_is_unknown(self):
        assert drain_limited([1, 2, 3], 3) == ([1, 2, 3], None)
        assert drain_limited(count(), 3) == ([0, 1, 2], None)

    def test_never_pulls_past_limit(self, naturals):
        log = []
        items, truncated = drain_limited(naturals(log), 3)
        assert items == [0, 1, 2]
        assert log == [0, 1, 2], f"Drain pulled past the limit: {log}"

    def test_sparse_filter_over_infinite_source(self):
        """All requested results exist, so the run must finish without a further pull"""
        request = PipelineRequest(
            source={"kind": "count"},
            steps=[{"type": "filter", "predicate": {"op": "lt", "value": 5}}],
            limit=5
        )
        outcome = run_pipeline(request, EngineSettings())
        assert outcome["results"] == [0, 1, 2, 3, 4]
        assert outcome["truncated"] is None


class TestLoggingConfiguration:
    def test_configure_logging_applies_level(self):
        root = logging.getLogger()
        previous = root.level
        try:
            configure_logging(EngineSettings(log_level="debug"))
            assert root.level == logging.DEBUG
            configure_logging(EngineSettings(log_level="WARNING"))
            assert root.level == logging.WARNING
        finally:
            root.setLevel(previous)
