"""
Tests for quality analytics.

Records are plain dicts, newest-first, as returned by the store.
"""

import csv
import io
import pytest


# ============ FIXTURES ============

@pytest.fixture
def inspections():
    """Newest-first inspections."""
    return [
        {"id": "i3", "batch_number": "B-003", "equipment_id": "LINE-A1", "operator": "Ana Ruiz",
         "quality_score": 70, "defect_count": 2, "status": "completed",
         "created_date": "2024-03-03T15:30:00"},
        {"id": "i2", "batch_number": "B-002", "equipment_id": "LINE-B2", "operator": "John Doe",
         "quality_score": 85, "defect_count": 1, "status": "review_required",
         "created_date": "2024-03-02T09:05:00"},
        {"id": "i1", "batch_number": "B-001", "equipment_id": "line-a1", "operator": "",
         "quality_score": 96, "defect_count": 0, "status": "completed",
         "created_date": "2024-03-01T08:00:00"},
    ]


@pytest.fixture
def defects():
    return [
        {"id": "d3", "inspection_id": "i3abcdef1234", "type": "surface_scratch", "severity": "critical",
         "confidence": 90, "description": "Deep scratch", "created_date": "2024-03-03T15:31:00"},
        {"id": "d2", "inspection_id": "i3abcdef1234", "type": "dent", "severity": "minor",
         "confidence": 70, "description": "", "created_date": "2024-03-03T15:31:00"},
        {"id": "d1", "inspection_id": "i2abcdef5678", "type": "surface_scratch", "severity": "major",
         "confidence": 80, "description": "Light scratch", "created_date": "2024-03-02T09:06:00"},
    ]


@pytest.fixture
def equipment():
    return [
        {"id": "e1", "name": "Camera 1", "location": "Line A", "status": "operational",
         "uptime_percentage": 99.2, "total_inspections": 120},
        {"id": "e2", "name": "Camera 2", "location": "Line B", "status": "maintenance"},
    ]


# ============ DASHBOARD ============

class TestDashboard:
    """Tests for dashboard metrics, chart data and alerts."""

    def test_metrics(self, inspections, defects, equipment):
        from qbot.analytics import dashboard_metrics

        metrics = dashboard_metrics(inspections, defects, equipment)

        assert metrics.total_inspections == 3
        assert metrics.total_defects == 3
        assert metrics.average_quality_score == 83.7
        assert metrics.equipment_label == "1/2"

    def test_metrics_empty(self):
        from qbot.analytics import dashboard_metrics

        metrics = dashboard_metrics([], [], [])

        assert metrics.average_quality_score == 0
        assert metrics.equipment_label == "0/0"

    def test_chart_data_is_oldest_first(self, inspections):
        from qbot.analytics import quality_chart_data

        data = quality_chart_data(inspections)

        assert [d["score"] for d in data] == [96, 85, 70]
        assert data[0]["time"] == "08:00"

    def test_chart_data_window(self, inspections):
        from qbot.analytics import quality_chart_data

        data = quality_chart_data(inspections, points=2)

        assert [d["score"] for d in data] == [85, 70]

    def test_alerts(self, defects):
        from qbot.analytics import build_alerts

        alerts = build_alerts(defects)

        assert len(alerts) == 3
        assert alerts[0].title == "surface scratch Detected"
        assert alerts[0].message == "Deep scratch"
        assert alerts[0].severity == "critical"
        assert alerts[0].location == "Inspection i3abcdef"
        assert alerts[0].time == "15:31"
        # Empty description falls back to the severity
        assert alerts[1].message == "minor defect found"

    def test_alert_count(self, defects):
        from qbot.analytics import build_alerts

        assert len(build_alerts(defects, count=1)) == 1

    def test_equipment_rows_defaults(self, equipment):
        from qbot.analytics import equipment_status_rows

        rows = equipment_status_rows(equipment)

        assert rows[0]["uptime"] == 99.2
        assert rows[1]["uptime"] == 95
        assert rows[1]["inspections"] == 0


# ============ DEFECT ANALYSIS ============

class TestDefectAnalysis:
    """Tests for distributions and critical defect listing."""

    def test_type_counts(self, defects):
        from qbot.analytics import defect_type_counts

        assert defect_type_counts(defects) == [
            {"type": "surface scratch", "count": 2},
            {"type": "dent", "count": 1},
        ]

    def test_severity_counts_always_has_three(self):
        from qbot.analytics import severity_counts

        assert severity_counts([]) == [
            {"severity": "critical", "count": 0},
            {"severity": "major", "count": 0},
            {"severity": "minor", "count": 0},
        ]

    def test_severity_counts(self, defects):
        from qbot.analytics import severity_counts

        counts = {row["severity"]: row["count"] for row in severity_counts(defects)}
        assert counts == {"critical": 1, "major": 1, "minor": 1}

    def test_quality_trend_numbered(self, inspections):
        from qbot.analytics import quality_trend

        trend = quality_trend(inspections)

        assert trend == [
            {"inspection": 1, "score": 96},
            {"inspection": 2, "score": 85},
            {"inspection": 3, "score": 70},
        ]

    def test_average_confidence(self, defects):
        from qbot.analytics import average_confidence

        assert average_confidence(defects) == 80.0
        assert average_confidence([]) == 0

    def test_critical_defects(self, defects):
        from qbot.analytics import critical_defects

        assert [d["id"] for d in critical_defects(defects)] == ["d3"]


# ============ PREDICTIONS ============

class TestPredictions:
    """Tests for risk prediction."""

    @pytest.mark.parametrize("score,level", [(79.9, "high"), (80, "medium"), (89.9, "medium"), (90, "low")])
    def test_risk_level(self, score, level):
        from qbot.analytics import risk_level

        assert risk_level(score) == level

    def test_predict_risk(self, inspections, defects):
        from qbot.analytics import predict_risk

        prediction = predict_risk(inspections, defects)

        assert prediction.recent_quality == pytest.approx(83.67, abs=0.01)
        assert prediction.risk_level == "medium"
        assert prediction.defect_rate == pytest.approx(100.0)
        assert prediction.critical_rate == pytest.approx(33.33, abs=0.01)
        assert prediction.trend[0] == {"time": 1, "risk": 4, "quality": 96}
        # Scores fall from 96 to 70
        assert prediction.trend_slope < 0

        titles = [f.title for f in prediction.findings]
        assert titles == [
            "Quality Degradation Risk",
            "High Critical Defect Rate",
            "Increased Defect Frequency",
        ]

    def test_optimal_performance(self):
        from qbot.analytics import predict_risk

        inspections = [{"quality_score": 97, "created_date": "2024-03-01T08:00:00"}] * 20
        prediction = predict_risk(inspections, [])

        assert prediction.risk_level == "low"
        assert [f.title for f in prediction.findings] == ["Optimal Performance"]

    def test_empty_data(self):
        from qbot.analytics import predict_risk

        prediction = predict_risk([], [])

        assert prediction.defect_rate == 0
        assert prediction.critical_rate == 0
        assert prediction.risk_level == "high"
        assert prediction.trend == []
        assert prediction.trend_slope == 0

    def test_recent_window_uses_ten_newest(self):
        from qbot.analytics import predict_risk

        inspections = [{"quality_score": 100}] * 10 + [{"quality_score": 0}] * 10
        assert predict_risk(inspections, []).recent_quality == 100


# ============ HISTORY ============

class TestHistory:
    """Tests for history filtering and export."""

    def test_search_batch_case_insensitive(self, inspections):
        from qbot.analytics import filter_inspections

        assert [i["id"] for i in filter_inspections(inspections, search="b-002")] == ["i2"]

    def test_search_operator(self, inspections):
        from qbot.analytics import filter_inspections

        assert [i["id"] for i in filter_inspections(inspections, search="ruiz")] == ["i3"]

    def test_equipment_filter(self, inspections):
        from qbot.analytics import filter_inspections

        assert [i["id"] for i in filter_inspections(inspections, equipment="LINE-A")] == ["i3", "i1"]

    def test_combined_filters(self, inspections):
        from qbot.analytics import filter_inspections

        assert filter_inspections(inspections, search="john", equipment="a1") == []

    def test_no_filters(self, inspections):
        from qbot.analytics import filter_inspections

        assert filter_inspections(inspections) == inspections

    @pytest.mark.parametrize("score,band", [(95, "green"), (90, "green"), (85, "yellow"), (79, "red"), (None, "red")])
    def test_score_band(self, score, band):
        from qbot.analytics import score_band

        assert score_band(score) == band

    def test_csv_export(self, inspections):
        from qbot.analytics import inspections_to_csv, HISTORY_COLUMNS

        rows = list(csv.DictReader(io.StringIO(inspections_to_csv(inspections))))

        assert len(rows) == 3
        assert list(rows[0].keys()) == HISTORY_COLUMNS
        assert rows[0]["batch_number"] == "B-003"


# ============ REPORTS ============

class TestReportStats:
    """Tests for date-range report statistics."""

    def test_range_is_inclusive(self, inspections):
        from qbot.analytics import filter_by_date_range

        records = filter_by_date_range(inspections, "2024-03-01", "2024-03-02")

        assert [r["id"] for r in records] == ["i2", "i1"]

    def test_report_stats(self, inspections, defects):
        from qbot.analytics import report_stats

        stats = report_stats(inspections, defects, "2024-03-02", "2024-03-03")

        assert stats.total_inspections == 2
        assert stats.total_defects == 3
        assert stats.average_quality == pytest.approx(77.5)
        assert stats.defects_by_type == {"surface_scratch": 2, "dent": 1}
        assert (stats.critical, stats.major, stats.minor) == (1, 1, 1)

    def test_empty_range(self, inspections, defects):
        from qbot.analytics import report_stats

        stats = report_stats(inspections, defects, "2023-01-01", "2023-01-31")

        assert stats.total_inspections == 0
        assert stats.average_quality == 0
        assert stats.defects_by_type == {}

    def test_timezone_aware_dates(self):
        from qbot.analytics import filter_by_date_range

        records = [{"created_date": "2024-03-01T23:59:59Z"}]
        assert filter_by_date_range(records, "2024-03-01", "2024-03-01") == records


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
