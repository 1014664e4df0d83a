"""
Tests for entity records.
"""

import pytest


class TestEntities:

    def test_from_dict_ignores_unknown_keys(self):
        from qbot.backend.entities import Defect

        defect = Defect.from_dict({
            "type": "crack",
            "severity": "critical",
            "confidence": 91,
            "created_by": "operator@example.com",
        })

        assert defect.type == "crack"
        assert defect.confidence == 91
        assert "created_by" not in defect.to_dict()

    def test_defect_label(self):
        from qbot.backend.entities import Defect

        assert Defect(type="incomplete_assembly", severity="major").label == "incomplete assembly"

    def test_inspection_defaults(self):
        from qbot.backend.entities import Inspection

        record = Inspection(batch_number="B-1", equipment_id="LINE-A1").to_dict()

        assert record["status"] == "completed"
        assert record["defect_count"] == 0

    @pytest.mark.parametrize("value,expected", [
        ("surface_scratch", "surface scratch"),
        ("dent", "dent"),
        (None, ""),
    ])
    def test_humanize(self, value, expected):
        from qbot.backend.entities import humanize

        assert humanize(value) == expected

    def test_enum_lists(self):
        from qbot.backend.entities import DEFECT_TYPES, SEVERITIES, REPORT_TYPES

        assert len(DEFECT_TYPES) == 11
        assert DEFECT_TYPES[-1] == "other"
        assert SEVERITIES == ["critical", "major", "minor"]
        assert "weekly_quality" in REPORT_TYPES


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
