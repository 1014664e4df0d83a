"""
Tests for the inspection workflow (analyse, then save).
"""

import pytest
from unittest.mock import patch, MagicMock


@pytest.fixture
def store(tmp_path):
    from qbot.backend.store import LocalEntityStore
    return LocalEntityStore(str(tmp_path))


@pytest.fixture
def form():
    from qbot.inspection import InspectionForm
    return InspectionForm(
        batch_number="B-2024-001",
        equipment_id="LINE-A1",
        station="Final QC",
        operator="John Doe",
    )


@pytest.fixture
def analysis_with_defects():
    from qbot.vision.llm_defect_detector import InspectionAnalysis, DetectedDefect
    return InspectionAnalysis(
        quality_score=76.0,
        defects=[
            DetectedDefect(type="dent", severity="major", confidence=88,
                           description="Dent on the housing", corrective_action="Rework"),
            DetectedDefect(type="burr", severity="minor", confidence=64),
        ],
    )


class TestRunAnalysis:
    """Tests for run_analysis."""

    def test_requires_image(self):
        from qbot.inspection import run_analysis, NO_IMAGE_MESSAGE
        from qbot.errors import InspectionValidationError

        with pytest.raises(InspectionValidationError, match=NO_IMAGE_MESSAGE):
            run_analysis(None)

    @patch('qbot.inspection.analyze_image')
    def test_delegates_to_detector(self, mock_analyze, analysis_with_defects):
        from qbot.inspection import run_analysis

        mock_analyze.return_value = analysis_with_defects

        result = run_analysis("https://cdn.example.com/part.png")

        mock_analyze.assert_called_once_with("https://cdn.example.com/part.png")
        assert result is analysis_with_defects


class TestSaveInspection:
    """Tests for save_inspection."""

    def test_requires_analysis(self, form, store):
        from qbot.inspection import save_inspection, INCOMPLETE_MESSAGE
        from qbot.errors import InspectionValidationError

        with pytest.raises(InspectionValidationError, match=INCOMPLETE_MESSAGE):
            save_inspection(form, "img.png", None, store=store)

    def test_requires_image(self, form, store, analysis_with_defects):
        from qbot.inspection import save_inspection, INCOMPLETE_MESSAGE
        from qbot.errors import InspectionValidationError

        with pytest.raises(InspectionValidationError, match=INCOMPLETE_MESSAGE):
            save_inspection(form, None, analysis_with_defects, store=store)

    def test_failed_analysis_cannot_be_saved(self, form, store):
        from qbot.inspection import save_inspection
        from qbot.errors import InspectionValidationError
        from qbot.vision.llm_defect_detector import InspectionAnalysis

        with pytest.raises(InspectionValidationError):
            save_inspection(form, "img.png", InspectionAnalysis(error="failed"), store=store)

    @pytest.mark.parametrize("batch,equipment", [("", "LINE-A1"), ("B-1", ""), ("  ", "LINE-A1")])
    def test_requires_batch_and_equipment(self, store, analysis_with_defects, batch, equipment):
        from qbot.inspection import InspectionForm, save_inspection, MISSING_FIELDS_MESSAGE
        from qbot.errors import InspectionValidationError

        form = InspectionForm(batch_number=batch, equipment_id=equipment)
        with pytest.raises(InspectionValidationError, match=MISSING_FIELDS_MESSAGE):
            save_inspection(form, "img.png", analysis_with_defects, store=store)

        assert store.list("Inspection") == []

    def test_saves_inspection_and_defects(self, form, store, analysis_with_defects):
        from qbot.inspection import save_inspection

        inspection = save_inspection(form, "img.png", analysis_with_defects, store=store)

        assert inspection["status"] == "completed"
        assert inspection["quality_score"] == 76.0
        assert inspection["defect_count"] == 2
        assert inspection["image_url"] == "img.png"
        assert inspection["batch_number"] == "B-2024-001"

        defects = store.list("Defect")
        assert len(defects) == 2
        assert all(d["inspection_id"] == inspection["id"] for d in defects)
        assert {d["type"] for d in defects} == {"dent", "burr"}

    def test_no_defects_skips_bulk_create(self, form):
        from qbot.inspection import save_inspection
        from qbot.vision.llm_defect_detector import InspectionAnalysis

        store = MagicMock()
        store.create.return_value = {"id": "abc123"}

        save_inspection(form, "img.png", InspectionAnalysis(quality_score=99), store=store)

        entity, payload = store.create.call_args.args
        assert entity == "Inspection"
        assert payload["defect_count"] == 0
        assert "id" not in payload
        store.bulk_create.assert_not_called()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
