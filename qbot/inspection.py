"""
Inspection workflow: analyse an uploaded image, then persist the result.

Usage:
    from qbot.inspection import InspectionForm, run_analysis, save_inspection

    analysis = run_analysis(image_url)
    inspection = save_inspection(form, image_url, analysis)
"""

import logging
from dataclasses import dataclass, asdict
from typing import Optional

from qbot.errors import InspectionValidationError
from qbot.backend.entities import Inspection, InspectionStatus
from qbot.backend.store import EntityStore, get_store
from qbot.vision.llm_defect_detector import InspectionAnalysis, analyze_image

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "Please upload an image first"
INCOMPLETE_MESSAGE = "Please complete an inspection first"
MISSING_FIELDS_MESSAGE = "Please fill in batch number and equipment ID"


@dataclass
class InspectionForm:
    """Operator-entered inspection details."""
    batch_number: str = ""
    equipment_id: str = ""
    station: str = ""
    operator: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def run_analysis(image_url: Optional[str]) -> InspectionAnalysis:
    """Send the uploaded image to the vision model."""
    if not image_url:
        raise InspectionValidationError(NO_IMAGE_MESSAGE)
    analysis = analyze_image(image_url)
    if analysis.ok:
        logger.info(
            "Analysis complete: score=%.1f defects=%d",
            analysis.quality_score, len(analysis.defects),
        )
    return analysis


def build_inspection_record(
    form: InspectionForm,
    image_url: str,
    analysis: InspectionAnalysis,
) -> Inspection:
    """Map the form and the model's result into an Inspection record."""
    return Inspection(
        batch_number=form.batch_number.strip(),
        equipment_id=form.equipment_id.strip(),
        station=form.station.strip(),
        operator=form.operator.strip(),
        status=InspectionStatus.COMPLETED.value,
        quality_score=analysis.quality_score,
        defect_count=len(analysis.defects),
        image_url=image_url,
    )


def save_inspection(
    form: InspectionForm,
    image_url: Optional[str],
    analysis: Optional[InspectionAnalysis],
    store: Optional[EntityStore] = None,
) -> dict:
    """
    Persist an analysed inspection and its defects.

    Defects are bulk-created after the inspection so each can carry
    the new inspection's id.

    Returns:
        The created inspection record
    """
    if not image_url or analysis is None or not analysis.ok:
        raise InspectionValidationError(INCOMPLETE_MESSAGE)
    if not form.batch_number.strip() or not form.equipment_id.strip():
        raise InspectionValidationError(MISSING_FIELDS_MESSAGE)

    store = store or get_store()
    record = build_inspection_record(form, image_url, analysis).to_dict()
    # id and created_date are assigned by the backend
    record.pop("id")
    record.pop("created_date")
    inspection = store.create("Inspection", record)

    if analysis.defects:
        defects = [
            {**d.to_dict(), "inspection_id": inspection["id"]}
            for d in analysis.defects
        ]
        store.bulk_create("Defect", defects)

    logger.info(
        "Saved inspection %s (batch %s, %d defects)",
        inspection["id"], form.batch_number, len(analysis.defects),
    )
    return inspection
