"""
Entity records stored in the backend.

Every record carries an `id` and a `created_date` (ISO-8601) assigned by the
backend when it is created. Listings are returned newest-first.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


# ============ ENUMERATIONS ============

class DefectType(str, Enum):
    SURFACE_SCRATCH = "surface_scratch"
    DENT = "dent"
    DISCOLORATION = "discoloration"
    CRACK = "crack"
    CONTAMINATION = "contamination"
    DIMENSIONAL_ERROR = "dimensional_error"
    INCOMPLETE_ASSEMBLY = "incomplete_assembly"
    BURR = "burr"
    VOID = "void"
    MISALIGNMENT = "misalignment"
    OTHER = "other"


class Severity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class InspectionStatus(str, Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"
    REVIEW_REQUIRED = "review_required"


class EquipmentStatus(str, Enum):
    OPERATIONAL = "operational"
    MAINTENANCE = "maintenance"
    OFFLINE = "offline"
    ERROR = "error"


class ReportType(str, Enum):
    DAILY_SUMMARY = "daily_summary"
    WEEKLY_QUALITY = "weekly_quality"
    MONTHLY_ANALYSIS = "monthly_analysis"
    DEFECT_ANALYSIS = "defect_analysis"
    EQUIPMENT_PERFORMANCE = "equipment_performance"


DEFECT_TYPES = [t.value for t in DefectType]
SEVERITIES = [s.value for s in Severity]
REPORT_TYPES = [r.value for r in ReportType]


def humanize(value: Optional[str]) -> str:
    """'surface_scratch' -> 'surface scratch'."""
    return (value or "").replace("_", " ")


# ============ RECORDS ============

class _Record:
    """Shared dict conversion for entity dataclasses."""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict):
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class Inspection(_Record):
    batch_number: str
    equipment_id: str
    station: str = ""
    operator: str = ""
    status: str = InspectionStatus.COMPLETED.value
    quality_score: float = 0.0
    defect_count: int = 0
    image_url: str = ""
    id: str = ""
    created_date: str = ""


@dataclass
class Defect(_Record):
    type: str
    severity: str
    confidence: float = 0.0
    description: str = ""
    root_cause: str = ""
    corrective_action: str = ""
    inspection_id: str = ""
    id: str = ""
    created_date: str = ""

    @property
    def label(self) -> str:
        return humanize(self.type)


@dataclass
class Equipment(_Record):
    name: str
    location: str = ""
    status: str = EquipmentStatus.OPERATIONAL.value
    uptime_percentage: Optional[float] = None
    total_inspections: int = 0
    id: str = ""
    created_date: str = ""


@dataclass
class Report(_Record):
    title: str
    type: str
    date_from: str
    date_to: str
    summary: str = ""
    content: str = ""
    total_inspections: int = 0
    total_defects: int = 0
    average_quality_score: float = 0.0
    status: str = "completed"
    id: str = ""
    created_date: str = ""


@dataclass
class UserProfile(_Record):
    full_name: str = ""
    email: str = ""
    role: str = "user"
    id: str = ""
