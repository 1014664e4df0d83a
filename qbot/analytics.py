"""
Quality analytics over fetched entity lists.

All inputs are plain record dicts as returned by the store, ordered
newest-first. Every function is pure: it only filters and aggregates.
"""

import io
import csv
from datetime import datetime, date
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field

import numpy as np

from qbot.config import config
from qbot.backend.entities import SEVERITIES, EquipmentStatus, Severity, humanize


# ============ DATE HELPERS ============

def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; returns None if missing or malformed."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_time(value: Optional[str]) -> str:
    """'2024-03-01T14:05:09' -> '14:05'."""
    parsed = parse_date(value)
    return parsed.strftime("%H:%M") if parsed else ""


def format_date(value: Optional[str]) -> str:
    parsed = parse_date(value)
    return parsed.strftime("%Y-%m-%d") if parsed else ""


def _score(record: dict) -> float:
    return float(record.get("quality_score") or 0)


def average_quality(inspections: List[dict]) -> float:
    """Mean quality score (missing scores count as 0); 0 when empty."""
    if not inspections:
        return 0.0
    return float(np.mean([_score(i) for i in inspections]))


# ============ DASHBOARD ============

@dataclass
class DashboardMetrics:
    total_inspections: int
    total_defects: int
    average_quality_score: float
    active_equipment: int
    total_equipment: int

    @property
    def equipment_label(self) -> str:
        return f"{self.active_equipment}/{self.total_equipment}"


@dataclass
class Alert:
    """Dashboard alert derived from a recently detected defect."""
    id: str
    title: str
    message: str
    severity: str
    time: str
    location: str


def dashboard_metrics(
    inspections: List[dict],
    defects: List[dict],
    equipment: List[dict],
) -> DashboardMetrics:
    active = sum(1 for e in equipment if e.get("status") == EquipmentStatus.OPERATIONAL.value)
    return DashboardMetrics(
        total_inspections=len(inspections),
        total_defects=len(defects),
        average_quality_score=round(average_quality(inspections), 1),
        active_equipment=active,
        total_equipment=len(equipment),
    )


def quality_chart_data(inspections: List[dict], points: Optional[int] = None) -> List[Dict[str, Any]]:
    """Most recent inspections, oldest-first, as time/score points."""
    points = points or config["dashboard"]["chart_points"]
    recent = list(reversed(inspections[:points]))
    return [
        {"time": format_time(i.get("created_date")), "score": _score(i)}
        for i in recent
    ]


def build_alerts(defects: List[dict], count: Optional[int] = None) -> List[Alert]:
    count = count or config["dashboard"]["alert_count"]
    alerts = []
    for defect in defects[:count]:
        severity = defect.get("severity")
        if severity not in SEVERITIES:
            severity = Severity.MINOR.value
        inspection_id = str(defect.get("inspection_id") or "")
        alerts.append(Alert(
            id=str(defect.get("id", "")),
            title=f"{humanize(defect.get('type'))} Detected",
            message=defect.get("description") or f"{defect.get('severity')} defect found",
            severity=severity,
            time=format_time(defect.get("created_date")),
            location=f"Inspection {inspection_id[:8]}",
        ))
    return alerts


def equipment_status_rows(equipment: List[dict]) -> List[Dict[str, Any]]:
    default_uptime = config["thresholds"]["default_uptime"]
    return [
        {
            "id": e.get("id"),
            "name": e.get("name", ""),
            "location": e.get("location", ""),
            "status": e.get("status", EquipmentStatus.OFFLINE.value),
            "uptime": e.get("uptime_percentage") or default_uptime,
            "inspections": e.get("total_inspections") or 0,
        }
        for e in equipment
    ]


# ============ DEFECT ANALYSIS ============

def defect_type_counts(defects: List[dict]) -> List[Dict[str, Any]]:
    """Count defects per type, in first-seen order."""
    counts: Dict[str, int] = {}
    for d in defects:
        counts[d.get("type")] = counts.get(d.get("type"), 0) + 1
    return [{"type": humanize(t), "count": c} for t, c in counts.items()]


def severity_counts(defects: List[dict]) -> List[Dict[str, Any]]:
    """Count defects per severity; critical/major/minor are always present."""
    counts = {s: 0 for s in (Severity.CRITICAL.value, Severity.MAJOR.value, Severity.MINOR.value)}
    for d in defects:
        counts[d.get("severity")] = counts.get(d.get("severity"), 0) + 1
    return [{"severity": s, "count": c} for s, c in counts.items()]


def quality_trend(inspections: List[dict], points: Optional[int] = None) -> List[Dict[str, Any]]:
    """Most recent inspections, oldest-first, numbered from 1."""
    points = points or config["dashboard"]["trend_points"]
    recent = list(reversed(inspections[:points]))
    return [{"inspection": n, "score": _score(i)} for n, i in enumerate(recent, 1)]


def average_confidence(defects: List[dict]) -> float:
    if not defects:
        return 0.0
    return round(float(np.mean([float(d.get("confidence") or 0) for d in defects])), 1)


def critical_defects(defects: List[dict], limit: int = 5) -> List[dict]:
    return [d for d in defects if d.get("severity") == Severity.CRITICAL.value][:limit]


# ============ PREDICTIONS ============

RISK_STYLES = {
    "high": "error",
    "medium": "warning",
    "low": "success",
}

RECOMMENDED_ACTIONS = [
    ("Process Parameter Review",
     "Analyze temperature, pressure, and speed settings for optimization opportunities"),
    ("Equipment Calibration",
     "Schedule calibration check for inspection equipment to ensure accuracy"),
    ("Operator Training",
     "Conduct refresher training on quality standards and inspection procedures"),
    ("Root Cause Analysis",
     "Investigate recurring defect patterns to identify systematic issues"),
]


@dataclass
class RiskFinding:
    title: str
    message: str
    level: str  # warning, error, info, success


@dataclass
class PredictionSummary:
    recent_quality: float
    defect_rate: float
    critical_rate: float
    risk_level: str
    trend: List[Dict[str, Any]] = field(default_factory=list)
    trend_slope: float = 0.0
    findings: List[RiskFinding] = field(default_factory=list)


def risk_level(recent_quality: float) -> str:
    thresholds = config["thresholds"]
    if recent_quality < thresholds["quality_warn"]:
        return "high"
    if recent_quality < thresholds["quality_good"]:
        return "medium"
    return "low"


def trend_slope(scores: List[float]) -> float:
    """Least-squares slope of scores per inspection (0 for < 2 points)."""
    if len(scores) < 2:
        return 0.0
    slope, _ = np.polyfit(np.arange(len(scores)), np.asarray(scores, dtype=float), 1)
    return float(slope)


def risk_findings(level: str, critical_rate: float, defect_rate: float) -> List[RiskFinding]:
    thresholds = config["thresholds"]
    findings = []
    if level != "low":
        findings.append(RiskFinding(
            "Quality Degradation Risk",
            "Recent quality scores show a declining trend. Recommended to review "
            "process parameters and conduct equipment inspection.",
            "warning",
        ))
    if critical_rate > thresholds["critical_rate"]:
        findings.append(RiskFinding(
            "High Critical Defect Rate",
            "Critical defect rate is elevated. Immediate review of production line required.",
            "error",
        ))
    if defect_rate > thresholds["defect_rate"]:
        findings.append(RiskFinding(
            "Increased Defect Frequency",
            "Overall defect rate is above threshold. Consider process optimization "
            "and operator training.",
            "info",
        ))
    if not findings:
        findings.append(RiskFinding(
            "Optimal Performance",
            "Quality metrics are within acceptable range. Continue current practices "
            "and monitor for any changes.",
            "success",
        ))
    return findings


def predict_risk(inspections: List[dict], defects: List[dict]) -> PredictionSummary:
    window = config["dashboard"]["recent_window"]
    recent_quality = average_quality(inspections[:window])

    total = len(inspections)
    defect_rate = len(defects) / total * 100 if total else 0.0
    critical = sum(1 for d in defects if d.get("severity") == Severity.CRITICAL.value)
    critical_rate = critical / total * 100 if total else 0.0

    recent = list(reversed(inspections[:config["dashboard"]["trend_points"]]))
    trend = [
        {"time": n, "risk": 100 - _score(i), "quality": _score(i)}
        for n, i in enumerate(recent, 1)
    ]
    level = risk_level(recent_quality)

    return PredictionSummary(
        recent_quality=recent_quality,
        defect_rate=defect_rate,
        critical_rate=critical_rate,
        risk_level=level,
        trend=trend,
        trend_slope=trend_slope([t["quality"] for t in trend]),
        findings=risk_findings(level, critical_rate, defect_rate),
    )


# ============ HISTORY ============

HISTORY_COLUMNS = [
    "created_date", "batch_number", "equipment_id", "quality_score",
    "defect_count", "status", "operator", "image_url",
]


def filter_inspections(inspections: List[dict], search: str = "", equipment: str = "") -> List[dict]:
    """Case-insensitive match on batch/operator and on equipment id."""
    search = search.lower()
    equipment = equipment.lower()

    def matches(i: dict) -> bool:
        matches_search = (
            not search
            or search in (i.get("batch_number") or "").lower()
            or search in (i.get("operator") or "").lower()
        )
        matches_equipment = not equipment or equipment in (i.get("equipment_id") or "").lower()
        return matches_search and matches_equipment

    return [i for i in inspections if matches(i)]


def score_band(score: Optional[float]) -> str:
    """Colour band for a quality score: green / yellow / red."""
    thresholds = config["thresholds"]
    score = score or 0
    if score >= thresholds["quality_good"]:
        return "green"
    if score >= thresholds["quality_warn"]:
        return "yellow"
    return "red"


def inspections_to_csv(inspections: List[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=HISTORY_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for i in inspections:
        writer.writerow({c: i.get(c, "") for c in HISTORY_COLUMNS})
    return buffer.getvalue()


# ============ REPORTS ============

@dataclass
class ReportStats:
    total_inspections: int
    total_defects: int
    average_quality: float
    defects_by_type: Dict[str, int]
    critical: int
    major: int
    minor: int

    def to_dict(self) -> dict:
        return {
            "total_inspections": self.total_inspections,
            "total_defects": self.total_defects,
            "average_quality": round(self.average_quality, 1),
            "defects_by_type": self.defects_by_type,
            "critical": self.critical,
            "major": self.major,
            "minor": self.minor,
        }


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    return parsed.date() if parsed else None


def filter_by_date_range(records: List[dict], date_from, date_to) -> List[dict]:
    """Records created between the two days, both days inclusive."""
    start, end = _as_date(date_from), _as_date(date_to)
    result = []
    for r in records:
        created = _as_date(r.get("created_date"))
        if created and start <= created <= end:
            result.append(r)
    return result


def report_stats(inspections: List[dict], defects: List[dict], date_from, date_to) -> ReportStats:
    period_inspections = filter_by_date_range(inspections, date_from, date_to)
    period_defects = filter_by_date_range(defects, date_from, date_to)

    by_type: Dict[str, int] = {}
    for d in period_defects:
        by_type[d.get("type")] = by_type.get(d.get("type"), 0) + 1

    def count(severity: Severity) -> int:
        return sum(1 for d in period_defects if d.get("severity") == severity.value)

    return ReportStats(
        total_inspections=len(period_inspections),
        total_defects=len(period_defects),
        average_quality=average_quality(period_inspections),
        defects_by_type=by_type,
        critical=count(Severity.CRITICAL),
        major=count(Severity.MAJOR),
        minor=count(Severity.MINOR),
    )
