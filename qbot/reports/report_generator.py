"""
Quality Report Generator - LLM-Powered Period Reports.

Summarises inspections and defects over a date range and asks the LLM
to write a professional markdown report. Falls back to a template report
when no LLM is configured.

Usage:
    from qbot.reports.report_generator import generate_report

    report = generate_report("weekly_quality", "2024-03-01", "2024-03-07",
                             inspections, defects)
    store.create("Report", report.to_record())
"""

import os
import json
import logging
from datetime import datetime
from typing import Dict, List, Any, Optional
from dataclasses import dataclass

try:
    from openai import OpenAI
    HAS_OPENAI = True
except ImportError:
    HAS_OPENAI = False

from qbot.config import config
from qbot.errors import InspectionValidationError
from qbot.analytics import ReportStats, report_stats
from qbot.backend.entities import Report, humanize
from qbot.vision.llm_defect_detector import strip_code_fence

logger = logging.getLogger(__name__)

MISSING_RANGE_MESSAGE = "Please select date range"
GENERATION_FAILED_MESSAGE = "Failed to generate report. Please try again."


# ============ DATA STRUCTURES ============

@dataclass
class GeneratedReport:
    """A report produced for a date range, ready to persist."""
    report_type: str
    date_from: str
    date_to: str
    summary: str
    content: str  # Markdown formatted report
    stats: ReportStats
    generated_by: str = "llm"  # llm or template

    @property
    def title(self) -> str:
        return f"{humanize(self.report_type)} Report - {self.date_from} to {self.date_to}"

    def to_markdown(self) -> str:
        return self.content

    def to_record(self) -> dict:
        """Report entity payload (id and created_date come from the backend)."""
        record = Report(
            title=self.title,
            type=self.report_type,
            date_from=self.date_from,
            date_to=self.date_to,
            summary=self.summary,
            content=self.content,
            total_inspections=self.stats.total_inspections,
            total_defects=self.stats.total_defects,
            average_quality_score=round(self.stats.average_quality, 1),
            status="completed",
        ).to_dict()
        record.pop("id")
        record.pop("created_date")
        return record


# ============ PROMPT ============

REPORT_PROMPT = """Generate a comprehensive quality inspection report for manufacturing operations.

Report Type: {report_type}
Period: {date_from} to {date_to}

Data Summary:
- Total Inspections: {total_inspections}
- Total Defects: {total_defects}
- Average Quality Score: {average_quality:.1f}%
- Defects by Type: {defects_by_type}
- Critical Defects: {critical}
- Major Defects: {major}
- Minor Defects: {minor}

Please create a professional report with:
1. Executive Summary
2. Key Findings
3. Detailed Analysis
4. Trends and Patterns
5. Recommendations
6. Action Items

Format the report in markdown with clear sections and bullet points.

Respond with ONLY a JSON object matching this schema:
{schema}"""


REPORT_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "summary": {"type": "string"},
        "content": {"type": "string"},
    },
}


def build_report_prompt(report_type: str, date_from: str, date_to: str, stats: ReportStats) -> str:
    return REPORT_PROMPT.format(
        report_type=humanize(report_type),
        date_from=date_from,
        date_to=date_to,
        total_inspections=stats.total_inspections,
        total_defects=stats.total_defects,
        average_quality=stats.average_quality,
        defects_by_type=json.dumps(stats.defects_by_type),
        critical=stats.critical,
        major=stats.major,
        minor=stats.minor,
        schema=json.dumps(REPORT_RESPONSE_SCHEMA, indent=2),
    )


# ============ REPORT GENERATOR ============

class ReportGenerator:
    """
    LLM-powered quality report generator.

    Transforms period statistics into formatted, audit-ready documentation.
    """

    def __init__(self):
        self.client = None
        llm_cfg = config["llm"]
        self.model = llm_cfg["model"]
        self.max_tokens = llm_cfg["max_tokens"]

        if HAS_OPENAI:
            api_key = os.getenv("OPENAI_API_KEY")
            if api_key:
                self.client = OpenAI(api_key=api_key)

    @property
    def is_available(self) -> bool:
        """Check if the generator is ready."""
        return self.client is not None

    def generate(
        self,
        report_type: str,
        date_from: str,
        date_to: str,
        inspections: List[Dict[str, Any]],
        defects: List[Dict[str, Any]],
    ) -> GeneratedReport:
        """
        Generate a report for the inclusive date range.

        Raises:
            InspectionValidationError: date range missing, or the LLM call failed
        """
        if not date_from or not date_to:
            raise InspectionValidationError(MISSING_RANGE_MESSAGE)

        date_from, date_to = str(date_from), str(date_to)
        stats = report_stats(inspections, defects, date_from, date_to)

        if not self.is_available:
            return self._generate_template_report(report_type, date_from, date_to, stats)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": build_report_prompt(report_type, date_from, date_to, stats),
                    }
                ],
                response_format={"type": "json_object"},
                max_tokens=self.max_tokens,
                temperature=0.3,
            )
            data = json.loads(strip_code_fence(response.choices[0].message.content or ""))
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            content = str(data.get("content") or "").strip()
            if not content:
                raise ValueError("reply has no report content")
        except Exception as e:
            logger.error("Report generation failed: %s", e)
            raise InspectionValidationError(GENERATION_FAILED_MESSAGE) from e

        return GeneratedReport(
            report_type=report_type,
            date_from=date_from,
            date_to=date_to,
            summary=str(data.get("summary") or ""),
            content=content,
            stats=stats,
        )

    def _generate_template_report(
        self,
        report_type: str,
        date_from: str,
        date_to: str,
        stats: ReportStats,
    ) -> GeneratedReport:
        """Generate a basic template report without LLM."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        type_rows = [
            f"| {humanize(t)} | {c} |"
            for t, c in sorted(stats.defects_by_type.items(), key=lambda kv: -kv[1])
        ]
        type_table = "\n".join(type_rows) if type_rows else "| - | 0 |"

        if stats.critical:
            finding = f"{stats.critical} critical defect(s) require immediate review."
        elif stats.total_defects:
            finding = "No critical defects; major and minor defects should be tracked."
        else:
            finding = "No defects were recorded in this period."

        summary = (
            f"{stats.total_inspections} inspections with {stats.total_defects} defects "
            f"and an average quality score of {stats.average_quality:.1f}%."
        )

        content = f"""# {humanize(report_type).title()} Report

## Executive Summary
{summary}

## Key Findings
- {finding}
- Average quality score: {stats.average_quality:.1f}%

## Detailed Analysis
| Defect Type | Count |
|-------------|-------|
{type_table}

| Severity | Count |
|----------|-------|
| Critical | {stats.critical} |
| Major | {stats.major} |
| Minor | {stats.minor} |

## Trends and Patterns
Period covered: {date_from} to {date_to}.

## Recommendations
- Review process parameters on lines with recurring defect types
- Schedule calibration checks for inspection equipment

## Action Items
- Investigate root causes of critical and major defects
- Re-inspect batches with quality scores below 80%

---
*Auto-generated on {timestamp}. Please review before distribution.*
"""

        return GeneratedReport(
            report_type=report_type,
            date_from=date_from,
            date_to=date_to,
            summary=summary,
            content=content,
            stats=stats,
            generated_by="template",
        )


# ============ CONVENIENCE FUNCTIONS ============

_generator_instance: Optional[ReportGenerator] = None


def get_generator() -> ReportGenerator:
    """Get or create the generator singleton."""
    global _generator_instance
    if _generator_instance is None:
        _generator_instance = ReportGenerator()
    return _generator_instance


def generate_report(
    report_type: str,
    date_from: str,
    date_to: str,
    inspections: Optional[List[Dict[str, Any]]] = None,
    defects: Optional[List[Dict[str, Any]]] = None,
) -> GeneratedReport:
    """Main API: generate a quality report for a date range."""
    return get_generator().generate(
        report_type=report_type,
        date_from=date_from,
        date_to=date_to,
        inspections=inspections or [],
        defects=defects or [],
    )


def is_generator_available() -> bool:
    """Check if LLM report generation is available."""
    return get_generator().is_available
