"""Period quality reports."""

from .report_generator import (
    GeneratedReport,
    ReportGenerator,
    build_report_prompt,
    generate_report,
    is_generator_available,
)

__all__ = [
    'GeneratedReport',
    'ReportGenerator',
    'build_report_prompt',
    'generate_report',
    'is_generator_available',
]
