"""
Visualization module for dashboard charts.

Provides Plotly figure builders for quality trends, defect distributions
and risk trends.
"""

from .charts import (
    quality_trend_chart,
    defect_type_chart,
    severity_pie_chart,
    quality_bar_chart,
    risk_trend_chart,
)

__all__ = [
    'quality_trend_chart',
    'defect_type_chart',
    'severity_pie_chart',
    'quality_bar_chart',
    'risk_trend_chart',
]
