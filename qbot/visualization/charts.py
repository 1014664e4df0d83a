"""
Dashboard charts rendered with Plotly.

Each builder takes the chart data produced by qbot.analytics and returns
a go.Figure styled for the light dashboard theme.
"""

import plotly.graph_objects as go
from typing import List, Dict, Any


# Slate / signal palette shared by all charts
COLORS = {
    'quality': '#3b82f6',
    'quality_fill': 'rgba(59, 130, 246, 0.15)',
    'good': '#22c55e',
    'good_fill': 'rgba(34, 197, 94, 0.15)',
    'risk': '#ef4444',
    'risk_fill': 'rgba(239, 68, 68, 0.15)',
    'grid': '#e2e8f0',
    'axis': '#64748b',
}

SEVERITY_COLORS = {
    'critical': '#ef4444',
    'major': '#f97316',
    'minor': '#eab308',
}

PIE_COLORS = ['#ef4444', '#f97316', '#eab308', '#22c55e', '#3b82f6', '#8b5cf6']


def _base_layout(fig: go.Figure, height: int = 300, y_range=None) -> go.Figure:
    fig.update_layout(
        height=height,
        margin=dict(l=10, r=10, t=20, b=10),
        paper_bgcolor='rgba(0,0,0,0)',
        plot_bgcolor='rgba(0,0,0,0)',
        font=dict(size=12, color=COLORS['axis']),
        xaxis=dict(showgrid=False, color=COLORS['axis']),
        yaxis=dict(gridcolor=COLORS['grid'], griddash='dash', color=COLORS['axis']),
        showlegend=False,
    )
    if y_range is not None:
        fig.update_yaxes(range=y_range)
    return fig


def quality_trend_chart(data: List[Dict[str, Any]]) -> go.Figure:
    """Area chart of quality score over time ({'time', 'score'} points)."""
    fig = go.Figure(go.Scatter(
        x=[d['time'] for d in data],
        y=[d['score'] for d in data],
        mode='lines',
        line=dict(color=COLORS['quality'], width=3, shape='spline'),
        fill='tozeroy',
        fillcolor=COLORS['quality_fill'],
        name='Quality Score',
    ))
    return _base_layout(fig, y_range=[0, 100])


def defect_type_chart(data: List[Dict[str, Any]]) -> go.Figure:
    """Bar chart of defect counts per type."""
    fig = go.Figure(go.Bar(
        x=[d['type'] for d in data],
        y=[d['count'] for d in data],
        marker_color=COLORS['quality'],
    ))
    fig = _base_layout(fig)
    fig.update_xaxes(tickangle=-45, tickfont=dict(size=11))
    return fig


def severity_pie_chart(data: List[Dict[str, Any]]) -> go.Figure:
    """Pie chart of defect counts per severity."""
    labels = [d['severity'] for d in data]
    colors = [
        SEVERITY_COLORS.get(label, PIE_COLORS[i % len(PIE_COLORS)])
        for i, label in enumerate(labels)
    ]
    fig = go.Figure(go.Pie(
        labels=labels,
        values=[d['count'] for d in data],
        marker=dict(colors=colors),
        texttemplate='%{label}: %{value}',
        sort=False,
    ))
    return _base_layout(fig)


def quality_bar_chart(data: List[Dict[str, Any]]) -> go.Figure:
    """Bar chart of quality score per inspection ({'inspection', 'score'})."""
    fig = go.Figure(go.Bar(
        x=[d['inspection'] for d in data],
        y=[d['score'] for d in data],
        marker_color=COLORS['good'],
    ))
    return _base_layout(fig, y_range=[0, 100])


def risk_trend_chart(data: List[Dict[str, Any]]) -> go.Figure:
    """Risk and quality areas over the recent inspections."""
    x = [d['time'] for d in data]
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=x,
        y=[d['risk'] for d in data],
        mode='lines',
        line=dict(color=COLORS['risk'], width=2, shape='spline'),
        fill='tozeroy',
        fillcolor=COLORS['risk_fill'],
        name='Risk Score',
    ))
    fig.add_trace(go.Scatter(
        x=x,
        y=[d['quality'] for d in data],
        mode='lines',
        line=dict(color=COLORS['good'], width=2, shape='spline'),
        fill='tozeroy',
        fillcolor=COLORS['good_fill'],
        name='Quality Score',
    ))
    fig = _base_layout(fig, height=350, y_range=[0, 100])
    fig.update_layout(
        showlegend=True,
        legend=dict(orientation='h', yanchor='bottom', y=1.02, xanchor='center', x=0.5),
    )
    return fig
