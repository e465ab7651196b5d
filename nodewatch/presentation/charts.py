"""
Plotly figures and table rows for the dashboard.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence

import plotly.graph_objs as go
from plotly.graph_objs import Figure

from ..api.models import HistoricalPoint
from ..pipeline.aggregator import Aggregation, percentage, top_versions

MARKER_COLOR = '#00702B'
MARKER_BORDER = '#005a23'
OTHER_COLOR = '#4a4a4a'
OTHER_BORDER = '#2a2a2a'
TEXT_COLOR = 'white'


@dataclass(frozen=True)
class TableRow:
    """One line of the version table."""
    version: str
    count: int
    percent: float
    highlighted: bool

    @property
    def count_text(self) -> str:
        return f"{self.count:,}"

    @property
    def percent_text(self) -> str:
        return f"{self.percent:.2f}%"


def version_table(aggregation: Aggregation, marker: str, limit: int = 21) -> List[TableRow]:
    """Top versions with their share of all nodes in the snapshot."""
    return [
        TableRow(
            version=version,
            count=count,
            percent=percentage(count, aggregation.total_nodes),
            highlighted=marker in version
        )
        for version, count in top_versions(aggregation.version_counts, limit)
    ]


def _dark_layout(fig: Figure):
    fig.update_layout(
        paper_bgcolor='black',
        plot_bgcolor='black',
        font=dict(color=TEXT_COLOR),
        margin=dict(l=20, r=20, t=20, b=20),
    )


def build_pie_chart(aggregation: Aggregation, marker_label: str = 'Knots',
                    other_label: str = 'Core') -> Figure:
    """
    Marker vs. other split as a pie.

    Percentages are of the snapshot's ``total_nodes``: one decimal on the
    slices, two in the hover text.
    """
    values = [aggregation.marker_count, aggregation.other_count]
    shares = [percentage(value, aggregation.total_nodes) for value in values]

    fig = go.Figure(go.Pie(
        labels=[marker_label, other_label],
        values=values,
        sort=False,
        direction='clockwise',
        marker=dict(
            colors=[MARKER_COLOR, OTHER_COLOR],
            line=dict(color=[MARKER_BORDER, OTHER_BORDER], width=1)
        ),
        text=[f"{share:.1f}%" for share in shares],
        textinfo='text',
        textfont=dict(color=TEXT_COLOR, size=16),
        customdata=[f"{value:,} ({share:.2f}%)" for value, share in zip(values, shares)],
        hovertemplate='%{label}: %{customdata}<extra></extra>',
    ))
    _dark_layout(fig)
    fig.update_layout(
        showlegend=True,
        legend=dict(orientation='h', x=0.5, xanchor='center', y=-0.05, font=dict(size=14)),
    )
    return fig


def build_history_chart(points: Sequence[HistoricalPoint], marker_label: str = 'Knots') -> Figure:
    """Marker-node count over time."""
    dates = [datetime.fromtimestamp(point.timestamp, tz=timezone.utc) for point in points]
    counts = [point.marker_count for point in points]

    fig = go.Figure(go.Scatter(
        x=dates,
        y=counts,
        mode='lines+markers',
        name=f"{marker_label} nodes",
        line=dict(color=MARKER_COLOR, width=3),
        marker=dict(color=MARKER_COLOR, size=6),
        hovertemplate='%{x|%b %d, %Y}: %{y:,} nodes<extra></extra>',
    ))
    _dark_layout(fig)
    fig.update_xaxes(tickformat='%b %d, %Y', gridcolor='#222222')
    fig.update_yaxes(title_text=f"{marker_label} nodes", gridcolor='#222222', rangemode='tozero')
    return fig
