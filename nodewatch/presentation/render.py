"""
HTML rendering of the dashboard state.
"""

import html
import logging
from datetime import datetime, timezone
from os import PathLike
from pathlib import Path
from typing import List, Union

import plotly.io as pio
from plotly.graph_objs import Figure

from ..api.models import HistoricalPoint
from ..pipeline.aggregator import Aggregation
from ..pipeline.scheduler import DashboardState
from ..pipeline.status import PipelineState
from ..utils.config import AggregationConfig, PresentationConfig
from .charts import MARKER_COLOR, build_history_chart, build_pie_chart, version_table

LOADING_HTML = '<div class="loading" role="status"><div class="spinner"></div></div>'


class DashboardRenderer:
    """
    Turns a DashboardState into a standalone HTML page.

    Each pipeline section is drawn in one of three states: a spinner while
    loading (or after a failure), an empty notice, or its charts.
    """

    def __init__(self, presentation: PresentationConfig, aggregation: AggregationConfig):
        self.presentation = presentation
        self.aggregation = aggregation
        self.logger = logging.getLogger(__name__)

    def _figure_html(self, fig: Figure, div_id: str) -> str:
        # Just the div; plotly.js is loaded once in the page head
        return pio.to_html(
            fig,
            include_plotlyjs=False,
            full_html=False,
            div_id=div_id,
            config={'responsive': True, 'displayModeBar': False},
        )

    def render_snapshot(self, state: PipelineState[Aggregation]) -> str:
        if state.shows_spinner:
            return LOADING_HTML

        aggregation = state.data
        if aggregation is None or aggregation.record_count == 0:
            return '<p class="empty">No nodes in the latest snapshot.</p>'

        rows: List[str] = []
        for row in version_table(aggregation, self.aggregation.marker, self.aggregation.table_limit):
            css = ' class="marker"' if row.highlighted else ''
            rows.append(
                f'<tr{css}><td class="version">{html.escape(row.version)}</td>'
                f'<td class="num">{row.count_text}</td>'
                f'<td class="num">{row.percent_text}</td></tr>'
            )

        pie = build_pie_chart(aggregation, self.aggregation.marker_label, self.aggregation.other_label)
        taken = datetime.fromtimestamp(aggregation.timestamp, tz=timezone.utc)

        return f"""<div class="grid">
    <div>
        <table>
            <thead><tr><th>Version</th><th class="num">Count</th><th class="num">% of Total</th></tr></thead>
            <tbody>
                {''.join(rows)}
            </tbody>
        </table>
        <p class="caption">{aggregation.total_nodes:,} nodes, snapshot of {taken:%Y-%m-%d %H:%M} UTC</p>
    </div>
    <div class="chart">{self._figure_html(pie, 'version_pie')}</div>
</div>"""

    def render_history(self, state: PipelineState[List[HistoricalPoint]]) -> str:
        if state.shows_spinner:
            return LOADING_HTML

        if state.is_empty:
            return '<p class="empty">No historical data available.</p>'

        fig = build_history_chart(state.data, self.aggregation.marker_label)
        return f'<div class="chart wide">{self._figure_html(fig, "marker_history")}</div>'

    def render(self, state: DashboardState, include_history: bool = True) -> str:
        """Render the full page."""
        title = html.escape(self.presentation.title)
        history = ''
        if include_history:
            history = f'<section id="history">{self.render_history(state.history)}</section>'

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{title}</title>
    <script src="https://cdn.plot.ly/plotly-2.35.2.min.js"></script>
    <style>
        body {{
            margin: 0;
            padding: 24px;
            background: #000000;
            color: #d1d5db;
            font-family: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
        }}
        h1 {{ text-align: center; color: {MARKER_COLOR}; font-size: 1.9rem; }}
        .grid {{ display: grid; grid-template-columns: 1fr 1fr; gap: 48px; max-width: 1400px; margin: 0 auto; }}
        @media (max-width: 1024px) {{ .grid {{ grid-template-columns: 1fr; gap: 8px; }} }}
        table {{ width: 100%; border-collapse: collapse; }}
        th {{ color: #9ca3af; font-size: 0.75rem; text-transform: uppercase; text-align: left; padding: 6px 12px; }}
        td {{ padding: 6px 12px; font-size: 0.875rem; border-top: 1px solid #374151; }}
        tr:hover {{ background: #111827; }}
        tr.marker td {{ color: {MARKER_COLOR}; }}
        .num {{ text-align: right; }}
        .caption, .empty {{ color: #6b7280; text-align: center; }}
        .chart {{ display: flex; justify-content: center; align-items: center; }}
        .chart.wide {{ max-width: 1400px; margin: 32px auto 0; }}
        .loading {{ display: flex; justify-content: center; align-items: center; min-height: 40vh; }}
        .spinner {{
            width: 64px; height: 64px; border-radius: 50%;
            border: 6px solid #1f2937; border-top-color: {MARKER_COLOR};
            animation: spin 1s linear infinite;
        }}
        @keyframes spin {{ to {{ transform: rotate(360deg); }} }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <section id="snapshot">{self.render_snapshot(state.snapshot)}</section>
    {history}
</body>
</html>
"""

    def save(self, state: DashboardState, path: Union[str, PathLike, None] = None,
             include_history: bool = True) -> Path:
        """Write the rendered page, replacing the previous one in a single step."""
        out_path = Path(path or self.presentation.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = out_path.with_suffix(out_path.suffix + '.tmp')
        tmp_path.write_text(self.render(state, include_history), encoding='utf-8')
        tmp_path.replace(out_path)

        self.logger.info(f"Wrote dashboard to {out_path} "
                         f"(snapshot={state.snapshot.status.value}, history={state.history.status.value})")
        return out_path
