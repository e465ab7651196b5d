"""
Dashboard rendering.
"""

from .charts import TableRow, build_history_chart, build_pie_chart, version_table
from .render import DashboardRenderer

__all__ = ['TableRow', 'build_history_chart', 'build_pie_chart', 'version_table', 'DashboardRenderer']
