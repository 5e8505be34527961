"""
Observability Package
=====================

Modules:
--------
- stats: per-template review success statistics
"""

from .stats import StatsReport, TemplateStats, collect_template_stats

__all__ = [
    'StatsReport',
    'TemplateStats',
    'collect_template_stats',
]
