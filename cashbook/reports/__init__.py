"""Reporting package."""

from cashbook.reports.aggregator import ReportingAggregator, RevenueSupplementManager

__all__ = ["ReportingAggregator", "RevenueSupplementManager"]
