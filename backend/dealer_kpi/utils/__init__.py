"""Stateless helpers used by the KPI services."""
