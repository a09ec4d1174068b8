"""KPI calculation services."""
