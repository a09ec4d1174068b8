"""Dealership KPI dashboard backend."""
