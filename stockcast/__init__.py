"""Demand forecasting and reorder optimisation for inventory systems."""

__version__ = "0.1.0"
