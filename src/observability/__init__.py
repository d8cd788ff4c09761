"""
Observability module for the progression service.

This module provides metrics collection with Prometheus.
"""

__all__ = ["metrics", "metrics_middleware"]
