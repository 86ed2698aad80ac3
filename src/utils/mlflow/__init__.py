"""MLflow utilities for experiment tracking.

Provides:
- Context manager for MLflow run orchestration
- Logging functions for parameters and metrics
- Run fetching and filtering
"""

from .io import (
    setup_mlflow_tracking,
    start_mlflow_run_context,
    log_parameters,
    log_metrics_dict,
    load_runs,
)

__all__ = [
    "setup_mlflow_tracking",
    "start_mlflow_run_context",
    "log_parameters",
    "log_metrics_dict",
    "load_runs",
]
