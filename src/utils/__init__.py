"""Utility modules shared by the timing harness and experiment scripts.

Submodules:
- mlflow: MLflow run orchestration, logging and run retrieval

Import examples:
    from utils import mlflow       # MLflow utilities
    from utils.mlflow import load_runs
"""

from . import mlflow

__all__ = ["mlflow"]
