"""MLflow I/O utilities for experiment tracking of timing runs.

This module provides helpers for:
- Setting up MLflow tracking (local or Databricks).
- Orchestrating MLflow runs (context manager for parent/nested runs).
- Logging parameters and metrics.
- Retrieving logged timing runs as a DataFrame.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path

import mlflow
import pandas as pd

log = logging.getLogger(__name__)

PROJECT_PREFIX = "/Shared/Polar-Timing"


def setup_mlflow_tracking(mode: str = "local"):
    """
    Configures MLflow tracking.

    Parameters
    ----------
    mode : str
        "databricks" or "local".
    """
    if mode == "databricks":
        try:
            mlflow.login(backend="databricks", interactive=False)
            mlflow.set_tracking_uri("databricks")
            log.info("Connected to Databricks MLflow tracking.")
        except Exception as e:
            raise RuntimeError(
                "MLflow Databricks setup failed. Ensure credentials are configured."
            ) from e
    elif mode == "local":
        # Current MLflow releases refuse file-based stores
        db_uri = f"sqlite:///{Path.cwd() / 'mlflow.db'}"
        mlflow.set_tracking_uri(db_uri)
        log.info(f"Using local SQLite MLflow tracking backend: {db_uri}")
    else:
        log.warning(
            f"Unknown MLflow mode '{mode}'. Using existing URI: {mlflow.get_tracking_uri()}"
        )


def _full_experiment_name(experiment_name: str, project_prefix: str) -> str:
    if mlflow.get_tracking_uri() == "databricks" and not experiment_name.startswith("/"):
        return f"{project_prefix}/{experiment_name}"
    return experiment_name


def get_mlflow_client() -> mlflow.tracking.MlflowClient:
    """Get an MLflow tracking client."""
    return mlflow.tracking.MlflowClient()


@contextmanager
def start_mlflow_run_context(
    experiment_name: str,
    parent_run_name: str,
    child_run_name: str,
    project_prefix: str = PROJECT_PREFIX,
):
    """
    Context manager to start a nested MLflow run.

    The parent run (one per grid shape) is reused if it already exists;
    each matrix size gets its own child run.
    """
    experiment_name = _full_experiment_name(experiment_name, project_prefix)
    mlflow.set_experiment(experiment_name)
    exp = mlflow.get_experiment_by_name(experiment_name)

    client = get_mlflow_client()
    parent_runs = client.search_runs(
        experiment_ids=[exp.experiment_id],
        filter_string=f"tags.mlflow.runName = '{parent_run_name}' AND tags.is_parent = 'true'",
        max_results=1,
    )
    parent_run_id = parent_runs[0].info.run_id if parent_runs else None

    with mlflow.start_run(
        run_id=parent_run_id, run_name=parent_run_name, tags={"is_parent": "true"}
    ):
        with mlflow.start_run(run_name=child_run_name, nested=True) as child_run:
            env = (
                "hpc"
                if os.environ.get("LSB_JOBID") or os.environ.get("SLURM_JOB_ID")
                else "local"
            )
            mlflow.set_tag("environment", env)
            log.info(f"Started MLflow run '{child_run.info.run_name}' ({child_run.info.run_id}) [{env}]")
            yield child_run


def log_parameters(params: dict):
    """Log a dictionary of parameters to the active MLflow run."""
    mlflow.log_params(params)


def log_metrics_dict(metrics: dict):
    """Log a dictionary of metrics to the active MLflow run, filtering out None values."""
    filtered_metrics = {k: v for k, v in metrics.items() if v is not None}
    mlflow.log_metrics(filtered_metrics)


def load_runs(
    experiment: str,
    successful_only: bool = True,
    exclude_parent_runs: bool = True,
    project_prefix: str = PROJECT_PREFIX,
) -> pd.DataFrame:
    """Load timing runs of an experiment.

    Parameters
    ----------
    experiment : str
        Experiment name (will be prefixed for Databricks)
    successful_only : bool
        Only include runs whose decomposition returned info == 0
    exclude_parent_runs : bool
        Exclude parent runs (keep only per-size child runs)
    project_prefix : str
        Databricks workspace prefix for experiment names
    """
    full_experiment_name = _full_experiment_name(experiment, project_prefix)

    client = get_mlflow_client()
    experiments = client.search_experiments(filter_string=f"name = '{full_experiment_name}'")
    if not experiments:
        return pd.DataFrame()

    filter_string = "metrics.info = 0" if successful_only else ""
    df = mlflow.search_runs(
        experiment_ids=[exp.experiment_id for exp in experiments],
        filter_string=filter_string,
        order_by=["start_time DESC"],
    )

    if exclude_parent_runs and "tags.is_parent" in df.columns:
        df = df[df["tags.is_parent"] != "true"]

    return df
