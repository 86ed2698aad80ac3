"""Helpers for launching timing runs under mpiexec."""

from .runner import run_benchmark

__all__ = ["run_benchmark"]
