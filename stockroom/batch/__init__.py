# stockroom/batch/__init__.py
from .daily_job import run_daily_job

__all__ = [
    'run_daily_job'
]
