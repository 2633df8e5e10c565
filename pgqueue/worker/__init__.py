"""
Worker module.
Contains the polling consumer and handler loading.
"""

from pgqueue.worker.main import Worker, run

__all__ = ["Worker", "run"]
