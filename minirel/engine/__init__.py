"""
Query execution: the Database executor and its row pipelines.
"""

from minirel.engine.database import Database

__all__ = ["Database"]
