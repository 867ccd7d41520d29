"""
EduManager core: role-scoped repositories over a record store, plus the
aggregation engine that turns cached records into dashboard statistics.
"""

__version__ = "0.1.0"
