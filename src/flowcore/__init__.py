"""
flowcore: pluggable node library for data-processing pipelines.

Nodes take typed input, perform one operation and report a uniform result
envelope. Flows are composed and scheduled by an external orchestrator.
"""

__version__ = "1.0.0"
