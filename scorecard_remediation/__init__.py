"""Scorecard compliance and remediation orchestration"""

__version__ = "1.0.0"
