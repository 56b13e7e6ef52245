"""
DVIR defect notification recipient manager
"""

__version__ = "1.0.0"
