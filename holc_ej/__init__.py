"""
HOLC grade environmental-justice analysis

Relates historical HOLC neighborhood grades to EPA EJScreen indicators and to
biodiversity observations for one county.
"""

__version__ = "0.1.0"
