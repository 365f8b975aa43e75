"""
LabTrack - in-memory laboratory workspace: test catalog, sample tracking
and result entry with range classification
"""

__version__ = "1.0.0"
