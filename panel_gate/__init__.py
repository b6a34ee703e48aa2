"""Retest gate for manufacturing test stations.

Given a scanned unit identifier (and optionally the number of boards on its
panel) decide whether the unit may go through another test cycle, based on its
history in the test-result database.
"""

__version__ = "1.0.0"
