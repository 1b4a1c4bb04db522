"""
Party Search Watcher
====================

Watches the competitive party search feed for followed players and reports
sightings to the backend, keeping one matchmaking session alive at a time.
"""

__version__ = "1.0.0"
