"""
Scheduler package for refresh scheduling and change detection.

This package contains:
- Change detection against stored snapshots
- Refresh cycle orchestration
- The refresh timer state machine
- The tracked resource collection and its events
- Change notifications and the attention signal
"""

__version__ = "1.0.0"
