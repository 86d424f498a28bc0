"""
drivefuzz command-line interface.

Commands:
- drivefuzz run - Run a seeded fuzz scenario
- drivefuzz version - Show version information
"""
