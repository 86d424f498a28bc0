"""
drivefuzz

Deterministic, seeded, weighted-random fuzzer for versioned,
content-addressed drives and their live replication protocol.
"""

__version__ = "0.1.0"
