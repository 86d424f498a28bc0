"""
Test suite for drivefuzz.

Focus areas:
- Seeded draws and weighted selection are deterministic
- Shadow state bookkeeping and name generation
- Reference drive contract and hash-chained feeds
- Oracle detection of disagreements
- Replication convergence
- End-to-end fuzz scenarios
"""
