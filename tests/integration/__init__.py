"""Integration tests for redis_qparser.

These tests run the parser against a live Redis server (database 15,
flushed before and after each test) and are skipped when none is
reachable.

Test Organization:
- test_end_to_end_scenario.py: plugin -> parser -> Redis -> compiled query
- test_failure_modes.py: unreachable Redis, wrong key types, pool recovery
"""
