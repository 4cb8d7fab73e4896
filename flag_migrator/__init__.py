"""
Feature Flag Migration Toolkit

Migrates feature flag definitions from a Taplytics JSON export into DevCycle.

Supports:
- Flat-audience and per-environment-target export records
- Merging of records that describe the same feature
- Translation of audience filters into DevCycle targeting rules
- Custom data property reconciliation
- Dry runs and JSON run reports
"""

__version__ = "0.1.0"
