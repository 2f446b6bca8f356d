"""
Fronius inverter monitor.

Polls Fronius inverters for live power flow, stores periodic snapshots in
PostgreSQL, and serves historical energy summaries (totals, uptime, timeline)
over arbitrary time ranges.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""
