"""
Lab Calendar Service

Multi-tenant laboratory equipment scheduling: tenant and calendar-event
API over a JSON-file store, utilization views computed on demand, an
admin console backend and an API smoke-test harness.
"""

__version__ = "1.0.0"
