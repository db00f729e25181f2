"""
Domain Models

Tenants own events and resources. Stored records stay plain JSON dicts;
these models are the typed views used to create and read them.
"""
from labcal.models.event import Event, Purpose, parse_events
from labcal.models.tenant import DEFAULT_RESOURCES, Resource, Tenant

__all__ = ["Event", "Purpose", "parse_events", "Resource", "Tenant", "DEFAULT_RESOURCES"]
