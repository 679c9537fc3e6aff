"""Liveness and readiness probes.

Usage
-----
Import health resources for route registration::

    from parcel.api.health.resources import HealthResource, ReadyResource
"""
