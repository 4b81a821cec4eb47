"""Webhook intake resources.

Usage
-----
Import the intake resource for route registration::

    from gitviz.api.events.resources import EventResource
"""
