"""
peopleguard.api

HTTP layer: app factory, dependencies and routers.
"""
