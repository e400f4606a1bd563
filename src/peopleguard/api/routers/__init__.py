"""
peopleguard.api.routers

One module per API resource; each exposes a module-level `router`.
"""
