"""
peopleguard.db

Persistence package: ORM models, engine/session helpers and repositories.
"""
