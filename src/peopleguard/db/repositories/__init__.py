"""
peopleguard.db.repositories

Thin data-access classes wrapping an `AsyncSession`. Repositories flush but never commit;
the service layer owns transaction boundaries.
"""
