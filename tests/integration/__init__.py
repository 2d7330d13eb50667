"""Live integration tests against a real PostgreSQL service.

All tests in this package are marked ``integration`` and are excluded
from default ``pytest`` runs via ``addopts`` in ``pyproject.toml``.  Run
them explicitly::

    POSTGRES_DSN=postgresql://... pytest -m integration
"""
