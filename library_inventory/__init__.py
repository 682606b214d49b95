"""Library Inventory - client for a library catalog REST API

This package contains:
- Catalog records (entities.py)
- Per-type stores and edit sessions (store.py, session.py)
- Application state (inventory.py)
- API gateway (services/)
- Validation rules and rendering helpers (utils/)
"""
