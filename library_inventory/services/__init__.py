"""Library Inventory - Services Package

This package contains the catalog API integration:
- HTTP client abstraction
- Catalog gateway (CRUD calls and wire format)
"""
