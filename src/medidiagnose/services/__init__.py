"""Services package - Business logic layer.

Submodules are imported directly (``from ..services.email_service import ...``)
to keep repositories free of circular imports.
"""
