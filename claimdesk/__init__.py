"""Claimdesk billing-claims administration package.

This package provides the FastAPI backend and the UI-side client for
the claims administration tool, including:

- Claim search, retrieval and field-level updates
- Per-field change history (audit trail) with a global view
- User account management backed by a credential store
- An HTTP client with payload normalization and retry
- A claim state manager applying optimistic updates

Usage:
    # Development:
    uvicorn claimdesk.app:app --reload --port 8000

    # Production:
    uvicorn claimdesk.app:app --host 0.0.0.0 --port 8000

Modules:
    app: FastAPI application entry point
    services: Claim, history and user services over the relational store
    storage: SQLAlchemy engine management and table definitions
    routes: REST routers
    client: API client, caches and claim state manager
    security: Password hashing for stored credentials
"""

__version__ = "0.3.0"
