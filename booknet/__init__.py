"""
Book Network API Application Package

Users publish books for sharing and lend them to one another with
explicit owner approval.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy database connection and session management
- errors.py: Typed lending errors and their stable error codes
- main.py: FastAPI application factory and configuration
- dependencies.py: Dependency injection functions
- models/: SQLAlchemy ORM models (users, books, lending records)
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Business logic (lending ledger, authorization, locks, sinks)
- utils/: Helper functions (pagination)
"""

__version__ = "0.1.0"
