"""
Dispatch API Package

Account management and Bleeter handlers of the dispatch web application.

- config.py: Application configuration and environment settings
- database.py: Database connection and session management
- dependencies.py: FastAPI dependencies (session user, CAD, feature gate)
- errors.py: Error types and exception handlers
- limiter.py: Rate limiting configuration
- main.py: FastAPI application entry point
- models.py: SQLAlchemy ORM database models
- repositories.py: Per-entity query wrappers
- schemas.py: Request body schemas
- serializers.py: Response projections

Subpackages:
- routes/: API route handlers (user, bleeter, events)
- services/: auth, audit, cookies, images, socket broadcasts, unit logs
"""
