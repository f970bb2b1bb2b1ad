"""
Rental contract lifecycle kernel.

Contracts for apartment flats, the monthly dues they generate, and the
post-commit side-effect pipeline that keeps audit, notification, and cache
state in step with committed lifecycle changes.

Layering (inner to outer):
    domain/    -- pure value objects and date math, ZERO I/O
    db/        -- SQLAlchemy base classes and engine management
    models/    -- ORM tables
    stores/    -- persistence adapters over a Session
    services/  -- orchestration, unit of work, event dispatch
"""
