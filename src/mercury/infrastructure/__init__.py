"""Infrastructure layer: database, graph store, word vectors.

This layer depends on stdlib, the domain layer, and third-party libs
(SQLAlchemy, Alembic). It must never import from services, commands,
or output. The service layer bridges between domain models and
infrastructure.
"""
