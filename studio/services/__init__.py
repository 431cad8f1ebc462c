"""Service layer for template and certificate logic.

Services are plain async functions. They take a database session where they
touch the template store, orchestrate repositories and the rendering module,
and never commit; the caller owns the transaction.

Layer hierarchy:
    CLI / editor -> Services -> Repositories (database) / Rendering (pixels)
"""
