"""
Shared module for common utilities used by the REST API and live query layer.

STRUCTURE:
- shared.security: Authentication and password hashing
  - auth.py: JWT signing/verification, current_user_context, require_roles
  - password.py: Bcrypt hashing

- shared.infrastructure: Database and messaging
  - db.py: SQLAlchemy engine, session factory, safe_commit()
  - correlation.py: Request correlation IDs
  - events/: Redis pub/sub for cross-process change fan-out

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Roles, OrderStatus, transition tables

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py: Shared Pydantic schemas

IMPORT EXAMPLES:
    from shared.security.auth import verify_jwt, current_user_context
    from shared.infrastructure.db import SessionLocal, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Roles, OrderStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
