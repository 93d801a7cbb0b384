"""
Services module for business logic.

- store/: DocumentStore and the live query hub
- domain/: order lifecycle, tables, menu (USE THESE for writes)
- views/: role-scoped order boards built on live queries
- identity: sign-in, sign-up, session identity
- cart, app_state: per-session client state
"""
