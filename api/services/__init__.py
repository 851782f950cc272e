"""Service layer for business logic.

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Repositories (Database)

Services should:
- Turn a verified webhook body into a typed event (``clerk_events``)
- Apply events to the users table through repositories (``webhooks_service``)

Services should NOT:
- Directly execute SQL queries (use repositories)
- Know about HTTP request/response details
"""
