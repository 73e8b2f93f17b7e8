from fastapi import APIRouter
from portal.api.endpoints import auth, health, users, projects, tickets

# (prefix, router, tags) of every endpoint group mounted under the API prefix
ENDPOINT_ROUTERS = [
    # Liveness and credentials
    ("/health", health.router, ["health"]),
    ("/auth", auth.router, ["auth"]),

    # Admin-only account management
    ("/users", users.router, ["users"]),

    # Ownership-scoped resources
    ("/projects", projects.router, ["projects"]),
    ("/tickets", tickets.router, ["tickets"]),
]

api_router = APIRouter()

for prefix, router, tags in ENDPOINT_ROUTERS:
    api_router.include_router(router, prefix=prefix, tags=tags)
