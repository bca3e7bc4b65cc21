"""Shared test constants and fakes."""

from fastapi import HTTPException, Request, status

DASHBOARD_HEADERS = {"Authorization": "Bearer clerk-session-token"}

ALL_PERMISSIONS = [
    {"resource": "payments", "actions": ["create", "read", "update", "delete"]},
    {"resource": "profile", "actions": ["read"]},
]


class FakeClerkAuth:
    """Stands in for Clerk: any Authorization header signs in ``clerk_id``."""

    def __init__(self, clerk_id: str) -> None:
        self.clerk_id = clerk_id

    async def verify_token(self, request: Request) -> dict:
        if not request.headers.get("authorization"):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        return {"sub": self.clerk_id}

    def get_user_email(self, clerk_id: str) -> str:
        return f"{clerk_id}@example.com"
