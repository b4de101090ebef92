"""HTTP routes for the current session."""

from fastapi import APIRouter, Request, Response

from auth.session import SessionManager
from api.base import success_response


def create_auth_router(session_manager: SessionManager) -> APIRouter:
    """Create auth router with injected session manager."""
    router = APIRouter(tags=["auth"])

    @router.post("/logout")
    def logout(request: Request, response: Response):
        """Logout - revoke session and clear cookie."""
        session_manager.revoke_session(request.state.session.token)

        # Clear cookie
        response.delete_cookie(key="session_token")

        return success_response({"message": "Logged out successfully"})

    @router.get("/me")
    def get_current_session(request: Request):
        """Tenant and user the current session acts for.

        Requires authentication (middleware sets tenant context).
        """
        session = request.state.session

        return success_response({
            "company_id": str(session.company_id),
            "user_id": str(session.user_id),
            "expires_at": session.expires_at.isoformat(),
        })

    return router
