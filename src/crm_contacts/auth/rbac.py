"""
Role-level access control dependencies.
"""

from fastapi import Depends, HTTPException, Request, status

from crm_contacts.auth.middleware import CurrentUser, get_current_user
from crm_contacts.auth.models import RoleLevel
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)


class RBACChecker:
    """Dependency class for role-level access checks."""

    def __init__(self, minimum_level: RoleLevel) -> None:
        """Initialize RBAC checker.

        Args:
            minimum_level: Minimum role level required for access.
        """
        self.minimum_level = minimum_level

    async def __call__(
        self,
        request: Request,
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        """Return the current user if their level is high enough.

        Raises:
            HTTPException: 403 if the user's level is below the minimum.
        """
        if not current_user.has_level(self.minimum_level):
            logger.warning(
                "Access denied",
                extra={
                    "user_id": current_user.id,
                    "username": current_user.username,
                    "user_role": current_user.role,
                    "user_level": int(current_user.role_level),
                    "required_level": int(self.minimum_level),
                    "endpoint": str(request.url.path),
                    "method": request.method,
                    "client_ip": request.client.host if request.client else "unknown",
                },
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "INSUFFICIENT_PERMISSIONS",
                    "message": f"Role level {int(self.minimum_level)} or higher required",
                    "required_level": int(self.minimum_level),
                    "current_level": int(current_user.role_level),
                },
            )

        logger.debug(
            "Access granted",
            extra={
                "user_id": current_user.id,
                "endpoint": str(request.url.path),
                "method": request.method,
            },
        )
        return current_user


require_seller = RBACChecker(RoleLevel.SELLER)
require_sales_manager = RBACChecker(RoleLevel.SALES_MANAGER)
require_administrator = RBACChecker(RoleLevel.ADMINISTRATOR)


def require_level(minimum_level: RoleLevel) -> RBACChecker:
    """Create an RBAC checker for a specific level.

    Example:
        @router.get("/admin-only")
        async def admin_endpoint(
            user: CurrentUser = Depends(require_level(RoleLevel.ADMINISTRATOR))
        ):
            ...
    """
    return RBACChecker(minimum_level)
