"""
Authentication service: login, self-registration and password changes.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.jwt import JWTHandler
from crm_contacts.auth.models import RoleLevel, User
from crm_contacts.auth.passwords import hash_password, verify_password
from crm_contacts.auth.repository import RoleRepository, UserRepository
from crm_contacts.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserProfile,
)
from crm_contacts.config import Settings, get_settings
from crm_contacts.shared.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        jwt_handler: JWTHandler | None = None,
        user_repository: UserRepository | None = None,
        role_repository: RoleRepository | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._jwt = jwt_handler or JWTHandler(self._settings)
        self._users = user_repository or UserRepository(session)
        self._roles = role_repository or RoleRepository(session)

    def _issue(self, user: User) -> LoginResponse:
        return LoginResponse(
            access_token=self._jwt.create_access_token(user),
            expires_in=self._jwt.get_token_expiry(),
            user=UserProfile.from_user(user),
        )

    async def login(self, request: LoginRequest) -> LoginResponse:
        """Authenticate an active user and issue an access token.

        Raises:
            AuthenticationError: Unknown user, inactive user or wrong password.
        """
        user = await self._users.get_by_username(request.username)
        if user is None or not user.is_active or not verify_password(request.password, user.password_hash):
            logger.warning("Login failed", extra={"username": request.username})
            raise AuthenticationError("Invalid username or password")

        logger.info("User logged in", extra={"user_id": user.id, "role": user.role.name})
        return self._issue(user)

    async def register(self, request: RegisterRequest) -> LoginResponse:
        """Create a basic-level user and log them in."""
        if len(request.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if await self._users.get_by_username(request.username) is not None:
            raise ConflictError("Username is already taken", details={"field": "username"})
        if await self._users.get_by_email(str(request.email)) is not None:
            raise ConflictError("Email is already registered", details={"field": "email"})

        role = await self._roles.get_lowest_at_level(int(RoleLevel.USER))
        if role is None:
            raise NotFoundError("No role is configured for self-registered users")

        user = await self._users.add(
            User(
                username=request.username,
                email=str(request.email),
                password_hash=hash_password(request.password),
                first_name=request.first_name,
                last_name=request.last_name,
                role_id=role.id,
                is_active=True,
            )
        )
        await self._session.commit()

        logger.info("User registered", extra={"user_id": user.id, "username": user.username})
        return self._issue(user)

    async def get_profile(self, user_id: int) -> UserProfile:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return UserProfile.from_user(user)

    async def change_password(self, user_id: int, request: ChangePasswordRequest) -> None:
        """Replace the password after checking the current one.

        Raises:
            NotFoundError: The user no longer exists.
            ValidationError: The current password does not match or the new
                one is too short.
        """
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        if not verify_password(request.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        if len(request.new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user.password_hash = hash_password(request.new_password)
        await self._session.flush()
        await self._session.commit()
        logger.info("Password changed", extra={"user_id": user_id})
