"""Practitioner authentication service."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import User, UserRole


class EmailAlreadyRegisteredError(Exception):
    """Raised when signing up with an email that already has an account."""

    pass


class AuthService:
    """Service for practitioner sign-up, login and token lookup."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def register(
        self,
        email: str,
        password: str,
        full_name: str | None = None,
        crm: str | None = None,
        specialty: str | None = None,
        phone: str | None = None,
    ) -> User:
        """Create a practitioner account.

        Raises:
            EmailAlreadyRegisteredError: If the email is taken
        """
        if await self.get_by_email(email):
            raise EmailAlreadyRegisteredError(email)

        user = User(
            email=email.lower(),
            hashed_password=hash_password(password),
            role=UserRole.DOCTOR,
            full_name=full_name,
            crm=crm,
            specialty=specialty,
            phone=phone,
            is_active=True,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate a practitioner with email and password.

        Args:
            email: Practitioner email address
            password: Plain text password

        Returns:
            User if credentials valid, None otherwise
        """
        user = await self.get_by_email(email)

        if not user or not user.is_active or user.is_deleted:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        return user

    def create_token(self, user: User) -> str:
        """Create the JWT access token for a practitioner session."""
        role = user.role.value if hasattr(user.role, "value") else user.role
        return create_access_token(
            subject=user.id,
            claims={"role": role, "email": user.email},
        )

    async def get_by_id(self, user_id: str) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()
