"""Practitioner authentication endpoints."""

from fastapi import APIRouter, HTTPException, Request, status

from app.api.deps import CurrentUser, DbSession, get_client_ip
from app.core.config import settings
from app.models.audit_event import ActorType
from app.models.user import User
from app.schemas.auth import LoginRequest, PractitionerRead, RegisterRequest, TokenResponse
from app.services.audit import write_audit_event
from app.services.auth import AuthService, EmailAlreadyRegisteredError

router = APIRouter()


@router.post(
    "/register",
    response_model=PractitionerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Practitioner sign-up",
)
async def register(
    request: Request,
    body: RegisterRequest,
    session: DbSession,
) -> User:
    """Create a practitioner account.

    Raises:
        HTTPException: 409 if the email is already registered
    """
    auth_service = AuthService(session)
    try:
        user = await auth_service.register(
            email=body.email,
            password=body.password,
            full_name=body.full_name,
            crm=body.crm,
            specialty=body.specialty,
            phone=body.phone,
        )
    except EmailAlreadyRegisteredError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="practitioner_registered",
        entity_type="user",
        entity_id=user.id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return user


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Practitioner login",
    description="Authenticate a practitioner with email and password",
)
async def login(
    request: Request,
    credentials: LoginRequest,
    session: DbSession,
) -> TokenResponse:
    """Authenticate a practitioner and return a JWT.

    Args:
        request: FastAPI request
        credentials: Email and password
        session: Database session

    Returns:
        JWT access token

    Raises:
        HTTPException: If credentials are invalid
    """
    auth_service = AuthService(session)
    user = await auth_service.authenticate(
        email=credentials.email,
        password=credentials.password,
    )

    if not user:
        # Log failed attempt
        await write_audit_event(
            session=session,
            actor_type=ActorType.SYSTEM,
            actor_id=None,
            action="login_failed",
            entity_type="user",
            entity_id=None,
            metadata={"email": credentials.email, "reason": "invalid_credentials"},
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    access_token = auth_service.create_token(user)

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="login_success",
        entity_type="user",
        entity_id=user.id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
    )


@router.get("/me", response_model=PractitionerRead)
async def me(user: CurrentUser) -> User:
    """Return the authenticated practitioner."""
    return user
