"""Authentication routes: register, login, current user and profile."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tradermind.config import settings
from tradermind.db.base import utcnow
from tradermind.dependencies import CurrentUser, get_db
from tradermind.errors.exceptions import AuthenticationError, ConflictError, NotFoundError
from tradermind.models.user import (
    ProfileUpdated,
    RegisterResponse,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
    UserUpdate,
)
from tradermind.repositories.user_repo import UserRepository
from tradermind.services.id_generator import generate_id
from tradermind.services.security import create_access_token, hash_password, verify_password

router = APIRouter(prefix="/auth", tags=["Auth"])

_EXPIRES_IN = settings.jwt_access_token_expire_minutes * 60


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(body: UserRegister, db: AsyncSession = Depends(get_db)):
    repo = UserRepository(db)
    if await repo.get_by_username(body.username):
        raise ConflictError(f"Username '{body.username}' already exists")

    user = await repo.create(
        user_id=generate_id("usr_"),
        username=body.username,
        nickname=body.nickname,
        email=body.email,
        phone=body.phone,
        hashed_password=hash_password(body.password),
        roles=["customer"],
        is_active=True,
        last_login=utcnow(),
    )
    await db.commit()

    return RegisterResponse(
        user_id=user.user_id,
        access_token=create_access_token(user.user_id, user.roles, user.username),
        expires_in=_EXPIRES_IN,
    )


@router.post("/login", response_model=TokenResponse)
async def login(body: UserLogin, db: AsyncSession = Depends(get_db)):
    repo = UserRepository(db)
    user = await repo.get_by_username(body.username)
    if not user or not user.is_active or not verify_password(body.password, user.hashed_password):
        raise AuthenticationError("Invalid username or password")

    await repo.update_last_login(user)
    await db.commit()

    return TokenResponse(
        access_token=create_access_token(user.user_id, user.roles, user.username),
        expires_in=_EXPIRES_IN,
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current: CurrentUser, db: AsyncSession = Depends(get_db)):
    user = await UserRepository(db).get(current["sub"])
    if not user:
        raise NotFoundError("User", current["sub"])
    return UserResponse.model_validate(user)


@router.put("/profile", response_model=ProfileUpdated)
async def update_profile(body: UserUpdate, current: CurrentUser, db: AsyncSession = Depends(get_db)):
    """Change nickname, email or phone. The nickname names future reports."""
    repo = UserRepository(db)
    user = await repo.get(current["sub"])
    if not user:
        raise NotFoundError("User", current["sub"])

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        await repo.update(user, **changes)
        await db.commit()
    return ProfileUpdated(user=UserResponse.model_validate(user))
