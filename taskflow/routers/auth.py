from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_INVITE_TOKEN, SECRET_KEY
from ..database import get_db
from ..errors import InvalidInput
from ..models import User, UserRole
from ..models.common import utcnow
from ..schemas.user import AuthResponse, LoginRequest, ProfileUpdate, TokenData, User as UserSchema, UserCreate
from ..services.policy import Actor

router = APIRouter()

ALGORITHM = "HS256"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode('utf-8')[:72]
    hashed_bytes = hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
    return bcrypt.checkpw(password_bytes, hashed_bytes)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt directly."""
    password_bytes = password.encode('utf-8')[:72]  # Truncate to 72 bytes (bcrypt limit)
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user."""
    user = db.exec(select(User).where(User.email == email)).first()
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.cookies.get("token")


def _decode_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if not user_id:
            return None
        return TokenData(user_id=user_id)
    except JWTError:
        return None


def _auth_response(user: User, response: Response) -> AuthResponse:
    access_token = create_access_token(data={"sub": user.id})
    response.set_cookie(
        key="token",
        value=access_token,
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return AuthResponse(**UserSchema.model_validate(user).model_dump(), token=access_token)


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Get current user from JWT token."""
    token = _get_token_from_request(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = _decode_token(token)
    if not token_data or not token_data.user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, token_data.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    """Role and id of the authenticated user, as the task core sees them."""
    return Actor.from_user(current_user)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user: UserCreate,
    response: Response,
    db: Session = Depends(get_db),
):
    """Create a new account; a matching admin invite token grants the admin role."""
    existing = db.exec(select(User).where(User.email == user.email)).first()
    if existing:
        raise InvalidInput("User already exists")

    role = UserRole.MEMBER
    if user.admin_invite_token and ADMIN_INVITE_TOKEN and user.admin_invite_token == ADMIN_INVITE_TOKEN:
        role = UserRole.ADMIN

    db_user = User(
        name=user.name,
        email=user.email,
        hashed_password=get_password_hash(user.password),
        profile_picture=user.profile_picture,
        role=role.value,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    return _auth_response(db_user, response)


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    """Sign in and get JWT token."""
    db_user = authenticate_user(db, credentials.email, credentials.password)
    if not db_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    return _auth_response(db_user, response)


@router.get("/profile", response_model=UserSchema)
def read_profile(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user


@router.put("/profile", response_model=AuthResponse)
def update_profile(
    update: ProfileUpdate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name, email or password; empty values keep the stored ones."""
    if update.email and update.email != current_user.email:
        taken = db.exec(select(User).where(User.email == update.email)).first()
        if taken:
            raise InvalidInput("Email already in use")

    current_user.name = update.name or current_user.name
    current_user.email = update.email or current_user.email
    if update.password:
        current_user.hashed_password = get_password_hash(update.password)
    current_user.updated_at = utcnow()

    db.add(current_user)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent request took the email between the check and the commit
        db.rollback()
        raise InvalidInput("Email already in use") from None
    db.refresh(current_user)
    return _auth_response(current_user, response)
