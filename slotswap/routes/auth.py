import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import begin_write_transaction, get_db
from ..models import User
from ..schemas import LoginRequest, SignupRequest, TokenResponse, UserResponse
from ..security_utils import create_access_token, hash_password_bcrypt, verify_password_bcrypt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=TokenResponse, status_code=201)
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    """Register a new user and return a bearer token"""
    password_hash = hash_password_bcrypt(data.password)

    begin_write_transaction(db)
    existing_user = db.query(User).filter(User.email == data.email).first()
    if existing_user:
        raise HTTPException(status_code=409, detail="Email address is already registered")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=password_hash,
    )
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
    except IntegrityError as e:
        db.rollback()
        # Handle race condition where email was taken between check and insert
        logger.error(f"❌ Email {data.email} was taken by another account (race condition)")
        raise HTTPException(status_code=409, detail="Email address is already registered") from e

    logger.info(f"🆕 New user created: {user.email}")
    return TokenResponse(
        access_token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password_bcrypt(data.password, user.password_hash):
        logger.warning(f"⚠️ Failed login attempt for {data.email}")
        raise HTTPException(
            status_code=401,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info(f"🔑 User {user.id} logged in")
    return TokenResponse(
        access_token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.get("/verify", response_model=UserResponse)
def verify_token(current_user: User = Depends(get_current_user)):
    """Return the user behind the bearer token"""
    return current_user
