# routers/auth.py
"""
Registration and login. Issues the bearer tokens every other router expects.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_session
from models import User
from schemas.auth import RegisterRequest, LoginRequest, TokenResponse, UserResponse
from security import hash_password, verify_password, create_access_token

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
     "/register",
     response_model=TokenResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Create an account",
)
def register_user(body: RegisterRequest, db: Session = Depends(get_session)):
     email = body.email.strip().lower()
     if db.query(User.id).filter(User.email == email).first():
          raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

     user = User(
          email=email,
          password=hash_password(body.password),
          full_name=body.full_name.strip(),
          role=body.role,
     )
     db.add(user)
     db.flush()

     return TokenResponse(
          token=create_access_token(user.id, user.role),
          user=UserResponse.model_validate(user),
     )


@router.post("/login", response_model=TokenResponse, summary="Log in")
def login_user(body: LoginRequest, db: Session = Depends(get_session)):
     user = db.query(User).filter(User.email == body.email.strip().lower()).first()
     if not user or not verify_password(body.password, user.password):
          raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

     return TokenResponse(
          token=create_access_token(user.id, user.role),
          user=UserResponse.model_validate(user),
     )
