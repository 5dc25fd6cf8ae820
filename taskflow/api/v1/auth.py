from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from taskflow.db.base import get_db
from taskflow.core.deps import get_current_user
from taskflow.models.user import User
from taskflow.schemas.auth import RegisterRequest, LoginRequest, RefreshRequest, TokenResponse
from taskflow.schemas.user import UserResponse, MessageResponse
from taskflow.services.auth_service import AuthService, IssuedTokens

router = APIRouter(prefix="/auth", tags=["Auth"])

def _token_response(tokens: IssuedTokens) -> TokenResponse:
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=UserResponse.model_validate(tokens.user)
    )

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    return AuthService(db).register(data.email, data.name, data.password)

@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    return _token_response(AuthService(db).login(data.email, data.password))

@router.post("/refresh", response_model=TokenResponse)
def refresh(data: RefreshRequest, db: Session = Depends(get_db)):
    return _token_response(AuthService(db).refresh(data.refresh_token))

@router.post("/logout", response_model=MessageResponse)
def logout(data: RefreshRequest, db: Session = Depends(get_db)):
    AuthService(db).logout(data.refresh_token)
    return {"message": "Logged out successfully"}

@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
