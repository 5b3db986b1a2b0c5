from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel
import logging

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import User as UserRow

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
# Tokens are issued by Supabase Auth; this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/v1/token")


class User(BaseModel):
	id: str
	email: Optional[str] = None


def decode_token(token: str) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Authentication failed")
	options = {"verify_aud": bool(settings.jwt_audience)}
	try:
		payload = jwt.decode(
			token,
			settings.jwt_secret_key,
			algorithms=[settings.jwt_algorithm],
			audience=settings.jwt_audience or None,
			options=options,
		)
	except JWTError as e:
		logger.info("Rejected bearer token: %s", e)
		raise credentials_exception
	user_id: str | None = payload.get("sub")
	if not user_id:
		raise credentials_exception
	return User(id=user_id, email=payload.get("email"))


def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
	return decode_token(token)


def ensure_user_row(db: Session, user: User) -> UserRow:
	row = db.get(UserRow, user.id)
	if row is None:
		row = UserRow(id=user.id, email=user.email)
		db.add(row)
		db.commit()
		db.refresh(row)
	return row


class Profile(BaseModel):
	id: str
	email: Optional[str] = None
	current_level: Optional[str] = None
	learning_goal: Optional[str] = None
	country: Optional[str] = None
	assessment_completed: bool = False


@router.get("/me", response_model=Profile)
async def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = db.get(UserRow, user.id)
	if not row:
		return Profile(id=user.id, email=user.email)
	return Profile(
		id=row.id,
		email=row.email or user.email,
		current_level=row.current_level,
		learning_goal=row.learning_goal,
		country=row.country,
		assessment_completed=row.assessment_completed,
	)
