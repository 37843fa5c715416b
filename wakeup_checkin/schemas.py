from datetime import date
from typing import Optional, Dict, Any, List
from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Identity provider user object (email, id, user_metadata, app_metadata)."""
    email: Optional[str] = None
    id: Optional[str] = None
    user_metadata: Dict[str, Any] = {}
    app_metadata: Dict[str, Any] = {}


class UserOut(BaseModel):
    id: str
    name: str
    profile_url: Optional[str] = None
    provider: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool
    token: str
    user: UserOut


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    profile_url: Optional[str] = None


class CheckInRequest(BaseModel):
    text: str


class CheckInOut(BaseModel):
    user_id: str
    user_name: str
    auth_time: str
    auth_date: date
    quote: str


class RankingRow(BaseModel):
    rank: int
    user_id: str
    name: str
    time: str
    is_current_user: bool = False


class RankingBoard(BaseModel):
    date: date
    rankings: List[RankingRow]
    my_rank: Optional[int] = None


class ApiResponse(BaseModel):
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
