from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

E164_PATTERN = r"^\+[1-9]\d{9,14}$"
CODE_PATTERN = r"^\d{6}$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendCodeIn(CamelModel):
    phone: str = Field(..., min_length=10, max_length=15, pattern=E164_PATTERN,
                       examples=["+14155551234"])


class VerifyCodeIn(CamelModel):
    phone: str = Field(..., min_length=10, max_length=15, pattern=E164_PATTERN)
    code: str = Field(..., pattern=CODE_PATTERN)
    device_type: Optional[str] = Field(default=None, max_length=64)


class GoogleAuthIn(CamelModel):
    id_token: str = Field(..., min_length=1)
    device_type: Optional[str] = Field(default=None, max_length=64)


class AppleFullName(CamelModel):
    given_name: Optional[str] = None
    family_name: Optional[str] = None

    def display_name(self) -> Optional[str]:
        joined = " ".join(p for p in (self.given_name, self.family_name) if p)
        return joined or None


class AppleAuthIn(CamelModel):
    identity_token: str = Field(..., min_length=1)
    authorization_code: str = Field(..., min_length=1)
    full_name: Optional[AppleFullName] = None
    device_type: Optional[str] = Field(default=None, max_length=64)


class RefreshIn(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class TokenPairOut(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int


class AccountSummary(CamelModel):
    id: str
    phone: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    verified_badges: List[str] = []
    is_new_user: bool


class AuthResult(CamelModel):
    user: AccountSummary
    tokens: TokenPairOut


class AuthenticatedUser(CamelModel):
    user_id: str
    session_id: str
