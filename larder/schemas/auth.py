from pydantic import Field
from larder.schemas.common import CamelModel

class SignupIn(CamelModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=4)
    name: str
    business_name: str
    currency: str = "USD"

class LoginIn(CamelModel):
    email: str
    password: str

class MeOut(CamelModel):
    user_id: str
    email: str
    name: str
    business_profile_id: str | None = None
    business_name: str | None = None
    role: str | None = None
