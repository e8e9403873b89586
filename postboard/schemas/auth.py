from pydantic import BaseModel


class UserLogin(BaseModel):
    email: str
    password: str


class Claims(BaseModel):
    """Identity carried inside a signed access token."""
    id: int
    email: str
    firstname: str
    lastname: str
    exp: int
