from pydantic import BaseModel, model_validator
from typing import Optional

class AdminLogin(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    @model_validator(mode="after")
    def _username_is_email(self):
        if not self.username and self.email:
            self.username = self.email
        return self

class AdminOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    status: str

class AdminToken(BaseModel):
    success: bool = True
    message: str = "Login successful"
    token: str
    admin: AdminOut
