from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from blog_api.models import UserRole


# --- Auth ---

class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1, max_length=50, pattern=r"^[A-Za-z]+$")
    last_name: str | None = Field(None, alias="lastName", pattern=r"^[A-Za-z]*$")
    user_name: str = Field(alias="userName", min_length=1, max_length=100, pattern=r"^[A-Za-z0-9]+$")
    email: EmailStr
    password: str = Field(min_length=6, max_length=50)
    role: UserRole = UserRole.USER


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(alias="userName", min_length=1)
    password: str = Field(min_length=1)


class ResetPasswordRequest(BaseModel):
    """
    Either initiates a reset (``email`` only) or completes one
    (``email`` + ``token`` + ``password``).
    """

    email: EmailStr
    token: str | None = Field(None, pattern=r"^\d{8}$")
    password: str | None = Field(None, min_length=6, max_length=50)

    @model_validator(mode="after")
    def _token_and_password_together(self):
        if (self.token is None) != (self.password is None):
            raise ValueError("token and password must be provided together")
        return self

    @property
    def is_completion(self) -> bool:
        return self.token is not None


class UpdatePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    previous_password: str = Field(alias="previousPassword", min_length=6, max_length=50)
    new_password: str = Field(alias="newPassword", min_length=6, max_length=50)


# --- Category ---

def _non_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("name must not be blank")
    return value


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _non_blank(value)


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str | None) -> str | None:
        return value if value is None else _non_blank(value)


# --- Post ---

class PostCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    image_url: str | None = Field(None, alias="imageUrl")
    is_draft: bool = Field(True, alias="isDraft")
    is_private: bool = Field(False, alias="isPrivate")
    category_id: int | None = Field(None, alias="categoryId")


class PostUpdate(BaseModel):
    """
    Partial update.  Only fields present in the payload are applied, so an
    explicit ``false``, ``""`` or ``null`` is honoured.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = Field(None, min_length=1)
    body: str | None = Field(None, min_length=1)
    image_url: str | None = Field(None, alias="imageUrl")
    is_draft: bool | None = Field(None, alias="isDraft")
    is_private: bool | None = Field(None, alias="isPrivate")
    category_id: int | None = Field(None, alias="categoryId")

    @model_validator(mode="after")
    def _required_fields_not_null(self):
        for name in ("title", "body", "is_draft", "is_private"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


# --- Comment ---

class CommentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(min_length=1)
    post_id: int = Field(alias="postId", ge=1)
    parent_id: int | None = Field(None, alias="parentId", ge=1)


class CommentUpdate(BaseModel):
    text: str = Field(min_length=1)
