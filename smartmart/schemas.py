"""
schemas.py: Request payload models.

Pydantic models validate every JSON body before it reaches a repository.
Failures surface as 400 ``{"errors": [...]}`` through the error handlers.

Models:
    - LoginInput / LogoutInput: credentials and refresh-token payloads.
    - RegisterInput / UserInput: account registration and profile updates.
    - CategoryInput, ProductInput, ProductImageInput: catalog writes.
    - CartItem / CheckoutRequest: the cart submitted at checkout.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator

PHONE_PATTERN = r"^3\d{9}$"


class LoginInput(BaseModel):
    email: EmailStr = Field(..., max_length=254)
    password: str = Field(..., min_length=8, max_length=128)


class LogoutInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., min_length=1, alias="refreshToken")


class UserInput(BaseModel):
    """
    Profile fields a user can set on their own account.

    Accepts the camelCase keys the storefront sends (``firstName``) as well
    as snake_case.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=150)
    first_name: str = Field(..., min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=100, alias="lastName")
    phone: str = Field(..., max_length=10, pattern=PHONE_PATTERN)
    date_of_birth: date = Field(..., alias="dateOfBirth")

    @field_validator("phone", mode="before")
    @classmethod
    def coerce_phone(cls, value):
        return str(value) if value is not None else value


class UserPartialInput(UserInput):
    username: Optional[str] = Field(None, min_length=1, max_length=150)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100, alias="firstName")
    last_name: Optional[str] = Field(None, min_length=1, max_length=100, alias="lastName")
    phone: Optional[str] = Field(None, max_length=10, pattern=PHONE_PATTERN)
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")


class RegisterInput(UserInput):
    email: EmailStr = Field(..., max_length=254)
    password: str = Field(..., min_length=8, max_length=128)


class CategoryInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, value):
        if value is None:
            return value
        return " ".join(str(value).split())


class ProductInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    price: float = Field(..., ge=0)
    stock_quantity: int = Field(..., ge=0)
    category_id: str = Field(..., min_length=1)

    @field_validator("price")
    @classmethod
    def two_decimals(cls, value: float) -> float:
        return round(value, 2)


class ProductPartialInput(ProductInput):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    category_id: Optional[str] = Field(None, min_length=1)

    @field_validator("price")
    @classmethod
    def two_decimals(cls, value: Optional[float]) -> Optional[float]:
        return round(value, 2) if value is not None else value


class ProductImageInput(BaseModel):
    image_url: HttpUrl
    product_id: str = Field(..., min_length=1)

    @field_validator("image_url")
    @classmethod
    def limit_length(cls, value: HttpUrl) -> HttpUrl:
        if len(str(value)) > 200:
            raise ValueError("URL must be at most 200 characters")
        return value


class CartItem(BaseModel):
    """
    A single line of the cart submitted at checkout.

    Attributes:
        product_id (str): Identifier of the product.
        quantity (int): Units requested. Must be at least one.
    """

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


class CheckoutRequest(BaseModel):
    items: List[CartItem] = Field(..., min_length=1)
