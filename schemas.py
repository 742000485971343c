import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from periods import PeriodSlug

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
MAX_AMOUNT = Decimal("999999.99")

TagText = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)
]
SortField = Literal["date", "amount", "description", "created_at"]
SortOrder = Literal["asc", "desc"]

# camelCase spellings accepted on query strings
QUERY_PARAM_ALIASES = {
    "categoryId": "category_id",
    "startDate": "start_date",
    "endDate": "end_date",
    "sortBy": "sort_by",
    "sortOrder": "sort_order",
}


class ApiModel(BaseModel):
    """Wire models: camelCase on the wire, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class InputModel(ApiModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def reject_null(value):
    if value is None:
        raise ValueError("may not be null")
    return value


# --- users -------------------------------------------------------------------


class RegisterIn(InputModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class LoginIn(InputModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdateIn(InputModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class UserOut(ApiModel):
    id: int
    email: str
    first_name: str
    last_name: str
    created_at: datetime
    updated_at: datetime


class UserResponse(ApiModel):
    user: UserOut


class UserMutationResponse(UserResponse):
    message: str


class AuthResponse(ApiModel):
    message: str
    user: UserOut
    token: str


# --- categories --------------------------------------------------------------


class CategoryIn(InputModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: str = Field(..., pattern=HEX_COLOR_PATTERN)
    icon: str = Field(..., min_length=1, max_length=50)


class CategoryUpdateIn(InputModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, min_length=1, max_length=50)

    @field_validator("name", "color", "icon", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class CategorySummary(ApiModel):
    id: int
    name: str
    color: str
    icon: str


class CategoryOut(ApiModel):
    id: int
    name: str
    description: Optional[str]
    color: str
    icon: str
    user_id: Optional[int]
    is_default: bool
    created_at: datetime
    updated_at: datetime


class CategoryResponse(ApiModel):
    category: CategoryOut


class CategoryMutationResponse(CategoryResponse):
    message: str


class CategoryListResponse(ApiModel):
    categories: list[CategoryOut]


class CategoryStats(ApiModel):
    expense_count: int


class CategoryStatsResponse(ApiModel):
    category: CategoryOut
    stats: CategoryStats


# --- expenses ----------------------------------------------------------------


class ExpenseIn(InputModel):
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT, decimal_places=2)
    description: str = Field(..., min_length=1, max_length=255)
    date: date
    category_id: int = Field(..., gt=0)
    receipt_filename: Optional[str] = Field(default=None, max_length=255)
    tags: list[TagText] = Field(default_factory=list, max_length=10)
    notes: Optional[str] = Field(default=None, max_length=1000)


class ExpenseUpdateIn(InputModel):
    amount: Optional[Decimal] = Field(
        default=None, gt=0, le=MAX_AMOUNT, decimal_places=2
    )
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date: Optional[dt.date] = None
    category_id: Optional[int] = Field(default=None, gt=0)
    receipt_filename: Optional[str] = Field(default=None, max_length=255)
    tags: Optional[list[TagText]] = Field(default=None, max_length=10)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator(
        "amount", "description", "date", "category_id", "tags", mode="before"
    )
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class ExpenseOut(ApiModel):
    id: int
    amount: float
    description: str
    date: dt.date
    category_id: int
    user_id: int
    receipt_filename: Optional[str]
    tags: list[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    category: Optional[CategorySummary] = None


class ExpenseResponse(ApiModel):
    expense: ExpenseOut


class ExpenseMutationResponse(ExpenseResponse):
    message: str


class PaginationOut(ApiModel):
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool


class AmountSummaryOut(ApiModel):
    total_amount: float
    average_amount: float


class ExpenseListResponse(ApiModel):
    expenses: list[ExpenseOut]
    pagination: PaginationOut
    summary: AmountSummaryOut


class ExpenseTotalsOut(AmountSummaryOut):
    total_expenses: int


class ExpenseSummaryResponse(ApiModel):
    summary: ExpenseTotalsOut


class MessageResponse(BaseModel):
    message: str


# --- query strings -----------------------------------------------------------


class ExpenseFilterQuery(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    category_id: Optional[int] = Field(default=None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    period: Optional[PeriodSlug] = None
    search: Optional[str] = Field(default=None, max_length=100)

    @model_validator(mode="before")
    @classmethod
    def accept_camel_names(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            for camel, snake in QUERY_PARAM_ALIASES.items():
                # both spellings at once stay behind as an unknown parameter
                if camel in data and snake not in data:
                    data[snake] = data.pop(camel)
        return data

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("end_date")
    @classmethod
    def end_not_before_start(
        cls, value: Optional[date], info: ValidationInfo
    ) -> Optional[date]:
        start_date = info.data.get("start_date")
        if value and start_date and start_date > value:
            raise ValueError("start_date must not be after end_date")
        return value

    @field_validator("period")
    @classmethod
    def period_excludes_dates(cls, value, info: ValidationInfo):
        if value and (info.data.get("start_date") or info.data.get("end_date")):
            raise ValueError("period cannot be combined with start_date/end_date")
        return value


class ExpenseListQuery(ExpenseFilterQuery):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: SortField = "date"
    sort_order: SortOrder = "desc"

    @field_validator("sort_by", mode="before")
    @classmethod
    def accept_camel_sort_field(cls, value):
        if value == "createdAt":
            return "created_at"
        return value

    @field_validator("sort_order", mode="before")
    @classmethod
    def case_insensitive_order(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value
