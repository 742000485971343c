import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import create_access_token, get_current_user
from config import get_settings
from database import create_schema, get_db, session_scope
from errors import ServiceError, Unauthenticated
from expense_query import ExpensePage, ExpenseTotals
from models import User
from schemas import (
    AmountSummaryOut,
    AuthResponse,
    CategoryIn,
    CategoryListResponse,
    CategoryMutationResponse,
    CategoryOut,
    CategoryResponse,
    CategoryStats,
    CategoryStatsResponse,
    CategoryUpdateIn,
    ExpenseFilterQuery,
    ExpenseIn,
    ExpenseListQuery,
    ExpenseListResponse,
    ExpenseMutationResponse,
    ExpenseOut,
    ExpenseResponse,
    ExpenseSummaryResponse,
    ExpenseTotalsOut,
    ExpenseUpdateIn,
    LoginIn,
    MessageResponse,
    PaginationOut,
    ProfileUpdateIn,
    RegisterIn,
    UserMutationResponse,
    UserOut,
    UserResponse,
)
from seed import seed_default_categories
from services import CategoryService, ExpenseService, UserService, cents_to_amount

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Money Momentum API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event():
    create_schema()
    if settings.seed_defaults:
        with session_scope() as session:
            seed_default_categories(session)


# --- error mapping -----------------------------------------------------------


def _error_field(loc) -> str:
    parts = [str(part) for part in loc[1:]]
    return ".".join(parts) or str(loc[0])


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": _error_field(err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content={"error": "Validation error", "details": details}
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code, content={"error": str(exc)}, headers=headers
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"unhandled_error: method={request.method} path={request.url.path}")
    content = {"error": "Internal server error"}
    if settings.expose_error_details:
        content["message"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# --- serialization helpers ---------------------------------------------------


def expense_list_payload(page: ExpensePage) -> ExpenseListResponse:
    return ExpenseListResponse(
        expenses=[ExpenseOut.model_validate(item) for item in page.items],
        pagination=PaginationOut(
            page=page.page,
            limit=page.limit,
            total_count=page.total_count,
            total_pages=page.total_pages,
            has_next=page.has_next,
            has_prev=page.has_prev,
        ),
        summary=AmountSummaryOut(
            total_amount=cents_to_amount(page.total_amount_cents),
            average_amount=cents_to_amount(page.totals.average_cents),
        ),
    )


def expense_totals_payload(totals: ExpenseTotals) -> ExpenseSummaryResponse:
    return ExpenseSummaryResponse(
        summary=ExpenseTotalsOut(
            total_expenses=totals.count,
            total_amount=cents_to_amount(totals.amount_cents),
            average_amount=cents_to_amount(totals.average_cents),
        )
    )


# --- health & auth -----------------------------------------------------------


@app.get("/api/health")
def health():
    return {
        "status": "OK",
        "message": "Money Momentum API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/api/auth/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    user = UserService(db).register(payload)
    return AuthResponse(
        message="User registered successfully",
        user=UserOut.model_validate(user),
        token=create_access_token(user.id),
    )


@app.post("/api/auth/login", response_model=AuthResponse)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = UserService(db).authenticate(payload.email, payload.password)
    return AuthResponse(
        message="Login successful",
        user=UserOut.model_validate(user),
        token=create_access_token(user.id),
    )


@app.post("/api/auth/logout", response_model=MessageResponse)
def logout():
    # tokens are stateless; the client discards its copy
    return MessageResponse(message="Logged out successfully")


@app.get("/api/auth/me", response_model=UserResponse)
def current_user(user: User = Depends(get_current_user)):
    return UserResponse(user=UserOut.model_validate(user))


@app.put("/api/auth/me", response_model=UserMutationResponse)
def update_current_user(
    payload: ProfileUpdateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = UserService(db).update_profile(user, payload)
    return UserMutationResponse(
        message="Profile updated successfully", user=UserOut.model_validate(user)
    )


# --- categories --------------------------------------------------------------


@app.get("/api/categories", response_model=CategoryListResponse)
def list_categories(
    include_defaults: bool = True,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    categories = CategoryService(db, user.id).list_visible(include_defaults)
    return CategoryListResponse(
        categories=[CategoryOut.model_validate(c) for c in categories]
    )


@app.get("/api/categories/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category = CategoryService(db, user.id).get(category_id)
    return CategoryResponse(category=CategoryOut.model_validate(category))


@app.get("/api/categories/{category_id}/stats", response_model=CategoryStatsResponse)
def category_stats(
    category_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = CategoryService(db, user.id)
    category = service.get(category_id)
    return CategoryStatsResponse(
        category=CategoryOut.model_validate(category),
        stats=CategoryStats(expense_count=service.expense_count(category_id)),
    )


@app.post("/api/categories", response_model=CategoryMutationResponse, status_code=201)
def create_category(
    payload: CategoryIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category = CategoryService(db, user.id).create(payload)
    return CategoryMutationResponse(
        message="Category created successfully",
        category=CategoryOut.model_validate(category),
    )


@app.put("/api/categories/{category_id}", response_model=CategoryMutationResponse)
def update_category(
    category_id: int,
    payload: CategoryUpdateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category = CategoryService(db, user.id).update(category_id, payload)
    return CategoryMutationResponse(
        message="Category updated successfully",
        category=CategoryOut.model_validate(category),
    )


@app.delete("/api/categories/{category_id}", response_model=MessageResponse)
def delete_category(
    category_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    CategoryService(db, user.id).delete(category_id)
    return MessageResponse(message="Category deleted successfully")


# --- expenses ----------------------------------------------------------------


@app.get("/api/expenses", response_model=ExpenseListResponse)
def list_expenses(
    query: Annotated[ExpenseListQuery, Query()],
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    page = ExpenseService(db, user.id).list(query)
    return expense_list_payload(page)


@app.get("/api/expenses/summary", response_model=ExpenseSummaryResponse)
def expenses_summary(
    query: Annotated[ExpenseFilterQuery, Query()],
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    totals = ExpenseService(db, user.id).summary(query)
    return expense_totals_payload(totals)


@app.get("/api/expenses/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    expense = ExpenseService(db, user.id).get(expense_id)
    return ExpenseResponse(expense=ExpenseOut.model_validate(expense))


@app.post("/api/expenses", response_model=ExpenseMutationResponse, status_code=201)
def create_expense(
    payload: ExpenseIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    expense = ExpenseService(db, user.id).create(payload)
    return ExpenseMutationResponse(
        message="Expense created successfully",
        expense=ExpenseOut.model_validate(expense),
    )


@app.put("/api/expenses/{expense_id}", response_model=ExpenseMutationResponse)
def update_expense(
    expense_id: int,
    payload: ExpenseUpdateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    expense = ExpenseService(db, user.id).update(expense_id, payload)
    return ExpenseMutationResponse(
        message="Expense updated successfully",
        expense=ExpenseOut.model_validate(expense),
    )


@app.delete("/api/expenses/{expense_id}", response_model=MessageResponse)
def delete_expense(
    expense_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ExpenseService(db, user.id).delete(expense_id)
    return MessageResponse(message="Expense deleted successfully")


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
