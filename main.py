import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from config import settings
from database import Store, connect
from errors import AppError, StoreUnavailable
from logger import RequestLoggingMiddleware, setup_logging
from security import PasswordHasher
from seed import seed_foods_if_empty
from services import FoodCatalog, OrderBook, UserAccounts

logger = logging.getLogger(__name__)


# ============ Request models ==========
class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FoodCreateRequest(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    # Coerced to a number by the Food schema
    price: Any = None
    category: Optional[str] = None
    image: Optional[str] = None


class RegisterRequest(ApiModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None


class LoginRequest(ApiModel):
    username: Optional[str] = None
    password: Optional[str] = None


class OrderRequest(ApiModel):
    user_id: Any = None
    # Each item is coerced by the order service
    items: Any = None


# ============ Dependencies ==========
def get_foods(request: Request) -> FoodCatalog:
    return request.app.state.foods


def get_users(request: Request) -> UserAccounts:
    return request.app.state.users


def get_orders(request: Request) -> OrderBook:
    return request.app.state.orders


router = APIRouter(prefix="/api")


# ===================== Health =====================
@router.get("/health")
def health(request: Request):
    store: Store = request.app.state.store
    return {"status": "ok", "database": "connected" if store.ping() else "unavailable"}


# ===================== Foods =====================
@router.get("/foods")
def list_foods(foods: FoodCatalog = Depends(get_foods)):
    return foods.list_foods()


@router.get("/foods/{food_id}")
def get_food(food_id: str, foods: FoodCatalog = Depends(get_foods)):
    return foods.get_food(food_id)


@router.post("/foods", status_code=status.HTTP_201_CREATED)
def create_food(payload: FoodCreateRequest, foods: FoodCatalog = Depends(get_foods)):
    food = foods.create_food(
        name=payload.name,
        price=payload.price,
        description=payload.description,
        category=payload.category,
        image=payload.image,
    )
    return {"message": "Food added", "food": food}


# ===================== Auth =====================
@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, users: UserAccounts = Depends(get_users)):
    user = users.register(payload.username, payload.password, payload.email)
    return {"message": "Registered", "userId": user["id"], "username": user["username"]}


# Returns basic user info only; no session or token is issued
@router.post("/login")
def login(payload: LoginRequest, users: UserAccounts = Depends(get_users)):
    user = users.login(payload.username, payload.password)
    return {"message": "Login successful", "userId": user["id"], "username": user["username"]}


# ===================== Orders =====================
@router.post("/order", status_code=status.HTTP_201_CREATED)
def place_order(payload: OrderRequest, orders: OrderBook = Depends(get_orders)):
    placed = orders.place_order(payload.user_id, payload.items)
    return {"message": "Order placed", "orderId": placed["orderId"]}


@router.get("/users/{user_id}/orders")
def list_user_orders(user_id: str, orders: OrderBook = Depends(get_orders)):
    return orders.list_orders_for_user(user_id)


# ===================== Error envelope =====================
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected request body for %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid request body"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Internal server error"})


# ===================== Application =====================
def create_app(
    store: Optional[Store] = None,
    hasher: Optional[PasswordHasher] = None,
    static_dir: Optional[str] = None,
) -> FastAPI:
    """
    Build the API. Without a store, one is connected on startup from settings;
    a connection failure aborts startup. The catalog is seeded before the
    first request is served.
    """
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.store is None:
            try:
                app.state.store = connect(settings.MONGO_URI, settings.DATABASE_NAME, settings.MONGO_TIMEOUT_MS)
            except StoreUnavailable as exc:
                logger.error("MongoDB connection error: %s", exc)
                raise
        db_store: Store = app.state.store
        db_store.ensure_indexes()
        seed_foods_if_empty(db_store)

        app.state.foods = FoodCatalog(db_store)
        app.state.users = UserAccounts(db_store, app.state.hasher)
        app.state.orders = OrderBook(db_store)
        logger.info("Food ordering API ready")
        yield

    app = FastAPI(title="Food Ordering API", version="1.0.0", lifespan=lifespan)
    app.state.store = store
    app.state.hasher = hasher or PasswordHasher(rounds=settings.BCRYPT_ROUNDS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)

    # Mounted last so API routes take precedence
    static_dir = static_dir or settings.STATIC_DIR
    if os.path.isdir(static_dir):
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.warning("Static directory %s not found; static assets disabled", static_dir)

    return app


app = create_app()


def main() -> None:
    import uvicorn

    setup_logging(settings.LOG_LEVEL)
    try:
        store = connect(settings.MONGO_URI, settings.DATABASE_NAME, settings.MONGO_TIMEOUT_MS)
    except StoreUnavailable as exc:
        logger.error("MongoDB connection error: %s", exc)
        sys.exit(1)
    uvicorn.run(create_app(store), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
