import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aerodeliver.config import settings
from aerodeliver.database import Base, check_connection, engine
from aerodeliver.routers import auth, contact, customer, orders, owner, users

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_db_and_tables():
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("✅ Database tables checked/created")
    except Exception as e:
        logger.warning("⚠️  Could not create tables: %s", e)
        logger.warning("⚠️  Make sure the database exists and is reachable")


@asynccontextmanager
async def lifespan(app: FastAPI):
    check_connection()
    create_db_and_tables()
    yield


app = FastAPI(
    title="AeroDeliver API",
    description="Drone delivery marketplace: customers book parcels, pilots fly them",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(orders.router, prefix="/orders", tags=["orders"])
app.include_router(customer.router, prefix="/customer", tags=["customer"])
app.include_router(owner.router, prefix="/owner", tags=["owner"])
app.include_router(contact.router, tags=["contact"])


@app.get("/")
async def root():
    return {"message": "AeroDeliver API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
