import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
for key in ("EMAILJS_SERVICE_ID", "EMAILJS_TEMPLATE_ID", "EMAILJS_CONTACT_TEMPLATE_ID",
            "EMAILJS_RECOVERY_TEMPLATE_ID", "EMAILJS_PUBLIC_KEY", "EMAILJS_PRIVATE_KEY"):
    os.environ[key] = ""

import pytest
from fastapi.testclient import TestClient

from aerodeliver.database import Base, SessionLocal, engine
from aerodeliver.main import app

PASSWORD = "secret123"

BOOKING = {
    "pickup": "12 MG Road, Bengaluru",
    "delivery": "45 Brigade Road, Bengaluru",
    "item": "Documents",
    "weight": 3,
    "length_cm": 30,
    "width_cm": 20,
    "fragile": False,
    "sender_name": "Asha Rao",
    "sender_phone": "+91 98450 12345",
    "recipient_name": "Vikram Shah",
    "recipient_phone": "080-2558-1234",
}


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def register(client, email, role, name="Test User", password=PASSWORD):
    response = client.post("/auth/register", json={
        "email": email, "name": name, "password": password, "role": role,
    })
    assert response.status_code == 201, response.text
    return response.json()


def login(client, email, role, password=PASSWORD):
    response = client.post("/auth/login", json={"email": email, "password": password, "role": role})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def book(client, headers, **overrides):
    payload = dict(BOOKING, **overrides)
    response = client.post("/orders/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def customer(client):
    register(client, "asha@aerodeliver.io", "customer", name="Asha Rao")
    return login(client, "asha@aerodeliver.io", "customer")


@pytest.fixture
def other_customer(client):
    register(client, "ravi@aerodeliver.io", "customer", name="Ravi Kumar")
    return login(client, "ravi@aerodeliver.io", "customer")


@pytest.fixture
def owner(client):
    register(client, "pilot.a@aerodeliver.io", "owner", name="Pilot A")
    return login(client, "pilot.a@aerodeliver.io", "owner")


@pytest.fixture
def other_owner(client):
    register(client, "pilot.b@aerodeliver.io", "owner", name="Pilot B")
    return login(client, "pilot.b@aerodeliver.io", "owner")
