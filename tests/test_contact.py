import pytest
import requests

from aerodeliver.config import settings

from tests.conftest import book

MESSAGE = {"name": "Asha Rao", "email": "asha@aerodeliver.io", "message": "Where is my parcel?"}


class FakeResponse:
    def __init__(self, status_code=200, text="OK"):
        self.status_code = status_code
        self.text = text


@pytest.fixture
def emailjs(monkeypatch):
    monkeypatch.setattr(settings, "emailjs_service_id", "service_live")
    monkeypatch.setattr(settings, "emailjs_template_id", "template_support")
    monkeypatch.setattr(settings, "emailjs_contact_template_id", "template_contact")
    monkeypatch.setattr(settings, "emailjs_public_key", "public_key")
    sent = []

    def fake_post(url, json=None, timeout=None):
        sent.append(json)
        return FakeResponse()

    monkeypatch.setattr(requests, "post", fake_post)
    return sent


def test_support_is_simulated_without_credentials(client):
    response = client.post("/support", json=MESSAGE)
    assert response.status_code == 200
    assert response.json() == {"sent": True, "simulated": True}


def test_placeholder_service_id_counts_as_unconfigured(client, emailjs, monkeypatch):
    monkeypatch.setattr(settings, "emailjs_service_id", "your_service_id")
    assert client.post("/support", json=MESSAGE).json()["simulated"] is True
    assert emailjs == []


def test_support_sends_template(client, emailjs):
    response = client.post("/support", json=dict(MESSAGE, subject="Billing"))
    assert response.json() == {"sent": True, "simulated": False}
    payload = emailjs[0]
    assert payload["service_id"] == "service_live"
    assert payload["template_id"] == "template_support"
    assert payload["user_id"] == "public_key"
    assert payload["template_params"]["subject"] == "Billing"
    assert payload["template_params"]["to_name"] == "AeroDeliver Support"


def test_general_contact_goes_to_support(client, emailjs):
    client.post("/contact", json=MESSAGE)
    params = emailjs[0]["template_params"]
    assert params["pilot_email"] == settings.support_email
    assert params["order_id"] == "N/A"
    assert params["subject"] == "General Inquiry"


def test_mission_contact_goes_to_pilot(client, emailjs, customer, owner):
    order = book(client, customer)
    client.post(f"/orders/{order['id']}/accept", headers=owner)

    response = client.post("/contact", json=dict(MESSAGE, order_id=order["id"]))
    assert response.status_code == 200
    params = emailjs[0]["template_params"]
    assert params["pilot_email"] == "pilot.a@aerodeliver.io"
    assert params["to_name"] == "Pilot (Pilot A)"
    assert params["order_id"] == order["id"]
    assert params["subject"] == f"Order #{order['id']}"


def test_contact_for_unknown_order(client, emailjs):
    response = client.post("/contact", json=dict(MESSAGE, order_id="missing"))
    assert response.status_code == 404


def test_send_failure_is_reported(client, emailjs, monkeypatch):
    def broken_post(url, json=None, timeout=None):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(requests, "post", broken_post)
    response = client.post("/support", json=MESSAGE)
    assert response.status_code == 502
    assert response.json()["detail"] == "Failed to send message. Please try again later."


def test_rejected_send_is_reported(client, emailjs, monkeypatch):
    monkeypatch.setattr(requests, "post", lambda url, json=None, timeout=None: FakeResponse(400, "bad template"))
    assert client.post("/support", json=MESSAGE).status_code == 502
