from tests.conftest import book


def add_drone(client, headers, model, drone_id=None):
    payload = {"model": model}
    if drone_id:
        payload["id"] = drone_id
    response = client.post("/owner/drones", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_new_drone_defaults(client, owner):
    drone = add_drone(client, owner, "DJI Matrice 350", "D-101")
    assert drone["id"] == "D-101"
    assert drone["status"] == "offline"
    assert drone["battery"] == 100
    assert drone["flights"] == 0
    assert drone["hours"] == 0
    assert drone["last_maintenance"]
    assert drone["image"].startswith("https://")


def test_generated_drone_id(client, owner):
    drone = add_drone(client, owner, "Skydio X10")
    assert drone["id"].startswith("D-")


def test_fleet_is_scoped_to_owner(client, owner, other_owner):
    add_drone(client, owner, "DJI Matrice 350", "D-101")
    add_drone(client, owner, "Skydio X10", "D-102")
    add_drone(client, other_owner, "Wingcopter 198", "D-201")

    assert len(client.get("/owner/drones", headers=owner).json()) == 2
    assert [d["id"] for d in client.get("/owner/drones", headers=other_owner).json()] == ["D-201"]


def test_duplicate_drone_id_conflicts(client, owner):
    add_drone(client, owner, "DJI Matrice 350", "D-101")
    response = client.post("/owner/drones", json={"model": "Other", "id": "D-101"}, headers=owner)
    assert response.status_code == 409
    assert len(client.get("/owner/drones", headers=owner).json()) == 1


def test_drone_search_and_status_filter(client, owner):
    add_drone(client, owner, "DJI Matrice 350", "D-101")
    add_drone(client, owner, "Skydio X10", "D-102")
    client.patch("/owner/drones/D-102/status", json={"status": "active"}, headers=owner)

    by_model = client.get("/owner/drones", params={"q": "skydio"}, headers=owner).json()
    assert [d["id"] for d in by_model] == ["D-102"]
    by_id = client.get("/owner/drones", params={"q": "d-101"}, headers=owner).json()
    assert [d["id"] for d in by_id] == ["D-101"]
    active = client.get("/owner/drones", params={"status": "active"}, headers=owner).json()
    assert [d["id"] for d in active] == ["D-102"]
    everything = client.get("/owner/drones", params={"status": "all"}, headers=owner).json()
    assert len(everything) == 2


def test_fleet_summary(client, owner):
    assert client.get("/owner/drones/summary", headers=owner).json() == {"total": 0, "online": 0, "avg_battery": 0}
    add_drone(client, owner, "DJI Matrice 350", "D-101")
    client.patch("/owner/drones/D-101/status", json={"status": "active"}, headers=owner)
    add_drone(client, owner, "Skydio X10", "D-102")
    assert client.get("/owner/drones/summary", headers=owner).json() == {"total": 2, "online": 1, "avg_battery": 100}


def test_cannot_touch_another_owners_drone(client, owner, other_owner):
    add_drone(client, owner, "DJI Matrice 350", "D-101")
    response = client.patch("/owner/drones/D-101/status", json={"status": "active"}, headers=other_owner)
    assert response.status_code == 404


def test_unknown_drone_status_is_rejected(client, owner):
    add_drone(client, owner, "DJI Matrice 350", "D-101")
    response = client.patch("/owner/drones/D-101/status", json={"status": "flying"}, headers=owner)
    assert response.status_code == 422


def test_customers_have_no_fleet(client, customer):
    assert client.get("/owner/drones", headers=customer).status_code == 403


def test_earnings_are_eighty_percent_of_delivered(client, customer, owner, db):
    from aerodeliver import models

    cheap, pricey, open_one = book(client, customer), book(client, customer), book(client, customer)
    for order in (cheap, pricey, open_one):
        client.post(f"/orders/{order['id']}/accept", headers=owner)
    # set round prices directly so the payout is easy to read
    db.query(models.Order).filter_by(id=cheap["id"]).update({"price": 100})
    db.query(models.Order).filter_by(id=pricey["id"]).update({"price": 200})
    db.commit()
    client.post(f"/orders/{cheap['id']}/deliver", headers=owner)
    client.post(f"/orders/{pricey['id']}/deliver", headers=owner)

    earnings = client.get("/owner/earnings", headers=owner).json()
    assert earnings["total_earnings"] == 240
    assert sorted(entry["payout"] for entry in earnings["completed"]) == [80, 160]

    stats = client.get("/owner/stats", headers=owner).json()
    assert stats == {"earnings": 240, "deliveries": 2, "flight_hours": 1.5, "active_orders": 1}


def test_owner_dashboard(client, customer, owner):
    accepted = book(client, customer)
    waiting = book(client, customer)
    client.post(f"/orders/{accepted['id']}/accept", headers=owner)

    dashboard = client.get("/owner/dashboard", headers=owner).json()
    assert [o["id"] for o in dashboard["active_missions"]] == [accepted["id"]]
    assert [o["id"] for o in dashboard["requests"]] == [waiting["id"]]
    assert dashboard["stats"]["active_orders"] == 1
    assert [o["id"] for o in client.get("/owner/missions", headers=owner).json()] == [accepted["id"]]
