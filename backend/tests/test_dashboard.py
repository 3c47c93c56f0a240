from conftest import auth

URL = "/api/v1/service-requests"


def _accept(client, provider, request):
    return client.post(f"{URL}/{request['id']}/accept", headers=auth(provider)).json()["booking"]


def test_provider_dashboard(client, make_user, make_provider, post_request):
    requester = make_user(first_name="Ana", last_name="Reyes")
    provider = make_provider()

    done = post_request(requester, name="Leaky faucet", budget=500)
    working = post_request(requester, name="Clogged drain", budget=800)
    declined = post_request(requester, name="New pipes", budget=300)
    post_request(requester, name="Water heater", target_provider=str(provider["_id"]))

    booking = _accept(client, provider, done)
    client.post(f"{URL}/{done['id']}/complete", headers=auth(provider))
    _accept(client, provider, working)
    _accept(client, provider, declined)
    client.post(f"{URL}/{declined['id']}/reject", headers=auth(provider))
    client.post(
        "/api/v1/reviews/",
        json={"booking_id": booking["id"], "rating": 4, "comments": "Quick and tidy"},
        headers=auth(requester),
    )

    stats = client.get("/api/v1/users/dashboard/stats", headers=auth(provider)).json()["stats"]
    assert stats == {
        "total_requests": 3,
        "completed_jobs": 1,
        "active_jobs": 1,
        "cancelled_jobs": 1,
        "pending_requests": 1,
        "average_rating": 4,
        "total_earnings": 500,
    }

    body = client.get("/api/v1/users/dashboard/recent-activity", headers=auth(provider)).json()
    activities = body["activities"]
    assert body["count"] == 4
    assert activities[0]["type"] == "rating_received"
    assert activities[0]["description"] == '4-star rating from Ana Reyes - "Quick and tidy"'
    assert sorted(a["type"] for a in activities[1:]) == ["job_completed", "new_request", "new_request"]
    completed = next(a for a in activities if a["type"] == "job_completed")
    assert completed["title"] == "Leaky faucet - Completed"
    assert completed["description"] == "Budget: 500 - Customer: Ana Reyes"


def test_empty_dashboard_for_new_provider(client, make_provider):
    provider = make_provider()

    stats = client.get("/api/v1/users/dashboard/stats", headers=auth(provider)).json()["stats"]
    assert stats["total_requests"] == 0
    assert stats["average_rating"] == 0
    assert stats["total_earnings"] == 0
    assert client.get("/api/v1/users/dashboard/recent-activity", headers=auth(provider)).json()["activities"] == []


def test_dashboard_is_provider_only(client, make_user):
    response = client.get("/api/v1/users/dashboard/stats", headers=auth(make_user()))
    assert response.status_code == 403
