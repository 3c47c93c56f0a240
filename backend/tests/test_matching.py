from datetime import datetime, timedelta, timezone

from bson import ObjectId

from conftest import auth
from skillconnect.service.matching_service import rate_and_service_match, select_visible, skill_matches

BASE = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _request(type_of_work, minutes_ago=0, target=None, budget=0, requester=None):
    return {
        "_id": ObjectId(),
        "requester": requester,
        "type_of_work": type_of_work,
        "target_provider": target,
        "budget": budget,
        "created_at": BASE - timedelta(minutes=minutes_ago),
    }


def _provider(**overrides):
    provider = {"_id": ObjectId(), "skills": ["plumbing"], "service": "", "service_rate": 0}
    provider.update(overrides)
    return provider


def test_skill_match_is_substring_either_way_and_case_insensitive():
    assert skill_matches("Emergency PLUMBING repair", ["plumbing"])
    assert skill_matches("plumb", ["Plumbing"])
    assert not skill_matches("Electrical", ["plumbing"])
    assert not skill_matches("", ["plumbing"])
    assert not skill_matches("Plumbing", ["", "  "])


def test_rate_window_requires_service_and_rate():
    request = _request("House cleaning", budget=110)
    assert rate_and_service_match(request, 100, "cleaning")
    assert not rate_and_service_match(request, 100, "")
    assert not rate_and_service_match(request, 0, "cleaning")
    assert not rate_and_service_match(_request("House cleaning", budget=121), 100, "cleaning")


def test_targeted_requests_come_first():
    provider = _provider()
    plumbing = _request("Plumbing", minutes_ago=1)
    targeted = _request("Painting", minutes_ago=5, target=provider["_id"])

    visible = select_visible([plumbing, targeted], provider)

    assert [r["_id"] for r in visible] == [targeted["_id"], plumbing["_id"]]


def test_requests_targeted_at_someone_else_are_never_visible():
    provider = _provider()
    other_target = _request("Plumbing", target=ObjectId())
    unrelated = _request("Gardening", minutes_ago=3)

    visible = select_visible([other_target, unrelated], provider)

    # Nothing matches, so the fallback applies, still without the other provider's request
    assert [r["_id"] for r in visible] == [unrelated["_id"]]


def test_fallback_returns_all_open_requests_when_nothing_matches():
    provider = _provider(skills=["carpentry"])
    requests = [_request("Gardening", minutes_ago=1), _request("Welding", minutes_ago=2)]

    assert select_visible(requests, provider) == requests


def test_matched_requests_hide_unmatched_ones():
    provider = _provider(service="cleaning", service_rate=100)
    by_rate = _request("Deep cleaning", minutes_ago=1, budget=90)
    by_skill = _request("Plumbing leak", minutes_ago=2)
    unrelated = _request("Gardening", minutes_ago=3, budget=90)

    visible = select_visible([by_rate, by_skill, unrelated], provider)

    assert [r["_id"] for r in visible] == [by_rate["_id"], by_skill["_id"]]


def test_own_requests_are_never_offered_back():
    provider = _provider()
    own = _request("Plumbing", minutes_ago=1, requester=provider["_id"])
    other = _request("Gardening", minutes_ago=2, requester=ObjectId())

    # The fallback still applies, but never includes the provider's own request
    assert select_visible([own, other], provider) == [other]
    assert select_visible([own], provider) == []


def test_available_endpoint_attaches_requester(client, make_user, make_provider, post_request):
    requester = make_user()
    provider = make_provider()
    post_request(requester, type_of_work="Plumbing")

    response = client.get("/api/v1/service-requests/available", headers=auth(provider))

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["requests"][0]["requester_info"]["id"] == str(requester["_id"])


def test_available_endpoint_is_provider_only(client, make_user):
    member = make_user()
    response = client.get("/api/v1/service-requests/available", headers=auth(member))
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_strict_matching(client, make_user, make_provider, post_request):
    requester = make_user()
    provider = make_provider(service="cleaning", service_rate=1000)
    post_request(requester, type_of_work="House Cleaning", budget=1100)
    post_request(requester, type_of_work="House Cleaning", budget=2000)
    post_request(requester, type_of_work="Plumbing", budget=1000)

    response = client.get("/api/v1/service-requests/matching", headers=auth(provider))

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["requests"][0]["budget"] == 1100


def test_strict_matching_without_service_profile_is_empty(client, make_user, make_provider, post_request):
    post_request(make_user(), type_of_work="Cleaning", budget=100)
    provider = make_provider()

    response = client.get("/api/v1/service-requests/matching", headers=auth(provider))

    assert response.json()["requests"] == []


def test_strict_matching_requires_verification(client, make_provider):
    provider = make_provider(verified=False, service="cleaning", service_rate=100)
    response = client.get("/api/v1/service-requests/matching", headers=auth(provider))
    assert response.status_code == 403


def test_provider_does_not_see_own_request_on_board(client, make_user, make_provider, post_request):
    provider = make_provider(service="plumbing", service_rate=500)
    post_request(provider, type_of_work="Plumbing", budget=500)
    theirs = post_request(make_user(), type_of_work="Plumbing", budget=500)

    available = client.get("/api/v1/service-requests/available", headers=auth(provider)).json()
    matching = client.get("/api/v1/service-requests/matching", headers=auth(provider)).json()

    assert [r["id"] for r in available["requests"]] == [theirs["id"]]
    assert [r["id"] for r in matching["requests"]] == [theirs["id"]]
