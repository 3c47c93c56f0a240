# skillconnect/service/matching_service.py
"""Which open service requests a provider gets to see.

Matching is deliberately loose: a request is visible when its work type and
one of the provider's skills contain each other (case-insensitive), when it
is addressed to the provider, or when its budget sits within 20% of the
provider's rate for their declared service line. When nothing matches the
provider still sees every open request rather than an empty board.
"""
import re
from typing import Iterable, List, Optional

from bson import ObjectId

from skillconnect.core.exceptions import AuthorizationError
from skillconnect.db.database import SERVICE_REQUESTS, USERS
from skillconnect.models.service_request import RequestStatus
from skillconnect.models.user import Role, full_name
from skillconnect.serialize import serialize_doc

RATE_TOLERANCE = 0.2
STRICT_MATCH_LIMIT = 10


def skill_matches(type_of_work: Optional[str], skills: Iterable[str]) -> bool:
    work = (type_of_work or "").strip().lower()
    if not work:
        return False
    for skill in skills:
        tag = str(skill).strip().lower()
        if tag and (tag in work or work in tag):
            return True
    return False


def budget_window(rate: float):
    tolerance = rate * RATE_TOLERANCE
    return rate - tolerance, rate + tolerance


def rate_and_service_match(request: dict, rate: float, service: str) -> bool:
    if rate <= 0 or not service.strip():
        return False
    low, high = budget_window(rate)
    budget = request.get("budget") or 0
    work = (request.get("type_of_work") or "").lower()
    return low <= budget <= high and service.strip().lower() in work


def visible_to(request: dict, provider_id: ObjectId) -> bool:
    target = request.get("target_provider")
    return target is None or target == provider_id


def select_visible(open_requests: List[dict], provider: dict) -> List[dict]:
    """Pure selection over already-fetched open requests (newest first)."""
    provider_id = provider["_id"]
    skills = provider.get("skills") or []
    rate = float(provider.get("service_rate") or 0)
    service = provider.get("service") or ""

    eligible = [r for r in open_requests if r.get("requester") != provider_id and visible_to(r, provider_id)]
    targeted = [r for r in eligible if r.get("target_provider") == provider_id]
    targeted_ids = {r["_id"] for r in targeted}
    matched = [
        r
        for r in eligible
        if r["_id"] not in targeted_ids
        and (skill_matches(r.get("type_of_work"), skills) or rate_and_service_match(r, rate, service))
    ]

    combined = targeted + matched
    if not combined:
        return eligible
    return combined


async def attach_requesters(db, requests: List[dict]) -> List[dict]:
    requester_ids = list({r["requester"] for r in requests if r.get("requester")})
    people = {}
    if requester_ids:
        cursor = db[USERS].find(
            {"_id": {"$in": requester_ids}},
            {"username": 1, "first_name": 1, "last_name": 1, "email": 1, "phone": 1},
        )
        async for user in cursor:
            people[user["_id"]] = user

    out = []
    for request in requests:
        item = serialize_doc(request)
        user = people.get(request.get("requester"))
        item["requester_info"] = (
            {
                "id": str(user["_id"]),
                "name": full_name(user),
                "username": user.get("username"),
                "email": user.get("email"),
                "phone": user.get("phone"),
            }
            if user
            else None
        )
        out.append(item)
    return out


async def _open_requests(db, extra_query: Optional[dict] = None) -> List[dict]:
    query = {"status": RequestStatus.OPEN.value, "service_provider": None}
    if extra_query:
        query.update(extra_query)
    cursor = db[SERVICE_REQUESTS].find(query).sort([("created_at", -1), ("_id", -1)])
    return await cursor.to_list(length=None)


def _require_provider(provider: dict) -> None:
    if provider.get("role") != Role.SERVICE_PROVIDER.value:
        raise AuthorizationError("Not a provider")


async def list_visible_requests(db, provider: dict) -> List[dict]:
    _require_provider(provider)
    open_requests = await _open_requests(db)
    return await attach_requesters(db, select_visible(open_requests, provider))


async def list_strict_matches(db, provider: dict) -> List[dict]:
    """Budget within the rate window and work type naming the service line."""
    _require_provider(provider)
    if not provider.get("verified"):
        raise AuthorizationError("Provider not verified")

    rate = float(provider.get("service_rate") or 0)
    service = (provider.get("service") or "").strip()
    if rate <= 0 or not service:
        return []

    low, high = budget_window(rate)
    candidates = await _open_requests(
        db,
        {
            "budget": {"$gte": low, "$lte": high},
            "type_of_work": {"$regex": re.escape(service), "$options": "i"},
        },
    )
    matches = [
        r for r in candidates if r.get("requester") != provider["_id"] and visible_to(r, provider["_id"])
    ][:STRICT_MATCH_LIMIT]
    return await attach_requesters(db, matches)
