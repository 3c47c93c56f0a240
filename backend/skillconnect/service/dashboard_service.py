# skillconnect/service/dashboard_service.py
"""Per-provider job counters and recent activity feed."""
import asyncio
from typing import Any, Dict, List

from skillconnect.db.database import REVIEWS, SERVICE_REQUESTS, USERS
from skillconnect.models.service_request import RequestStatus
from skillconnect.models.user import full_name

RECENT_JOBS = 5
RECENT_REVIEWS = 3
ACTIVITY_LIMIT = 5
COMMENT_PREVIEW = 50


def _jobs_query(provider_id) -> dict:
    # A rejected job drops service_provider but keeps the decliner
    return {"$or": [{"service_provider": provider_id}, {"declined_by": provider_id}]}


async def provider_stats(db, provider: dict) -> Dict[str, Any]:
    pid = provider["_id"]
    requests = db[SERVICE_REQUESTS]

    total, completed, active, cancelled, pending = await asyncio.gather(
        requests.count_documents(_jobs_query(pid)),
        requests.count_documents({"service_provider": pid, "status": RequestStatus.COMPLETED.value}),
        requests.count_documents({"service_provider": pid, "status": RequestStatus.ASSIGNED.value}),
        requests.count_documents({"declined_by": pid, "status": RequestStatus.CANCELLED.value}),
        requests.count_documents({"target_provider": pid, "status": RequestStatus.OPEN.value}),
    )

    ratings = [r["rating"] async for r in db[REVIEWS].find({"reviewee": pid}, {"rating": 1})]
    budgets = [
        r.get("budget") or 0
        async for r in requests.find(
            {"service_provider": pid, "status": RequestStatus.COMPLETED.value}, {"budget": 1}
        )
    ]

    return {
        "total_requests": total,
        "completed_jobs": completed,
        "active_jobs": active,
        "cancelled_jobs": cancelled,
        "pending_requests": pending,
        "average_rating": round(sum(ratings) / len(ratings), 1) if ratings else 0,
        "total_earnings": sum(budgets),
    }


async def _names(db, user_ids) -> Dict[Any, str]:
    ids = list({uid for uid in user_ids if uid})
    if not ids:
        return {}
    cursor = db[USERS].find({"_id": {"$in": ids}}, {"first_name": 1, "last_name": 1, "username": 1})
    return {user["_id"]: full_name(user) async for user in cursor}


async def recent_activity(db, provider: dict) -> List[Dict[str, Any]]:
    pid = provider["_id"]
    jobs = (
        await db[SERVICE_REQUESTS]
        .find(_jobs_query(pid))
        .sort([("created_at", -1), ("_id", -1)])
        .limit(RECENT_JOBS)
        .to_list(length=None)
    )
    reviews = (
        await db[REVIEWS]
        .find({"reviewee": pid})
        .sort([("created_at", -1), ("_id", -1)])
        .limit(RECENT_REVIEWS)
        .to_list(length=None)
    )
    names = await _names(db, [j.get("requester") for j in jobs] + [r.get("reviewer") for r in reviews])

    activities = []
    for job in jobs:
        done = job.get("status") == RequestStatus.COMPLETED.value
        customer = names.get(job.get("requester"), "Unknown")
        activities.append(
            {
                "id": f"request_{job['_id']}",
                "type": "job_completed" if done else "new_request",
                "title": f"{job.get('name')} - {job.get('status')}",
                "description": f"Budget: {job.get('budget') or 0:g} - Customer: {customer}",
                "at": job.get("created_at"),
                "status": "success" if done else "pending",
            }
        )
    for review in reviews:
        comment = (review.get("comments") or "")[:COMMENT_PREVIEW] or "No comment"
        activities.append(
            {
                "id": f"review_{review['_id']}",
                "type": "rating_received",
                "title": "Rating received",
                "description": (
                    f"{review['rating']}-star rating from "
                    f"{names.get(review.get('reviewer'), 'Anonymous')} - \"{comment}\""
                ),
                "at": review.get("created_at"),
                "status": "success",
            }
        )

    activities.sort(key=lambda item: item["at"], reverse=True)
    return activities[:ACTIVITY_LIMIT]
