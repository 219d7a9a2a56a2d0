from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import get_current_user
from app.models.user import User
from app.services import dashboard

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats")
async def stats(user: User = Depends(get_current_user)):
    return {"success": True, "data": await dashboard.stats_for(user)}


@router.get("/activity")
async def activity(
    user: User = Depends(get_current_user),
    limit: int = Query(dashboard.DEFAULT_ACTIVITY_LIMIT, ge=1, le=100),
):
    """Merged issue/comment feed, newest first."""
    items = await dashboard.recent_activity(limit)
    return {"success": True, "data": items, "count": len(items)}
