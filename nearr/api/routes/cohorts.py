"""Public cohort endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from ...errors import ValidationError
from ...services import CohortService
from ...storage import VCARD_CONTENT_TYPE
from ..deps import get_cohorts
from ..schemas import ClusterUserRequest, JoinRequest

router = APIRouter(prefix="/api", tags=["cohorts"])


@router.get("/clusters")
def list_clusters(cohorts: CohortService = Depends(get_cohorts)):
    return {"success": True, "clusters": cohorts.list_clusters()}


@router.get("/cohort-status")
def cohort_status(
    cluster_id: int = Query(..., ge=1),
    user_id: Optional[str] = Query(None),
    cohorts: CohortService = Depends(get_cohorts),
):
    status = cohorts.get_status(cluster_id, user_id)
    return {"success": True, **status.model_dump(mode="json")}


@router.post("/join-cluster")
def join_cluster(body: JoinRequest, cohorts: CohortService = Depends(get_cohorts)):
    status = cohorts.join(body.cluster_id, body.user_id, body.display_profession)
    return {"success": True, "message": "Joined cluster.", **status.model_dump(mode="json")}


@router.post("/leave-cluster")
def leave_cluster(body: ClusterUserRequest, cohorts: CohortService = Depends(get_cohorts)):
    status = cohorts.leave(body.cluster_id, body.user_id)
    return {"success": True, "message": "Left cluster.", **status.model_dump(mode="json")}


@router.get("/cluster-stats")
def cluster_stats(
    cluster_id: int = Query(..., ge=1),
    user_country: Optional[str] = Query(None),
    cohorts: CohortService = Depends(get_cohorts),
):
    result = cohorts.cluster_stats(cluster_id, user_country)
    return {"success": True, **result.model_dump(mode="json")}


@router.get("/cohorts/{cluster_id}/members/display")
def display_members(
    cluster_id: int,
    user_id: str = Query(..., min_length=1),
    cohorts: CohortService = Depends(get_cohorts),
):
    members = cohorts.display_members(cluster_id, user_id)
    return {"success": True, "members": [m.model_dump(mode="json") for m in members]}


@router.post("/track-download")
def track_download(body: ClusterUserRequest, cohorts: CohortService = Depends(get_cohorts)):
    result = cohorts.track_download(body.cluster_id, body.user_id)
    return {"success": True, **result.model_dump()}


@router.get("/download-contacts")
def download_contacts(
    user_id: str = Query(..., min_length=1),
    cluster_id: Optional[int] = Query(None, ge=1),
    file_name: Optional[str] = Query(None),
    cohorts: CohortService = Depends(get_cohorts),
):
    if cluster_id is None and not file_name:
        raise ValidationError("cluster_id or file_name is required.")
    name, chunks = cohorts.open_download(user_id, cluster_id=cluster_id, file_name=file_name)
    return StreamingResponse(
        chunks,
        media_type=VCARD_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )
