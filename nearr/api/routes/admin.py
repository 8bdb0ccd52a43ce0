"""Admin endpoints; every route requires an admin bearer token."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...errors import ValidationError
from ...services import CohortService
from ..deps import get_cohorts, require_admin
from ..schemas import ClusterCreate, ClusterUpdate, ResetRequest

router = APIRouter(prefix="/api", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/admin/clusters")
def list_clusters(cohorts: CohortService = Depends(get_cohorts)):
    return {"success": True, "clusters": cohorts.list_clusters()}


@router.post("/admin/clusters", status_code=201)
def create_cluster(body: ClusterCreate, cohorts: CohortService = Depends(get_cohorts)):
    cluster = cohorts.create_cluster(body.name, body.max_members, body.category, body.description)
    return {"success": True, "cluster": cluster.model_dump(mode="json")}


@router.get("/admin/clusters/{cluster_id}")
def get_cluster(cluster_id: int, cohorts: CohortService = Depends(get_cohorts)):
    cluster = cohorts.get_cluster(cluster_id)
    status = cohorts.get_status(cluster_id)
    return {"success": True, "cluster": cluster.model_dump(mode="json"), "status": status.model_dump(mode="json")}


@router.patch("/admin/clusters/{cluster_id}")
def update_cluster(cluster_id: int, body: ClusterUpdate, cohorts: CohortService = Depends(get_cohorts)):
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update.")
    cluster = cohorts.update_cluster(cluster_id, changes)
    return {"success": True, "cluster": cluster.model_dump(mode="json")}


@router.delete("/admin/clusters/{cluster_id}")
def delete_cluster(cluster_id: int, cohorts: CohortService = Depends(get_cohorts)):
    cohorts.delete_cluster(cluster_id)
    return {"success": True, "message": f"Cluster {cluster_id} deleted."}


@router.get("/admin/clusters/{cluster_id}/members")
def list_members(cluster_id: int, cohorts: CohortService = Depends(get_cohorts)):
    members = cohorts.list_members(cluster_id)
    return {"success": True, "members": [m.model_dump(mode="json") for m in members]}


@router.get("/admin/clusters/{cluster_id}/stats")
def cluster_stats(
    cluster_id: int,
    user_country: Optional[str] = Query(None),
    cohorts: CohortService = Depends(get_cohorts),
):
    return {"success": True, **cohorts.cluster_stats(cluster_id, user_country).model_dump(mode="json")}


@router.get("/admin/clusters/{cluster_id}/vcf-status")
def vcf_status(cluster_id: int, cohorts: CohortService = Depends(get_cohorts)):
    return {"success": True, **cohorts.vcf_status(cluster_id)}


@router.post("/admin/clusters/{cluster_id}/generate-exchange")
def generate_exchange(cluster_id: int, cohorts: CohortService = Depends(get_cohorts)):
    status = cohorts.generate_exchange(cluster_id)
    return {"success": True, **status.model_dump(mode="json")}


@router.get("/admin/clusters/{cluster_id}/download-vcf")
def download_vcf(cluster_id: int, cohorts: CohortService = Depends(get_cohorts)):
    return {"success": True, **cohorts.download_url(cluster_id)}


@router.post("/reset-cluster")
def reset_cluster(body: ResetRequest, cohorts: CohortService = Depends(get_cohorts)):
    cohort = cohorts.reset(body.cluster_id, body.cohort_id)
    return {
        "success": True,
        "message": f"Cluster {body.cluster_id} reset.",
        "cohort_id": cohort.cohort_id,
    }
