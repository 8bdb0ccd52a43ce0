"""Cohort lifecycle service: status, join, leave, exchange, download, reset."""

import itertools
import uuid
from typing import Any, Dict, Iterator, List, Optional, Tuple

import psycopg
from psycopg import Connection
from pydantic import BaseModel

from ..config import CohortConfig
from ..db import ClusterRegistry, Database, MembershipStore, ProfileStore
from ..errors import (
    AlreadyMember,
    ClusterFull,
    Conflict,
    Forbidden,
    NotFound,
    UpstreamError,
    ValidationError,
)
from ..exchange import VCardContact, artifact_file_name, build_vcard, extract_cluster_id
from ..logging_config import get_logger, short_id
from ..models import Cluster, Cohort, CohortContact, CohortMember, CohortState, CohortStatus, Membership
from ..stats import ClusterStats, calculate_cluster_stats
from ..storage import ObjectStore

logger = get_logger(__name__)


class DownloadResult(BaseModel):
    """Outcome of recording a member's download."""

    cluster_id: int
    cohort_id: str
    vcf_download_count: int
    user_has_downloaded: bool = True
    already_tracked: bool = False
    cohort_reset: bool = False


class ClusterStatsResult(BaseModel):
    """Stats view of a cluster's active cohort."""

    cluster_id: int
    cluster_name: str
    cohort_id: str
    cohort_members: List[CohortMember]
    cluster_stats: ClusterStats


class CohortService:
    """Single authoritative implementation of the cohort state machine.

    All cohort state lives in Postgres. Join, leave, download tracking and
    reset lock the active cohort row (SELECT ... FOR UPDATE) for the length
    of their transaction, and every transition is additionally guarded by a
    conditional UPDATE on the expected pre-state.
    """

    def __init__(
        self,
        db: Database,
        registry: ClusterRegistry,
        memberships: MembershipStore,
        profiles: ProfileStore,
        objects: ObjectStore,
        settings: Optional[CohortConfig] = None,
    ) -> None:
        self.db = db
        self.registry = registry
        self.memberships = memberships
        self.profiles = profiles
        self.objects = objects
        self.settings = settings or CohortConfig()

    # -- helpers ---------------------------------------------------------------

    @staticmethod
    def _new_cohort_id() -> str:
        return str(uuid.uuid4())

    def _ensure_active_cohort(
        self,
        conn: Connection,
        cluster_id: int,
        for_update: bool = False,
    ) -> Cohort:
        """Return the active cohort, lazily opening one from the cluster definition."""
        row = self.registry.get_active_cohort(conn, cluster_id, for_update=for_update)
        if row is not None:
            return Cohort(**row)

        row = self.registry.open_cohort(conn, cluster_id, self._new_cohort_id())
        if row is not None:
            logger.info(f"Opened cohort {row['cohort_id']} for cluster {cluster_id}")
            if for_update:
                row = self.registry.get_active_cohort(conn, cluster_id, for_update=True)
            return Cohort(**row)

        # Either the cluster is unknown or a concurrent request opened the cohort first
        row = self.registry.get_active_cohort(conn, cluster_id, for_update=for_update)
        if row is None:
            raise NotFound(f"Cluster {cluster_id} not found.", cluster_id=cluster_id)
        return Cohort(**row)

    def _cluster_name(self, conn: Connection, cluster_id: int) -> str:
        cluster = self.registry.get_cluster(conn, cluster_id)
        if cluster and cluster.get("name"):
            return cluster["name"]
        return f"Cluster {cluster_id}"

    def _load_members(
        self,
        conn: Connection,
        cohort: Cohort,
        include_contacts: bool = False,
    ) -> List[CohortMember]:
        """Two-step fetch: membership rows, then their profiles by user id."""
        rows = self.memberships.list_for_cohort(conn, cohort.cluster_id, cohort.cohort_id)
        profiles = {
            p["user_id"]: p
            for p in self.profiles.get_many(conn, [r["user_id"] for r in rows])
        }

        members: List[CohortMember] = []
        for row in rows:
            profile = profiles.get(row["user_id"])
            if profile is None:
                logger.warning(
                    f"No profile for member {short_id(row['user_id'])} of cohort {cohort.cohort_id}"
                )
                continue
            fields: Dict[str, Any] = {
                "user_id": row["user_id"],
                "nickname": profile.get("nickname") or "",
                "age": profile.get("age"),
                "gender": profile.get("gender") or "",
                "country": profile.get("country") or "",
                "profession": profile.get("profession") or "",
                "display_profession": bool(row.get("display_profession")),
                "friend_reasons": profile.get("friend_reasons") or [],
                "services": profile.get("services") or [],
                "joined_at": row.get("joined_at"),
            }
            if include_contacts:
                members.append(
                    CohortContact(
                        **fields,
                        email=profile.get("email"),
                        whatsapp_number=profile.get("whatsapp_number"),
                        vcf_downloaded_at=row.get("vcf_downloaded_at"),
                    )
                )
            else:
                members.append(CohortMember(**fields))
        return members

    def _membership(self, conn: Connection, cohort: Cohort, user_id: Optional[str]) -> Optional[Membership]:
        """The user's membership, only if it belongs to the given cohort."""
        if not user_id:
            return None
        row = self.memberships.get(conn, cohort.cluster_id, user_id)
        if row is None or row["cohort_id"] != cohort.cohort_id:
            return None
        return Membership(**row)

    def _require_member(self, conn: Connection, cohort: Cohort, user_id: str) -> Membership:
        membership = self._membership(conn, cohort, user_id)
        if membership is None:
            raise Forbidden("You must be a member of this cluster.", cluster_id=cohort.cluster_id)
        return membership

    def _status(
        self,
        conn: Connection,
        cohort: Cohort,
        user_id: Optional[str],
    ) -> CohortStatus:
        membership = self._membership(conn, cohort, user_id)
        return CohortStatus.from_cohort(
            cohort,
            cluster_name=self._cluster_name(conn, cohort.cluster_id),
            user_is_member=membership is not None,
            user_has_downloaded=membership is not None and membership.has_downloaded,
        )

    def _reset_locked(self, conn: Connection, cohort: Cohort) -> Tuple[Optional[str], Cohort]:
        """Clear a locked cohort and open its successor in the same transaction."""
        removed = self.memberships.clear_cohort(conn, cohort.cluster_id, cohort.cohort_id)
        closed = self.registry.close_cohort(conn, cohort.cluster_id, cohort.cohort_id)
        if closed is None:
            raise Conflict("Cohort changed during reset; retry.", cohort_id=cohort.cohort_id)

        opened = self.registry.open_cohort(conn, cohort.cluster_id, self._new_cohort_id())
        if opened is None:
            raise Conflict("Could not open a new cohort; retry.", cluster_id=cohort.cluster_id)

        new_cohort = Cohort(**opened)
        logger.info(
            f"Reset cohort {cohort.cohort_id} of cluster {cohort.cluster_id} "
            f"({removed} memberships cleared); opened {new_cohort.cohort_id}"
        )
        return closed.get("vcf_file_name"), new_cohort

    def _discard_artifact(self, file_name: Optional[str]) -> None:
        if not file_name:
            return
        try:
            self.objects.remove(file_name)
        except UpstreamError as e:
            logger.warning(f"Could not delete artifact {file_name}: {e}")

    # -- registry --------------------------------------------------------------

    def get_status(self, cluster_id: int, user_id: Optional[str] = None) -> CohortStatus:
        """Status of the cluster's active cohort, initializing it on first use."""
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id)
            return self._status(conn, cohort, user_id)

    def open_new_cohort(self, cluster_id: int) -> Cohort:
        """Open a cohort for a cluster that has none active."""
        with self.db.transaction() as conn:
            if self.registry.get_active_cohort(conn, cluster_id) is not None:
                raise Conflict(f"Cluster {cluster_id} already has an active cohort.")
            return self._ensure_active_cohort(conn, cluster_id)

    def list_clusters(self) -> List[Dict[str, Any]]:
        """Clusters with their active cohort counters."""
        with self.db.transaction() as conn:
            rows = self.registry.list_clusters(conn)

        clusters = []
        for row in rows:
            max_members = row.get("cohort_max_members") or row["max_members"]
            current = row.get("current_members") or 0
            state = row.get("state") or CohortState.OPEN.value
            is_full = state != CohortState.OPEN.value or current >= max_members
            clusters.append(
                {
                    "cluster_id": row["id"],
                    "name": row["name"],
                    "category": row.get("category"),
                    "description": row.get("description"),
                    "cohort_id": row.get("cohort_id"),
                    "max_members": max_members,
                    "current_members": current,
                    "spots_left": max(0, max_members - current),
                    "is_full": is_full,
                    "is_available": not is_full,
                    "exchange_ready": state == CohortState.EXCHANGE_READY.value,
                }
            )
        return clusters

    # -- membership ------------------------------------------------------------

    def join(
        self,
        cluster_id: int,
        user_id: str,
        display_profession: bool = False,
    ) -> CohortStatus:
        """
        Join the active cohort of a cluster.

        Raises:
            AlreadyMember: user already holds a membership in this cluster
            ClusterFull: cohort at capacity or its exchange is already published
        """
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id, for_update=True)

            if self.memberships.get(conn, cluster_id, user_id) is not None:
                raise AlreadyMember("You have already joined this cluster.", cluster_id=cluster_id)
            if cohort.is_full:
                raise ClusterFull("Cluster is full.", cluster_id=cluster_id)

            if self.memberships.add(conn, cluster_id, cohort.cohort_id, user_id, display_profession) is None:
                raise AlreadyMember("You have already joined this cluster.", cluster_id=cluster_id)

            claimed = self.registry.claim_slot(conn, cluster_id, cohort.cohort_id)
            if claimed is None:
                # Rolls back the membership insert
                raise ClusterFull("Cluster is full.", cluster_id=cluster_id)
            cohort = Cohort(**claimed)

            became_full = False
            if cohort.current_members >= cohort.max_members:
                full = self.registry.mark_full(conn, cluster_id, cohort.cohort_id)
                if full is not None:
                    cohort = Cohort(**full)
                    became_full = True

        logger.info(
            f"User {short_id(user_id)} joined cluster {cluster_id} cohort {cohort.cohort_id} "
            f"({cohort.current_members}/{cohort.max_members})"
        )

        if became_full:
            logger.info(f"Cohort {cohort.cohort_id} of cluster {cluster_id} is full")
            try:
                self.generate_exchange(cluster_id)
            except (UpstreamError, psycopg.Error) as e:
                # Cohort stays full_pending_exchange; generation can be retried
                logger.error(f"Exchange generation failed for cluster {cluster_id}: {e}")

        return self.get_status(cluster_id, user_id)

    def leave(self, cluster_id: int, user_id: str) -> CohortStatus:
        """
        Leave the active cohort.

        Raises:
            NotFound: user is not a member
            Forbidden: the cohort's contact exchange is already published
        """
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id, for_update=True)
            membership = self.memberships.get(conn, cluster_id, user_id)
            if membership is None:
                raise NotFound("You are not a member of this cluster.", cluster_id=cluster_id)
            if cohort.exchange_ready:
                raise Forbidden("Cannot leave after the contact exchange has been generated.")

            self.memberships.remove(conn, cluster_id, user_id)
            if membership["cohort_id"] == cohort.cohort_id:
                released = self.registry.release_slot(conn, cluster_id, cohort.cohort_id)
                if released is None:
                    raise Conflict("Cohort changed while leaving; retry.", cluster_id=cluster_id)
                cohort = Cohort(**released)

            status = self._status(conn, cohort, user_id)

        logger.info(
            f"User {short_id(user_id)} left cluster {cluster_id} "
            f"({status.current_members}/{status.max_members})"
        )
        return status

    def list_members(self, cluster_id: int, cohort_id: Optional[str] = None) -> List[CohortContact]:
        """Full member list of the active cohort, contact details included."""
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id)
            if cohort_id and cohort_id != cohort.cohort_id:
                raise NotFound(f"Cohort {cohort_id} is not active for cluster {cluster_id}.")
            return self._load_members(conn, cohort, include_contacts=True)

    def display_members(self, cluster_id: int, user_id: str) -> List[CohortMember]:
        """Member list without contact details, visible to members only."""
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id)
            self._require_member(conn, cohort, user_id)
            return self._load_members(conn, cohort)

    def cluster_stats(self, cluster_id: int, viewer_country: Optional[str] = None) -> ClusterStatsResult:
        """Display members and aggregated stats of the active cohort."""
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id)
            members = self._load_members(conn, cohort)
            name = self._cluster_name(conn, cluster_id)

        return ClusterStatsResult(
            cluster_id=cluster_id,
            cluster_name=name,
            cohort_id=cohort.cohort_id,
            cohort_members=members,
            cluster_stats=calculate_cluster_stats(members, viewer_country),
        )

    # -- contact exchange ------------------------------------------------------

    def generate_exchange(self, cluster_id: int) -> CohortStatus:
        """
        Build, upload and publish the cohort's contact file.

        Safe to retry: the object name is derived from the cohort id and fill
        cycle, and the publish step only matches a cohort still waiting on
        that same fill. A file built from a member list that a leave and
        refill made stale is discarded instead of published.
        """
        with self.db.transaction() as conn:
            # Locked so the member list matches the fill cycle read with it
            cohort = self._ensure_active_cohort(conn, cluster_id, for_update=True)
            if cohort.state is CohortState.EXCHANGE_READY:
                return self._status(conn, cohort, None)
            if cohort.state is not CohortState.FULL_PENDING_EXCHANGE:
                raise Conflict("Cohort is not full yet.", cluster_id=cluster_id)
            contacts = self._load_members(conn, cohort, include_contacts=True)

        if not contacts:
            raise Conflict("Cannot generate contacts: cohort has no members.", cluster_id=cluster_id)

        content = build_vcard(
            (
                VCardContact(
                    nickname=c.nickname,
                    profession=c.profession,
                    display_profession=c.display_profession,
                    phone_number=c.whatsapp_number,
                )
                for c in contacts
            ),
            fallback_tag=self.settings.fallback_tag,
        )
        file_name = artifact_file_name(cluster_id, cohort.cohort_id, cohort.fill_cycle)
        self.objects.put(file_name, content)

        with self.db.transaction() as conn:
            published = self.registry.mark_exchange_ready(
                conn, cluster_id, cohort.cohort_id, cohort.fill_cycle, file_name
            )
            if published is not None:
                logger.info(f"Cohort {cohort.cohort_id} exchange ready: {file_name}")
                return self._status(conn, Cohort(**published), None)
            current = self._ensure_active_cohort(conn, cluster_id)
            status = self._status(conn, current, None)

        logger.info(f"Cohort {cohort.cohort_id} already published or changed; publish skipped")
        if current.vcf_file_name != file_name:
            self._discard_artifact(file_name)
        return status

    def resolve_download(
        self,
        user_id: str,
        cluster_id: Optional[int] = None,
        file_name: Optional[str] = None,
    ) -> str:
        """Authorize a member's download and return the artifact object name."""
        if cluster_id is None:
            cluster_id = extract_cluster_id(file_name or "")
            if cluster_id is None:
                raise ValidationError("cluster_id or a valid file_name is required.")

        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id)
            self._require_member(conn, cohort, user_id)

        artifact = cohort.artifact
        if artifact is None:
            raise NotFound("Contacts file is not available yet.")
        if file_name and file_name != artifact.file_name:
            raise NotFound("File not found.")
        return artifact.file_name

    def open_download(
        self,
        user_id: str,
        cluster_id: Optional[int] = None,
        file_name: Optional[str] = None,
    ) -> Tuple[str, Iterator[bytes]]:
        """Authorize and start streaming the artifact.

        The first chunk is fetched eagerly so storage errors surface before
        any response bytes are sent.
        """
        name = self.resolve_download(user_id, cluster_id=cluster_id, file_name=file_name)
        chunks = self.objects.stream(name)
        first = next(chunks, b"")
        return name, itertools.chain([first], chunks)

    def download_url(self, cluster_id: int) -> Dict[str, str]:
        """Signed URL of the published artifact (admin)."""
        with self.db.transaction() as conn:
            artifact = self._ensure_active_cohort(conn, cluster_id).artifact
        if artifact is None:
            raise NotFound("Contacts file not generated for this cluster.")
        return {"download_url": self.objects.signed_url(artifact.file_name), "filename": artifact.file_name}

    def track_download(self, cluster_id: int, user_id: str) -> DownloadResult:
        """Record a member's first download and bump the aggregate counter once."""
        reset_file: Optional[str] = None
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id, for_update=True)
            self._require_member(conn, cohort, user_id)
            if not cohort.exchange_ready:
                raise Conflict("Contacts are not ready for download yet.")

            stamped = self.memberships.mark_downloaded(conn, cluster_id, user_id)
            if stamped is not None:
                updated = self.registry.record_download(conn, cluster_id, cohort.cohort_id)
                if updated is not None:
                    cohort = Cohort(**updated)

            result = DownloadResult(
                cluster_id=cluster_id,
                cohort_id=cohort.cohort_id,
                vcf_download_count=cohort.vcf_download_count,
                already_tracked=stamped is None,
            )

            if (
                self.settings.auto_reset_after_downloads
                and cohort.vcf_download_count >= cohort.current_members
            ):
                reset_file, _ = self._reset_locked(conn, cohort)
                result.cohort_reset = True

        if result.cohort_reset:
            logger.info(f"All members of cohort {result.cohort_id} downloaded; cohort reset")
            self._discard_artifact(reset_file)
        return result

    def vcf_status(self, cluster_id: int) -> Dict[str, Any]:
        """Exchange artifact status of the active cohort (admin)."""
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id)
        artifact = cohort.artifact
        return {
            "cohort_id": cohort.cohort_id,
            "state": cohort.state.value,
            "status": "uploaded" if artifact else "pending",
            "current_members": cohort.current_members,
            "max_members": cohort.max_members,
            "artifact": artifact.model_dump(mode="json") if artifact else None,
        }

    # -- reset -----------------------------------------------------------------

    def reset(self, cluster_id: int, cohort_id: Optional[str] = None) -> Cohort:
        """
        Clear the active cohort and reopen the cluster with a new cohort id.

        Raises:
            NotFound: unknown cluster, or cohort_id is not the active cohort
        """
        with self.db.transaction() as conn:
            cohort = self._ensure_active_cohort(conn, cluster_id, for_update=True)
            if cohort_id and cohort_id != cohort.cohort_id:
                raise NotFound(f"Cohort {cohort_id} is not active for cluster {cluster_id}.")
            old_file, new_cohort = self._reset_locked(conn, cohort)

        self._discard_artifact(old_file)
        return new_cohort

    # -- cluster definitions ---------------------------------------------------

    def get_cluster(self, cluster_id: int) -> Cluster:
        with self.db.transaction() as conn:
            row = self.registry.get_cluster(conn, cluster_id)
        if row is None:
            raise NotFound(f"Cluster {cluster_id} not found.")
        return Cluster(**row)

    def create_cluster(
        self,
        name: str,
        max_members: Optional[int] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Cluster:
        with self.db.transaction() as conn:
            row = self.registry.create_cluster(
                conn,
                name=name,
                max_members=max_members or self.settings.default_max_members,
                category=category or self.settings.default_category,
                description=description,
            )
        cluster = Cluster(**row)
        logger.info(f"Created cluster {cluster.id} ({name})")
        return cluster

    def update_cluster(self, cluster_id: int, changes: Dict[str, Any]) -> Cluster:
        """Apply definition changes; capacity takes effect from the next cohort."""
        with self.db.transaction() as conn:
            row = self.registry.update_cluster(conn, cluster_id, changes)
        if row is None:
            raise NotFound(f"Cluster {cluster_id} not found.")
        return Cluster(**row)

    def delete_cluster(self, cluster_id: int) -> None:
        with self.db.transaction() as conn:
            active = self.registry.get_active_cohort(conn, cluster_id, for_update=True)
            if not self.registry.delete_cluster(conn, cluster_id):
                raise NotFound(f"Cluster {cluster_id} not found.")
        logger.info(f"Deleted cluster {cluster_id}")
        if active:
            self._discard_artifact(active.get("vcf_file_name"))
