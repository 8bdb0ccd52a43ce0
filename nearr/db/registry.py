"""Cluster definitions and cohort lifecycle state in database."""

from typing import Any, Dict, List, Optional

from psycopg import Connection, sql

COHORT_COLUMNS = """
    cohort_id, cluster_id, state, current_members, max_members,
    vcf_file_name, vcf_generated_at, vcf_download_count,
    opened_at, full_at, fill_cycle, reset_at, created_at, updated_at
"""

UPDATABLE_CLUSTER_FIELDS = ("name", "category", "description", "max_members")


class ClusterRegistry:
    """Manage cluster definitions and the state of each cluster's active cohort.

    Every state transition is a single conditional UPDATE keyed on
    (cluster_id, cohort_id) and the expected pre-state, so a stale caller
    can never clobber a newer cohort. Methods return the updated row, or
    None when the guard did not match.
    """

    # -- cluster definitions -------------------------------------------------

    def get_cluster(self, conn: Connection, cluster_id: int) -> Optional[Dict]:
        """Get cluster definition by ID."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM clusters WHERE id = %s", (cluster_id,))
            return cur.fetchone()

    def list_clusters(self, conn: Connection) -> List[Dict]:
        """Get all clusters with their active cohort counters."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT
                    c.id, c.name, c.category, c.description, c.max_members,
                    co.cohort_id, co.state,
                    COALESCE(co.current_members, 0) AS current_members,
                    COALESCE(co.max_members, c.max_members) AS cohort_max_members
                FROM clusters c
                LEFT JOIN cohorts co
                    ON co.cluster_id = c.id AND co.state <> 'reset'
                ORDER BY c.id
                """
            )
            return cur.fetchall()

    def create_cluster(
        self,
        conn: Connection,
        name: str,
        max_members: int,
        category: str = "general",
        description: Optional[str] = None,
    ) -> Dict:
        """Create a cluster definition."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO clusters (name, category, description, max_members)
                VALUES (%s, %s, %s, %s)
                RETURNING *
                """,
                (name, category, description, max_members),
            )
            return cur.fetchone()

    def update_cluster(
        self,
        conn: Connection,
        cluster_id: int,
        changes: Dict[str, Any],
    ) -> Optional[Dict]:
        """Update definition fields. Capacity changes apply from the next cohort."""
        fields = {k: v for k, v in changes.items() if k in UPDATABLE_CLUSTER_FIELDS}
        if not fields:
            return self.get_cluster(conn, cluster_id)

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder(name))
            for name in fields
        )
        query = sql.SQL("UPDATE clusters SET {} WHERE id = {} RETURNING *").format(
            assignments, sql.Placeholder("cluster_id")
        )
        with conn.cursor() as cur:
            cur.execute(query, {**fields, "cluster_id": cluster_id})
            return cur.fetchone()

    def delete_cluster(self, conn: Connection, cluster_id: int) -> bool:
        """Delete a cluster with its cohorts and memberships."""
        with conn.cursor() as cur:
            cur.execute("DELETE FROM clusters WHERE id = %s", (cluster_id,))
            return cur.rowcount > 0

    # -- cohort state ----------------------------------------------------------

    def get_active_cohort(
        self,
        conn: Connection,
        cluster_id: int,
        for_update: bool = False,
    ) -> Optional[Dict]:
        """Get the non-reset cohort of a cluster.

        With for_update the row stays locked until the transaction ends,
        which serializes joins, leaves and resets per cluster.
        """
        query = f"SELECT {COHORT_COLUMNS} FROM cohorts WHERE cluster_id = %s AND state <> 'reset'"
        if for_update:
            query += " FOR UPDATE"
        with conn.cursor() as cur:
            cur.execute(query, (cluster_id,))
            return cur.fetchone()

    def open_cohort(self, conn: Connection, cluster_id: int, cohort_id: str) -> Optional[Dict]:
        """Insert a fresh open cohort from the cluster definition.

        Returns None when the cluster does not exist or another cohort
        is already active (the partial unique index absorbs the race).
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO cohorts (cohort_id, cluster_id, state, current_members, max_members)
                SELECT %s, c.id, 'open', 0, c.max_members
                FROM clusters c
                WHERE c.id = %s
                ON CONFLICT (cluster_id) WHERE state <> 'reset' DO NOTHING
                RETURNING {COHORT_COLUMNS}
                """,
                (cohort_id, cluster_id),
            )
            return cur.fetchone()

    def claim_slot(self, conn: Connection, cluster_id: int, cohort_id: str) -> Optional[Dict]:
        """Increment the member counter if the cohort is open and not at capacity."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE cohorts
                SET current_members = current_members + 1
                WHERE cluster_id = %s
                  AND cohort_id = %s
                  AND state = 'open'
                  AND current_members < max_members
                RETURNING {COHORT_COLUMNS}
                """,
                (cluster_id, cohort_id),
            )
            return cur.fetchone()

    def release_slot(self, conn: Connection, cluster_id: int, cohort_id: str) -> Optional[Dict]:
        """Decrement the counter and reopen a cohort that was waiting for its exchange."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE cohorts
                SET current_members = current_members - 1,
                    state = 'open',
                    full_at = NULL
                WHERE cluster_id = %s
                  AND cohort_id = %s
                  AND state IN ('open', 'full_pending_exchange')
                  AND current_members > 0
                RETURNING {COHORT_COLUMNS}
                """,
                (cluster_id, cohort_id),
            )
            return cur.fetchone()

    def mark_full(self, conn: Connection, cluster_id: int, cohort_id: str) -> Optional[Dict]:
        """open -> full_pending_exchange once the counter reaches capacity."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE cohorts
                SET state = 'full_pending_exchange',
                    full_at = CURRENT_TIMESTAMP,
                    fill_cycle = fill_cycle + 1
                WHERE cluster_id = %s
                  AND cohort_id = %s
                  AND state = 'open'
                  AND current_members >= max_members
                RETURNING {COHORT_COLUMNS}
                """,
                (cluster_id, cohort_id),
            )
            return cur.fetchone()

    def mark_exchange_ready(
        self,
        conn: Connection,
        cluster_id: int,
        cohort_id: str,
        fill_cycle: int,
        file_name: str,
    ) -> Optional[Dict]:
        """full_pending_exchange -> exchange_ready for the fill the file was built from.

        A second publisher, or one whose member list predates a leave and
        refill, matches nothing.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE cohorts
                SET state = 'exchange_ready',
                    vcf_file_name = %s,
                    vcf_generated_at = CURRENT_TIMESTAMP
                WHERE cluster_id = %s
                  AND cohort_id = %s
                  AND state = 'full_pending_exchange'
                  AND fill_cycle = %s
                RETURNING {COHORT_COLUMNS}
                """,
                (file_name, cluster_id, cohort_id, fill_cycle),
            )
            return cur.fetchone()

    def close_cohort(self, conn: Connection, cluster_id: int, cohort_id: str) -> Optional[Dict]:
        """Move the active cohort to the terminal reset state."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE cohorts
                SET state = 'reset',
                    reset_at = CURRENT_TIMESTAMP
                WHERE cluster_id = %s
                  AND cohort_id = %s
                  AND state <> 'reset'
                RETURNING {COHORT_COLUMNS}
                """,
                (cluster_id, cohort_id),
            )
            return cur.fetchone()

    def record_download(self, conn: Connection, cluster_id: int, cohort_id: str) -> Optional[Dict]:
        """Increment the aggregate download counter of a published cohort."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE cohorts
                SET vcf_download_count = vcf_download_count + 1
                WHERE cluster_id = %s
                  AND cohort_id = %s
                  AND state = 'exchange_ready'
                RETURNING {COHORT_COLUMNS}
                """,
                (cluster_id, cohort_id),
            )
            return cur.fetchone()
