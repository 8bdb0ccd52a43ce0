"""Cohort membership rows in database."""

from typing import Dict, List, Optional

from psycopg import Connection


class MembershipStore:
    """Manage (cluster, cohort, user) membership rows."""

    def get(self, conn: Connection, cluster_id: int, user_id: str) -> Optional[Dict]:
        """Get a user's membership in a cluster."""
        with conn.cursor() as cur:
            cur.execute(
                "SELECT * FROM cluster_members WHERE cluster_id = %s AND user_id = %s",
                (cluster_id, user_id),
            )
            return cur.fetchone()

    def add(
        self,
        conn: Connection,
        cluster_id: int,
        cohort_id: str,
        user_id: str,
        display_profession: bool = False,
    ) -> Optional[Dict]:
        """
        Insert a membership row.

        Returns:
            The new row, or None if the user already holds one for the cluster
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO cluster_members (cluster_id, cohort_id, user_id, display_profession)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (cluster_id, user_id) DO NOTHING
                RETURNING *
                """,
                (cluster_id, cohort_id, user_id, display_profession),
            )
            return cur.fetchone()

    def remove(self, conn: Connection, cluster_id: int, user_id: str) -> Optional[Dict]:
        """Delete a user's membership row and return it."""
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM cluster_members WHERE cluster_id = %s AND user_id = %s RETURNING *",
                (cluster_id, user_id),
            )
            return cur.fetchone()

    def list_for_cohort(self, conn: Connection, cluster_id: int, cohort_id: str) -> List[Dict]:
        """Get memberships of a cohort in join order."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT * FROM cluster_members
                WHERE cluster_id = %s AND cohort_id = %s
                ORDER BY joined_at, id
                """,
                (cluster_id, cohort_id),
            )
            return cur.fetchall()

    def mark_downloaded(self, conn: Connection, cluster_id: int, user_id: str) -> Optional[Dict]:
        """Stamp the first download; returns None if already stamped or not a member."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE cluster_members
                SET vcf_downloaded_at = CURRENT_TIMESTAMP
                WHERE cluster_id = %s
                  AND user_id = %s
                  AND vcf_downloaded_at IS NULL
                RETURNING *
                """,
                (cluster_id, user_id),
            )
            return cur.fetchone()

    def clear_cohort(self, conn: Connection, cluster_id: int, cohort_id: str) -> int:
        """Delete every membership of a cohort."""
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM cluster_members WHERE cluster_id = %s AND cohort_id = %s",
                (cluster_id, cohort_id),
            )
            return cur.rowcount
