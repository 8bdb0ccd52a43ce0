"""User profile storage."""

from typing import Dict, List, Optional, Sequence

from psycopg import Connection

from ..models import UserProfile

PROFILE_INSERT_FIELDS = (
    "user_id",
    "email",
    "full_name",
    "nickname",
    "whatsapp_number",
    "age",
    "gender",
    "country",
    "state",
    "city",
    "profession",
    "display_profession",
    "hobbies",
    "services",
    "friend_reasons",
    "referral_code",
)


class ProfileStore:
    """Read and create rows in user_profiles."""

    def get_many(self, conn: Connection, user_ids: Sequence[str]) -> List[Dict]:
        """Get profiles for a set of user ids (order not guaranteed)."""
        if not user_ids:
            return []
        with conn.cursor() as cur:
            cur.execute(
                "SELECT * FROM user_profiles WHERE user_id = ANY(%s)",
                (list(user_ids),),
            )
            return cur.fetchall()

    def create(self, conn: Connection, profile: UserProfile) -> Dict:
        """Insert a new profile row."""
        values = profile.model_dump(include=set(PROFILE_INSERT_FIELDS))
        columns = ", ".join(PROFILE_INSERT_FIELDS)
        placeholders = ", ".join(f"%({name})s" for name in PROFILE_INSERT_FIELDS)
        with conn.cursor() as cur:
            cur.execute(
                f"INSERT INTO user_profiles ({columns}) VALUES ({placeholders}) RETURNING *",
                values,
            )
            return cur.fetchone()

    def leaderboard(self, conn: Connection, limit: int = 100) -> List[Dict]:
        """Get profiles ordered by referral count."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT user_id, nickname, referrals, country, gender, referral_code
                FROM user_profiles
                ORDER BY referrals DESC, created_at
                LIMIT %s
                """,
                (limit,),
            )
            return cur.fetchall()

    def credit_referral(self, conn: Connection, referral_code: str) -> Optional[Dict]:
        """Increment the referral count of the profile owning a code."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE user_profiles
                SET referrals = referrals + 1
                WHERE referral_code = %s
                RETURNING user_id, referrals
                """,
                (referral_code,),
            )
            return cur.fetchone()

    def referral_code_exists(self, conn: Connection, referral_code: str) -> bool:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM user_profiles WHERE referral_code = %s", (referral_code,))
            return cur.fetchone() is not None
