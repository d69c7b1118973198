from __future__ import annotations

from typing import Any, Dict, Optional

from psycopg2.extras import DictRow, Json

from .db_access import get_cursor

USER_ROLES = ("admin", "teacher", "student")


def get_user_by_email(email: str) -> Optional[DictRow]:
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT
                id,
                email,
                password_hash,
                full_name,
                role,
                school_id,
                student_id,
                nip,
                last_login_at
            FROM dashboard_users
            WHERE email = %s
            LIMIT 1
            """,
            (email,)
        )
        row = cur.fetchone()
    return row


def create_dashboard_user(
    email: str,
    full_name: str,
    password_hash: str,
    role: Optional[str] = None,
    *,
    school_id: Optional[str] = None,
    student_id: Optional[int] = None,
    nip: Optional[str] = None,
) -> int:
    with get_cursor(commit=True) as cur:
        cur.execute(
            """
            INSERT INTO dashboard_users (email, full_name, password_hash, role, school_id, student_id, nip)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (email, full_name, password_hash, role, school_id, student_id, nip),
        )
        new_id = cur.fetchone()[0]
    return int(new_id)


def update_last_login(user_id: int) -> None:
    with get_cursor(commit=True) as cur:
        cur.execute(
            "UPDATE dashboard_users SET last_login_at = NOW() WHERE id = %s",
            (user_id,),
        )


def assign_user_school(user_id: int, school_id: str) -> bool:
    with get_cursor(commit=True) as cur:
        cur.execute(
            "UPDATE dashboard_users SET school_id = %s WHERE id = %s",
            (school_id, user_id),
        )
        return cur.rowcount > 0


def create_school(school_id: str, *, created_by: Optional[int] = None, **fields: Any) -> str:
    """Insert an (optionally empty) school row keyed by ``school_id``."""
    with get_cursor(commit=True) as cur:
        cur.execute(
            """
            INSERT INTO schools (id, name, address, npsn, principal_name, principal_nip, created_by)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO NOTHING
            """,
            (
                school_id,
                fields.get("name") or "",
                fields.get("address") or "",
                fields.get("npsn") or "",
                fields.get("principal_name") or "",
                fields.get("principal_nip"),
                created_by,
            ),
        )
    return school_id


def get_school(school_id: str) -> Optional[Dict[str, Any]]:
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT id, name, address, npsn, principal_name, principal_nip
            FROM schools
            WHERE id = %s
            LIMIT 1
            """,
            (school_id,),
        )
        row: Optional[DictRow] = cur.fetchone()
    return dict(row) if row else None


def update_school(
    school_id: str,
    *,
    name: str,
    address: str,
    npsn: str,
    principal_name: str,
    principal_nip: Optional[str] = None,
) -> bool:
    with get_cursor(commit=True) as cur:
        cur.execute(
            """
            UPDATE schools
            SET name = %s,
                address = %s,
                npsn = %s,
                principal_name = %s,
                principal_nip = %s,
                updated_at = NOW()
            WHERE id = %s
            """,
            (name, address, npsn, principal_name, principal_nip, school_id),
        )
        return cur.rowcount > 0


def fetch_preferences(user_id: int) -> Dict[str, Any]:
    with get_cursor() as cur:
        cur.execute(
            "SELECT pref_key, pref_value FROM dashboard_preferences WHERE user_id = %s",
            (user_id,),
        )
        rows = cur.fetchall()
    return {row["pref_key"]: row["pref_value"] for row in rows}


def save_preference(user_id: int, key: str, value: Any) -> None:
    with get_cursor(commit=True) as cur:
        cur.execute(
            """
            INSERT INTO dashboard_preferences (user_id, pref_key, pref_value, updated_at)
            VALUES (%s, %s, %s, NOW())
            ON CONFLICT (user_id, pref_key)
            DO UPDATE SET pref_value = EXCLUDED.pref_value, updated_at = NOW()
            """,
            (user_id, key, Json(value)),
        )


def delete_preference(user_id: int, key: str) -> None:
    with get_cursor(commit=True) as cur:
        cur.execute(
            "DELETE FROM dashboard_preferences WHERE user_id = %s AND pref_key = %s",
            (user_id, key),
        )
