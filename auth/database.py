"""Database operations for authentication.

Principals live in two independent tables (users, admins); email uniqueness
is enforced per table, so a user and an admin may share an address.
Emails are stored lower-cased.

Every method accepts an optional `tx` so it can join a caller's transaction.
"""

from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from auth.types import PasswordResetToken, PrincipalRecord, PrincipalType
from utils.timezone import Clock, now_utc

# Fixed mapping; never interpolate caller input into table names
_TABLES = {
    PrincipalType.USER: "users",
    PrincipalType.ADMIN: "admins",
}

_PRINCIPAL_COLUMNS = (
    "id, email, password_hash, status, created_at, updated_at, deleted_at, last_login_at"
)


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient, clock: Clock = now_utc):
        self._db = postgres
        self._clock = clock

    def _executor(self, tx: Transaction | None):
        return tx if tx is not None else self._db

    def get_by_email(self, principal_type: PrincipalType, email: str) -> PrincipalRecord | None:
        """Find principal by email (case-insensitive)."""
        row = self._db.execute_single(
            f"""SELECT {_PRINCIPAL_COLUMNS}
                FROM {_TABLES[principal_type]} WHERE email = lower(%s)""",
            (email.strip(),),
        )
        if row is None:
            return None
        return PrincipalRecord.model_validate(row)

    def get_by_id(
        self,
        principal_type: PrincipalType,
        principal_id: UUID,
        tx: Transaction | None = None,
    ) -> PrincipalRecord | None:
        """Find principal by ID, including deleted or disabled ones."""
        row = self._executor(tx).execute_single(
            f"""SELECT {_PRINCIPAL_COLUMNS}
                FROM {_TABLES[principal_type]} WHERE id = %s""",
            (principal_id,),
        )
        if row is None:
            return None
        return PrincipalRecord.model_validate(row)

    def create(
        self,
        principal_type: PrincipalType,
        email: str,
        password_hash: str,
        tx: Transaction | None = None,
    ) -> PrincipalRecord | None:
        """Create principal with lower-cased email.

        Returns:
            The new record, or None if the email is already taken in this table.
        """
        now = self._clock()
        rows = self._executor(tx).execute_returning(
            f"""INSERT INTO {_TABLES[principal_type]}
                    (id, email, password_hash, status, created_at, updated_at)
                VALUES (%s, lower(%s), %s, 'active', %s, %s)
                ON CONFLICT (email) DO NOTHING
                RETURNING {_PRINCIPAL_COLUMNS}""",
            (uuid4(), email.strip(), password_hash, now, now),
        )
        if not rows:
            return None
        return PrincipalRecord.model_validate(rows[0])

    def update_last_login(self, principal_type: PrincipalType, principal_id: UUID) -> None:
        """Update last_login_at to current time."""
        self._db.execute_returning(
            f"UPDATE {_TABLES[principal_type]} SET last_login_at = %s WHERE id = %s RETURNING id",
            (self._clock(), principal_id),
        )

    def update_password(self, user_id: UUID, password_hash: str, tx: Transaction | None = None) -> bool:
        """Replace a user's password hash.

        Returns:
            True if user was found and updated, False if not found.
        """
        now = self._clock()
        rows = self._executor(tx).execute_returning(
            """UPDATE users SET password_hash = %s, updated_at = %s
               WHERE id = %s AND deleted_at IS NULL
               RETURNING id""",
            (password_hash, now, user_id),
        )
        return len(rows) > 0

    def soft_delete(
        self,
        principal_type: PrincipalType,
        principal_id: UUID,
        tx: Transaction | None = None,
    ) -> bool:
        """Set deleted_at on a live principal (login and authorization frozen).

        Returns:
            True if a live principal was found and deleted, False otherwise.
        """
        now = self._clock()
        rows = self._executor(tx).execute_returning(
            f"""UPDATE {_TABLES[principal_type]}
                SET deleted_at = %s, updated_at = %s
                WHERE id = %s AND deleted_at IS NULL
                RETURNING id""",
            (now, now, principal_id),
        )
        return len(rows) > 0

    def lock_active_admin_ids(self, tx: Transaction) -> list[UUID]:
        """Lock every active admin row for the rest of the transaction."""
        rows = tx.execute(
            """SELECT id FROM admins
               WHERE deleted_at IS NULL AND status = 'active'
               ORDER BY id
               FOR UPDATE""",
        )
        return [UUID(str(row["id"])) for row in rows]

    def store_password_reset_token(self, token: PasswordResetToken) -> None:
        """Store hashed password reset token for later verification."""
        self._db.execute_returning(
            """INSERT INTO password_reset_tokens (id, user_id, token_hash, created_at, expires_at, used_at)
               VALUES (%s, %s, %s, %s, %s, %s)
               RETURNING id""",
            (
                token.id,
                token.user_id,
                token.token_hash,
                token.created_at,
                token.expires_at,
                token.used_at,
            ),
        )

    def lock_usable_reset_token(self, tx: Transaction, token_hash: str) -> PasswordResetToken | None:
        """Lock an unused, unexpired reset token so it can be consumed exactly once."""
        row = tx.execute_single(
            """SELECT id, user_id, token_hash, created_at, expires_at, used_at
               FROM password_reset_tokens
               WHERE token_hash = %s AND used_at IS NULL AND expires_at > %s
               FOR UPDATE""",
            (token_hash, self._clock()),
        )
        if row is None:
            return None
        return PasswordResetToken.model_validate(row)

    def mark_reset_token_used(self, tx: Transaction, token_id: UUID) -> None:
        """Mark token as used."""
        tx.execute_returning(
            "UPDATE password_reset_tokens SET used_at = %s WHERE id = %s RETURNING id",
            (self._clock(), token_id),
        )
