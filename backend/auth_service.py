"""
Authentication and authorization service
Implements password hashing, JWT sessions and user administration
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import bcrypt
import psycopg2
from jose import JWTError, jwt

from database import User, UserRole, UserStatus, row_to_user
from backend.errors import (
    Conflict, Forbidden, InvalidState, NotFound, Unauthenticated, ValidationFailed
)

logger = logging.getLogger(__name__)

USER_COLUMNS = """
    user_id, first_name, last_name, email, password_hash, phone,
    date_of_birth, address, role, status, created_at, updated_at
"""

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Service for user authentication and authorization"""

    def __init__(self, db_manager, settings):
        self.db = db_manager
        self.settings = settings

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash a password using bcrypt

        Args:
            password: Plain text password

        Returns:
            Hashed password
        """
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        """
        Verify a password against its hash

        Args:
            password: Plain text password
            password_hash: Hashed password

        Returns:
            True if password matches, False otherwise
        """
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    def register(self, first_name: str, last_name: str, email: str, password: str,
                 phone: Optional[str] = None, date_of_birth=None,
                 address: Optional[str] = None, role: UserRole = UserRole.CUSTOMER):
        """
        Create a new active user account

        Args:
            first_name: Given name
            last_name: Family name
            email: Login email, stored lower-cased
            password: Plain text password
            phone: Optional phone number
            date_of_birth: Optional date of birth
            address: Optional postal address
            role: Account role, customer unless seeding an admin

        Returns:
            (user, token) tuple

        Raises:
            Conflict: If the email is already registered
        """
        email = email.strip().lower()

        try:
            with self.db.get_cursor() as cursor:
                cursor.execute("SELECT user_id FROM users WHERE email = %s", (email,))
                if cursor.fetchone():
                    raise Conflict("Email already registered")

                cursor.execute(f"""
                    INSERT INTO users (first_name, last_name, email, password_hash,
                                       phone, date_of_birth, address, role, status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {USER_COLUMNS}
                """, (first_name.strip(), last_name.strip(), email,
                      self.hash_password(password), phone, date_of_birth, address,
                      role.value, UserStatus.ACTIVE.value))

                user = row_to_user(cursor.fetchone())
        except psycopg2.IntegrityError:
            raise Conflict("Email already registered")

        logger.info("Registered user %s (%s)", user.id, user.email)
        return user, self.issue_token(user)

    def authenticate(self, email: str, password: str):
        """
        Authenticate a user by email and password

        Args:
            email: User email
            password: Plain text password

        Returns:
            (user, token) tuple

        Raises:
            Unauthenticated: Unknown email or wrong password
            Forbidden: Account is not active
        """
        user = self.get_user_by_email(email)

        if not user or not self.verify_password(password, user.password_hash):
            logger.debug("Rejected login for %s", email)
            raise Unauthenticated(INVALID_CREDENTIALS)

        if not user.is_active:
            raise Forbidden("Account is inactive. Please contact support.")

        return user, self.issue_token(user)

    def issue_token(self, user: User) -> str:
        """Sign an access token for a user"""
        expire_at = datetime.now(timezone.utc) + timedelta(days=self.settings.access_token_expire_days)
        claims = {
            'sub': str(user.id),
            'email': user.email,
            'role': user.role.value,
            'exp': expire_at,
        }
        return jwt.encode(
            claims,
            self.settings.jwt_secret_key.get_secret_value(),
            algorithm=self.settings.jwt_algorithm,
        )

    def resolve_principal(self, token: Optional[str]) -> User:
        """
        Turn a bearer token into the current user

        The account is re-read on every call, so deactivated users lose access
        before their token expires.

        Raises:
            Unauthenticated: Missing, invalid or expired token, or inactive user
        """
        if not token:
            raise Unauthenticated("Unauthorized: No token provided")

        try:
            claims = jwt.decode(
                token,
                self.settings.jwt_secret_key.get_secret_value(),
                algorithms=[self.settings.jwt_algorithm],
            )
            user_id = int(claims['sub'])
        except (JWTError, KeyError, TypeError, ValueError):
            raise Unauthenticated("Unauthorized: Invalid or expired token")

        user = self.get_user_by_id(user_id)
        if not user or not user.is_active:
            raise Unauthenticated("Unauthorized: User not found or inactive")
        return user

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        row = self.db.query_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE user_id = %s", (user_id,)
        )
        return row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        row = self.db.query_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE email = %s", (email.strip().lower(),)
        )
        return row_to_user(row)

    def list_users(self) -> List[User]:
        """All users, newest first"""
        rows = self.db.query(f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC, user_id DESC")
        return [row_to_user(row) for row in rows]

    def update_user_status(self, admin: User, user_id: int, status: UserStatus) -> User:
        """
        Change a user's account status

        Args:
            admin: Acting administrator
            user_id: Target user
            status: New status

        Returns:
            Updated user

        Raises:
            ValidationFailed: Unknown status
            InvalidState: Deactivating yourself or another admin
            NotFound: No such user
        """
        try:
            status = UserStatus(status)
        except ValueError:
            raise ValidationFailed(f"Invalid status: {status}")

        if user_id == admin.id and status != UserStatus.ACTIVE:
            raise InvalidState("Cannot change your own status")

        with self.db.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute("SELECT role FROM users WHERE user_id = %s FOR UPDATE", (user_id,))
                row = cursor.fetchone()
                if not row:
                    raise NotFound("User not found")

                if row[0] == UserRole.ADMIN.value and status != UserStatus.ACTIVE:
                    raise InvalidState("Cannot deactivate admin users")

                cursor.execute("""
                    UPDATE users SET status = %s, updated_at = NOW()
                    WHERE user_id = %s
                """, (status.value, user_id))

        logger.info("Admin %s set user %s status to %s", admin.id, user_id, status.value)
        return self.get_user_by_id(user_id)
