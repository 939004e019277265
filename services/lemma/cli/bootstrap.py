"""
Startup bootstrap: schema migrations, JWT secret and the initial admin user.

Idempotent: already-applied migrations, an existing secret and an existing
admin account are all left alone.
Run via: python -m lemma.cli.bootstrap

Reads configuration from LEMMA_* environment variables (see lemma.config):
  LEMMA_DB_URL          - sqlite://<path> or postgres://... (default sqlite://lemma.db)
  LEMMA_ENCRYPTION_KEY  - base64 32-byte key for stored git tokens (required)
  LEMMA_ADMIN_EMAIL     - admin email (required)
  LEMMA_ADMIN_PASSWORD  - admin password (optional; generated if omitted)
"""

import asyncio
import secrets
import sys

from lemma.auth.passwords import hash_password, validate_password_strength
from lemma.config import Settings, get_settings
from lemma.db.database import SQLDatabase, init_database
from lemma.db.errors import DatabaseError, MigrationError, NotFoundError
from lemma.logging_config import configure_logging, get_logger
from lemma.models.user import User, UserRole
from lemma.services.encryption_service import init_secrets_service

logger = get_logger("lemma.bootstrap")

ADMIN_DISPLAY_NAME = "Admin"


async def ensure_admin(db: SQLDatabase, email: str, password: str) -> User:
    """Return the user with ``email``, creating it as an admin when absent."""
    try:
        user = await db.get_user_by_email(email)
    except NotFoundError:
        pass
    else:
        logger.info("Admin user already exists, skipping creation", email=email)
        return user

    generated = not password
    if generated:
        password = secrets.token_urlsafe(24)
    else:
        validate_password_strength(password, user_inputs=[email])

    user = await db.create_user(
        User(
            email=email,
            display_name=ADMIN_DISPLAY_NAME,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
        )
    )
    logger.info("Created admin user", email=email, user_id=user.id)
    if generated:
        logger.info("Generated admin password", password=password)
        logger.warning("IMPORTANT: Save this password now. It will not be shown again.")
    return user


async def bootstrap(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    configure_logging(
        json_logs=settings.json_logs and not settings.is_development,
        log_level=settings.log_level,
    )

    admin_email = settings.admin_email.strip()
    if not admin_email:
        logger.error("LEMMA_ADMIN_EMAIL is required")
        sys.exit(1)

    try:
        secrets_service = init_secrets_service(settings.encryption_key)
    except ValueError:
        logger.error("LEMMA_ENCRYPTION_KEY must be a base64-encoded 32-byte key")
        sys.exit(1)

    try:
        db = await init_database(
            settings.db_type,
            settings.db_data_source,
            secrets_service,
            echo=settings.debug,
        )
    except DatabaseError as e:
        logger.error("Database unavailable", error=str(e))
        sys.exit(1)

    try:
        try:
            await db.migrate()
        except MigrationError as e:
            logger.error("Database migration failed", error=str(e))
            sys.exit(1)

        if settings.jwt_signing_key:
            logger.info("Using configured JWT signing key")
        else:
            await db.ensure_jwt_secret()

        try:
            await ensure_admin(db, admin_email, settings.admin_password)
        except ValueError as e:
            logger.error("LEMMA_ADMIN_PASSWORD rejected", error=str(e))
            sys.exit(1)
    finally:
        await db.close()

    logger.info("Bootstrap complete")


def main() -> None:
    asyncio.run(bootstrap())


if __name__ == "__main__":
    main()
