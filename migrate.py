"""
Apply Alembic migrations up to head.

Usage: python migrate.py [revision]
"""

import sys
import logging
import subprocess

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def migrate(revision: str = "head"):
    """Run ``alembic upgrade`` against the configured DATABASE_URL"""
    try:
        from catalog.core.config import DATABASE_URL
        logger.info(f"Upgrading {DATABASE_URL} to {revision}...")
        subprocess.run(["alembic", "upgrade", revision], check=True)
        logger.info("Migration completed successfully!")
    except subprocess.CalledProcessError as e:
        logger.error(f"Migration failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    migrate(sys.argv[1] if len(sys.argv) > 1 else "head")
