import logging
import os
import sqlite3
from datetime import datetime

from goldestimate.exceptions import DatabaseConnectionError
from goldestimate.persistence import migrations as persistence_migrations
from goldestimate.persistence.catalog_repository import CatalogRepository
from goldestimate.persistence.estimations_repository import EstimationsRepository
from goldestimate.persistence.rates_repository import RatesRepository


class DatabaseManager:
    """
    Manages the SQLite database holding rate settings and estimation history.
    """

    def __init__(self, db_path):
        """
        Open (or create) the database at ``db_path`` and bring its schema up
        to date. ``":memory:"`` is accepted for throwaway databases.
        """
        self.logger = logging.getLogger(__name__)
        self.logger.info(f"Initializing DatabaseManager for {db_path}")

        self.db_path = str(db_path)
        self.conn = None
        self.cursor = None

        self._estimations_repo = None
        self._rates_repo = None
        self._catalog_repo = None

        directory = os.path.dirname(self.db_path)
        if directory and self.db_path != ":memory:":
            os.makedirs(directory, exist_ok=True)

        try:
            self._connect()
            self.setup_database()
        except Exception as e:
            self.logger.critical(f"Failed to initialize DatabaseManager: {str(e)}", exc_info=True)
            self.close()
            raise

    @property
    def estimations_repo(self):
        """Lazy-load the EstimationsRepository instance."""
        if self._estimations_repo is None:
            self._estimations_repo = EstimationsRepository(self)
        return self._estimations_repo

    @property
    def rates_repo(self):
        """Lazy-load the RatesRepository instance."""
        if self._rates_repo is None:
            self._rates_repo = RatesRepository(self)
        return self._rates_repo

    @property
    def catalog_repo(self):
        """Lazy-load the CatalogRepository instance."""
        if self._catalog_repo is None:
            self._catalog_repo = CatalogRepository(self)
        return self._catalog_repo

    def _connect(self):
        """Connects sqlite3 to the database file."""
        try:
            self.logger.debug("Connecting to database")
            self.conn = sqlite3.connect(self.db_path)
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.row_factory = sqlite3.Row
            try:
                self.conn.execute("PRAGMA journal_mode=WAL")
                self.conn.execute("PRAGMA synchronous=NORMAL")
                self.conn.execute("PRAGMA temp_store=MEMORY")
            except sqlite3.Error as e:
                # Non-fatal; continue with defaults if any PRAGMA fails
                self.logger.warning(f"One or more PRAGMA settings failed: {e}")
            self.cursor = self.conn.cursor()
            self.logger.debug("Connected to database")
        except sqlite3.Error as e:
            self.logger.error(f"Failed to connect to database: {str(e)}", exc_info=True)
            self.conn = None
            self.cursor = None
            raise DatabaseConnectionError(f"Could not open database '{self.db_path}': {e}") from e

    def reconnect(self):
        """Reopen the connection, e.g. after the file was replaced by a restore."""
        self.close()
        self._connect()
        self.setup_database()

    def checkpoint(self):
        """Force a WAL checkpoint so the main DB file contains the latest data."""
        if not self.conn:
            return False
        try:
            self.conn.commit()
            self.conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            return True
        except sqlite3.Error as e:
            self.logger.debug(f"WAL checkpoint skipped/failed: {e}")
            return False

    def _table_exists(self, table_name):
        """Check if a table exists in the database."""
        if not self.cursor: return False
        self.cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table_name,))
        return self.cursor.fetchone() is not None

    def _column_exists(self, table_name, column_name):
        """Check if a column exists in a table."""
        if not self.cursor: return False
        if not self._table_exists(table_name):
            return False
        self.cursor.execute(f"PRAGMA table_info({table_name})")
        return any(col['name'] == column_name for col in self.cursor.fetchall())

    def _check_schema_version(self):
        """Return the current schema version, creating the version table on first run."""
        if not self.cursor: return 0
        if not self._table_exists('schema_version'):
            self.logger.info("Creating schema_version table...")
            self.cursor.execute('''
                CREATE TABLE schema_version (
                    id INTEGER PRIMARY KEY,
                    version INTEGER NOT NULL,
                    applied_date TEXT NOT NULL
                )
            ''')
            self.cursor.execute('''
                INSERT INTO schema_version (version, applied_date)
                VALUES (0, ?)
            ''', (datetime.now().strftime('%Y-%m-%d %H:%M:%S'),))
            self.conn.commit()
            self.logger.info("Initialized schema version to 0.")
            return 0
        self.cursor.execute("SELECT MAX(version) FROM schema_version")
        result = self.cursor.fetchone()
        return result[0] if result[0] is not None else 0

    def _update_schema_version(self, new_version):
        """Record a newly applied schema version."""
        if not self.cursor: return False
        self.cursor.execute('''
            INSERT INTO schema_version (version, applied_date)
            VALUES (?, ?)
        ''', (new_version, datetime.now().strftime('%Y-%m-%d %H:%M:%S')))
        self.conn.commit()
        self.logger.info(f"Schema updated to version {new_version}")
        return True

    def setup_database(self):
        """Create/update the necessary tables."""
        persistence_migrations.run_schema_setup(self)

    def close(self):
        """Commit pending work and close the connection."""
        if self.conn:
            self.logger.info("Closing database connection")
            try:
                self.conn.commit()
                self.conn.close()
            except sqlite3.Error as e:
                self.logger.error(f"Error closing database connection: {str(e)}", exc_info=True)
        self.conn = None
        self.cursor = None
