"""
Main entry point for the Rollcall platform.
"""

import argparse
import logging
import sys
from typing import Optional

from .api.rest_api import RollcallRestAPI
from .config import RollcallConfig
from .core.exceptions import ConfigurationError
from .core.interfaces import Clock, IdentityProvider, LedgerStore, SystemClock
from .logging_config import configure_logging
from .persistence import LedgerStoreFactory
from .services import AccessControlLedger, AttendanceStore, ConcurrencyManager, CourseRegistry, EventLog

logger = logging.getLogger(__name__)


class RollcallPlatform:
    """Main platform class that wires the ledger's services together."""

    def __init__(self, config: RollcallConfig, store: Optional[LedgerStore] = None,
                 clock: Optional[Clock] = None, identity_provider: Optional[IdentityProvider] = None):
        self._config = config
        self._clock = clock or SystemClock()

        logger.info("Initializing Rollcall platform...")

        self._store = store or LedgerStoreFactory.create_store(
            config.store_type, database_path=config.database_path
        )
        logger.info("Ledger store initialized: %s", type(self._store).__name__)

        self._concurrency_manager = ConcurrencyManager(lock_timeout=config.lock_timeout)
        self._access_control = AccessControlLedger(self._store, config.owner)
        self._event_log = EventLog(self._store)
        self._course_registry = CourseRegistry(
            self._store, self._access_control, self._event_log, self._concurrency_manager,
            clock=self._clock, max_instructors=config.max_instructors,
        )
        self._attendance_store = AttendanceStore(
            self._store, self._access_control, self._course_registry, self._event_log,
            self._concurrency_manager, clock=self._clock, max_batch_size=config.max_batch_size,
        )
        logger.info("Services initialized (owner %s)", config.owner)

        self._rest_api = RollcallRestAPI(
            self._access_control, self._course_registry, self._attendance_store,
            self._event_log, identity_provider=identity_provider,
        )

    @property
    def config(self) -> RollcallConfig:
        return self._config

    @property
    def access_control(self) -> AccessControlLedger:
        return self._access_control

    @property
    def course_registry(self) -> CourseRegistry:
        return self._course_registry

    @property
    def attendance_store(self) -> AttendanceStore:
        return self._attendance_store

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def concurrency_manager(self) -> ConcurrencyManager:
        return self._concurrency_manager

    @property
    def app(self):
        return self._rest_api.app

    def start_rest_server(self, host: Optional[str] = None, port: Optional[int] = None):
        """Run the REST server in the foreground until interrupted."""
        import uvicorn

        host = host or self._config.rest_host
        port = port or self._config.rest_port
        logger.info("REST server listening on http://%s:%d (docs at /docs)", host, port)
        uvicorn.run(self.app, host=host, port=port, log_level=self._config.log_level.lower())

    def shutdown(self):
        self._store.close()
        logger.info("Rollcall platform stopped")

    def run_demo(self):
        """Play a short scenario against the platform and log the outcome."""
        owner = self._config.owner
        course_id = self._course_registry.create_course(owner, "Intro", ["instructor-a", "instructor-b"])
        logger.info("Created course %d", course_id)

        for session_id, present in enumerate([True, False, True]):
            self._attendance_store.mark_attendance("instructor-a", course_id, session_id, "student-s", present)
        self._attendance_store.bulk_mark_attendance(
            "instructor-b", course_id, 1, ["student-t", "student-u"], [True, True]
        )

        present = self._attendance_store.get_student_attendance_count(course_id, "student-s", 3)
        logger.info("student-s attended %d of 3 sessions", present)
        for entry in self._event_log.replay():
            logger.info("  #%d %s", entry.sequence, entry.to_dict())


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Rollcall attendance ledger")
    parser.add_argument("--config", type=str, help="JSON configuration file (defaults to ROLLCALL_* env vars)")
    parser.add_argument("--host", type=str, help="REST server host")
    parser.add_argument("--port", type=int, help="REST server port")
    parser.add_argument("--demo", action="store_true", help="Run demo mode")

    args = parser.parse_args(argv)

    try:
        config = RollcallConfig.from_file(args.config) if args.config else RollcallConfig.from_env()
        configure_logging(config.log_level, config.log_file)
        platform = RollcallPlatform(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 2

    try:
        if args.demo:
            platform.run_demo()
        else:
            platform.start_rest_server(args.host, args.port)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        platform.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
