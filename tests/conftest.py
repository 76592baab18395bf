import pytest

from rollcall.config import RollcallConfig
from rollcall.core.interfaces import Clock
from rollcall.main import RollcallPlatform
from rollcall.persistence import InMemoryLedgerStore, SQLiteDatabase, SQLiteLedgerStore

OWNER = "owner-key"
INSTRUCTOR_A = "instructor-a"
INSTRUCTOR_B = "instructor-b"
OUTSIDER = "outsider-c"
STUDENT = "student-s"


class FakeClock(Clock):
    def __init__(self, start=1_700_000_000):
        self.current = start

    def now(self):
        return self.current

    def advance(self, seconds=1):
        self.current += seconds
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return RollcallConfig(owner=OWNER, max_batch_size=4, max_instructors=3, lock_timeout=1.0)


@pytest.fixture
def memory_store():
    return InMemoryLedgerStore()


@pytest.fixture
def sqlite_store(tmp_path):
    return SQLiteLedgerStore(SQLiteDatabase(str(tmp_path / "ledger.db")))


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryLedgerStore()
    return SQLiteLedgerStore(SQLiteDatabase(str(tmp_path / "ledger.db")))


@pytest.fixture
def platform(config, store, clock):
    return RollcallPlatform(config, store=store, clock=clock)


@pytest.fixture
def registry(platform):
    return platform.course_registry


@pytest.fixture
def attendance(platform):
    return platform.attendance_store


@pytest.fixture
def intro_course(registry):
    """Course 0, "Intro", taught by instructors A and B."""
    return registry.create_course(OWNER, "Intro", [INSTRUCTOR_A, INSTRUCTOR_B])
