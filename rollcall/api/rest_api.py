"""
REST API implementation for the Rollcall ledger using FastAPI.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..core.entities import EMPTY_RECORD, LogEntry
from ..core.enums import EventType
from ..core.exceptions import (
    AuthorizationError, ConcurrencyError, CourseInactiveError, RollcallException, ValidationError
)
from ..core.interfaces import IdentityProvider
from ..services import AccessControlLedger, AttendanceStore, CourseRegistry, EventLog

logger = logging.getLogger(__name__)

CALLER_HEADER = "X-Caller-Identity"


class HeaderIdentityProvider(IdentityProvider):
    """Trusts the identity an upstream authenticating proxy put in a header."""

    def __init__(self, header: str = CALLER_HEADER):
        self._header = header.lower()

    def resolve(self, headers: Mapping[str, str]) -> Optional[str]:
        value = headers.get(self._header)
        return value.strip() if value and value.strip() else None


# Pydantic models for API
class CourseCreate(BaseModel):
    name: str = Field(..., max_length=200)
    instructors: List[str] = Field(default_factory=list)


class CourseCreated(BaseModel):
    course_id: int


class CourseResponse(BaseModel):
    course_id: int
    name: str
    is_active: bool
    instructors: List[str]


class CourseActiveResponse(BaseModel):
    course_id: int
    is_active: bool


class AuthorizationResponse(BaseModel):
    course_id: int
    identity: str
    is_owner: bool
    is_authorized: bool


class AttendanceMark(BaseModel):
    student: str = Field(..., min_length=1)
    is_present: bool


class BulkAttendanceMark(BaseModel):
    # Lengths are checked by the store so mismatches report LENGTH_MISMATCH / EMPTY_BATCH.
    students: List[str]
    presence: List[bool]


class AttendanceResponse(BaseModel):
    course_id: int
    session_id: int
    student: str
    is_present: bool
    timestamp: int
    recorded: bool


class BulkAttendanceResponse(BaseModel):
    course_id: int
    session_id: int
    marked: int
    timestamp: int


class AttendanceCountResponse(BaseModel):
    course_id: int
    student: str
    total_sessions: int
    present: int


class EventResponse(BaseModel):
    sequence: int
    event_type: str
    course_id: int
    timestamp: int
    session_id: Optional[int] = None
    student: Optional[str] = None
    instructor: Optional[str] = None
    name: Optional[str] = None
    is_present: Optional[bool] = None


class StatisticsResponse(BaseModel):
    success: bool
    message: str
    statistics: Dict[str, Any]


def _status_for(error: RollcallException) -> int:
    if isinstance(error, AuthorizationError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(error, CourseInactiveError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, ConcurrencyError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _to_http(error: RollcallException) -> HTTPException:
    return HTTPException(
        status_code=_status_for(error),
        detail={"error": error.error_code, "message": error.message},
    )


class RollcallRestAPI:
    """REST API implementation for the Rollcall ledger."""

    def __init__(self, access_control: AccessControlLedger, course_registry: CourseRegistry,
                 attendance_store: AttendanceStore, event_log: EventLog,
                 identity_provider: Optional[IdentityProvider] = None):
        self._access_control = access_control
        self._course_registry = course_registry
        self._attendance_store = attendance_store
        self._event_log = event_log
        self._identity_provider = identity_provider or HeaderIdentityProvider()

        self.app = FastAPI(
            title="Rollcall Attendance Ledger API",
            description="Permissioned attendance records with an append-only event log",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc"
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_routes()

    def _caller(self, request: Request) -> str:
        """Dependency resolving the authenticated caller for write routes."""
        identity = self._identity_provider.resolve(request.headers)
        if not identity:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"error": "UNAUTHENTICATED", "message": "Caller identity is required"},
            )
        return identity

    def _setup_routes(self):
        """Setup API routes."""
        caller_dependency = Depends(self._caller)

        @self.app.get("/", response_model=Dict[str, str])
        async def root():
            return {
                "message": "Rollcall Attendance Ledger API",
                "version": __version__,
                "docs": "/docs"
            }

        @self.app.get("/health", response_model=Dict[str, str])
        async def health_check():
            return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

        # Course endpoints
        @self.app.post("/courses", response_model=CourseCreated, status_code=status.HTTP_201_CREATED)
        def create_course(course_data: CourseCreate, caller: str = caller_dependency):
            """Create a course. Owner only."""
            try:
                course_id = self._course_registry.create_course(
                    caller, course_data.name, course_data.instructors
                )
                return CourseCreated(course_id=course_id)
            except RollcallException as e:
                raise _to_http(e)

        @self.app.get("/courses/{course_id}", response_model=CourseResponse)
        def get_course(course_id: int):
            try:
                course = self._course_registry.get_course(course_id)
            except RollcallException as e:
                raise _to_http(e)
            if course is None:
                raise HTTPException(status_code=404, detail={"error": "NOT_FOUND", "message": "Course not found"})
            return CourseResponse(**course.to_dict())

        @self.app.get("/courses/{course_id}/active", response_model=CourseActiveResponse)
        def is_course_active(course_id: int):
            try:
                return CourseActiveResponse(course_id=course_id,
                                            is_active=self._course_registry.is_active(course_id))
            except RollcallException as e:
                raise _to_http(e)

        @self.app.get("/courses/{course_id}/authorized/{identity}", response_model=AuthorizationResponse)
        def is_authorized(course_id: int, identity: str):
            try:
                authorized = self._access_control.is_authorized(course_id, identity)
            except RollcallException as e:
                raise _to_http(e)
            return AuthorizationResponse(
                course_id=course_id,
                identity=identity,
                is_owner=self._access_control.is_owner(identity),
                is_authorized=authorized,
            )

        # Attendance endpoints
        @self.app.post("/courses/{course_id}/sessions/{session_id}/attendance",
                       response_model=AttendanceResponse)
        def mark_attendance(course_id: int, session_id: int, mark: AttendanceMark,
                            caller: str = caller_dependency):
            """Mark one student present or absent."""
            try:
                record = self._attendance_store.mark_attendance(
                    caller, course_id, session_id, mark.student, mark.is_present
                )
            except RollcallException as e:
                raise _to_http(e)
            return AttendanceResponse(
                course_id=course_id, session_id=session_id, student=mark.student,
                is_present=record.is_present, timestamp=record.timestamp, recorded=True,
            )

        @self.app.post("/courses/{course_id}/sessions/{session_id}/attendance/bulk",
                       response_model=BulkAttendanceResponse)
        def bulk_mark_attendance(course_id: int, session_id: int, batch: BulkAttendanceMark,
                                 caller: str = caller_dependency):
            """Mark a batch of students; nothing is written if any check fails."""
            try:
                records = self._attendance_store.bulk_mark_attendance(
                    caller, course_id, session_id, batch.students, batch.presence
                )
            except RollcallException as e:
                raise _to_http(e)
            return BulkAttendanceResponse(
                course_id=course_id, session_id=session_id,
                marked=len(records), timestamp=records[0].timestamp,
            )

        @self.app.get("/courses/{course_id}/sessions/{session_id}/attendance/{student}",
                      response_model=AttendanceResponse)
        def verify_attendance(course_id: int, session_id: int, student: str):
            try:
                record = self._attendance_store.find_record(course_id, session_id, student)
            except RollcallException as e:
                raise _to_http(e)
            recorded = record is not None
            if record is None:
                record = EMPTY_RECORD
            return AttendanceResponse(
                course_id=course_id, session_id=session_id, student=student,
                is_present=record.is_present, timestamp=record.timestamp, recorded=recorded,
            )

        @self.app.get("/courses/{course_id}/students/{student}/attendance-count",
                      response_model=AttendanceCountResponse)
        def attendance_count(course_id: int, student: str, total_sessions: int = Query(...)):
            try:
                present = self._attendance_store.get_student_attendance_count(
                    course_id, student, total_sessions
                )
            except RollcallException as e:
                raise _to_http(e)
            return AttendanceCountResponse(
                course_id=course_id, student=student,
                total_sessions=total_sessions, present=present,
            )

        # Event log endpoints
        @self.app.get("/events", response_model=List[EventResponse])
        def list_events(since: int = Query(0, ge=0), event_type: Optional[str] = None,
                        course_id: Optional[int] = None, limit: int = Query(500, ge=1, le=5000)):
            """Replay the event log after a sequence number."""
            kind = None
            if event_type is not None:
                try:
                    kind = EventType(event_type)
                except ValueError:
                    raise HTTPException(
                        status_code=400,
                        detail={"error": "INVALID_ARGUMENT", "message": f"Unknown event type: {event_type}"},
                    )
            try:
                entries = self._event_log.replay(since=since, event_type=kind, course_id=course_id)
            except RollcallException as e:
                raise _to_http(e)
            return [self._entry_to_response(entry) for entry in entries[:limit]]

        @self.app.get("/statistics", response_model=StatisticsResponse)
        def get_statistics():
            statistics = {
                "courses": self._course_registry.get_statistics(),
                "attendance": self._attendance_store.get_statistics(),
                "events": self._event_log.get_statistics(),
            }
            return StatisticsResponse(
                success=True,
                message="Statistics retrieved successfully",
                statistics=statistics
            )

    @staticmethod
    def _entry_to_response(entry: LogEntry) -> EventResponse:
        return EventResponse(**entry.to_dict())
