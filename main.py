import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import Optional

import anyio
import socketio
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

import config
import database
from attendance import AttendanceEngine, MarkOutcome
from credentials import BcryptHasher
from errors import AttendanceError, StoreError
from proofs import LocationProofs
from schemas import Coordinate
from session_store import SessionStore
from timetable import local_now, time_of_day, weekday_name

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# ----------------------
# Socket.IO
# ----------------------
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins="*")
sio_app = socketio.ASGIApp(sio, socketio_path="/socket.io")


def teacher_room(class_code: str) -> str:
    return f"class:{class_code}:teacher"


def notify_teachers(event: str, class_code: str, data: dict) -> None:
    """Push to the class's teacher dashboards from a sync handler thread."""
    try:
        anyio.from_thread.run(partial(sio.emit, event, data, to=teacher_room(class_code)))
    except Exception:
        logger.warning("Could not emit %s for %s", event, class_code, exc_info=True)


@sio.event
async def connect(sid, environ, auth):
    logger.debug("Socket %s connected", sid)


@sio.event
async def join_teacher(sid, data):
    class_code = (data or {}).get("classCode")
    if class_code:
        await sio.enter_room(sid, teacher_room(class_code))


# ----------------------
# App
# ----------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        database.connect()
    except StoreError as e:
        logger.critical("%s", e.message)
        raise SystemExit(1) from e

    now = local_now(config.TIMEZONE)
    logger.info("Current server day: %s, time (%s): %s", weekday_name(now), config.TIMEZONE, time_of_day(now))
    yield
    database.close()


app = FastAPI(title="Classroom Attendance Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/ws", sio_app)

_engine: Optional[AttendanceEngine] = None


def get_engine() -> AttendanceEngine:
    global _engine
    if _engine is None:
        store = SessionStore(database.data_collection(), config.DATA_DOCUMENT_ID)
        proofs = LocationProofs(
            config.LOCATION_PROOF_SECRET,
            ttl_seconds=config.LOCATION_PROOF_TTL_SECONDS,
            algorithm=config.LOCATION_PROOF_ALG,
        )
        _engine = AttendanceEngine(
            store,
            BcryptHasher(config.BCRYPT_ROUNDS),
            config.GEOFENCE_RADIUS_METERS,
            tz=config.TIMEZONE,
            proofs=proofs,
            require_proof=config.REQUIRE_LOCATION_PROOF,
        )
    return _engine


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request: {field} {first.get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "message": f"Server error: {exc}"})


# ----------------------
# Request bodies
# ----------------------

class RequestBody(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)


class LoginBody(RequestBody):
    userType: Optional[str] = None
    userId: Optional[str] = None
    password: Optional[str] = None


class RefreshBody(RequestBody):
    userType: Optional[str] = None
    userId: Optional[str] = None


class StartSessionBody(RequestBody):
    classCode: str
    coords: Coordinate
    teacherId: Optional[str] = None


class MarkAttendanceBody(RequestBody):
    classCode: Optional[str] = None
    userId: Optional[str] = None
    proof: Optional[str] = None


class VerifyLocationBody(RequestBody):
    classCode: str
    coords: Coordinate
    userId: Optional[str] = None


# ----------------------
# Users
# ----------------------

@app.post("/api/login")
def login(body: LoginBody, engine: AttendanceEngine = Depends(get_engine)):
    logger.debug("Login attempt: type=%s, id=%s", body.userType, body.userId)
    user, timetable = engine.login(body.userType, body.userId, body.password)
    return {"success": True, "user": user, "timetable": timetable}


@app.post("/api/refresh-user")
def refresh_user(body: RefreshBody, engine: AttendanceEngine = Depends(get_engine)):
    user, timetable = engine.refresh(body.userType, body.userId)
    return {"success": True, "user": user, "timetable": timetable}


# ----------------------
# Sessions
# ----------------------

@app.post("/api/start-session")
def start_session(body: StartSessionBody, engine: AttendanceEngine = Depends(get_engine)):
    message = engine.start_session(body.classCode, body.coords, teacher_id=body.teacherId)
    notify_teachers("session:started", body.classCode, {"classCode": body.classCode})
    return {"success": True, "message": message}


@app.post("/api/verify-location")
def verify_location(body: VerifyLocationBody, engine: AttendanceEngine = Depends(get_engine)):
    result = engine.verify_location(body.classCode, body.coords, student_id=body.userId)
    return {
        "success": True,
        "message": "Location Verified.",
        "distance": round(result.distance_meters),
        "proof": result.proof,
    }


@app.post("/api/mark-attendance")
def mark_attendance(body: MarkAttendanceBody, engine: AttendanceEngine = Depends(get_engine)):
    outcome = engine.mark_attendance(body.classCode, body.userId, proof=body.proof)
    if outcome is MarkOutcome.MARKED:
        notify_teachers("attendance:marked", body.classCode, {"classCode": body.classCode, "userId": body.userId})
    return {"success": True, "message": outcome.value, "alreadyMarked": outcome is MarkOutcome.ALREADY_MARKED}


@app.get("/api/attendance-list/{classCode}")
def attendance_list(classCode: str, engine: AttendanceEngine = Depends(get_engine)):
    roster = engine.roster(classCode)
    return {"success": True, "students": [entry.model_dump() for entry in roster]}


# ----------------------
# Health and database test
# ----------------------
@app.get("/")
def read_root():
    return {"message": "Attendance backend running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_url": "Set" if config.DATABASE_URL else "Not Set",
        "database_name": config.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }

    if database.db is None:
        return response

    try:
        response["collections"] = database.db.list_collection_names()[:10]
        response["database"] = "Connected & Working"
        response["connection_status"] = "Connected"
    except Exception as e:
        response["database"] = f"Connected but Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
