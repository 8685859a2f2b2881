from fastapi import Body, Depends, FastAPI, File, Form, Query, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import List, Optional
from datetime import datetime

import structlog

from errors import PactTrackException, ValidationException
from log_config import configure_logging
from models import IncomingFile, JoinPactIn
from repo_logs import ActivityLogRepo
from repo_media import MediaRepo
from repo_pacts import ActivityRepo, PactRepo, UserRepo
from service_logs import LogService
from service_media import MediaService
from service_pacts import PactService
from service_progress import ProgressService
from settings import settings
from storage import MediaStorageProvisioner, RootFolder
from storage_drive import DriveClient

configure_logging()
logger = structlog.get_logger("main")

app = FastAPI(title="PactTrack Backend")

# Repos + services are built once here so the routes stay thin; tests swap
# them through `app.dependency_overrides` on the getters below.
log_repo = ActivityLogRepo()
media_repo = MediaRepo()
pact_repo = PactRepo()
activity_repo = ActivityRepo()
user_repo = UserRepo()

drive = DriveClient(
    settings.google_oauth_client_id,
    settings.google_oauth_client_secret,
    settings.google_oauth_refresh_token,
)
provisioner = MediaStorageProvisioner(
    drive,
    RootFolder(drive, settings.gdrive_root_folder_id, settings.gdrive_root_folder_name),
    visibility=settings.gdrive_default_visibility,
)

media_svc = MediaService(media_repo, pact_repo, activity_repo, user_repo, provisioner)
log_svc = LogService(log_repo, pact_repo, activity_repo, user_repo, media_svc)
progress_svc = ProgressService(log_repo, pact_repo, activity_repo, media_repo)
pact_svc = PactService(pact_repo, activity_repo, user_repo)


def get_log_service() -> LogService:
    return log_svc


def get_media_service() -> MediaService:
    return media_svc


def get_progress_service() -> ProgressService:
    return progress_svc


def get_pact_service() -> PactService:
    return pact_svc


@app.exception_handler(PactTrackException)
def handle_domain_error(request: Request, exc: PactTrackException):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
def handle_bad_request(request: Request, exc: RequestValidationError):
    # Malformed form/query/body fields answer in the same 400 shape as the services
    fields = sorted({".".join(str(p) for p in err["loc"][1:]) or err["loc"][0] for err in exc.errors()})
    return handle_domain_error(request, ValidationException(f"Invalid {', '.join(fields)}"))


def _incoming(upload: UploadFile) -> IncomingFile:
    size = upload.size
    if size is None:
        upload.file.seek(0, 2)
        size = upload.file.tell()
        upload.file.seek(0)
    return IncomingFile(
        name=upload.filename or "upload",
        mime_type=upload.content_type or "application/octet-stream",
        size_bytes=size,
        stream=upload.file,
    )


@app.get("/health")
def health():
    try:
        log_repo.ping()
        return {"ok": True}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"DB health check failed: {e}")


@app.post("/activity-logs", status_code=201)
def create_log(
    pactId: Optional[str] = Form(None),
    activityId: Optional[str] = Form(None),
    userId: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    occurredAt: Optional[datetime] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    svc: LogService = Depends(get_log_service),
):
    incoming = [_incoming(f) for f in files or []]
    return svc.create_log_with_media(pactId, activityId, userId, notes, incoming, occurredAt)


@app.get("/activity-logs/progress")
def progress(
    pactId: Optional[str] = Query(None),
    activityId: Optional[str] = Query(None),
    svc: ProgressService = Depends(get_progress_service),
):
    return svc.weekly_progress_by_activity(pactId, activityId)


@app.get("/activity-logs/progress/user")
def progress_for_user(
    pactId: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    svc: ProgressService = Depends(get_progress_service),
):
    return svc.weekly_progress_for_user(pactId, userId)


@app.get("/activity-logs/progress/by-user")
def progress_by_user(
    userId: Optional[str] = Query(None),
    svc: ProgressService = Depends(get_progress_service),
):
    results = svc.weekly_progress_across_pacts(userId)
    return {"userId": userId, "results": results}


@app.get("/activity-logs/user-logs")
def user_logs(
    pactId: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    svc: ProgressService = Depends(get_progress_service),
):
    return svc.logs_by_day(pactId, userId)


@app.get("/activity-logs/{log_id}")
def log_detail(log_id: str, svc: ProgressService = Depends(get_progress_service)):
    return svc.log_detail(log_id)


@app.post("/media/upload", status_code=201)
def upload_media(
    pactId: Optional[str] = Form(None),
    activityId: Optional[str] = Form(None),
    userId: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    svc: MediaService = Depends(get_media_service),
):
    asset = svc.upload(pactId, activityId, userId, _incoming(file) if file else None)
    return asset.summary()


@app.post("/users/join-pact")
def join_pact(body: JoinPactIn = Body(...), svc: PactService = Depends(get_pact_service)):
    return svc.join_pact(body.userId, body.pactId, body.activityIds)
