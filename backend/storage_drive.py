"""
Thin Google Drive v3 client: the provider calls the media layer needs.

Authentication uses a long-lived OAuth refresh token; google-auth trades it
for a short-lived access token on the first request and again whenever the
token expires. Every provider failure surfaces as `StorageException` with
the provider's message. Credentials never appear in it.

The googleapiclient service object is not thread-safe, so each worker
thread builds its own.
"""

import threading
from typing import Optional

import httplib2
import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from errors import StorageException
from models import StoredFile

logger = structlog.get_logger("drive")

FOLDER_MIME = "application/vnd.google-apps.folder"
TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = ["https://www.googleapis.com/auth/drive"]
MY_DRIVE_ROOT = "root"


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    def __init__(self, client_id: str, client_secret: str, refresh_token: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self._local = threading.local()

    def _service(self):
        service = getattr(self._local, "service", None)
        if service is None:
            if not (self.client_id and self.client_secret and self.refresh_token):
                raise StorageException("Google Drive OAuth not configured. Missing env variables.")
            creds = Credentials(
                token=None,
                refresh_token=self.refresh_token,
                client_id=self.client_id,
                client_secret=self.client_secret,
                token_uri=TOKEN_URI,
                scopes=SCOPES,
            )
            service = build("drive", "v3", credentials=creds, cache_discovery=False)
            self._local.service = service
        return service

    def _call(self, what: str, request):
        try:
            return request.execute()
        except HttpError as e:
            raise StorageException(f"Drive {what} failed: {e}") from e
        except GoogleAuthError as e:
            raise StorageException(f"Drive {what} failed: {e}") from e
        except (OSError, httplib2.HttpLib2Error) as e:
            # timeouts, resets, DNS and TLS failures carry no status line
            raise StorageException(f"Drive {what} failed: {e!r}") from e

    def find_folder(self, name: str, parent_id: str) -> Optional[str]:
        """Id of the oldest non-trashed folder `name` under `parent_id`, if any."""

        query = (
            f"'{_quote(parent_id)}' in parents and name='{_quote(name)}' "
            f"and mimeType='{FOLDER_MIME}' and trashed=false"
        )
        result = self._call(
            "folder lookup",
            self._service().files().list(
                q=query,
                fields="files(id, name)",
                orderBy="createdTime",
                pageSize=1,
                includeItemsFromAllDrives=True,
                supportsAllDrives=True,
            ),
        )
        files = result.get("files", [])
        return files[0]["id"] if files else None

    def create_folder(self, name: str, parent_id: str) -> str:
        created = self._call(
            "folder create",
            self._service().files().create(
                body={"name": name, "mimeType": FOLDER_MIME, "parents": [parent_id]},
                fields="id",
                supportsAllDrives=True,
            ),
        )
        logger.info("drive_folder_created", name=name, parent_id=parent_id, folder_id=created["id"])
        return created["id"]

    def create_file(self, name: str, parent_id: str, mime_type: str, stream) -> str:
        media = MediaIoBaseUpload(stream, mimetype=mime_type, resumable=True)
        created = self._call(
            "upload",
            self._service().files().create(
                body={"name": name, "parents": [parent_id], "mimeType": mime_type},
                media_body=media,
                fields="id",
                supportsAllDrives=True,
            ),
        )
        return created["id"]

    def get_file(self, file_id: str) -> StoredFile:
        data = self._call(
            "metadata fetch",
            self._service().files().get(
                fileId=file_id,
                fields="id, webViewLink, webContentLink",
                supportsAllDrives=True,
            ),
        )
        return StoredFile(
            id=data["id"],
            web_view_link=data.get("webViewLink"),
            web_content_link=data.get("webContentLink"),
        )

    def grant_reader(self, file_id: str, email: Optional[str] = None) -> None:
        """Reader access for `email`, or for anyone with the link when `email` is None."""

        if email:
            body = {"type": "user", "role": "reader", "emailAddress": email}
        else:
            body = {"type": "anyone", "role": "reader"}
        self._call(
            "permission grant",
            self._service().permissions().create(
                fileId=file_id,
                body=body,
                sendNotificationEmail=False,
                supportsAllDrives=True,
            ),
        )
