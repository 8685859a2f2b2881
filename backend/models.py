"""
Pydantic models used across the backend.

Input shapes validate at the FastAPI route boundary; the entity models are
what the repositories return and the services work with.

Guidelines:
- Entity models mirror table rows. `id` and `created_at` are optional so
    a model can be built before the row exists.
- Response payloads are plain dicts shaped by the services, keyed in
    camelCase for API clients.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Literal, Optional
from datetime import datetime


class Pact(BaseModel):
        """A group commitment with a weekly day-count target."""

        id: str
        title: str = ""
        description: Optional[str] = None
        participants: List[str] = Field(default_factory=list)
        status: str = "active"
        start_date: Optional[datetime] = None
        end_date: Optional[datetime] = None
        min_days_per_week: Optional[int] = Field(default=None, ge=1, le=7)
        max_activities_per_user: int = 1
        skip_fine: float = 0
        leave_fine: float = 0

        def has_participant(self, user_id: str) -> bool:
                return user_id in self.participants


class Activity(BaseModel):
        id: str
        pact_id: str
        user_id: str
        name: str = ""
        description: Optional[str] = None
        number_of_days: int = 0
        is_primary: bool = False


class PactMembership(BaseModel):
        pact_id: str
        primary_activity_id: Optional[str] = None
        secondary_activity_id: Optional[str] = None


class User(BaseModel):
        """A person; `email` is the identity Drive folders are shared with."""

        id: str
        email: str
        name: str = ""
        phone: str = ""
        membership: Optional[PactMembership] = None


class ActivityLogEntry(BaseModel):
        """One user's completion record for a pact on one local calendar day."""

        id: Optional[str] = None
        pact_id: str
        activity_id: str
        user_id: str
        occurred_at: datetime
        notes: Optional[str] = None
        verified: bool = False
        created_at: Optional[datetime] = None


class MediaAsset(BaseModel):
        """Metadata for one uploaded evidence file.

        There is no log foreign key; `ProgressService.log_detail` joins media
        to a log by (pact, activity, user) and the log's local day window.
        """

        id: Optional[str] = None
        pact_id: str
        activity_id: str
        user_id: str
        provider: Literal["gdrive"] = "gdrive"
        provider_file_id: str
        name: str
        mime_type: str
        size_bytes: int
        visibility: Literal["link", "private"] = "link"
        web_view_link: Optional[str] = None
        web_content_link: Optional[str] = None
        created_at: Optional[datetime] = None

        def summary(self) -> dict:
                return {
                        "id": self.id,
                        "name": self.name,
                        "mimeType": self.mime_type,
                        "sizeBytes": self.size_bytes,
                        "webViewLink": self.web_view_link,
                        "webContentLink": self.web_content_link,
                }


class IncomingFile(BaseModel):
        """An upload waiting for admission. `stream` is any binary file object."""

        model_config = ConfigDict(arbitrary_types_allowed=True)

        name: str
        mime_type: str
        size_bytes: int
        stream: Any = None


class StoredFile(BaseModel):
        """What Drive hands back for an uploaded file."""

        id: str
        web_view_link: Optional[str] = None
        web_content_link: Optional[str] = None


class JoinPactIn(BaseModel):
        userId: str
        pactId: str
        activityIds: List[str] = Field(default_factory=list)
