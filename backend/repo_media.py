"""
Repository: SQL operations for `media`.

Media rows are written once after a successful Drive upload and never
updated. Reads go through the (pact, activity, user, created_at) index.
"""

from datetime import datetime
from typing import List
from db import get_conn
from models import MediaAsset
from time_window import exclusive_end

_COLUMNS = (
    "id, pact_id, activity_id, user_id, provider, provider_file_id, name, "
    "mime_type, size_bytes, visibility, web_view_link, web_content_link, created_at"
)


def _asset(r) -> MediaAsset:
    return MediaAsset(
        id=str(r[0]),
        pact_id=r[1],
        activity_id=r[2],
        user_id=r[3],
        provider=r[4],
        provider_file_id=r[5],
        name=r[6],
        mime_type=r[7],
        size_bytes=r[8],
        visibility=r[9],
        web_view_link=r[10],
        web_content_link=r[11],
        created_at=r[12],
    )


class MediaRepo:
    def insert_media(self, asset: MediaAsset) -> MediaAsset:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO media (pact_id, activity_id, user_id, provider, provider_file_id, "
                    "name, mime_type, size_bytes, visibility, web_view_link, web_content_link, created_at) "
                    "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s::timestamptz, now())) "
                    f"RETURNING {_COLUMNS}",
                    (
                        asset.pact_id,
                        asset.activity_id,
                        asset.user_id,
                        asset.provider,
                        asset.provider_file_id,
                        asset.name,
                        asset.mime_type,
                        asset.size_bytes,
                        asset.visibility,
                        asset.web_view_link,
                        asset.web_content_link,
                        asset.created_at,
                    ),
                )
                r = cur.fetchone()
            conn.commit()
        return _asset(r)

    def find_in_window(
        self, pact_id: str, activity_id: str, user_id: str, start: datetime, end: datetime
    ) -> List[MediaAsset]:
        """Assets of (pact, activity, user) created in [start, end], oldest first."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM media "
                    "WHERE pact_id=%s AND activity_id=%s AND user_id=%s "
                    "AND created_at >= %s AND created_at < %s ORDER BY created_at",
                    (pact_id, activity_id, user_id, start, exclusive_end(end)),
                )
                return [_asset(r) for r in cur.fetchall()]
