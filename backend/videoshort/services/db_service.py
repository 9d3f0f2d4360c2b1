import asyncio
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from ..errors import StoreError
from ..models import AssetStatus, ContentItem, RenderedAsset, Scene, VideoStatus

logger = logging.getLogger(__name__)


class DatabaseService:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._create_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        return conn

    def _create_tables(self):
        """Create necessary tables if they don't exist"""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS content_items (
                        id TEXT PRIMARY KEY,
                        title TEXT,
                        script TEXT,
                        video_status TEXT DEFAULT 'pending',
                        video_file_path TEXT,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    )
                ''')

                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS content_scenes (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        content_item_id TEXT NOT NULL,
                        scene_number INTEGER NOT NULL,
                        narration_text TEXT,
                        start_time_seconds REAL,
                        end_time_seconds REAL,
                        UNIQUE(content_item_id, scene_number),
                        FOREIGN KEY(content_item_id) REFERENCES content_items(id) ON DELETE CASCADE
                    )
                ''')

                # One row per generated image for a scene
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS content_scene_videos (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        scene_id INTEGER NOT NULL,
                        video_status TEXT DEFAULT 'pending',
                        video_url TEXT,
                        FOREIGN KEY(scene_id) REFERENCES content_scenes(id) ON DELETE CASCADE
                    )
                ''')

                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Error creating tables: {e}") from e

    async def save_content_item(self, item: ContentItem):
        """Insert or replace a content item together with its scenes and assets"""
        def _sync_store():
            try:
                with self._connect() as conn:
                    cursor = conn.cursor()
                    cursor.execute('DELETE FROM content_items WHERE id = ?', (item.id,))
                    cursor.execute(
                        'INSERT INTO content_items (id, title, script, video_status, video_file_path) '
                        'VALUES (?, ?, ?, ?, ?)',
                        (item.id, item.title, item.script, item.video_status.value, item.video_file_path)
                    )
                    for scene in item.scenes or []:
                        cursor.execute(
                            'INSERT INTO content_scenes '
                            '(content_item_id, scene_number, narration_text, start_time_seconds, end_time_seconds) '
                            'VALUES (?, ?, ?, ?, ?)',
                            (item.id, scene.scene_number, scene.narration_text,
                             scene.start_time_seconds, scene.end_time_seconds)
                        )
                        scene_id = cursor.lastrowid
                        cursor.executemany(
                            'INSERT INTO content_scene_videos (scene_id, video_status, video_url) VALUES (?, ?, ?)',
                            [(scene_id, video.status.value, video.url) for video in scene.videos]
                        )
                    conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"Error storing content item: {e}") from e

        return await asyncio.to_thread(_sync_store)

    async def get_content_item(self, content_item_id: str) -> Optional[ContentItem]:
        """Fetch a content item with its scenes (by scene number) and their assets"""
        def _sync_get():
            try:
                with self._connect() as conn:
                    cursor = conn.cursor()
                    cursor.execute('SELECT * FROM content_items WHERE id = ?', (content_item_id,))
                    row = cursor.fetchone()
                    if row is None:
                        return None

                    cursor.execute(
                        'SELECT * FROM content_scenes WHERE content_item_id = ? ORDER BY scene_number ASC',
                        (content_item_id,)
                    )
                    scene_rows = cursor.fetchall()

                    scenes = []
                    for scene_row in scene_rows:
                        cursor.execute(
                            'SELECT video_status, video_url FROM content_scene_videos WHERE scene_id = ? ORDER BY id',
                            (scene_row['id'],)
                        )
                        videos = [
                            RenderedAsset(status=AssetStatus(video['video_status']), url=video['video_url'])
                            for video in cursor.fetchall()
                        ]
                        scenes.append(Scene(
                            scene_number=scene_row['scene_number'],
                            narration_text=scene_row['narration_text'] or "",
                            start_time_seconds=scene_row['start_time_seconds'],
                            end_time_seconds=scene_row['end_time_seconds'],
                            videos=videos,
                        ))

                    return ContentItem(
                        id=row['id'],
                        title=row['title'] or "",
                        script=row['script'],
                        video_status=VideoStatus(row['video_status']),
                        video_file_path=row['video_file_path'],
                        scenes=scenes,
                    )
            except sqlite3.Error as e:
                raise StoreError(f"Failed to fetch content item: {e}") from e

        return await asyncio.to_thread(_sync_get)

    async def update_video_result(self, content_item_id: str, status: VideoStatus, video_file_path: Optional[str]):
        """Write back the video status, storage path and update time"""
        def _sync_update():
            try:
                with self._connect() as conn:
                    cursor = conn.cursor()
                    cursor.execute(
                        'UPDATE content_items SET video_status = ?, video_file_path = ?, updated_at = ? WHERE id = ?',
                        (status.value, video_file_path, datetime.now(timezone.utc).isoformat(), content_item_id)
                    )
                    conn.commit()
                    if cursor.rowcount == 0:
                        raise StoreError(f"Failed to update content item: {content_item_id} not found")
            except sqlite3.Error as e:
                raise StoreError(f"Failed to update content item: {e}") from e

        return await asyncio.to_thread(_sync_update)

    async def get_updated_at(self, content_item_id: str) -> Optional[str]:
        def _sync_get():
            try:
                with self._connect() as conn:
                    cursor = conn.cursor()
                    cursor.execute('SELECT updated_at FROM content_items WHERE id = ?', (content_item_id,))
                    result = cursor.fetchone()
                    return result[0] if result else None
            except sqlite3.Error as e:
                raise StoreError(f"Error getting update time: {e}") from e

        return await asyncio.to_thread(_sync_get)
