"""
Media store adapter for Cloudinary.

MediaStore uploads validated files and deletes assets by public id.
MediaCleaner runs the best-effort deletions that follow a post update or
delete: each is an explicit task with its own retry and backoff policy whose
failure is logged and never reaches the request that scheduled it.
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor

import cloudinary
import cloudinary.uploader

from errors import ValidationError

logger = logging.getLogger(__name__)

MB = 1024 * 1024

IMAGE_TYPES = ['image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp']
VIDEO_TYPES = ['video/mp4', 'video/avi', 'video/mov', 'video/wmv', 'video/flv', 'video/webm']

AVATAR_MAX_SIZE = 2 * MB
IMAGE_MAX_SIZE = 5 * MB
VIDEO_MAX_SIZE = 10 * MB


# -----------------------------------------------------------------------------
# Upload validation
# -----------------------------------------------------------------------------

def is_image(file):
    return file is not None and file.mimetype in IMAGE_TYPES


def is_video(file):
    return file is not None and file.mimetype in VIDEO_TYPES


def file_size(file):
    """Size in bytes of an uploaded werkzeug FileStorage, leaving the stream rewound."""
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def check_image(file, max_size=IMAGE_MAX_SIZE, label='Image'):
    if not is_image(file):
        raise ValidationError('Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed.')
    if file_size(file) > max_size:
        raise ValidationError(f"File too large. {label} must be less than {max_size // MB}MB.")


def check_video(file, max_size=VIDEO_MAX_SIZE):
    if not is_video(file):
        raise ValidationError('Invalid file type. Only MP4, AVI, MOV, WMV, FLV, and WebM videos are allowed.')
    if file_size(file) > max_size:
        raise ValidationError(f"File too large. Video must be less than {max_size // MB}MB.")


# -----------------------------------------------------------------------------
# Cloudinary
# -----------------------------------------------------------------------------

class MediaStore:
    """Thin wrapper around the Cloudinary uploader."""

    def __init__(self, app=None):
        self.root_folder = 'blogss'
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        cloudinary.config(
            cloud_name=app.config.get('CLOUDINARY_CLOUD_NAME'),
            api_key=app.config.get('CLOUDINARY_API_KEY'),
            api_secret=app.config.get('CLOUDINARY_API_SECRET'),
            secure=True,
        )
        self.root_folder = app.config.get('MEDIA_ROOT_FOLDER', self.root_folder)
        app.extensions['media_store'] = self

    def folder(self, name):
        return f"{self.root_folder}/{name}"

    def store(self, file, folder, kind='image'):
        """
        Upload file to Cloudinary.

        Args:
            file: A werkzeug FileStorage that already passed validation.
            folder: Sub-folder under the configured root, e.g. ``images``.
            kind: ``image`` or ``video``.

        Returns:
            dict: url, public_id, format, size, width, height and, for
            videos, duration.
        """
        result = cloudinary.uploader.upload(
            file.stream,
            folder=self.folder(folder),
            resource_type=kind,
        )
        media = {
            "type": kind,
            "url": result.get('secure_url'),
            "public_id": result.get('public_id'),
            "format": result.get('format'),
            "size": result.get('bytes'),
            "width": result.get('width'),
            "height": result.get('height')
        }
        if kind == 'video':
            media["duration"] = result.get('duration')
        logger.info(f"Uploaded {kind} {media['public_id']} ({media['size']} bytes)")
        return media

    def delete(self, public_id):
        """Delete an asset; ids of locally stored files (``local:...``) are skipped."""
        if not public_id or public_id.startswith('local:'):
            return None
        resource_type = 'video' if 'video' in public_id else 'image'
        result = cloudinary.uploader.destroy(public_id, resource_type=resource_type)
        logger.info(f"Deleted media {public_id}: {result}")
        return result


class MediaCleaner:
    """Runs best-effort media deletions off the request path."""

    def __init__(self, store):
        self.store = store
        self.retries = 0
        self.backoff = 1.0
        self._executor = None

    def init_app(self, app):
        self.retries = app.config.get('MEDIA_CLEANUP_RETRIES', 0)
        self.backoff = app.config.get('MEDIA_CLEANUP_BACKOFF', 1.0)
        if app.config.get('MEDIA_CLEANUP_ASYNC', True):
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=app.config.get('MEDIA_CLEANUP_WORKERS', 2),
                    thread_name_prefix='media-cleanup',
                )
        else:
            self._executor = None
        app.extensions['media_cleaner'] = self

    def schedule(self, public_id, reason=''):
        """Queue deletion of public_id; runs inline when no executor is configured."""
        if not public_id:
            return None
        logger.debug(f"Scheduling deletion of media {public_id} ({reason})")
        if self._executor is not None:
            return self._executor.submit(self.run, public_id)
        return self.run(public_id)

    def run(self, public_id):
        """Delete public_id, retrying with exponential backoff. Returns True on success."""
        attempt = 0
        while True:
            try:
                self.store.delete(public_id)
                return True
            except Exception as e:
                if attempt >= self.retries:
                    logger.error(f"Giving up deleting media {public_id} after {attempt + 1} attempt(s): {e}")
                    return False
                delay = self.backoff * (2 ** attempt)
                logger.warning(f"Deleting media {public_id} failed ({e}); retrying in {delay:.1f}s")
                time.sleep(delay)
                attempt += 1

    def shutdown(self, wait=True):
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None


media_store = MediaStore()
media_cleaner = MediaCleaner(media_store)
