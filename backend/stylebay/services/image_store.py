"""
商品图片存储 - 本地磁盘或 Cloudinary

Uploads are all-or-nothing: every file is validated before anything is
written, and a failure half-way removes what was already saved.
"""

import base64
import io
import os
import time
import uuid
from typing import List, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from werkzeug.utils import secure_filename

from ..errors import ValidationError

ALLOWED_EXTENSIONS = {'jpeg', 'jpg', 'png', 'gif', 'webp'}
LOCAL_URL_PREFIX = '/uploads/'


class PendingImage:
    """An uploaded file read into memory and validated."""

    def __init__(self, filename: str, mimetype: str, data: bytes):
        self.filename = filename
        self.mimetype = mimetype
        self.data = data

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower()

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode('ascii')
        return f"data:{self.mimetype};base64,{encoded}"


def _is_allowed(filename: str, mimetype: str) -> bool:
    if not filename or '.' not in filename:
        return False
    ext = filename.rsplit('.', 1)[-1].lower()
    subtype = (mimetype or '').split('/')[-1].lower()
    return ext in ALLOWED_EXTENSIONS and subtype in ALLOWED_EXTENSIONS


class ImageStore:
    """Base class: validation shared by every backend."""

    name = 'base'

    def __init__(self, max_images: int = 5, max_bytes: int = 5 * 1024 * 1024):
        self.max_images = max_images
        self.max_bytes = max_bytes

    def prepare(self, files) -> List[PendingImage]:
        """Read and validate uploads (werkzeug FileStorage or similar)."""
        files = [f for f in (files or []) if f is not None and getattr(f, 'filename', '')]
        if len(files) > self.max_images:
            raise ValidationError(f'You can upload at most {self.max_images} images')

        pending = []
        for upload in files:
            filename = os.path.basename(upload.filename)
            mimetype = getattr(upload, 'mimetype', '') or ''
            if not _is_allowed(filename, mimetype):
                raise ValidationError('Only image files are allowed!')
            data = upload.read()
            if len(data) > self.max_bytes:
                raise ValidationError(f'Image {filename} is larger than {self.max_bytes // (1024 * 1024)}MB')
            pending.append(PendingImage(filename, mimetype, data))
        return pending

    def save_all(self, files) -> List[str]:
        """Validate then store every file; returns image URLs in upload order."""
        pending = self.prepare(files)
        saved: List[str] = []
        try:
            for image in pending:
                saved.append(self.save(image))
        except Exception:
            self.delete(saved)
            raise
        return saved

    def save(self, image: PendingImage) -> str:
        raise NotImplementedError

    def delete(self, urls: List[str]) -> None:
        raise NotImplementedError


class LocalImageStore(ImageStore):
    """保存到 UPLOAD_FOLDER，通过 /uploads/<name> 访问"""

    name = 'local'

    def __init__(self, upload_dir: str, **kwargs):
        super().__init__(**kwargs)
        self.upload_dir = upload_dir
        os.makedirs(upload_dir, exist_ok=True)

    @staticmethod
    def _unique_name(image: PendingImage) -> str:
        return f"{int(time.time() * 1000)}-{uuid.uuid4()}{image.extension}"

    def save(self, image):
        name = self._unique_name(image)
        path = os.path.join(self.upload_dir, name)
        with open(path, 'wb') as f:
            f.write(image.data)
        return f"{LOCAL_URL_PREFIX}{name}"

    def path_for(self, url: str) -> Optional[str]:
        """Filesystem path of a local image URL; None for anything else."""
        if not isinstance(url, str) or not url.startswith(LOCAL_URL_PREFIX):
            return None
        name = secure_filename(url[len(LOCAL_URL_PREFIX):])
        if not name:
            return None
        return os.path.join(self.upload_dir, name)

    def delete(self, urls):
        for url in urls or []:
            path = self.path_for(url)
            if path and os.path.exists(path):
                os.remove(path)


class CloudinaryImageStore(ImageStore):
    """Uploads through the Cloudinary SDK.

    A failed upload degrades to an inline data: URI so the listing can still
    be created. Hosted images are never deleted from here.
    """

    name = 'cloudinary'

    def __init__(self, cloud_name: str, api_key: str, api_secret: str,
                 folder: str = 'stylebay', **kwargs):
        super().__init__(**kwargs)
        self.folder = folder
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def save(self, image):
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(image.data),
                folder=self.folder or None,
                filename=image.filename,
                resource_type='image',
            )
            url = (result or {}).get('secure_url')
            if not url:
                raise cloudinary.exceptions.Error('upload response has no secure_url')
            return url
        except (cloudinary.exceptions.Error, OSError) as e:
            print(f"  ⚠ Cloudinary upload failed for {image.filename}: {e}, storing inline")
            return image.to_data_uri()

    def delete(self, urls):
        return None


def create_image_store(config) -> ImageStore:
    """根据 IMAGE_BACKEND 选择图片存储"""
    limits = {
        'max_images': int(config.get('MAX_IMAGES', 5)),
        'max_bytes': int(config.get('MAX_IMAGE_BYTES', 5 * 1024 * 1024)),
    }
    backend = (config.get('IMAGE_BACKEND') or 'local').strip().lower()
    if backend == 'cloudinary':
        if config.get('CLOUDINARY_CLOUD_NAME') and config.get('CLOUDINARY_API_KEY') \
                and config.get('CLOUDINARY_API_SECRET'):
            return CloudinaryImageStore(
                cloud_name=config['CLOUDINARY_CLOUD_NAME'],
                api_key=config['CLOUDINARY_API_KEY'],
                api_secret=config['CLOUDINARY_API_SECRET'],
                folder=config.get('CLOUDINARY_FOLDER', 'stylebay'),
                **limits
            )
        print("  ⚠ IMAGE_BACKEND=cloudinary but credentials are missing, saving images locally")
    return LocalImageStore(config['UPLOAD_FOLDER'], **limits)
