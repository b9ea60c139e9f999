"""
Cloudinary media service for product images.

Uploads degrade to the placeholder image, and deletes never raise: a failed
delete leaves an orphaned blob, which is accepted.
"""
import logging
import os

import cloudinary
import cloudinary.uploader
from django.conf import settings

logger = logging.getLogger(__name__)

CLOUDINARY_FOLDER = getattr(
    settings,
    'CLOUDINARY_FOLDER',
    os.getenv('CLOUDINARY_FOLDER', 'jewelry-inventory')
)


def placeholder_url():
    return settings.PLACEHOLDER_IMAGE_URL


def is_placeholder(url):
    return not url or url == placeholder_url()


def is_configured():
    return all([
        getattr(settings, 'CLOUDINARY_CLOUD_NAME', ''),
        getattr(settings, 'CLOUDINARY_API_KEY', ''),
        getattr(settings, 'CLOUDINARY_API_SECRET', ''),
    ])


def _configure():
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True,
    )


def upload_image(image):
    """
    Upload an image file and return its public URL.

    Returns the placeholder URL when no image is given, when Cloudinary is not
    configured, or when the upload fails.
    """
    if not image:
        return placeholder_url()
    if not is_configured():
        logger.warning("Cloudinary is not configured; using placeholder image")
        return placeholder_url()

    try:
        _configure()
        result = cloudinary.uploader.upload(
            image,
            folder=CLOUDINARY_FOLDER,
            resource_type='image',
        )
        url = result.get('secure_url')
        if not url:
            logger.warning(f"Cloudinary upload returned no URL: {result}")
            return placeholder_url()
        logger.info(f"Uploaded product image {result.get('public_id')}")
        return url
    except Exception as e:
        logger.error(f"Error uploading image to Cloudinary: {str(e)}", exc_info=True)
        return placeholder_url()


def public_id_from_url(url):
    """
    Extract the Cloudinary public id from a delivery URL.

    https://res.cloudinary.com/<cloud>/image/upload/v1748228777/jewelry-inventory/abc.png
    -> jewelry-inventory/abc
    """
    if not url or 'cloudinary.com' not in url or CLOUDINARY_FOLDER not in url:
        return None
    parts = url.split('?')[0].split('/')
    try:
        upload_index = parts.index('upload')
    except ValueError:
        return None
    # Skip the version segment that follows "upload"
    remainder = parts[upload_index + 2:]
    if not remainder:
        return None
    return '/'.join(remainder).rsplit('.', 1)[0]


def delete_image(url):
    """
    Delete a previously uploaded image. Returns True when Cloudinary confirmed
    the delete. Placeholder and foreign URLs are ignored.
    """
    if is_placeholder(url):
        return False

    public_id = public_id_from_url(url)
    if not public_id:
        logger.debug(f"Skipping delete for non-Cloudinary image {url}")
        return False

    try:
        if is_configured():
            _configure()
        result = cloudinary.uploader.destroy(public_id)
        deleted = result.get('result') == 'ok'
        if not deleted:
            logger.warning(f"Cloudinary did not delete {public_id}: {result}")
        return deleted
    except Exception as e:
        logger.error(f"Error deleting image {public_id} from Cloudinary: {str(e)}")
        return False
